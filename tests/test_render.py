"""Tests for the render pass and the SVG stroker."""

import math
import os

import pytest

from framecanvas.contours.cache import ContourCache
from framecanvas.frames.registry import FrameRegistry
from framecanvas.frames.transforms import nested_to_screen
from framecanvas.models import (
    CoordinateFrame, FunctionPlot, ImplicitPlot, ParametricPlot, PlotKind, Vector,
)
from framecanvas.render.pipeline import make_cache, render_frame, render_scene
from framecanvas.render.svg_emit import (
    beziers_to_svg_path, catmull_rom_to_beziers, emit_scene_svg, save_svg,
)


@pytest.fixture
def plot_frame():
    """A top-level frame with one object of every kind."""
    return CoordinateFrame(
        id="plots",
        vectors=[Vector(id="v", end=(1, 2))],
        functions=[FunctionPlot(id="f", expression="sin(x)", x_min=-3, x_max=3)],
        parametric_plots=[ParametricPlot(id="p", x_expression="cos(t)", y_expression="sin(t)",
                                         t_min=0, t_max=6.28)],
        implicit_plots=[ImplicitPlot(id="i", equation="x^2 + y^2 - 1",
                                     x_min=-2, x_max=2, y_min=-2, y_max=2, num_points=40)],
    )


class TestRenderPass:
    """Tests for rendering frames to screen segments."""

    def test_renders_every_kind(self, plot_frame, root_viewport, canvas_size):
        """Test that each plot kind yields a RenderedPlot with segments."""
        rendered = render_frame(plot_frame, None, root_viewport, canvas_size)

        assert [r.kind for r in rendered] == [
            PlotKind.VECTOR, PlotKind.FUNCTION, PlotKind.PARAMETRIC, PlotKind.IMPLICIT,
        ]
        for r in rendered:
            assert r.frame_id == "plots"
            assert r.segments

    def test_vector_endpoints(self, plot_frame, root_viewport, canvas_size):
        """Test that vectors are a single two-point segment in pixels."""
        vector = render_frame(plot_frame, None, root_viewport, canvas_size)[0]
        assert vector.segments == [[(400.0, 300.0), (450.0, 200.0)]]

    def test_single_points_not_stroked(self, root_viewport, canvas_size):
        """Test that isolated samples next to a pole never become strokes."""
        plot = FunctionPlot(id="tan", expression="tan(x)", x_min=-math.pi / 2, x_max=math.pi / 2)
        frame = CoordinateFrame(id="poles", functions=[plot])

        rendered = render_frame(frame, None, root_viewport, canvas_size)

        assert rendered[0].segments
        assert all(len(s) >= 2 for s in rendered[0].segments)

    def test_failing_plot_omitted(self, root_viewport, canvas_size):
        """Test that a broken expression is skipped without stopping the pass."""
        frame = CoordinateFrame(
            id="mixed",
            functions=[
                FunctionPlot(id="bad", expression="sin(x", x_min=0, x_max=1),
                FunctionPlot(id="good", expression="x", x_min=0, x_max=1),
            ],
        )
        rendered = render_frame(frame, None, root_viewport, canvas_size)
        assert [r.plot_id for r in rendered] == ["good"]

    def test_degenerate_frame_skipped(self, root_viewport, canvas_size):
        """Test that frames with a singular basis and their children render nothing."""
        registry = FrameRegistry([
            CoordinateFrame(id="flat", base_i=(1, 0), base_j=(2, 0),
                            vectors=[Vector(id="a", end=(1, 1))]),
            CoordinateFrame(id="child", parent_frame_id="flat",
                            vectors=[Vector(id="b", end=(1, 1))]),
            CoordinateFrame(id="fine", vectors=[Vector(id="c", end=(1, 1))]),
        ])
        rendered = render_scene(registry, root_viewport, canvas_size)
        assert [r.plot_id for r in rendered] == ["c"]

    def test_nested_frame(self, nested_registry, root_viewport, canvas_size):
        """Test that nested content is placed through the whole chain."""
        c = nested_registry.get("C")
        c.vectors.append(Vector(id="deep", start=(0.5, 0.5), end=(1, -1)))

        rendered = render_scene(nested_registry, root_viewport, canvas_size)

        assert len(rendered) == 1
        start, end = rendered[0].segments[0]
        assert start == pytest.approx(nested_to_screen((0.5, 0.5), c, nested_registry, root_viewport, canvas_size))
        assert end == pytest.approx(nested_to_screen((1, -1), c, nested_registry, root_viewport, canvas_size))

    def test_cache_reused_across_passes(self, plot_frame, root_viewport, canvas_size):
        """Test that implicit contours are cached between renders."""
        registry = FrameRegistry([plot_frame])
        cache = ContourCache()

        first = render_scene(registry, root_viewport, canvas_size, cache=cache)
        second = render_scene(registry, root_viewport, canvas_size, cache=cache)

        assert cache.stats()["hits"] == 1
        assert first[-1].segments == second[-1].segments

    def test_make_cache(self, default_config):
        assert isinstance(make_cache(default_config), ContourCache)
        default_config.cache.enabled = False
        assert make_cache(default_config) is None


class TestCatmullRom:
    """Tests for the Catmull-Rom to Bezier conversion."""

    def test_passes_through_points(self):
        """Test that every Bezier starts and ends on input points."""
        points = [(0, 0), (10, 5), (20, 0), (30, 5)]
        beziers = catmull_rom_to_beziers(points)

        assert len(beziers) == 3
        for bez, (a, b) in zip(beziers, zip(points, points[1:])):
            assert bez.p0 == pytest.approx(list(a))
            assert bez.p3 == pytest.approx(list(b))

    def test_control_points_sixth(self):
        """Test control points at 1/6 of the neighbour differences."""
        beziers = catmull_rom_to_beziers([(0, 0), (6, 6), (12, 0)])

        # First segment: start point is its own predecessor.
        assert beziers[0].p1 == pytest.approx([1.0, 1.0])
        assert beziers[0].p2 == pytest.approx([6 - 2.0, 6.0])

    def test_two_points_straight(self):
        """Test two points give a straight Bezier."""
        (bez,) = catmull_rom_to_beziers([(0, 0), (30, 0)])
        assert bez.p1 == pytest.approx([10.0, 0.0])
        assert bez.p2 == pytest.approx([20.0, 0.0])

    def test_too_few_points(self):
        assert catmull_rom_to_beziers([(1, 1)]) == []

    def test_svg_path(self):
        """Test SVG path generation."""
        path = beziers_to_svg_path(catmull_rom_to_beziers([(0, 0), (30, 0)]))
        assert path.startswith("M 0.00 0.00")
        assert path.count("C ") == 1
        assert beziers_to_svg_path([]) == ""


class TestSvgEmit:
    """Tests for SVG document output."""

    def test_scene_svg(self, plot_frame, root_viewport, canvas_size, temp_dir):
        """Test an SVG with one group per plot is written."""
        rendered = render_frame(plot_frame, None, root_viewport, canvas_size)
        drawing = emit_scene_svg(rendered, *canvas_size)
        content = drawing.tostring()

        assert content.count("<path") >= 3
        assert "<line" in content
        assert 'id="f"' in content

        path = os.path.join(temp_dir, "out", "scene.svg")
        save_svg(drawing, path)
        with open(path, encoding="utf-8") as f:
            assert f.read().startswith("<svg")
