"""Tests for the transform chain."""

import math

import numpy as np
import pytest

from framecanvas.errors import DegenerateGeometry
from framecanvas.frames.registry import FrameRegistry
from framecanvas.frames.transforms import (
    BasisKind, classify_basis, effective_zoom, frame_to_parent, frame_to_parent_raw,
    frame_to_screen_fn, from_screen, nested_to_screen, parent_to_frame, parent_to_frame_raw,
    pixels_per_unit, screen_to_nested, screen_to_viewport, solve_basis, to_screen,
    viewport_to_screen, visible_world_bounds,
)
from framecanvas.models import CoordinateFrame, ViewportState


def _random_frame(rng, index):
    return CoordinateFrame(
        id=f"random_{index}",
        origin=tuple(rng.uniform(-5, 5, 2)),
        base_i=(rng.uniform(1, 2), rng.uniform(-0.3, 0.3)),
        base_j=(rng.uniform(-0.3, 0.3), rng.uniform(1, 2)),
        viewport=ViewportState(
            x=rng.uniform(-3, 3), y=rng.uniform(-3, 3), zoom=rng.uniform(0.1, 10),
        ),
    )


class TestRootViewport:
    """Tests for the root viewport mapping."""

    def test_origin_maps_to_canvas_centre(self, root_viewport, canvas_size):
        """Test that world origin lands in the canvas centre."""
        assert viewport_to_screen((0, 0), root_viewport, canvas_size) == (400, 300)

    def test_y_axis_flipped(self, root_viewport, canvas_size):
        """Test that positive world y goes up the screen."""
        sx, sy = viewport_to_screen((1, 1), root_viewport, canvas_size)
        assert sx == pytest.approx(450)
        assert sy == pytest.approx(250)

    def test_inverse(self, canvas_size):
        """Test that screen_to_viewport inverts viewport_to_screen with pan."""
        vp = ViewportState(x=3, y=-2, zoom=17)
        p = (1.25, -7.5)
        back = screen_to_viewport(viewport_to_screen(p, vp, canvas_size), vp, canvas_size)
        assert back == pytest.approx(p)

    def test_zoom_must_be_positive(self):
        """Test that a non-positive zoom is rejected on construction."""
        with pytest.raises(ValueError):
            ViewportState(zoom=0)
        with pytest.raises(ValueError):
            ViewportState(zoom=-1)

    def test_visible_world_bounds(self, root_viewport, canvas_size):
        """Test the world rectangle covered by an 800x600 canvas at zoom 50."""
        assert visible_world_bounds(root_viewport, canvas_size) == pytest.approx((-8, 8, -6, 6))


class TestRawBasis:
    """Tests for basis transforms that ignore the frame viewport."""

    @pytest.fixture
    def panned_frame(self):
        return CoordinateFrame(
            id="panned", origin=(1.0, 2.0), base_i=(2.0, 0.0), base_j=(0.0, 3.0),
            viewport=ViewportState(x=5, y=5, zoom=4),
        )

    def test_raw_ignores_viewport(self, panned_frame):
        """Test that the raw transform applies origin and basis only."""
        assert frame_to_parent_raw((1.0, 1.0), panned_frame) == pytest.approx((3.0, 5.0))
        assert frame_to_parent((1.0, 1.0), panned_frame) != pytest.approx((3.0, 5.0))

    def test_raw_inverse(self, panned_frame):
        """Test that parent_to_frame_raw inverts frame_to_parent_raw."""
        assert parent_to_frame_raw((3.0, 5.0), panned_frame) == pytest.approx((1.0, 1.0))

    def test_raw_inverse_degenerate(self):
        """Test that a degenerate raw inverse returns the origin."""
        frame = CoordinateFrame(id="flat", base_i=(1.0, 1.0), base_j=(2.0, 2.0))
        assert parent_to_frame_raw((4.0, 4.0), frame) == (0.0, 0.0)


class TestRoundTrip:
    """Tests for screen round trips."""

    def test_top_level_round_trip_random(self, canvas_size):
        """Test from_screen(to_screen(p)) == p for 1000 random points and frames."""
        rng = np.random.default_rng(1234)

        for i in range(1000):
            frame = _random_frame(rng, i)
            root = ViewportState(x=rng.uniform(-10, 10), y=rng.uniform(-10, 10),
                                 zoom=rng.uniform(5, 500))
            p = tuple(rng.uniform(-100, 100, 2))

            back = from_screen(to_screen(p, frame, root, canvas_size), frame, root, canvas_size)

            assert back == pytest.approx(p, rel=1e-9, abs=1e-9)

    def test_frame_parent_round_trip(self, nested_registry):
        """Test that parent_to_frame inverts frame_to_parent at every level."""
        for frame in nested_registry:
            p = (0.7, -2.3)
            assert parent_to_frame(frame_to_parent(p, frame), frame) == pytest.approx(p)

    def test_nested_round_trip(self, nested_registry, root_viewport, canvas_size):
        """Test screen_to_nested inverts nested_to_screen through three levels."""
        c = nested_registry.get("C")
        rng = np.random.default_rng(7)

        for _ in range(200):
            p = tuple(rng.uniform(-20, 20, 2))
            screen = nested_to_screen(p, c, nested_registry, root_viewport, canvas_size)
            back = screen_to_nested(screen, c, nested_registry, root_viewport, canvas_size)
            assert back == pytest.approx(p, rel=1e-9, abs=1e-9)


class TestNesting:
    """Tests for consistency of nested composition."""

    def test_child_lands_in_parent_local_space(self, nested_registry, root_viewport, canvas_size):
        """Test nested_to_screen(p, B) == to_screen(frame_to_parent(p, B), A)."""
        a = nested_registry.get("A")
        b = nested_registry.get("B")
        p = (1.5, -0.75)

        nested = nested_to_screen(p, b, nested_registry, root_viewport, canvas_size)
        direct = to_screen(frame_to_parent(p, b), a, root_viewport, canvas_size)

        assert nested == pytest.approx(direct)

    def test_three_levels(self, nested_registry, root_viewport, canvas_size):
        """Test that C composes through B and A the same way."""
        b = nested_registry.get("B")
        c = nested_registry.get("C")
        p = (-0.4, 2.2)

        via_c = nested_to_screen(p, c, nested_registry, root_viewport, canvas_size)
        via_b = nested_to_screen(frame_to_parent(p, c), b, nested_registry, root_viewport, canvas_size)

        assert via_c == pytest.approx(via_b)

    def test_top_level_nested_matches_to_screen(self, nested_registry, root_viewport, canvas_size):
        """Test that nesting with one level equals the top-level transform."""
        a = nested_registry.get("A")
        p = (3.0, 4.0)
        assert nested_to_screen(p, a, nested_registry, root_viewport, canvas_size) == pytest.approx(
            to_screen(p, a, root_viewport, canvas_size)
        )

    def test_screen_oracle_matches_nested(self, nested_registry, root_viewport, canvas_size):
        """Test that the cached-path oracle agrees with nested_to_screen."""
        c = nested_registry.get("C")
        oracle = frame_to_screen_fn(c, nested_registry, root_viewport, canvas_size)
        for p in [(0, 0), (1, 2), (-3.5, 0.25)]:
            assert oracle(p) == pytest.approx(
                nested_to_screen(p, c, nested_registry, root_viewport, canvas_size)
            )

    def test_effective_zoom_is_product(self, nested_registry, root_viewport):
        """Test effective zoom multiplies root and every frame zoom."""
        c = nested_registry.get("C")
        assert effective_zoom(c, nested_registry, root_viewport) == pytest.approx(50 * 2 * 0.5 * 3)


class TestDegenerateBasis:
    """Tests for singular bases."""

    @pytest.fixture
    def collinear_frame(self):
        return CoordinateFrame(id="flat", base_i=(1.0, 1.0), base_j=(2.0, 2.0))

    def test_inverse_returns_origin(self, collinear_frame, root_viewport, canvas_size):
        """Test that inverse transforms give (0, 0) instead of NaN."""
        assert parent_to_frame((3.0, -1.0), collinear_frame) == (0.0, 0.0)
        assert from_screen((10, 20), collinear_frame, root_viewport, canvas_size) == (0.0, 0.0)

    def test_forward_stays_finite(self, collinear_frame, root_viewport, canvas_size):
        """Test that forward transforms of a degenerate frame are finite."""
        sx, sy = to_screen((5.0, -2.0), collinear_frame, root_viewport, canvas_size)
        assert math.isfinite(sx) and math.isfinite(sy)

    def test_tagged_solve_raises(self, collinear_frame):
        """Test that solve_basis reports the degenerate frame."""
        with pytest.raises(DegenerateGeometry) as excinfo:
            solve_basis((1.0, 1.0), collinear_frame)
        assert excinfo.value.frame_id == "flat"

    def test_classification(self, collinear_frame):
        """Test regular, collinear and zero bases are told apart."""
        assert classify_basis(CoordinateFrame(id="ok")) == BasisKind.REGULAR
        assert classify_basis(collinear_frame) == BasisKind.COLLINEAR
        zero = CoordinateFrame(id="zero", base_i=(0.0, 0.0), base_j=(0.0, 0.0))
        assert classify_basis(zero) == BasisKind.ZERO

    @pytest.mark.parametrize("point", [(1e6, -3.0), (0.0, 0.0), (-5.0, 7.0), (1e12, 1e12), (-0.25, 1e-9)])
    def test_zero_basis_stays_finite(self, point, root_viewport, canvas_size):
        """Test that a zero basis never produces NaN or infinity, top-level or nested."""
        zero = CoordinateFrame(id="zero", base_i=(0.0, 0.0), base_j=(0.0, 0.0),
                               viewport=ViewportState(x=1, y=-2, zoom=3))
        registry = FrameRegistry([
            CoordinateFrame(id="P", base_i=(2.0, 0.5), base_j=(-0.3, 1.5), viewport=ViewportState(zoom=2)),
        ])
        registry.add(CoordinateFrame(id="Z", parent_frame_id="P", base_i=(0.0, 0.0), base_j=(0.0, 0.0)))
        registry.add(CoordinateFrame(id="Zc", parent_frame_id="Z"))

        results = [
            to_screen(point, zero, root_viewport, canvas_size),
            from_screen(point, zero, root_viewport, canvas_size),
            from_screen(to_screen(point, zero, root_viewport, canvas_size), zero,
                        root_viewport, canvas_size),
        ]
        for frame_id in ("Z", "Zc"):
            frame = registry.get(frame_id)
            screen = nested_to_screen(point, frame, registry, root_viewport, canvas_size)
            results.append(screen)
            results.append(screen_to_nested(screen, frame, registry, root_viewport, canvas_size))
            results.append(screen_to_nested(point, frame, registry, root_viewport, canvas_size))

        for x, y in results:
            assert math.isfinite(x) and math.isfinite(y)

    def test_nearly_singular_threshold(self):
        """Test the 1e-10 determinant threshold."""
        tiny = CoordinateFrame(id="tiny", base_i=(1.0, 0.0), base_j=(0.0, 1e-11))
        small = CoordinateFrame(id="small", base_i=(1.0, 0.0), base_j=(0.0, 1e-9))
        assert parent_to_frame((1.0, 1.0), tiny) == (0.0, 0.0)
        assert parent_to_frame((1.0, 1e-9), small) == pytest.approx((1.0, 1.0))

    def test_degenerate_ancestor(self, nested_registry, root_viewport, canvas_size):
        """Test that a degenerate frame on the path makes screen_to_nested return (0, 0)."""
        b = nested_registry.get("B")
        b.base_j = (2.0, 0.0)
        c = nested_registry.get("C")
        assert screen_to_nested((100, 100), c, nested_registry, root_viewport, canvas_size) == (0.0, 0.0)


class TestPixelsPerUnit:
    """Tests for the pixels-per-unit estimate."""

    def test_identity_frame(self, identity_frame, root_viewport, canvas_size):
        """Test that an identity frame at zoom 50 has 50 pixels per unit."""
        oracle = frame_to_screen_fn(identity_frame, None, root_viewport, canvas_size)
        assert pixels_per_unit(oracle) == pytest.approx(50)

    def test_follows_frame_zoom(self, root_viewport, canvas_size):
        """Test that frame zoom scales pixels per unit."""
        frame = CoordinateFrame(id="zoomed", viewport=ViewportState(zoom=4))
        oracle = frame_to_screen_fn(frame, None, root_viewport, canvas_size)
        assert pixels_per_unit(oracle) == pytest.approx(200)
