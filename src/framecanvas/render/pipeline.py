"""
Render pass over a frame tree.

Walks the frames in drawing order and turns every vector and plot into
screen-space strokes. A plot that fails is logged and left out; it never
stops the rest of the scene from rendering.
"""

from framecanvas.config import RenderConfig
from framecanvas.contours.cache import ContourCache
from framecanvas.contours.implicit import extract_implicit
from framecanvas.frames.transforms import effective_zoom, frame_to_screen_fn, is_degenerate
from framecanvas.models import PlotKind, RenderedPlot
from framecanvas.sampling.explicit import function_from_points, sample_function
from framecanvas.sampling.parametric import parametric_from_points, sample_parametric
from framecanvas.tracer import get_tracer, trace


def make_cache(config=None):
    """Contour cache from configuration, or None when caching is off."""
    config = config or RenderConfig()
    if not config.cache.enabled:
        return None
    return ContourCache(max_age=config.cache.max_age_seconds)


def _strokes(segments):
    return [s for s in segments if len(s) >= 2]


def _render_function(plot, to_screen, config):
    if plot.points:
        curve = function_from_points(plot.points, plot.x_min, plot.x_max, to_screen,
                                     discontinuity=config.discontinuity)
    else:
        curve = sample_function(
            plot.expression, plot.x_min, plot.x_max, to_screen,
            num_points=plot.num_points, config=config.sampling,
            discontinuity=config.discontinuity,
        )
    return _strokes(curve.segments)


def _render_parametric(plot, to_screen, config):
    if plot.points:
        curve = parametric_from_points(plot.points, plot.t_min, plot.t_max, to_screen,
                                       discontinuity=config.discontinuity)
    else:
        curve = sample_parametric(
            plot.x_expression, plot.y_expression, plot.t_min, plot.t_max, to_screen,
            num_points=plot.num_points, config=config.sampling,
            discontinuity=config.discontinuity,
        )
    return _strokes(curve.segments)


def render_frame(frame, registry, root_viewport, canvas_size, config=None, cache=None):
    """
    Render the vectors and plots of one frame.

    Args:
        frame: CoordinateFrame to render
        registry: FrameRegistry holding the frame's ancestors (or None for a lone frame)
        root_viewport: ViewportState of the root canvas
        canvas_size: (width, height) in pixels
        config: RenderConfig
        cache: optional contour cache for implicit plots

    Returns:
        list of RenderedPlot
    """
    tracer = get_tracer()
    config = config or RenderConfig()

    path = registry.path_to_root(frame) if registry is not None else [frame]
    singular = [f.id for f in path if is_degenerate(f, config.transform.degenerate_epsilon)]
    if singular:
        tracer.event("Skipping frame with degenerate basis", level="WARN",
                     frame=frame.id, degenerate=singular)
        return []

    to_screen = frame_to_screen_fn(frame, registry, root_viewport, canvas_size)
    zoom = effective_zoom(frame, registry, root_viewport)
    rendered = []

    for vector in frame.vectors:
        rendered.append(RenderedPlot(
            plot_id=vector.id,
            frame_id=frame.id,
            kind=PlotKind.VECTOR,
            color=vector.color,
            segments=[[to_screen(vector.start), to_screen(vector.end)]],
        ))

    jobs = (
        [(PlotKind.FUNCTION, p, _render_function) for p in frame.functions]
        + [(PlotKind.PARAMETRIC, p, _render_parametric) for p in frame.parametric_plots]
        + [(PlotKind.IMPLICIT, p, None) for p in frame.implicit_plots]
    )

    for kind, plot, render in jobs:
        try:
            if kind == PlotKind.IMPLICIT:
                segments = extract_implicit(plot, to_screen, zoom, cache, config.contour)
            else:
                segments = render(plot, to_screen, config)
        except Exception as e:
            tracer.event("Plot failed, omitted", level="WARN", frame=frame.id,
                         plot=plot.id, error=f"{type(e).__name__}: {e}")
            continue

        rendered.append(RenderedPlot(
            plot_id=plot.id,
            frame_id=frame.id,
            kind=kind,
            color=plot.color,
            segments=segments,
        ))

    return rendered


@trace(label="render_scene")
def render_scene(registry, root_viewport, canvas_size, config=None, cache=None):
    """
    Render every frame of the registry in drawing order.

    Parents come before their children, so later entries draw on top.
    """
    tracer = get_tracer()
    config = config or RenderConfig()
    rendered = []

    for frame in registry.walk():
        with tracer.span(f"frame_{frame.id}", module="pipeline"):
            rendered.extend(render_frame(frame, registry, root_viewport, canvas_size, config, cache))

    tracer.event(
        f"Scene rendered: {len(registry)} frames, {len(rendered)} plots",
        points=sum(r.point_count for r in rendered),
    )
    return rendered
