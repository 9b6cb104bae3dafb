"""
Implicit plot extraction: from a plot definition to screen-space strokes.

Equation plots go through marching squares and the contour cache.
Pre-computed point plots are reordered by proximity. Either way the
resulting polylines are split wherever consecutive screen points are too far
apart to belong to the same curve.
"""

import math

from framecanvas.config import ContourConfig
from framecanvas.contours.marching import find_contours, order_by_proximity
from framecanvas.models import default_contour_resolution
from framecanvas.tracer import get_tracer, trace

SEPARATOR = (math.nan, math.nan)


def _is_separator(point):
    return not (math.isfinite(point[0]) and math.isfinite(point[1]))


def flatten_polylines(polylines):
    """Join polylines into one list with NaN separators between them."""
    flat = []
    for polyline in polylines:
        if flat:
            flat.append(SEPARATOR)
        flat.extend(tuple(p) for p in polyline)
    return flat


def split_at_separators(points):
    """Inverse of flatten_polylines; empty runs are dropped."""
    groups = []
    current = []
    for point in points:
        if _is_separator(point):
            if current:
                groups.append(current)
            current = []
        else:
            current.append((float(point[0]), float(point[1])))
    if current:
        groups.append(current)
    return groups


def max_screen_gap(effective_zoom, config=None):
    """Largest pixel step between consecutive points of one contour."""
    config = config or ContourConfig()
    return config.base_gap_pixels * max(1.0, math.sqrt(max(effective_zoom, 0.0)))


def split_screen_gaps(points, to_screen, effective_zoom, config=None):
    """
    Screen segments of a polyline, broken at separators and large gaps.

    Segments with fewer than two points are dropped.
    """
    limit = max_screen_gap(effective_zoom, config)
    segments = []
    current = []
    for point in points:
        if _is_separator(point):
            if len(current) > 1:
                segments.append(current)
            current = []
            continue

        screen = to_screen(point)
        if current:
            prev = current[-1]
            if math.hypot(screen[0] - prev[0], screen[1] - prev[1]) > limit:
                if len(current) > 1:
                    segments.append(current)
                current = []
        current.append((float(screen[0]), float(screen[1])))

    if len(current) > 1:
        segments.append(current)
    return segments


def implicit_resolution(plot, config=None):
    config = config or ContourConfig()
    return plot.num_points or default_contour_resolution(
        plot.x_min, plot.x_max, plot.y_min, plot.y_max,
        config.cells_per_unit, config.min_resolution, config.max_resolution,
    )


def contour_points(plot, effective_zoom=1.0, cache=None, config=None):
    """
    Flat contour point list of an equation plot, cached by the plot's key.

    A cache hit returns the stored points without re-running the extractor.
    """
    config = config or ContourConfig()
    tracer = get_tracer()
    resolution = implicit_resolution(plot, config)
    key = plot.resolved_cache_key(resolution)

    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            tracer.event("Contour cache hit", level="DEBUG", key=key, points=len(cached))
            return cached

    polylines = find_contours(
        plot.equation, plot.x_min, plot.x_max, plot.y_min, plot.y_max,
        resolution=resolution, max_depth=config.max_depth,
        effective_zoom=effective_zoom, config=config,
    )
    flat = flatten_polylines(polylines)
    if cache is not None:
        cache.set(key, flat)
    return flat


@trace(label="extract_implicit")
def extract_implicit(plot, to_screen, effective_zoom=1.0, cache=None, config=None):
    """
    Screen segments of an implicit plot.

    Args:
        plot: ImplicitPlot with an equation or pre-computed points.
        to_screen: Oracle mapping frame-local points to pixels.
        effective_zoom: Combined zoom of the frame chain, widens the gap limit.
        cache: Optional object with get(key) / set(key, points).

    Returns:
        List of screen-space point lists.
    """
    if plot.points:
        groups = [order_by_proximity(g) for g in split_at_separators(plot.points)]
        flat = flatten_polylines(groups)
    else:
        flat = contour_points(plot, effective_zoom, cache, config)

    segments = split_screen_gaps(flat, to_screen, effective_zoom, config)
    get_tracer().event("Implicit extracted", level="DEBUG",
                       plot=plot.id, segments=len(segments))
    return segments
