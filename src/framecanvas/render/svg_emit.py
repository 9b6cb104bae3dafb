"""
Reference stroker for framecanvas.

Turns screen-space polylines into smooth cubic Bezier paths (Catmull-Rom
spline through the points) and writes them as an SVG document.
"""

import os

import numpy as np
import svgwrite

from framecanvas.config import StrokeConfig
from framecanvas.models import CubicBezier, PlotKind
from framecanvas.tracer import get_tracer, trace


def _line_to_bezier(p0, p1):
    """Create a degenerate Bezier for a straight line segment."""
    p0 = np.array(p0, dtype=float)
    p1 = np.array(p1, dtype=float)

    # Control points at 1/3 and 2/3 along the line
    c1 = p0 + (p1 - p0) / 3
    c2 = p0 + 2 * (p1 - p0) / 3

    return CubicBezier(p0=p0.tolist(), p1=c1.tolist(), p2=c2.tolist(), p3=p1.tolist())


def catmull_rom_to_beziers(points):
    """
    Cubic Bezier segments of a Catmull-Rom spline through the points.

    Control points sit 1/6 of the neighbour difference away from each
    point; end points are duplicated as their own neighbours. Two points
    give a straight segment, fewer give nothing.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    n = len(pts)
    if n < 2:
        return []
    if n == 2:
        return [_line_to_bezier(pts[0], pts[1])]

    beziers = []
    for i in range(n - 1):
        p0 = pts[i - 1] if i > 0 else pts[i]
        p1 = pts[i]
        p2 = pts[i + 1]
        p3 = pts[i + 2] if i < n - 2 else pts[i + 1]

        cp1 = p1 + (p2 - p0) / 6
        cp2 = p2 - (p3 - p1) / 6
        beziers.append(CubicBezier(p0=p1.tolist(), p1=cp1.tolist(), p2=cp2.tolist(), p3=p2.tolist()))

    return beziers


def beziers_to_svg_path(beziers):
    """
    Convert a list of CubicBezier objects to SVG path d attribute.

    Assumes beziers are connected (end of one = start of next).
    """
    if not beziers:
        return ""

    parts = []

    # Move to start
    p0 = beziers[0].p0
    parts.append(f"M {p0[0]:.2f} {p0[1]:.2f}")

    # Cubic bezier curves
    for bez in beziers:
        parts.append(f"C {bez.p1[0]:.2f} {bez.p1[1]:.2f} {bez.p2[0]:.2f} {bez.p2[1]:.2f} {bez.p3[0]:.2f} {bez.p3[1]:.2f}")

    return " ".join(parts)


def arrow_head(start, end, length=10.0, half_width=4.0):
    """Triangle at the end of a vector, or None for a zero-length vector."""
    start = np.asarray(start, dtype=float)
    end = np.asarray(end, dtype=float)
    direction = end - start
    norm = np.linalg.norm(direction)
    if norm == 0:
        return None
    direction = direction / norm
    normal = np.array([-direction[1], direction[0]])
    base = end - direction * min(length, norm)
    return [tuple(end.tolist()), tuple((base + normal * half_width).tolist()),
            tuple((base - normal * half_width).tolist())]


@trace(label="emit_scene_svg")
def emit_scene_svg(rendered, width, height, config=None):
    """
    Create an SVG document from rendered plots.

    Args:
        rendered: list of RenderedPlot objects in drawing order
        width: canvas width in pixels
        height: canvas height in pixels
        config: StrokeConfig

    Returns:
        svgwrite.Drawing object
    """
    tracer = get_tracer()
    config = config or StrokeConfig()

    dwg = svgwrite.Drawing(size=(f"{width}px", f"{height}px"))
    dwg.viewbox(0, 0, width, height)

    dwg.defs.add(dwg.style("""
        .stroke { stroke-linecap: round; stroke-linejoin: round; }
    """))

    path_count = 0
    for plot in rendered:
        group = dwg.g(id=plot.plot_id, fill="none", stroke=plot.color or config.default_color,
                      stroke_width=config.width, stroke_opacity=config.opacity, class_="stroke")

        for segment in plot.segments:
            if len(segment) < 2:
                continue
            if plot.kind == PlotKind.VECTOR:
                (x1, y1), (x2, y2) = segment[0], segment[-1]
                group.add(dwg.line(start=(x1, y1), end=(x2, y2)))
                head = arrow_head((x1, y1), (x2, y2))
                if head:
                    group.add(dwg.polygon(points=head, fill=plot.color, stroke="none"))
            else:
                group.add(dwg.path(d=beziers_to_svg_path(catmull_rom_to_beziers(segment))))
            path_count += 1

        dwg.add(group)

    tracer.event(f"SVG emitted with {path_count} paths for {len(rendered)} plots")

    return dwg


def save_svg(drawing, path):
    """Write an svgwrite drawing (or SVG text) to a file."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    if hasattr(drawing, "tostring"):
        content = drawing.tostring()
    else:
        content = str(drawing)

    with open(path, "w", encoding="utf-8") as f:
        f.write(content)

    get_tracer().event(f"Saved SVG to {path}")
