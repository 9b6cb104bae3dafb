"""
Recursive marching squares for implicit curves f(x, y) = 0.

The domain is covered by a coarse grid evaluated in one vectorised call.
Every cell whose corner signs differ is refined: it is split into four
sub-cells down to a depth limit, and zero crossings are interpolated on the
edges of the leaf cells. Leaf contours are then stitched greedily into
polylines.

Grid rows run along y (row i is y_min + i * dy), columns along x.
"""

import math

import numpy as np

from framecanvas.config import ContourConfig
from framecanvas.errors import EvaluationFailure, check_domain
from framecanvas.sampling.expressions import as_evaluator
from framecanvas.tracer import get_tracer, trace


def contour_resolution(x_min, x_max, y_min, y_max, effective_zoom=1.0, config=None):
    """Cells per axis: ~50 per unit of average range, denser when zoomed in."""
    config = config or ContourConfig()
    avg_range = ((x_max - x_min) + (y_max - y_min)) / 2
    cells = avg_range * config.cells_per_unit * math.sqrt(max(1.0, effective_zoom))
    return int(max(config.min_resolution, min(config.max_resolution, round(cells))))


def interpolate_crossing(p1, p2, v1, v2, epsilon=1e-10):
    """
    Position of the zero crossing between p1 (value v1) and p2 (value v2).

    Values within epsilon of zero snap to their corner; a vanishing
    difference gives the midpoint. Returns None if there is no sign change.
    """
    if abs(v1) < epsilon:
        return p1
    if abs(v2) < epsilon:
        return p2
    if np.sign(v1) == np.sign(v2):
        return None
    denominator = v2 - v1
    if abs(denominator) < epsilon:
        return (p1 + p2) / 2
    t = max(0.0, min(1.0, -v1 / denominator))
    return p1 + t * (p2 - p1)


def leaf_contour(x0, y0, dx, dy, v00, v01, v10, v11, epsilon=1e-10):
    """
    Edge crossings of one cell, as a point list (empty if none).

    Corners: v00 at (x0, y0), v01 at (x0 + dx, y0), v10 at (x0, y0 + dy),
    v11 at (x0 + dx, y0 + dy). Edges are visited left, far, right, near.
    """
    points = []
    x1, y1 = x0 + dx, y0 + dy

    if np.sign(v00) != np.sign(v10):
        y = interpolate_crossing(y0, y1, v00, v10, epsilon)
        if y is not None:
            points.append((x0, float(y)))

    if np.sign(v10) != np.sign(v11):
        x = interpolate_crossing(x0, x1, v10, v11, epsilon)
        if x is not None:
            points.append((float(x), y1))

    if np.sign(v01) != np.sign(v11):
        y = interpolate_crossing(y0, y1, v01, v11, epsilon)
        if y is not None:
            points.append((x1, float(y)))

    if np.sign(v00) != np.sign(v01):
        x = interpolate_crossing(x0, x1, v00, v01, epsilon)
        if x is not None:
            points.append((float(x), y0))

    return points


class _CellRefiner:
    """Quadtree refinement of one grid cell."""

    def __init__(self, evaluator, min_cell_size, epsilon):
        self.evaluator = evaluator
        self.min_cell_size = min_cell_size
        self.epsilon = epsilon
        self.failures = 0

    def _values(self, xs, ys):
        values = self.evaluator.evaluate_array(np.array(xs), np.array(ys))
        if not np.all(np.isfinite(values)):
            raise EvaluationFailure(self.evaluator.source, "non-finite refinement sample")
        return [float(v) for v in values]

    def refine(self, x0, y0, dx, dy, v00, v01, v10, v11, depth):
        """Leaf contours of the cell, recursing into four sub-cells while depth > 0."""
        if depth <= 0 or min(dx, dy) < self.min_cell_size:
            points = leaf_contour(x0, y0, dx, dy, v00, v01, v10, v11, self.epsilon)
            return [points] if points else []

        hx, hy = dx / 2, dy / 2
        xm, ym = x0 + hx, y0 + hy
        try:
            v_mid, v_near, v_far, v_left, v_right = self._values(
                [xm, xm, xm, x0, x0 + dx],
                [ym, y0, y0 + dy, ym, ym],
            )
        except EvaluationFailure:
            # Refinement failed: fall back to interpolating the whole cell.
            self.failures += 1
            return self.refine(x0, y0, dx, dy, v00, v01, v10, v11, 0)

        contours = []
        contours.extend(self.refine(x0, y0, hx, hy, v00, v_near, v_left, v_mid, depth - 1))
        contours.extend(self.refine(xm, y0, hx, hy, v_near, v01, v_mid, v_right, depth - 1))
        contours.extend(self.refine(x0, ym, hx, hy, v_left, v_mid, v10, v_far, depth - 1))
        contours.extend(self.refine(xm, ym, hx, hy, v_mid, v_right, v_far, v11, depth - 1))
        return contours


def _extend_distinct(polyline, points, tolerance):
    for point in points:
        if polyline:
            last = polyline[-1]
            if math.hypot(point[0] - last[0], point[1] - last[1]) <= tolerance:
                continue
        polyline.append(point)


def stitch(contours, polylines, max_distance):
    """
    Greedily append cell contours to polylines.

    A contour joins the first polyline whose last point lies within
    max_distance of the contour's first point; otherwise it starts a new one.
    A point repeating the one before it is skipped, which happens where the
    contour passes exactly through a grid vertex shared by several cells.
    """
    tolerance = max_distance * 1e-9
    for contour in contours:
        if not contour:
            continue
        first = contour[0]
        for polyline in polylines:
            last = polyline[-1]
            if math.hypot(last[0] - first[0], last[1] - first[1]) < max_distance:
                _extend_distinct(polyline, contour, tolerance)
                break
        else:
            polyline = []
            _extend_distinct(polyline, contour, tolerance)
            polylines.append(polyline)
    return polylines


@trace(label="find_contours")
def find_contours(equation, x_min, x_max, y_min, y_max, resolution=None,
                  max_depth=None, effective_zoom=1.0, config=None):
    """
    Polylines approximating the zero set of ``equation`` over the box.

    Args:
        equation: Expression string in ``x`` and ``y`` or a callable f(x, y).
        resolution: Grid cells per axis; derived from the range and zoom if None.
        max_depth: Refinement depth per crossing cell (one more near the origin).

    Returns:
        List of polylines, each a list of (x, y) with at least two points.
    """
    check_domain("x", x_min, x_max)
    check_domain("y", y_min, y_max)
    config = config or ContourConfig()
    tracer = get_tracer()

    if resolution is None:
        resolution = contour_resolution(x_min, x_max, y_min, y_max, effective_zoom, config)
    resolution = max(1, int(resolution))
    if max_depth is None:
        max_depth = config.max_depth

    evaluator = as_evaluator(equation, ("x", "y"))
    x_range, y_range = x_max - x_min, y_max - y_min
    dx, dy = x_range / resolution, y_range / resolution

    xs = x_min + np.arange(resolution + 1) * dx
    ys = y_min + np.arange(resolution + 1) * dy
    grid_x, grid_y = np.meshgrid(xs, ys)
    grid = evaluator.evaluate_array(grid_x, grid_y)

    invalid = int(np.count_nonzero(~np.isfinite(grid)))
    if invalid:
        tracer.event("Grid has invalid values", level="DEBUG",
                     invalid=invalid, total=grid.size)

    v00 = grid[:-1, :-1]
    v01 = grid[:-1, 1:]
    v10 = grid[1:, :-1]
    v11 = grid[1:, 1:]
    finite = np.isfinite(v00) & np.isfinite(v01) & np.isfinite(v10) & np.isfinite(v11)
    s00, s01, s10, s11 = np.sign(v00), np.sign(v01), np.sign(v10), np.sign(v11)
    crossing = finite & ((s00 != s10) | (s10 != s11) | (s11 != s01) | (s01 != s00))

    near_origin = max(x_range, y_range) * config.origin_fraction
    refiner = _CellRefiner(evaluator, min(dx, dy) / config.min_cell_divisor, config.zero_epsilon)
    max_distance = max(dx, dy) * config.stitch_factor
    polylines = []

    rows, cols = np.nonzero(crossing)
    for i, j in zip(rows.tolist(), cols.tolist()):
        x0 = float(xs[j])
        y0 = float(ys[i])
        is_near_origin = math.hypot(x0 + dx / 2, y0 + dy / 2) < near_origin
        depth = max_depth + 1 if is_near_origin else max_depth
        cell_contours = refiner.refine(
            x0, y0, dx, dy,
            float(v00[i, j]), float(v01[i, j]), float(v10[i, j]), float(v11[i, j]),
            depth,
        )
        stitch(cell_contours, polylines, max_distance)

    result = [p for p in polylines if len(p) >= 2]
    tracer.event(
        "Contours found",
        level="DEBUG",
        resolution=resolution,
        cells=len(rows),
        polylines=len(result),
        points=sum(len(p) for p in result),
        refine_failures=refiner.failures,
    )
    return result


def order_by_proximity(points):
    """
    Reorder points into a walk by greedy nearest neighbour.

    Starts at the first point; non-finite points are dropped.
    """
    pts = np.array([p for p in points if math.isfinite(p[0]) and math.isfinite(p[1])],
                   dtype=float).reshape(-1, 2)
    if len(pts) <= 1:
        return [tuple(p) for p in pts.tolist()]

    remaining = np.ones(len(pts), dtype=bool)
    order = [0]
    remaining[0] = False
    current = 0
    for _ in range(len(pts) - 1):
        dist = np.hypot(pts[:, 0] - pts[current, 0], pts[:, 1] - pts[current, 1])
        dist[~remaining] = np.inf
        current = int(np.argmin(dist))
        remaining[current] = False
        order.append(current)
    return [(float(pts[k, 0]), float(pts[k, 1])) for k in order]
