"""
Transform chain between frame coordinates and device pixels.

A frame maps its local point (u, v) into its parent's space in two steps:
its own viewport (pan, then zoom) and then its basis vectors and origin.
Top-level frames live in root world space, which the root viewport maps to
pixels with the Y axis flipped and the origin at the canvas centre.

Inverse transforms solve the 2x2 basis system with Cramer's rule. A basis
whose determinant is below ``DEGENERATE_EPSILON`` cannot be inverted; those
calls return ``(0.0, 0.0)`` instead of NaN. ``solve_basis`` is the tagged
variant that raises ``DegenerateGeometry``.
"""

import math
from enum import Enum

from framecanvas.errors import DegenerateGeometry

DEGENERATE_EPSILON = 1e-10

ORIGIN = (0.0, 0.0)


class BasisKind(str, Enum):
    """Shape of a frame basis, for the grid drawing layer."""
    REGULAR = "regular"
    ZERO = "zero"            # both vectors vanish: draw a single dot
    COLLINEAR = "collinear"  # parallel lines that never cross


def basis_determinant(frame):
    (ix, iy), (jx, jy) = frame.base_i, frame.base_j
    return ix * jy - iy * jx


def is_degenerate(frame, epsilon=DEGENERATE_EPSILON):
    return abs(basis_determinant(frame)) < epsilon


def classify_basis(frame, epsilon=DEGENERATE_EPSILON):
    """Classify a basis as regular, zero or collinear."""
    if not is_degenerate(frame, epsilon):
        return BasisKind.REGULAR
    if math.hypot(*frame.base_i) < epsilon and math.hypot(*frame.base_j) < epsilon:
        return BasisKind.ZERO
    return BasisKind.COLLINEAR


def solve_basis(point, frame, epsilon=DEGENERATE_EPSILON):
    """
    Coefficients (a, b) with point - origin = a * base_i + b * base_j.

    Raises DegenerateGeometry when the basis cannot be inverted.
    """
    (ix, iy), (jx, jy) = frame.base_i, frame.base_j
    det = ix * jy - iy * jx
    if abs(det) < epsilon:
        raise DegenerateGeometry(frame.id, det)
    dx = point[0] - frame.origin[0]
    dy = point[1] - frame.origin[1]
    return ((dx * jy - dy * jx) / det, (dy * ix - dx * iy) / det)


def _apply_basis(coeffs, frame):
    a, b = coeffs
    (ox, oy), (ix, iy), (jx, jy) = frame.origin, frame.base_i, frame.base_j
    return (ox + a * ix + b * jx, oy + a * iy + b * jy)


# Root viewport

def viewport_to_screen(point, viewport, canvas_size):
    """World point to pixels: pan, zoom, Y flip, canvas-centre origin."""
    width, height = canvas_size
    return (
        width / 2 + (point[0] - viewport.x) * viewport.zoom,
        height / 2 - (point[1] - viewport.y) * viewport.zoom,
    )


def screen_to_viewport(point, viewport, canvas_size):
    """Pixels to world point; inverse of viewport_to_screen."""
    width, height = canvas_size
    return (
        viewport.x + (point[0] - width / 2) / viewport.zoom,
        viewport.y - (point[1] - height / 2) / viewport.zoom,
    )


def visible_world_bounds(viewport, canvas_size):
    """(min_x, max_x, min_y, max_y) of the world area shown on the canvas."""
    width, height = canvas_size
    x0, y0 = screen_to_viewport((0, 0), viewport, canvas_size)
    x1, y1 = screen_to_viewport((width, height), viewport, canvas_size)
    return (min(x0, x1), max(x0, x1), min(y0, y1), max(y0, y1))


# One level: frame <-> parent

def frame_to_parent(point, frame):
    """Local point to parent space through the frame viewport and basis."""
    vp = frame.viewport
    return _apply_basis(((point[0] - vp.x) * vp.zoom, (point[1] - vp.y) * vp.zoom), frame)


def parent_to_frame(point, frame, epsilon=DEGENERATE_EPSILON):
    """Parent-space point to local coordinates; (0, 0) for a degenerate basis."""
    try:
        a, b = solve_basis(point, frame, epsilon)
    except DegenerateGeometry:
        return ORIGIN
    vp = frame.viewport
    return (a / vp.zoom + vp.x, b / vp.zoom + vp.y)


def frame_to_parent_raw(point, frame):
    """Basis transform only, ignoring the frame's own pan and zoom."""
    return _apply_basis(point, frame)


def parent_to_frame_raw(point, frame, epsilon=DEGENERATE_EPSILON):
    """Inverse of frame_to_parent_raw; (0, 0) for a degenerate basis."""
    try:
        return solve_basis(point, frame, epsilon)
    except DegenerateGeometry:
        return ORIGIN


# Top-level frame <-> screen

def to_screen(point, frame, root_viewport, canvas_size):
    """Local point of a top-level frame to device pixels."""
    return viewport_to_screen(frame_to_parent(point, frame), root_viewport, canvas_size)


def from_screen(point, frame, root_viewport, canvas_size, epsilon=DEGENERATE_EPSILON):
    """Device pixels to local coordinates of a top-level frame."""
    return parent_to_frame(screen_to_viewport(point, root_viewport, canvas_size), frame, epsilon)


# Arbitrary nesting

def nested_to_screen(point, frame, registry, root_viewport, canvas_size):
    """
    Local point of any frame to device pixels.

    Walks out through every ancestor, each step landing in the next frame's
    local space, then applies the root viewport. O(depth).
    """
    current = point
    for level in registry.path_to_root(frame):
        current = frame_to_parent(current, level)
    return viewport_to_screen(current, root_viewport, canvas_size)


def screen_to_nested(point, frame, registry, root_viewport, canvas_size,
                     epsilon=DEGENERATE_EPSILON):
    """Inverse of nested_to_screen; (0, 0) if any basis on the path is degenerate."""
    current = screen_to_viewport(point, root_viewport, canvas_size)
    for level in reversed(registry.path_to_root(frame)):
        if is_degenerate(level, epsilon):
            return ORIGIN
        current = parent_to_frame(current, level, epsilon)
    return current


def frame_to_screen_fn(frame, registry, root_viewport, canvas_size):
    """
    Oracle mapping local points of a frame to pixels.

    The ancestor path is materialised once so repeated calls during
    sampling do not walk the registry.
    """
    path = registry.path_to_root(frame) if registry is not None else [frame]

    def transform(point):
        current = point
        for level in path:
            current = frame_to_parent(current, level)
        return viewport_to_screen(current, root_viewport, canvas_size)

    return transform


def effective_zoom(frame, registry, root_viewport):
    """Root zoom times every frame zoom on the path to the root."""
    path = registry.path_to_root(frame) if registry is not None else [frame]
    zoom = root_viewport.zoom
    for level in path:
        zoom *= level.viewport.zoom
    return zoom


def pixels_per_unit(transform):
    """Average pixel length of unit steps along local x and y."""
    ox, oy = transform((0.0, 0.0))
    ux, _ = transform((1.0, 0.0))
    _, vy = transform((0.0, 1.0))
    return (abs(ux - ox) + abs(vy - oy)) / 2
