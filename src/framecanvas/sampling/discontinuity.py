"""
Discontinuity classification for sampled curves.

Decides whether two consecutive samples belong to the same stroke. The same
rules serve explicit and parametric curves. Thresholds scale with pixels per
unit, so a steep but continuous curve at high zoom is not broken apart.
"""

import math

from framecanvas.config import DiscontinuityConfig

_DEFAULTS = DiscontinuityConfig()


def jump_threshold(pixels_per_unit, config=_DEFAULTS):
    """Screen vertical jump (px) that always breaks a stroke."""
    return max(config.min_jump_pixels, pixels_per_unit * config.jump_units)


def should_break(current_point, current_screen, previous_point, previous_screen,
                 previous_y, pixels_per_unit, domain_min, domain_max, total_samples,
                 config=_DEFAULTS):
    """
    True if the stroke must break between the previous and current sample.

    Breaks on non-finite coordinates, extreme screen jumps, large domain gaps
    and asymptote signatures (sign flip with a large jump).
    """
    x, y = current_point
    if not (math.isfinite(x) and math.isfinite(y)):
        return True

    if previous_point is None or previous_screen is None or previous_y is None:
        return False

    prev_x = previous_point[0]
    vertical_jump = abs(current_screen[1] - previous_screen[1])
    threshold = jump_threshold(pixels_per_unit, config)

    if vertical_jump > threshold:
        return True

    spacing = (domain_max - domain_min) / max(total_samples, 1)
    step = abs(x - prev_x)
    if step > spacing * config.gap_factor:
        return True

    sign_change = (previous_y < 0 < y) or (previous_y > 0 > y)
    if not sign_change:
        return False

    crosses_zero = (prev_x < 0 < x) or (prev_x > 0 > x)
    if crosses_zero and vertical_jump > threshold * config.asymptote_ratio:
        return True

    # Asymptote near the sampling resolution limit: the value blows up
    # relative to its own size over a single step.
    if step <= spacing * config.asymptote_step_factor and vertical_jump > config.asymptote_min_pixels:
        relative = abs(y - previous_y) / (min(abs(y), abs(previous_y)) + 1)
        if relative > config.relative_change:
            return True

    return False


def split_segments(points, screens, pixels_per_unit, domain_min, domain_max,
                   total_samples=None, params=None, config=_DEFAULTS):
    """
    Split parallel lists of domain points and screen points into strokes.

    The classifier sees the independent variable as the first coordinate:
    x for explicit curves, or ``params`` (t) for parametric ones, so domain
    gaps are measured along the sampled parameter.
    Returns a list of screen-space point lists.
    """
    total = total_samples or len(points)
    segments = []
    current = []
    prev_point = prev_screen = None

    for i, (point, screen) in enumerate(zip(points, screens)):
        if not (math.isfinite(point[0]) and math.isfinite(point[1])):
            if current:
                segments.append(current)
            current = []
            prev_point = prev_screen = None
            continue

        classified = (params[i], point[1]) if params is not None else point
        broken = should_break(
            classified, screen, prev_point, prev_screen,
            prev_point[1] if prev_point is not None else None,
            pixels_per_unit, domain_min, domain_max, total, config,
        )
        if broken and current:
            segments.append(current)
            current = []

        current.append((float(screen[0]), float(screen[1])))
        prev_point, prev_screen = classified, screen

    if current:
        segments.append(current)
    return segments
