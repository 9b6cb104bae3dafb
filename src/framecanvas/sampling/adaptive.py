"""
Adaptive curve sampling shared by explicit and parametric plots.

A curve is a map from an independent parameter to a point. Sampling starts
with a uniform pass, then bisects every interval between two valid uniform
samples while the screen-space error is too large. Error is measured in
pixels through the frame-to-screen oracle, so density follows zoom.
"""

import math
from dataclasses import dataclass, field

import numpy as np

from framecanvas.config import DiscontinuityConfig, SamplingConfig
from framecanvas.errors import EvaluationFailure
from framecanvas.frames.transforms import pixels_per_unit
from framecanvas.sampling.discontinuity import split_segments
from framecanvas.tracer import get_tracer

NAN_POINT = (math.nan, math.nan)


@dataclass
class SampledCurve:
    """
    Result of sampling one curve.

    ``segments`` keeps one-point segments: an isolated valid sample between
    two breaks (next to a pole, say) still counts as a piece of the curve.
    The render pass drops them since a single point cannot be stroked.
    """
    segments: list = field(default_factory=list)  # screen-space strokes
    params: list = field(default_factory=list)    # independent variable, sorted
    points: list = field(default_factory=list)    # domain points, NaN for gaps
    evaluations: int = 0
    budget_exhausted: bool = False

    @property
    def point_count(self):
        return sum(len(s) for s in self.segments)


def clamp_count(value, config):
    return int(max(config.min_points, min(config.max_points, round(value))))


def point_to_segment_distance(p, a, b):
    """Pixel distance from p to segment ab."""
    ax, ay = a
    dx, dy = b[0] - ax, b[1] - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(p[0] - ax, p[1] - ay)
    t = max(0.0, min(1.0, ((p[0] - ax) * dx + (p[1] - ay) * dy) / length_sq))
    return math.hypot(p[0] - (ax + t * dx), p[1] - (ay + t * dy))


def screen_error(s1, s_q1, s_mid, s_q3, s2, curvature_weight):
    """
    Combined pixel error of replacing the curve by the chord s1-s2.

    Deviation of the midpoint from the chord plus a weighted second
    difference over the quarter points.
    """
    deviation = point_to_segment_distance(s_mid, s1, s2)
    if s_q1 is None or s_q3 is None:
        return deviation
    curvature = math.hypot(s_q1[0] - 2 * s_mid[0] + s_q3[0], s_q1[1] - 2 * s_mid[1] + s_q3[1])
    return deviation + curvature_weight * curvature


class AdaptiveSampler:
    """
    One sampling run over [lower, upper].

    ``curve`` maps a parameter to an (x, y) point and raises
    EvaluationFailure for invalid samples. ``vector_curve`` optionally maps
    a parameter array to x and y arrays (NaN where invalid) for the uniform
    pass.
    """

    def __init__(self, curve, to_screen, lower, upper, max_depth,
                 config=None, vector_curve=None):
        self.curve = curve
        self.vector_curve = vector_curve
        self.to_screen = to_screen
        self.lower = lower
        self.upper = upper
        self.max_depth = max_depth
        self.config = config or SamplingConfig()
        self.min_step = (upper - lower) / self.config.min_step_divisor
        self.samples = []  # (param, point), point may be NAN_POINT
        self.evaluations = 0
        self.budget_exhausted = False

    def _evaluate(self, param):
        self.evaluations += 1
        try:
            point = self.curve(param)
        except EvaluationFailure:
            return None
        if not (math.isfinite(point[0]) and math.isfinite(point[1])):
            return None
        return (float(point[0]), float(point[1]))

    def _screen(self, point):
        s = self.to_screen(point)
        if not (math.isfinite(s[0]) and math.isfinite(s[1])):
            return None
        return s

    def _accept(self, param, point):
        self.samples.append((param, point if point is not None else NAN_POINT))

    def uniform_pass(self, count):
        """Evaluate count + 1 evenly spaced samples; returns (param, point, screen) list."""
        params = np.linspace(self.lower, self.upper, count + 1)
        if self.vector_curve is not None:
            xs, ys = self.vector_curve(params)
            self.evaluations += len(params)
            raw = [
                (float(x), float(y)) if math.isfinite(x) and math.isfinite(y) else None
                for x, y in zip(xs, ys)
            ]
        else:
            raw = [self._evaluate(float(p)) for p in params]

        uniform = []
        for param, point in zip(params, raw):
            param = float(param)
            screen = self._screen(point) if point is not None else None
            if screen is None:
                point = None
            self._accept(param, point)
            uniform.append((param, point, screen))
        return uniform

    def _sample_at(self, param, known):
        """Point and screen at param, reusing a value computed one level up."""
        if known is not None:
            return known
        point = self._evaluate(param)
        screen = self._screen(point) if point is not None else None
        return (point, screen) if screen is not None else (None, None)

    def refine(self, p1, s1, p2, s2, depth=0, known_mid=None):
        """
        Bisect [p1, p2] until the pixel error is acceptable.

        Both endpoints are valid and already accepted. ``known_mid`` carries
        the midpoint when the caller evaluated it as a quarter point.
        """
        cfg = self.config
        p_mid = (p1 + p2) / 2
        mid, s_mid = self._sample_at(p_mid, known_mid)

        if (depth >= self.max_depth or (p2 - p1) < self.min_step
                or self.evaluations >= cfg.max_evaluations):
            if self.evaluations >= cfg.max_evaluations:
                self.budget_exhausted = True
            self._accept(p_mid, mid)
            return

        if s_mid is None:
            # Hole between two valid samples: mark it so the stroke breaks.
            self._accept(p_mid, None)
            return

        p_q1 = (p1 + p_mid) / 2
        p_q3 = (p_mid + p2) / 2
        q1, s_q1 = self._sample_at(p_q1, None)
        q3, s_q3 = self._sample_at(p_q3, None)

        error = screen_error(s1, s_q1, s_mid, s_q3, s2, cfg.curvature_weight)
        chord = math.hypot(s2[0] - s1[0], s2[1] - s1[1])

        self._accept(p_mid, mid)
        if error <= cfg.pixel_tolerance and chord <= cfg.gap_pixels:
            if s_q1 is None:
                self._accept(p_q1, None)
            if s_q3 is None:
                self._accept(p_q3, None)
            return

        self.refine(p1, s1, p_mid, s_mid, depth + 1, known_mid=(q1, s_q1))
        self.refine(p_mid, s_mid, p2, s2, depth + 1, known_mid=(q3, s_q3))

    def run(self, count, discontinuity=None):
        """Uniform pass, refinement, ordering and segmentation."""
        uniform = self.uniform_pass(count)
        for (p1, _, s1), (p2, _, s2) in zip(uniform, uniform[1:]):
            if s1 is not None and s2 is not None:
                self.refine(p1, s1, p2, s2)

        # Sorting is stable, so duplicate parameters keep evaluation order.
        self.samples.sort(key=lambda item: item[0])
        params = [p for p, _ in self.samples]
        points = [pt for _, pt in self.samples]
        screens = [self.to_screen(pt) if math.isfinite(pt[0]) else NAN_POINT for pt in points]

        segments = split_segments(
            points, screens, pixels_per_unit(self.to_screen),
            self.lower, self.upper, total_samples=count + 1, params=params,
            config=discontinuity or DiscontinuityConfig(),
        )

        if self.budget_exhausted:
            get_tracer().event("Refinement budget exhausted", level="WARN",
                               evaluations=self.evaluations)

        return SampledCurve(
            segments=segments,
            params=params,
            points=points,
            evaluations=self.evaluations,
            budget_exhausted=self.budget_exhausted,
        )


def sample_points(points, to_screen, domain_min, domain_max, params=None, discontinuity=None):
    """
    Segment a pre-computed point list.

    Non-finite points break the stroke; the classifier splits the rest.
    ``params`` gives the independent variable per point when it is not x.
    """
    cleaned = [(float(x), float(y)) for x, y in points]
    screens = [to_screen(p) if math.isfinite(p[0]) and math.isfinite(p[1]) else NAN_POINT
               for p in cleaned]
    segments = split_segments(
        cleaned, screens, pixels_per_unit(to_screen), domain_min, domain_max,
        total_samples=len(cleaned), params=params,
        config=discontinuity or DiscontinuityConfig(),
    )
    if params is None:
        params = [p[0] for p in cleaned]
    return SampledCurve(segments=segments, params=list(params), points=cleaned)
