"""
Adaptive sampling of parametric plots (x, y) = (f(t), g(t)).

Sample density grows with the magnitude of the curve: a coarse pre-pass
estimates the largest coordinate and scales the uniform count
logarithmically, so large spirals start with more samples than unit circles.
"""

import math

import numpy as np

from framecanvas.config import SamplingConfig
from framecanvas.errors import check_domain
from framecanvas.sampling.adaptive import AdaptiveSampler, clamp_count, sample_points
from framecanvas.sampling.expressions import as_evaluator
from framecanvas.tracer import get_tracer, trace


def magnitude_scale(x_eval, y_eval, t_min, t_max, samples=16):
    """max(1, log10(1 + largest |coordinate|)) over a coarse pre-pass."""
    ts = np.linspace(t_min, t_max, samples)
    values = np.concatenate([x_eval.evaluate_array(ts), y_eval.evaluate_array(ts)])
    values = values[np.isfinite(values)]
    if values.size == 0:
        return 1.0
    return max(1.0, math.log10(1 + float(np.max(np.abs(values)))))


@trace(label="sample_parametric")
def sample_parametric(x_expression, y_expression, t_min, t_max, to_screen,
                      num_points=None, config=None, discontinuity=None):
    """
    Sample a parametric curve over [t_min, t_max] into screen-space strokes.

    Both coordinates are expressions in ``t`` (or callables of one argument).
    The discontinuity classifier measures domain gaps along t.
    """
    check_domain("t", t_min, t_max)
    config = config or SamplingConfig()
    x_eval = as_evaluator(x_expression, ("t",))
    y_eval = as_evaluator(y_expression, ("t",))

    def curve(t):
        return (x_eval(t), y_eval(t))

    def vector_curve(ts):
        return x_eval.evaluate_array(ts), y_eval.evaluate_array(ts)

    if num_points is not None:
        count = max(2, min(config.max_points, int(num_points)))
        scale = 1.0
    else:
        scale = magnitude_scale(x_eval, y_eval, t_min, t_max, config.magnitude_samples)
        count = clamp_count((t_max - t_min) * config.parametric_points_per_unit * scale, config)

    sampler = AdaptiveSampler(
        curve, to_screen, t_min, t_max, config.parametric_max_depth,
        config=config, vector_curve=vector_curve,
    )
    result = sampler.run(count, discontinuity)

    get_tracer().event(
        "Sampled parametric",
        level="DEBUG",
        x=x_eval.source,
        y=y_eval.source,
        scale=scale,
        uniform=count,
        evaluations=result.evaluations,
        segments=len(result.segments),
    )
    return result


def parametric_from_points(points, t_min, t_max, to_screen, discontinuity=None):
    """
    Segment a pre-computed point list of a parametric plot.

    Points are assumed evenly spaced in t.
    """
    check_domain("t", t_min, t_max)
    params = np.linspace(t_min, t_max, len(points)).tolist() if len(points) > 1 else [t_min] * len(points)
    return sample_points(points, to_screen, t_min, t_max, params=params, discontinuity=discontinuity)
