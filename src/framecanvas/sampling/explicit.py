"""
Adaptive sampling of explicit plots y = f(x).
"""

from framecanvas.config import SamplingConfig
from framecanvas.errors import check_domain
from framecanvas.sampling.adaptive import AdaptiveSampler, clamp_count, sample_points
from framecanvas.sampling.expressions import as_evaluator
from framecanvas.tracer import get_tracer, trace


def initial_count(x_min, x_max, num_points=None, config=None):
    """Uniform sample count: the plot's hint, else ~100 per unit of range, clamped."""
    config = config or SamplingConfig()
    if num_points is not None:
        return max(2, min(config.max_points, int(num_points)))
    return clamp_count((x_max - x_min) * config.explicit_points_per_unit, config)


@trace(label="sample_function")
def sample_function(expression, x_min, x_max, to_screen, num_points=None,
                    config=None, discontinuity=None):
    """
    Sample y = f(x) over [x_min, x_max] into screen-space strokes.

    Args:
        expression: Expression string in ``x`` or a Python callable.
        to_screen: Oracle mapping a frame-local point to pixels.
        num_points: Optional uniform sample count overriding the default.

    Returns:
        SampledCurve
    """
    check_domain("x", x_min, x_max)
    config = config or SamplingConfig()
    evaluator = as_evaluator(expression, ("x",))

    def curve(x):
        return (x, evaluator(x))

    def vector_curve(xs):
        return xs, evaluator.evaluate_array(xs)

    count = initial_count(x_min, x_max, num_points, config)
    sampler = AdaptiveSampler(
        curve, to_screen, x_min, x_max, config.explicit_max_depth,
        config=config, vector_curve=vector_curve,
    )
    result = sampler.run(count, discontinuity)

    get_tracer().event(
        "Sampled function",
        level="DEBUG",
        expression=evaluator.source,
        uniform=count,
        evaluations=result.evaluations,
        segments=len(result.segments),
    )
    return result


def function_from_points(points, x_min, x_max, to_screen, discontinuity=None):
    """Segment a pre-computed (x, y) list of an explicit plot."""
    check_domain("x", x_min, x_max)
    return sample_points(points, to_screen, x_min, x_max, discontinuity=discontinuity)
