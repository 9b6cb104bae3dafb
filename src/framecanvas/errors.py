"""Error taxonomy of the geometry core."""

import math


class EvaluationFailure(ArithmeticError):
    """An expression raised or produced a non-finite value at a sample."""

    def __init__(self, expression, message, at=None):
        self.expression = expression
        self.at = at
        where = f" at {at}" if at is not None else ""
        super().__init__(f"Failed to evaluate {expression!r}{where}: {message}")


class DegenerateGeometry(ArithmeticError):
    """A frame basis is singular (collinear or zero vectors)."""

    def __init__(self, frame_id, determinant):
        self.frame_id = frame_id
        self.determinant = determinant
        super().__init__(f"Frame {frame_id!r} has a degenerate basis (det={determinant:.3g})")


class InvalidDomain(ValueError):
    """A plot domain is empty, inverted or not finite."""

    def __init__(self, name, lower, upper):
        self.name = name
        self.lower = lower
        self.upper = upper
        super().__init__(f"{name}_min must be less than {name}_max (got {lower} >= {upper})"
                         if _finite(lower, upper) else
                         f"{name} bounds must be finite (got {lower}, {upper})")


def _finite(*values):
    return all(math.isfinite(v) for v in values)


def check_domain(name, lower, upper):
    """Raise InvalidDomain unless lower < upper and both are finite."""
    if not _finite(lower, upper) or lower >= upper:
        raise InvalidDomain(name, lower, upper)
