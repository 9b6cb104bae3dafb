"""
Compile expression strings into numeric callables.

Expressions are parsed with SymPy and lowered to NumPy through ``lambdify``,
so one compiled object serves both scalar evaluations (adaptive refinement) and
vectorised grids (uniform passes, contour grids). Compilation is cached per
(source, variables).
"""

from functools import lru_cache

import numpy as np
import sympy as sp
from sympy.parsing.sympy_parser import convert_xor, parse_expr, standard_transformations

from framecanvas.errors import EvaluationFailure

_TRANSFORMATIONS = standard_transformations + (convert_xor,)

_LOCALS = {
    "e": sp.E,
    "pi": sp.pi,
    "ln": sp.log,
}


class CompiledExpression:
    """A parsed expression bound to an ordered tuple of variable names."""

    def __init__(self, source, variables, expr, func):
        self.source = source
        self.variables = variables
        self.expr = expr
        self._func = func

    def __repr__(self):
        return f"CompiledExpression({self.source!r}, variables={self.variables})"

    def __call__(self, *args):
        """
        Evaluate at one point.

        Raises EvaluationFailure on any exception or a non-finite result.
        """
        try:
            with np.errstate(all="ignore"):
                value = self._func(*(float(a) for a in args))
            value = complex(value)
        except Exception as e:
            raise EvaluationFailure(self.source, str(e), at=args) from e
        if value.imag != 0 or not np.isfinite(value.real):
            raise EvaluationFailure(self.source, f"non-finite result {value}", at=args)
        return value.real

    def evaluate_array(self, *arrays):
        """
        Evaluate over broadcast arrays; invalid entries become NaN.

        Falls back to point-by-point evaluation if the vectorised call raises.
        """
        arrays = np.broadcast_arrays(*(np.asarray(a, dtype=float) for a in arrays))
        shape = arrays[0].shape
        try:
            with np.errstate(all="ignore"):
                raw = np.asarray(self._func(*arrays))
            values = _to_real(np.broadcast_to(raw, shape))
        except Exception:
            values = np.full(shape, np.nan)
            flat = [a.ravel() for a in arrays]
            out = values.reshape(-1)
            for i in range(out.size):
                try:
                    out[i] = self(*(a[i] for a in flat))
                except EvaluationFailure:
                    pass
            return values
        values = np.array(values, dtype=float)
        values[~np.isfinite(values)] = np.nan
        return values


class CallableExpression:
    """Adapter giving a plain Python callable the CompiledExpression interface."""

    def __init__(self, func, variables):
        self._func = func
        self.variables = variables
        self.source = getattr(func, "__name__", repr(func))

    def __repr__(self):
        return f"CallableExpression({self.source!r}, variables={self.variables})"

    def __call__(self, *args):
        try:
            value = float(self._func(*args))
        except Exception as e:
            raise EvaluationFailure(self.source, str(e), at=args) from e
        if not np.isfinite(value):
            raise EvaluationFailure(self.source, f"non-finite result {value}", at=args)
        return value

    def evaluate_array(self, *arrays):
        arrays = np.broadcast_arrays(*(np.asarray(a, dtype=float) for a in arrays))
        values = np.full(arrays[0].shape, np.nan)
        flat = [a.ravel() for a in arrays]
        out = values.reshape(-1)
        for i in range(out.size):
            try:
                out[i] = self(*(a[i] for a in flat))
            except EvaluationFailure:
                pass
        return values


def _to_real(values):
    if np.iscomplexobj(values):
        real = values.real.astype(float)
        real[values.imag != 0] = np.nan
        return real
    return values.astype(float)


@lru_cache(maxsize=256)
def compile_expression(source, variables=("x",)):
    """
    Parse and compile an expression string.

    Raises EvaluationFailure for syntax errors and for free symbols outside
    ``variables``.
    """
    variables = tuple(variables)
    symbols = {name: sp.Symbol(name, real=True) for name in variables}
    local_dict = dict(_LOCALS)
    local_dict.update(symbols)

    try:
        expr = parse_expr(source, local_dict=local_dict, transformations=_TRANSFORMATIONS)
    except Exception as e:
        raise EvaluationFailure(source, f"cannot parse: {e}") from e

    if not isinstance(expr, sp.Basic):
        expr = sp.sympify(expr)

    unknown = sorted(str(s) for s in expr.free_symbols if str(s) not in symbols)
    if unknown:
        raise EvaluationFailure(source, f"unknown symbols {unknown}; expected {list(variables)}")

    func = sp.lambdify([symbols[name] for name in variables], expr, modules="numpy")
    return CompiledExpression(source, variables, expr, func)


def as_evaluator(expression, variables=("x",)):
    """Compile a string, or wrap a callable, into an evaluator."""
    if callable(expression) and not isinstance(expression, str):
        return CallableExpression(expression, tuple(variables))
    return compile_expression(str(expression), tuple(variables))
