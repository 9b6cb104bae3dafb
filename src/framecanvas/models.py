"""
Pydantic data models for framecanvas.

Frames, viewports and plot definitions are validated on construction so the
geometry core never sees a non-positive zoom or an empty domain. Content-based
id helpers give deterministic identifiers.
"""

import hashlib
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from framecanvas.errors import check_domain

Point = Tuple[float, float]


class PlotKind(str, Enum):
    """Kinds of drawable objects held by a frame."""
    VECTOR = "vector"
    FUNCTION = "function"
    PARAMETRIC = "parametric"
    IMPLICIT = "implicit"


class ViewportState(BaseModel):
    """Pan offset and zoom applied at one level of the hierarchy."""
    x: float = 0.0
    y: float = 0.0
    zoom: float = Field(default=1.0, gt=0.0)
    grid_step: float = Field(default=1.0, gt=0.0)

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class LocalBounds(BaseModel):
    """Corner bounds in a frame's own coordinates (non-orthogonal parents)."""
    min_u: float
    max_u: float
    min_v: float
    max_v: float

    model_config = ConfigDict(extra="forbid")


class FrameBounds(BaseModel):
    """Region of the parent space a frame occupies."""
    x: float = 0.0
    y: float = 0.0
    width: float = Field(default=0.0, ge=0.0)
    height: float = Field(default=0.0, ge=0.0)
    local: Optional[LocalBounds] = None

    model_config = ConfigDict(extra="forbid")


class Vector(BaseModel):
    """An arrow from start to end in frame coordinates."""
    id: str
    start: Point = (0.0, 0.0)
    end: Point
    color: str = "#00ff00"
    label: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class FunctionPlot(BaseModel):
    """Explicit plot y = f(x), from an expression or pre-computed points."""
    id: str
    expression: Optional[str] = None
    points: Optional[List[Point]] = None
    x_min: float
    x_max: float
    color: str = "#ff00ff"
    num_points: Optional[int] = Field(default=None, gt=1)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check(self):
        check_domain("x", self.x_min, self.x_max)
        if not self.expression and not self.points:
            raise ValueError("function plot needs an expression or points")
        return self


class ParametricPlot(BaseModel):
    """Parametric plot (x, y) = (f(t), g(t))."""
    id: str
    x_expression: Optional[str] = None
    y_expression: Optional[str] = None
    points: Optional[List[Point]] = None
    t_min: float
    t_max: float
    color: str = "#ff8800"
    num_points: Optional[int] = Field(default=None, gt=1)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check(self):
        check_domain("t", self.t_min, self.t_max)
        has_expressions = bool(self.x_expression) and bool(self.y_expression)
        if not has_expressions and not self.points:
            raise ValueError("parametric plot needs x and y expressions or points")
        return self


class ImplicitPlot(BaseModel):
    """Implicit plot f(x, y) = 0."""
    id: str
    equation: Optional[str] = None
    points: Optional[List[Point]] = None
    x_min: float
    x_max: float
    y_min: float
    y_max: float
    color: str = "#3b82f6"
    num_points: Optional[int] = Field(default=None, gt=0)
    cache_key: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check(self):
        check_domain("x", self.x_min, self.x_max)
        check_domain("y", self.y_min, self.y_max)
        if not self.equation and not self.points:
            raise ValueError("implicit plot needs an equation or points")
        if self.equation and self.cache_key is None:
            self.cache_key = self._derived_key(self._default_resolution())
        return self

    def _default_resolution(self):
        return self.num_points or default_contour_resolution(
            self.x_min, self.x_max, self.y_min, self.y_max
        )

    def _derived_key(self, resolution):
        return contour_cache_key(
            self.equation, self.x_min, self.x_max, self.y_min, self.y_max, resolution
        )

    def resolved_cache_key(self, resolution):
        """
        Cache key for the contour extracted at ``resolution``.

        A key the caller supplied is returned as is; the key derived at
        construction follows the resolution actually used.
        """
        if self.cache_key and self.cache_key != self._derived_key(self._default_resolution()):
            return self.cache_key
        return self._derived_key(resolution)


class CoordinateFrame(BaseModel):
    """A coordinate system nested inside its parent's coordinate space."""
    id: str
    origin: Point = (0.0, 0.0)
    base_i: Point = (1.0, 0.0)
    base_j: Point = (0.0, 1.0)
    bounds: FrameBounds = Field(default_factory=FrameBounds)
    viewport: ViewportState = Field(default_factory=ViewportState)
    parent_frame_id: Optional[str] = None
    child_frame_ids: List[str] = Field(default_factory=list)
    vectors: List[Vector] = Field(default_factory=list)
    functions: List[FunctionPlot] = Field(default_factory=list)
    parametric_plots: List[ParametricPlot] = Field(default_factory=list)
    implicit_plots: List[ImplicitPlot] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @field_validator("child_frame_ids")
    @classmethod
    def _unique_children(cls, value):
        if len(set(value)) != len(value):
            raise ValueError("child_frame_ids must be unique")
        return value

    @property
    def plot_count(self):
        return (len(self.vectors) + len(self.functions)
                + len(self.parametric_plots) + len(self.implicit_plots))


class CubicBezier(BaseModel):
    """A single cubic Bezier curve segment."""
    p0: List[float] = Field(..., min_length=2, max_length=2)  # start point
    p1: List[float] = Field(..., min_length=2, max_length=2)  # control point 1
    p2: List[float] = Field(..., min_length=2, max_length=2)  # control point 2
    p3: List[float] = Field(..., min_length=2, max_length=2)  # end point


class RenderedPlot(BaseModel):
    """Screen-space output of one plot: one point list per continuous stroke."""
    plot_id: str
    frame_id: str
    kind: PlotKind
    color: str
    segments: List[List[Point]] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @property
    def point_count(self):
        return sum(len(s) for s in self.segments)


# Deterministic identifiers and keys

def generate_frame_id(origin, base_i, base_j, parent_id=None, index=0, round_digits=6):
    """
    Generate a deterministic frame id from its placement.

    Coordinates are rounded so float noise does not change the id.
    """
    parts = [
        [round(float(c), round_digits) for c in vec]
        for vec in (origin, base_i, base_j)
    ]
    data = f"{parent_id}:{parts}:{index}"
    h = hashlib.sha256(data.encode()).hexdigest()[:12]
    return f"frame_{h}"


def generate_plot_id(kind, payload, index=0):
    """
    Generate a deterministic plot id from its kind and defining payload.
    """
    kind = PlotKind(kind)
    data = f"{kind.value}:{payload}:{index}"
    h = hashlib.sha256(data.encode()).hexdigest()[:12]
    return f"{kind.value}_{h}"


def default_contour_resolution(x_min, x_max, y_min, y_max, cells_per_unit=50.0,
                               min_resolution=50, max_resolution=500):
    """Grid cells per axis: ~50 per unit of average range, clamped."""
    avg_range = ((x_max - x_min) + (y_max - y_min)) / 2
    return int(max(min_resolution, min(max_resolution, round(avg_range * cells_per_unit))))


def contour_cache_key(equation, x_min, x_max, y_min, y_max, resolution):
    """Cache key for an implicit contour."""
    return f"implicit_{equation}_{x_min}_{x_max}_{y_min}_{y_max}_{resolution}"
