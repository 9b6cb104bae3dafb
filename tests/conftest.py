"""Pytest fixtures for framecanvas tests."""

import tempfile

import pytest

from framecanvas.frames.registry import FrameRegistry
from framecanvas.models import CoordinateFrame, FrameBounds, ViewportState


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def default_config():
    """Create default render configuration."""
    from framecanvas.config import RenderConfig
    return RenderConfig()


@pytest.fixture
def canvas_size():
    return (800, 600)


@pytest.fixture
def root_viewport():
    """Root canvas at 50 pixels per unit, no pan."""
    return ViewportState(zoom=50)


@pytest.fixture
def identity_frame():
    """Top-level frame with the standard basis and an untouched viewport."""
    return CoordinateFrame(id="identity")


@pytest.fixture
def nested_registry():
    """
    Three frames A -> B -> C with skewed bases, pans and zooms at every level.
    """
    a = CoordinateFrame(
        id="A",
        origin=(1.0, 2.0),
        base_i=(2.0, 0.5),
        base_j=(-0.5, 1.5),
        bounds=FrameBounds(x=-4, y=-3, width=8, height=6),
        viewport=ViewportState(x=0.5, y=-1.0, zoom=2.0),
    )
    b = CoordinateFrame(
        id="B",
        parent_frame_id="A",
        origin=(0.3, -0.2),
        base_i=(1.0, 0.0),
        base_j=(0.4, 1.0),
        bounds=FrameBounds(x=-1, y=-1, width=2, height=2),
        viewport=ViewportState(x=1.0, zoom=0.5),
    )
    c = CoordinateFrame(
        id="C",
        parent_frame_id="B",
        origin=(1.0, 1.0),
        base_i=(0.0, 1.0),
        base_j=(-1.0, 0.0),
        viewport=ViewportState(zoom=3.0),
    )
    return FrameRegistry([a, b, c])
