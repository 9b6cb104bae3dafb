"""
Configuration management for framecanvas.

Every pixel threshold and recursion ceiling used by the geometry core lives
here. Values load from YAML and fall back to defaults for anything missing.
"""

import os
from dataclasses import dataclass, field, fields

import yaml


@dataclass
class TransformConfig:
    """Configuration for the transform chain."""
    degenerate_epsilon: float = 1e-10


@dataclass
class DiscontinuityConfig:
    """Thresholds for breaking a sampled curve into segments."""
    min_jump_pixels: float = 1000.0
    jump_units: float = 10.0  # jump threshold in units of pixels_per_unit
    gap_factor: float = 20.0  # domain gap in multiples of the sample spacing
    asymptote_ratio: float = 0.8
    asymptote_step_factor: float = 2.0
    relative_change: float = 50.0
    asymptote_min_pixels: float = 50.0


@dataclass
class SamplingConfig:
    """Configuration for the adaptive curve samplers."""
    pixel_tolerance: float = 1.0
    gap_pixels: float = 5.0
    curvature_weight: float = 0.3
    explicit_max_depth: int = 8
    parametric_max_depth: int = 10
    min_step_divisor: int = 10000
    min_points: int = 200
    max_points: int = 2000
    explicit_points_per_unit: float = 100.0
    parametric_points_per_unit: float = 75.0
    magnitude_samples: int = 16
    max_evaluations: int = 50000  # per curve, across uniform pass and refinement


@dataclass
class ContourConfig:
    """Configuration for implicit contour extraction."""
    min_resolution: int = 50
    max_resolution: int = 500
    cells_per_unit: float = 50.0
    max_depth: int = 3
    origin_fraction: float = 0.1
    stitch_factor: float = 1.5
    zero_epsilon: float = 1e-10
    min_cell_divisor: float = 100.0
    base_gap_pixels: float = 30.0


@dataclass
class CacheConfig:
    """Configuration for the in-memory contour cache."""
    enabled: bool = True
    max_age_seconds: float = 3600.0


@dataclass
class StrokeConfig:
    """Configuration for the reference SVG stroker."""
    width: float = 2.0
    opacity: float = 0.9
    default_color: str = "#3b82f6"


@dataclass
class CanvasConfig:
    """Canvas and root viewport defaults for the command line."""
    width: int = 800
    height: int = 600
    zoom: float = 50.0
    min_zoom: float = 5.0
    max_zoom: float = 500.0
    frame_min_zoom: float = 0.1
    frame_max_zoom: float = 10.0


@dataclass
class TracingConfig:
    """Configuration for runtime tracing."""
    enabled: bool = False
    level: str = "INFO"
    file_path: str = None
    json_output: bool = False


@dataclass
class RenderConfig:
    """Complete render configuration."""
    transform: TransformConfig = field(default_factory=TransformConfig)
    discontinuity: DiscontinuityConfig = field(default_factory=DiscontinuityConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    contour: ContourConfig = field(default_factory=ContourConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    stroke: StrokeConfig = field(default_factory=StrokeConfig)
    canvas: CanvasConfig = field(default_factory=CanvasConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)


def load_config(config_path=None):
    """
    Load configuration from a YAML file.

    Missing sections and keys keep their defaults; unknown keys are ignored.
    """
    config = RenderConfig()

    if config_path and os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        config = _merge_config(config, yaml_data)

    return config


def _merge_config(config, yaml_data):
    """Merge YAML data into the config dataclasses section by section."""
    for section in fields(config):
        values = yaml_data.get(section.name)
        if not isinstance(values, dict):
            continue
        target = getattr(config, section.name)
        for key, value in values.items():
            if hasattr(target, key):
                setattr(target, key, value)
    return config


def config_to_dict(config):
    """Plain nested dict of a RenderConfig."""
    return {
        section.name: {
            f.name: getattr(getattr(config, section.name), f.name)
            for f in fields(getattr(config, section.name))
        }
        for section in fields(config)
    }


def save_default_config(path):
    """Save default configuration to YAML file for reference."""
    yaml_data = config_to_dict(RenderConfig())

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(yaml_data, f, default_flow_style=False, sort_keys=False)
