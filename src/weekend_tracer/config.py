"""Tracer configuration.

TracerConfig holds everything that fixes the size and behaviour of a
PathTracer's buffers for its whole activation: image size, samples per
frame, the Fibonacci table size, the ray interval, the random seed and the
sky colors. Per-frame parameters (camera, aperture, bounce count) live in
FrameParams instead.

Configurations round-trip through plain dictionaries and can be loaded
from JSON files:

    {
        "width": 400,
        "height": 225,
        "samples_per_frame": 8,
        "seed": 7
    }

Example:
    >>> config = TracerConfig(width=400, height=225)
    >>> config.lane_count
    720000
    >>> TracerConfig.from_dict(config.to_dict()) == config
    True
"""

import json
import logging
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Largest image dimension accepted
MAX_IMAGE_DIMENSION = 4096


@dataclass
class TracerConfig:
    """Activation-time settings of a PathTracer.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_frame: Sample slots traced per pixel each frame.
        hemisphere_samples: Size of the spherical Fibonacci table.
        t_min: Exclusive lower bound of the ray interval. Keeps scattered
            rays from re-hitting the surface they left.
        t_max: Exclusive upper bound of the ray interval.
        seed: Seed folded into every frame's random key.
        sky_horizon: Sky color for rays pointing straight down.
        sky_zenith: Sky color for rays pointing straight up.
        max_bounces_limit: Largest max_bounces a frame may request.
    """

    width: int
    height: int
    samples_per_frame: int = 8
    hemisphere_samples: int = 4096
    t_min: float = 1e-3
    t_max: float = 1e10
    seed: int = 0
    sky_horizon: tuple[float, float, float] = (1.0, 1.0, 1.0)
    sky_zenith: tuple[float, float, float] = (0.5, 0.7, 1.0)
    max_bounces_limit: int = 64

    def __post_init__(self) -> None:
        self.sky_horizon = tuple(float(c) for c in self.sky_horizon)
        self.sky_zenith = tuple(float(c) for c in self.sky_zenith)
        self.validate()

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def lane_count(self) -> int:
        """Number of transport records: one per (pixel, sample slot)."""
        return self.pixel_count * self.samples_per_frame

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def validate(self) -> None:
        """Check every field.

        Raises:
            ValueError: If any field is out of range.
        """
        for name in ("width", "height"):
            value = getattr(self, name)
            if not 0 < value <= MAX_IMAGE_DIMENSION:
                raise ValueError(
                    f"{name} must be in [1, {MAX_IMAGE_DIMENSION}], got {value}"
                )
        if self.samples_per_frame < 1:
            raise ValueError(
                f"samples_per_frame must be at least 1, got {self.samples_per_frame}"
            )
        if self.hemisphere_samples < 1:
            raise ValueError(
                f"hemisphere_samples must be at least 1, got {self.hemisphere_samples}"
            )
        if not 0.0 <= self.t_min < self.t_max:
            raise ValueError(
                f"Ray interval must satisfy 0 <= t_min < t_max, "
                f"got ({self.t_min}, {self.t_max})"
            )
        if self.seed < 0:
            raise ValueError(f"seed must be non-negative, got {self.seed}")
        if self.max_bounces_limit < 1:
            raise ValueError(
                f"max_bounces_limit must be at least 1, got {self.max_bounces_limit}"
            )
        for name in ("sky_horizon", "sky_zenith"):
            color = getattr(self, name)
            if len(color) != 3 or not all(math.isfinite(c) and c >= 0.0 for c in color):
                raise ValueError(
                    f"{name} must be 3 finite non-negative components, got {color}"
                )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["sky_horizon"] = list(self.sky_horizon)
        data["sky_zenith"] = list(self.sky_zenith)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TracerConfig":
        """Build a config from a dictionary.

        Raises:
            ValueError: If the dictionary has unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        return cls(**data)


def load_config(path: str | Path) -> TracerConfig:
    """Load a TracerConfig from a JSON file.

    Args:
        path: Path to a JSON object with TracerConfig fields.

    Returns:
        The validated configuration.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the JSON is malformed or fails validation.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    config = TracerConfig.from_dict(data)
    logger.debug("Loaded config from %s: %s", path, config)
    return config


def save_config(config: TracerConfig, path: str | Path) -> None:
    """Write a TracerConfig to a JSON file."""
    path = Path(path)
    with path.open("w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
