"""
config.py — Solver Construction & Per-Tick Parameters
======================================================
Two parameter sets drive the solver:

  FluidConfig  → fixed at construction (domain size, grid spacing,
                 particle radius, particle capacity, fluid density).
                 Changing any of these means a full reset.
  StepParams   → handed to every tick (timestep, gravity, PIC/FLIP blend,
                 iteration counts, toggles).

Both round-trip through plain dicts / JSON files so headless runs and
benchmarks can be reproduced from a file on disk.
"""

import json
import math
from dataclasses import asdict, dataclass, fields


class ConfigError(ValueError):
    """Raised when a configuration cannot produce a valid simulation."""


def _checked_kwargs(cls, data: dict) -> dict:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown {cls.__name__} keys: {', '.join(unknown)}")
    return dict(data)


@dataclass
class FluidConfig:
    """
    Construction-time parameters.

    Args:
        density         : Fluid density (only scales the diagnostic pressure)
        width, height   : Domain size in world units
        spacing         : Requested grid cell size. The actual cell size `h`
                          is derived so the domain divides evenly.
        particle_radius : Particle radius in world units
        max_particles   : Fixed particle capacity
    """

    density: float = 1000.0
    width: float = 3.0
    height: float = 3.0
    spacing: float = 0.03
    particle_radius: float = 0.009
    max_particles: int = 20000

    def validate(self) -> "FluidConfig":
        for name in ("density", "width", "height", "spacing", "particle_radius"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0.0:
                raise ConfigError(f"{name} must be a positive number, got {value!r}")
        if int(self.max_particles) != self.max_particles or self.max_particles <= 0:
            raise ConfigError(f"max_particles must be a positive integer, got {self.max_particles!r}")

        num_x = math.floor(self.width / self.spacing) + 1
        num_y = math.floor(self.height / self.spacing) + 1
        if num_x < 3 or num_y < 3:
            raise ConfigError(
                f"Grid of {num_x}x{num_y} cells has no interior; "
                f"spacing {self.spacing} is too coarse for a "
                f"{self.width}x{self.height} domain"
            )
        return self

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "FluidConfig":
        return cls(**_checked_kwargs(cls, data)).validate()

    @classmethod
    def from_json(cls, filepath: str) -> "FluidConfig":
        with open(filepath, "r") as f:
            return cls.from_dict(json.load(f))

    def to_json(self, filepath: str):
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)


@dataclass
class StepParams:
    """
    Per-tick parameters. Defaults are the interactive scene's settings.

    flip_ratio blends the two transfer schemes:
      0.0 → pure PIC  (stable, diffusive)
      1.0 → pure FLIP (energetic, noisy)
    """

    dt: float = 1.0 / 60.0
    gravity: float = -9.81
    flip_ratio: float = 0.9
    num_pressure_iters: int = 50
    num_particle_iters: int = 2
    over_relaxation: float = 1.9
    compensate_drift: bool = True
    separate_particles: bool = True
    damping: float = 1.0
    vertical_wrap: bool = False

    def validate(self) -> "StepParams":
        if not math.isfinite(self.dt) or self.dt <= 0.0:
            raise ConfigError(f"dt must be positive, got {self.dt!r}")
        if not 0.0 <= self.flip_ratio <= 1.0:
            raise ConfigError(f"flip_ratio must lie in [0, 1], got {self.flip_ratio!r}")
        if self.num_pressure_iters < 0 or self.num_particle_iters < 0:
            raise ConfigError("iteration counts must be non-negative")
        if self.damping < 0.0:
            raise ConfigError(f"damping must be non-negative, got {self.damping!r}")
        if not math.isfinite(self.gravity) or not math.isfinite(self.over_relaxation):
            raise ConfigError("gravity and over_relaxation must be finite")
        return self

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "StepParams":
        return cls(**_checked_kwargs(cls, data)).validate()

    @classmethod
    def from_json(cls, filepath: str) -> "StepParams":
        with open(filepath, "r") as f:
            return cls.from_dict(json.load(f))

    def to_json(self, filepath: str):
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
