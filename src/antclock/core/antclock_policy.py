"""Antclock step-control configuration.

All bounds that steer the adaptive driver live in one immutable value,
AntclockConfig, passed explicitly to every call that needs it. There is no
module-level mutable configuration.
"""

import dataclasses
import json
import logging
import math
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger('antclock.policy')


class AntclockPolicyError(ValueError):
    """Raised when an AntclockConfig violates its bounds."""


@dataclass(frozen=True)
class AntclockConfig:
    """Immutable step-control bounds for one adaptive run.

    Attributes:
        event_threshold: Event magnitude above which a step is a tick.
        event_boost: Factor in (0, 1] applied to dt_nominal on a tick.
        dt_nominal: Step size when no event is detected.
        dt_min: Lower clamp for the chosen step size.
        dt_max: Upper clamp for the chosen step size.
        max_semantic_ticks: Tick budget; 0 disables ticking.
        max_coordinate_time: Coordinate-time budget.
    """
    event_threshold: float = 0.05
    event_boost: float = 0.5
    dt_nominal: float = 0.01
    dt_min: float = 0.001
    dt_max: float = 0.1
    max_semantic_ticks: int = 100
    max_coordinate_time: float = 10.0

    def __post_init__(self):
        self.validate()
        # numpy scalars are accepted; store builtins so to_dict() stays JSON-safe
        for f in dataclasses.fields(self):
            cast = int if f.name == "max_semantic_ticks" else float
            object.__setattr__(self, f.name, cast(getattr(self, f.name)))

    def validate(self):
        """Check all bounds.

        Raises:
            AntclockPolicyError: If any bound is violated.
        """
        for name in ("event_threshold", "event_boost", "dt_nominal", "dt_min",
                     "dt_max", "max_coordinate_time"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
                raise AntclockPolicyError(f"{name} must be a finite number, got {value!r}")
        if self.event_threshold < 0:
            raise AntclockPolicyError(f"event_threshold must be non-negative, got {self.event_threshold}")
        if not (0 < self.event_boost <= 1):
            raise AntclockPolicyError(f"event_boost must be in (0, 1], got {self.event_boost}")
        if self.dt_min <= 0:
            raise AntclockPolicyError(f"dt_min must be positive, got {self.dt_min}")
        if self.dt_min > self.dt_max:
            raise AntclockPolicyError(f"dt_min ({self.dt_min}) must not exceed dt_max ({self.dt_max})")
        if not (self.dt_min <= self.dt_nominal <= self.dt_max):
            raise AntclockPolicyError(
                f"dt_nominal ({self.dt_nominal}) must lie in [dt_min, dt_max] = [{self.dt_min}, {self.dt_max}]"
            )
        if isinstance(self.max_semantic_ticks, bool) or not isinstance(self.max_semantic_ticks, numbers.Integral):
            raise AntclockPolicyError(f"max_semantic_ticks must be an integer, got {self.max_semantic_ticks!r}")
        if self.max_semantic_ticks < 0:
            raise AntclockPolicyError(f"max_semantic_ticks must be non-negative, got {self.max_semantic_ticks}")
        if self.max_coordinate_time <= 0:
            raise AntclockPolicyError(
                f"max_coordinate_time must be positive, got {self.max_coordinate_time}"
            )

    @property
    def ticks_enabled(self) -> bool:
        return self.max_semantic_ticks > 0

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'AntclockConfig':
        unknown = set(config_dict) - {f.name for f in dataclasses.fields(cls)}
        if unknown:
            raise AntclockPolicyError(f"Unknown antclock config keys: {sorted(unknown)}")
        return cls(**config_dict)

    @classmethod
    def from_file(cls, config_path: str) -> 'AntclockConfig':
        """Load overrides from a JSON file on top of the defaults.

        Args:
            config_path: Path to JSON config file

        Returns:
            Validated AntclockConfig

        Raises:
            FileNotFoundError: If config file doesn't exist
            AntclockPolicyError: If the file is not valid JSON or a bound is violated
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        try:
            with open(config_path, 'r') as f:
                config_dict = json.load(f)
        except json.JSONDecodeError as e:
            raise AntclockPolicyError(f"Invalid JSON in config file: {e}")

        if not isinstance(config_dict, dict):
            raise AntclockPolicyError("Antclock config file must hold a JSON object")

        config = cls.from_dict(config_dict)
        logger.info(f"Loaded antclock config from {config_path}",
                    extra={"extra_data": config.to_dict()})
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Export config to a plain dict for reproducibility."""
        return dataclasses.asdict(self)

    def replace(self, **changes) -> 'AntclockConfig':
        """Copy with some fields changed, re-validated."""
        return dataclasses.replace(self, **changes)


def default_antclock_config() -> AntclockConfig:
    return AntclockConfig()
