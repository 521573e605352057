"""
===============================================================================
QUAD UKF - Estimator Configuration
===============================================================================
All tunables of the estimator, fixed at construction. Values come from a YAML
file laid out in sections:

    noise:
      process: 0.01          # diagonal of Q (16x16)
      measurement: 0.01      # diagonal of R (10x10)
      initial_covariance: 0.01
    initial_state:
      position: [0.0, 0.0, 1.0]
    ukf:
      alpha: 1.0
      beta: 2.0
      kappa: 0.0
    physics:
      gravity: 9.81
    publisher:
      pose_array_size: 10000
      frame_id: map
    concurrency:
      lock_timeout: 0.1      # seconds

Any key left out keeps its default. Unknown sections or keys are rejected so
that typos do not silently fall back to defaults.
===============================================================================
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from quad_ukf.core.constants import (
    GRAVITY,
    INITIAL_COVARIANCE_VARIANCE,
    INITIAL_POSITION,
    LOCK_TIMEOUT,
    MAP_FRAME_ID,
    MEASUREMENT_NOISE_VARIANCE,
    POSE_ARRAY_SIZE,
    PROCESS_NOISE_VARIANCE,
    UKF_ALPHA,
    UKF_BETA,
    UKF_KAPPA,
)

logger = logging.getLogger(__name__)


# YAML (section, key) -> EstimatorConfig attribute
_YAML_LAYOUT = {
    ("noise", "process"): "process_noise",
    ("noise", "measurement"): "measurement_noise",
    ("noise", "initial_covariance"): "initial_covariance",
    ("initial_state", "position"): "initial_position",
    ("ukf", "alpha"): "alpha",
    ("ukf", "beta"): "beta",
    ("ukf", "kappa"): "kappa",
    ("physics", "gravity"): "gravity",
    ("publisher", "pose_array_size"): "pose_array_size",
    ("publisher", "frame_id"): "frame_id",
    ("concurrency", "lock_timeout"): "lock_timeout",
}


@dataclass
class EstimatorConfig:
    """
    Tunables of the quadrotor estimator.

    Attributes:
        process_noise: Variance on each diagonal entry of Q
        measurement_noise: Variance on each diagonal entry of R
        initial_covariance: Variance on each diagonal entry of P0
        initial_position: Starting position (m), world frame
        alpha, beta, kappa: Scaled unscented transform parameters
        gravity: Magnitude of gravity (m/s^2), world vector (0, 0, -g)
        pose_array_size: Capacity of the published pose history
        frame_id: Frame of the published pose history
        lock_timeout: Bounded wait on the belief store (s)
    """
    process_noise: float = PROCESS_NOISE_VARIANCE
    measurement_noise: float = MEASUREMENT_NOISE_VARIANCE
    initial_covariance: float = INITIAL_COVARIANCE_VARIANCE
    initial_position: Tuple[float, float, float] = field(
        default_factory=lambda: tuple(INITIAL_POSITION))
    alpha: float = UKF_ALPHA
    beta: float = UKF_BETA
    kappa: float = UKF_KAPPA
    gravity: float = GRAVITY
    pose_array_size: int = POSE_ARRAY_SIZE
    frame_id: str = MAP_FRAME_ID
    lock_timeout: float = LOCK_TIMEOUT

    def __post_init__(self):
        self.initial_position = tuple(float(v) for v in self.initial_position)
        self.validate()

    def validate(self) -> None:
        """Raise ValueError on physically meaningless settings."""
        for name in ("process_noise", "measurement_noise", "initial_covariance"):
            if getattr(self, name) < 0.0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if len(self.initial_position) != 3:
            raise ValueError(
                f"initial_position must have 3 components, got {self.initial_position}")
        if self.alpha <= 0.0:
            raise ValueError(f"alpha must be positive, got {self.alpha}")
        if self.pose_array_size <= 0:
            raise ValueError(f"pose_array_size must be positive, got {self.pose_array_size}")
        if self.lock_timeout <= 0.0:
            raise ValueError(f"lock_timeout must be positive, got {self.lock_timeout}")

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "EstimatorConfig":
        """Build a config from the nested YAML layout."""
        kwargs = {}
        for section, values in (raw or {}).items():
            if not isinstance(values, dict):
                raise ValueError(f"Config section '{section}' must be a mapping")
            for key, value in values.items():
                attr = _YAML_LAYOUT.get((section, key))
                if attr is None:
                    raise ValueError(f"Unknown config key '{section}.{key}'")
                kwargs[attr] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Inverse of from_dict, suitable for yaml.safe_dump."""
        out: Dict[str, Dict[str, Any]] = {}
        for (section, key), attr in _YAML_LAYOUT.items():
            value = getattr(self, attr)
            if isinstance(value, tuple):
                value = list(value)
            out.setdefault(section, {})[key] = value
        return out


def load_config(config_path: Union[str, Path, None] = None) -> EstimatorConfig:
    """
    Load estimator configuration from a YAML file.

    Args:
        config_path: Path to YAML config. None returns the defaults.

    Returns:
        EstimatorConfig
    """
    if config_path is None:
        return EstimatorConfig()

    logger.info(f"Loading configuration from: {config_path}")
    with open(config_path, 'r') as f:
        raw = yaml.safe_load(f)
    config = EstimatorConfig.from_dict(raw)
    logger.debug(f"Loaded {config}")
    return config

