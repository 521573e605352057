"""
Message records exchanged with the transport layer.

Inputs are the two sensor events the estimator consumes; outputs mirror the
stamped pose records most robotics middleware understands. All vectors are
NumPy float64 arrays; quaternions are stored (x, y, z, w).
"""

import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np


def _vec(value, size: int, name: str) -> np.ndarray:
    arr = np.array(value, dtype=np.float64).reshape(-1)
    if arr.shape != (size,):
        raise ValueError(f"{name} must have {size} components, got {arr.shape}")
    return arr


# =============================================================================
# Inputs
# =============================================================================

@dataclass
class ImuEvent:
    """
    One inertial sample.

    Attributes:
        timestamp: Message time (s)
        angular_velocity: Body rates (rad/s), sensor axes
        linear_acceleration: Specific force (m/s^2), sensor axes
    """
    timestamp: float
    angular_velocity: np.ndarray
    linear_acceleration: np.ndarray

    def __post_init__(self):
        self.timestamp = float(self.timestamp)
        self.angular_velocity = _vec(self.angular_velocity, 3, "angular_velocity")
        self.linear_acceleration = _vec(self.linear_acceleration, 3, "linear_acceleration")


@dataclass
class PoseEvent:
    """
    One absolute pose from the external localizer.

    Attributes:
        timestamp: Message time (s)
        position: Localizer-frame position (m)
        orientation: Localizer quaternion (x, y, z, w)
        covariance: Reported 6x6 covariance; not used by the filter
    """
    timestamp: float
    position: np.ndarray
    orientation: np.ndarray
    covariance: Optional[np.ndarray] = None

    def __post_init__(self):
        self.timestamp = float(self.timestamp)
        self.position = _vec(self.position, 3, "position")
        self.orientation = _vec(self.orientation, 4, "orientation")


# =============================================================================
# Outputs
# =============================================================================

@dataclass
class Stamp:
    """Time split into whole seconds and nanoseconds."""
    sec: int = 0
    nsec: int = 0

    @classmethod
    def from_seconds(cls, t: float) -> "Stamp":
        whole = math.floor(t)
        return cls(int(whole), int((t - whole) * 1e9))

    def to_seconds(self) -> float:
        return self.sec + self.nsec * 1e-9


@dataclass
class Header:
    stamp: Stamp = field(default_factory=Stamp)
    frame_id: str = ""


@dataclass
class Pose:
    position: np.ndarray
    orientation: np.ndarray

    def as_vector(self) -> np.ndarray:
        """[x, y, z, qx, qy, qz, qw]"""
        return np.concatenate([self.position, self.orientation])


@dataclass
class PoseStamped:
    header: Header
    pose: Pose


@dataclass
class PoseWithCovarianceStamped:
    """Pose plus the row-major 6x6 (position, orientation) covariance block."""
    header: Header
    pose: Pose
    covariance: np.ndarray

    def covariance_matrix(self) -> np.ndarray:
        return self.covariance.reshape(6, 6)


@dataclass
class PoseArray:
    """Pose history, newest first, one [x y z qx qy qz qw] row per pose."""
    header: Header
    poses: np.ndarray

    def __len__(self) -> int:
        return len(self.poses)
