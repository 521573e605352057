"""
===============================================================================
Synthetic Sensor Scenarios
===============================================================================
Noise-free IMU and pose streams for simple flight conditions, expressed in
the SENSOR conventions the estimator ingests (i.e. the inverse of the IMU and
localizer remaps is applied), so they exercise the full ingest path.

Scenarios:
    hover -- vehicle at rest; the accelerometer feels +g along body z
    spin  -- hover while yawing at a constant rate about body z
===============================================================================
"""

from typing import List, Sequence, Tuple, Union

import numpy as np

from quad_ukf.core import quaternion as quat
from quad_ukf.core.constants import GRAVITY, INITIAL_POSITION
from quad_ukf.telemetry.messages import ImuEvent, PoseEvent

Event = Union[ImuEvent, PoseEvent]


def to_imu_frame(angular_velocity: np.ndarray,
                 specific_force: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Body-frame rates and specific force -> raw IMU axes."""
    w = np.asarray(angular_velocity, dtype=np.float64)
    f = np.asarray(specific_force, dtype=np.float64)
    return np.array([w[0], -w[1], w[2]]), np.array([-f[0], f[1], f[2]])


def to_localizer_frame(position: np.ndarray,
                       orientation: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Filter-frame pose -> raw localizer pose (quaternions as x, y, z, w)."""
    p = np.asarray(position, dtype=np.float64)
    qx, qy, qz, qw = orientation
    return np.array([-p[0], p[1], p[2]]), np.array([qw, qz, -qy, qx])


def _times(duration: float, rate: float, start: float) -> np.ndarray:
    n = int(round(duration * rate))
    return start + np.arange(1, n + 1) / rate


def imu_stream(duration: float, rate: float, yaw_rate: float = 0.0,
               start: float = 0.0, gravity: float = GRAVITY) -> List[ImuEvent]:
    """
    IMU samples for a vehicle holding altitude and yawing at ``yaw_rate``.

    Args:
        duration: Length of the stream (s)
        rate: Sample rate (Hz)
        yaw_rate: Body z angular rate (rad/s)
        start: Time of the initial belief; the first sample is at start + 1/rate
        gravity: Gravity magnitude felt by the accelerometer (m/s^2)
    """
    w_raw, f_raw = to_imu_frame([0.0, 0.0, yaw_rate], [0.0, 0.0, gravity])
    return [ImuEvent(t, w_raw, f_raw) for t in _times(duration, rate, start)]


def pose_stream(duration: float, rate: float, yaw_rate: float = 0.0,
                position: Sequence[float] = INITIAL_POSITION,
                start: float = 0.0) -> List[PoseEvent]:
    """Localizer poses for the same motion as imu_stream()."""
    events = []
    for t in _times(duration, rate, start):
        q = quat.from_axis_angle([0.0, 0.0, 1.0], yaw_rate * (t - start))
        p_raw, q_raw = to_localizer_frame(position, q)
        events.append(PoseEvent(t, p_raw, q_raw))
    return events


def hover(duration: float = 1.0, imu_rate: float = 100.0,
          pose_rate: float = 0.0, start: float = 0.0) -> List[Event]:
    """Gravity-only IMU (and optional pose fixes) at the initial position."""
    return merge_streams(imu_stream(duration, imu_rate, start=start),
                         pose_stream(duration, pose_rate, start=start)
                         if pose_rate > 0 else [])


def spin(duration: float = 1.0, yaw_rate: float = np.pi,
         imu_rate: float = 100.0, pose_rate: float = 0.0,
         start: float = 0.0) -> List[Event]:
    """Constant yaw rate while holding position."""
    return merge_streams(
        imu_stream(duration, imu_rate, yaw_rate=yaw_rate, start=start),
        pose_stream(duration, pose_rate, yaw_rate=yaw_rate, start=start)
        if pose_rate > 0 else [])


def merge_streams(imu: Sequence[ImuEvent],
                  pose: Sequence[PoseEvent]) -> List[Event]:
    """Interleave by timestamp; IMU goes first when times tie."""
    tagged = [(e.timestamp, 0, i, e) for i, e in enumerate(imu)]
    tagged += [(e.timestamp, 1, i, e) for i, e in enumerate(pose)]
    tagged.sort(key=lambda item: item[:3])
    return [item[3] for item in tagged]


SCENARIOS = {
    "hover": hover,
    "spin": spin,
}
