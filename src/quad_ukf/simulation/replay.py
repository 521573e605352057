"""
===============================================================================
Sensor Log Replay
===============================================================================
Feeds recorded (or synthetic) sensor logs through the estimator offline and
collects the emitted trajectory as a pandas DataFrame.

Log formats (CSV with header row):
    IMU  : t, wx, wy, wz, ax, ay, az        (raw sensor axes)
    Pose : t, px, py, pz, qx, qy, qz, qw    (raw localizer frame)
===============================================================================
"""

import logging
from pathlib import Path
from typing import Iterable, List, Sequence, Union

import numpy as np
import pandas as pd

from quad_ukf.navigation.sensor_ingest import QuadEstimator
from quad_ukf.simulation.scenarios import Event, merge_streams
from quad_ukf.telemetry.messages import ImuEvent, PoseEvent

logger = logging.getLogger(__name__)

IMU_COLUMNS = ["t", "wx", "wy", "wz", "ax", "ay", "az"]
POSE_COLUMNS = ["t", "px", "py", "pz", "qx", "qy", "qz", "qw"]
TRAJECTORY_COLUMNS = ["t", "source", "x", "y", "z", "qx", "qy", "qz", "qw",
                      "vx", "vy", "vz"]


def _read_log(path: Union[str, Path], columns: List[str]) -> pd.DataFrame:
    df = pd.read_csv(path)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing columns {missing}")
    df = df[columns].astype(float)
    if not df["t"].is_monotonic_increasing:
        logger.warning(f"{path}: timestamps not sorted, sorting")
        df = df.sort_values("t", kind="stable")
    return df


def load_imu_log(path: Union[str, Path]) -> List[ImuEvent]:
    df = _read_log(path, IMU_COLUMNS)
    logger.info(f"Loaded {len(df)} IMU samples from {path}")
    return [ImuEvent(row.t, (row.wx, row.wy, row.wz), (row.ax, row.ay, row.az))
            for row in df.itertuples(index=False)]


def load_pose_log(path: Union[str, Path]) -> List[PoseEvent]:
    df = _read_log(path, POSE_COLUMNS)
    logger.info(f"Loaded {len(df)} poses from {path}")
    return [PoseEvent(row.t, (row.px, row.py, row.pz),
                      (row.qx, row.qy, row.qz, row.qw))
            for row in df.itertuples(index=False)]


def imu_events_to_frame(events: Sequence[ImuEvent]) -> pd.DataFrame:
    rows = [np.concatenate([[e.timestamp], e.angular_velocity,
                            e.linear_acceleration]) for e in events]
    return pd.DataFrame(rows, columns=IMU_COLUMNS)


def pose_events_to_frame(events: Sequence[PoseEvent]) -> pd.DataFrame:
    rows = [np.concatenate([[e.timestamp], e.position, e.orientation])
            for e in events]
    return pd.DataFrame(rows, columns=POSE_COLUMNS)


def load_events(imu_path: Union[str, Path, None],
                pose_path: Union[str, Path, None]) -> List[Event]:
    imu = load_imu_log(imu_path) if imu_path else []
    pose = load_pose_log(pose_path) if pose_path else []
    return merge_streams(imu, pose)


def replay(estimator: QuadEstimator, events: Iterable[Event]) -> pd.DataFrame:
    """
    Run every event through the estimator in order.

    Returns:
        One row per committed belief: time, source stream, position,
        orientation and velocity. Dropped events produce no row.
    """
    rows = []
    for event in events:
        if isinstance(event, ImuEvent):
            source, belief = "imu", estimator.on_imu(event)
        else:
            source, belief = "pose", estimator.on_pose(event)
        if belief is None:
            continue
        s = belief.state
        rows.append([belief.timestamp, source, *s.position, *s.quaternion,
                     *s.velocity])

    df = pd.DataFrame(rows, columns=TRAJECTORY_COLUMNS)
    logger.info(f"Replayed {len(df)} updates, dropped {sum(estimator.dropped.values())}")
    return df
