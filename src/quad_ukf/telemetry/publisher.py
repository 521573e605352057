"""
===============================================================================
QUAD UKF - Pose Publisher
===============================================================================
Turns every committed belief into the three records downstream consumers
subscribe to:

    1. PoseWithCovarianceStamped -- position, orientation and the upper-left
       6x6 block of the 16x16 covariance, row-major in 36 entries.
    2. PoseArray                 -- rolling history of up to POSE_ARRAY_SIZE
       poses, newest first, re-emitted in full on every update.
    3. PoseStamped               -- position and orientation only.

Transport is left to the caller: each output is handed to a plain callable
(a middleware publisher's ``publish`` method, a list's ``append``, ...).
Outputs with no callable are built but not sent.
===============================================================================
"""

import logging
from typing import Callable, Optional

import numpy as np

from quad_ukf.core.config import EstimatorConfig
from quad_ukf.core.constants import MAP_FRAME_ID, POSE_ARRAY_SIZE, POSE_COV_DIM
from quad_ukf.core.data_structures import PoseHistory
from quad_ukf.navigation.quad_model import QuadBelief
from quad_ukf.telemetry.messages import (
    Header,
    Pose,
    PoseArray,
    PoseStamped,
    PoseWithCovarianceStamped,
    Stamp,
)

logger = logging.getLogger(__name__)

PublishFn = Callable[[object], None]


class PosePublisher:
    """
    Sink for committed beliefs.

    Args:
        pose_stamped: Called with each PoseStamped
        pose_with_cov: Called with each PoseWithCovarianceStamped
        pose_array: Called with the full PoseArray after each update
        capacity: Maximum poses kept in the history
        frame_id: Frame of the pose history
    """

    def __init__(self, pose_stamped: Optional[PublishFn] = None,
                 pose_with_cov: Optional[PublishFn] = None,
                 pose_array: Optional[PublishFn] = None,
                 capacity: int = POSE_ARRAY_SIZE,
                 frame_id: str = MAP_FRAME_ID):
        self._pose_stamped = pose_stamped
        self._pose_with_cov = pose_with_cov
        self._pose_array = pose_array
        self.history = PoseHistory(capacity)
        self.frame_id = frame_id

    @classmethod
    def from_config(cls, config: EstimatorConfig,
                    pose_stamped: Optional[PublishFn] = None,
                    pose_with_cov: Optional[PublishFn] = None,
                    pose_array: Optional[PublishFn] = None) -> "PosePublisher":
        """Publisher whose history size and frame come from the config."""
        return cls(pose_stamped=pose_stamped, pose_with_cov=pose_with_cov,
                   pose_array=pose_array, capacity=config.pose_array_size,
                   frame_id=config.frame_id)

    @staticmethod
    def belief_to_pose(belief: QuadBelief) -> Pose:
        return Pose(position=belief.state.position.copy(),
                    orientation=belief.state.quaternion.copy())

    def to_pose_stamped(self, belief: QuadBelief) -> PoseStamped:
        header = Header(stamp=Stamp.from_seconds(belief.timestamp))
        return PoseStamped(header, self.belief_to_pose(belief))

    def to_pose_with_cov_stamped(self, belief: QuadBelief) -> PoseWithCovarianceStamped:
        header = Header(stamp=Stamp.from_seconds(belief.timestamp))
        cov = np.ascontiguousarray(
            belief.covariance[:POSE_COV_DIM, :POSE_COV_DIM]).reshape(-1).copy()
        return PoseWithCovarianceStamped(header, self.belief_to_pose(belief), cov)

    def update_pose_array(self, msg: PoseWithCovarianceStamped) -> PoseArray:
        """
        Prepend a pose to the history (dropping the oldest beyond capacity)
        and emit the whole history.
        """
        self.history.push(msg.header.stamp.to_seconds(), msg.pose.as_vector())
        _, poses = self.history.to_array()
        pose_array = PoseArray(Header(frame_id=self.frame_id), poses)
        if self._pose_array is not None:
            self._pose_array(pose_array)
        return pose_array

    def publish_all(self, belief: QuadBelief) -> None:
        pwcs = self.to_pose_with_cov_stamped(belief)
        if self._pose_with_cov is not None:
            self._pose_with_cov(pwcs)
        self.update_pose_array(pwcs)
        ps = self.to_pose_stamped(belief)
        if self._pose_stamped is not None:
            self._pose_stamped(ps)
        logger.debug(f"Published pose at t={belief.timestamp:.6f}, "
                     f"history={len(self.history)}")
