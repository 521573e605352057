"""
===============================================================================
Quadrotor Sensor Ingest
===============================================================================
Event handlers that drive the UKF from two asynchronous sensor streams.

IMU event (high rate) -- full unscented PREDICT:
    1. Copy the last belief
    2. Write body rates and specific force with the IMU axis conventions
         w = ( w_x, -w_y, w_z)
         a = (-f_x,  f_y, f_z)
    3. Remove gravity expressed in the body frame
    4. dt = t - last.timestamp; predict; repair quaternion sign (negating the
       quaternion rows and columns of P with it); verify P is symmetric PSD;
       commit

Pose event (SLAM / mocap rate) -- CORRECT:
    1. Build z = [position, quaternion, finite-difference velocity] with the
       localizer frame remap
         p = (-p_x, p_y, p_z)
         (qx, qy, qz, qw) = (w, -z, y, x)
    2. Repair the measured quaternion's sign against the stored orientation
    3. Extrapolate the stored mean to the message time with deterministic
       kinematics, take the sigma points of (x_pred, P), and correct
    4. Repair the corrected quaternion's sign, verify P, commit, and remember
       this pose for the next velocity difference

Both handlers hold the BeliefStore for their whole read-compute-commit
sequence and publish before releasing it. Any EstimatorError drops the
event: it is logged, counted in ``dropped``, and the stored belief is left
untouched.
===============================================================================
"""

import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Optional

import numpy as np

from quad_ukf.core import linalg
from quad_ukf.core import quaternion as quat
from quad_ukf.core.config import EstimatorConfig
from quad_ukf.core.constants import NUM_MEASUREMENTS, QUATERNION
from quad_ukf.core.errors import EstimatorError, NumericNonFinite
from quad_ukf.navigation.belief_store import BeliefStore
from quad_ukf.navigation.quad_model import NoiseModel, QuadBelief, QuadModel, QuadState
from quad_ukf.telemetry.messages import ImuEvent, PoseEvent
from quad_ukf.telemetry.publisher import PosePublisher

logger = logging.getLogger(__name__)


@dataclass
class LastPose:
    """Filter-frame position and time of the last accepted pose message."""
    timestamp: float
    position: np.ndarray


def imu_to_body(event: ImuEvent):
    """Apply the IMU axis conventions; returns (angular_velocity, specific_force)."""
    w = event.angular_velocity
    f = event.linear_acceleration
    return (np.array([w[0], -w[1], w[2]]),
            np.array([-f[0], f[1], f[2]]))


def pose_to_filter_frame(event: PoseEvent):
    """Apply the localizer frame remap; returns (position, quaternion xyzw)."""
    p = event.position
    x, y, z, w = event.orientation
    return (np.array([-p[0], p[1], p[2]]),
            np.array([w, -z, y, x]))


def align_quaternion(reference: np.ndarray, state: QuadState,
                     covariance: np.ndarray) -> np.ndarray:
    """
    Renormalize the state's quaternion onto the hemisphere of `reference`.

    When the quaternion has to be negated, the quaternion rows and columns of
    the covariance are negated with it so the cross-covariances keep
    describing the same belief. The quaternion block itself is unchanged.

    Returns:
        The covariance to store with the state (a new array)
    """
    before = state.quaternion.copy()
    state.quaternion = quat.check_quat(reference, before)
    covariance = covariance.copy()
    if np.dot(state.quaternion, before) < 0.0:
        covariance[QUATERNION, :] *= -1.0
        covariance[:, QUATERNION] *= -1.0
    return covariance


class QuadEstimator:
    """
    Quadrotor UKF driven by IMU and pose callbacks.

    Args:
        publisher: Sink for committed beliefs; when omitted one is built from
            the config's publisher section with no outputs attached, so only
            the pose history is kept
        config: Estimator tunables; defaults when omitted
        timestamp: Time of the initial belief; wall clock when omitted
    """

    def __init__(self, publisher: Optional[PosePublisher] = None,
                 config: Optional[EstimatorConfig] = None,
                 timestamp: Optional[float] = None):
        self.config = config if config is not None else EstimatorConfig()
        self.model = QuadModel(gravity=self.config.gravity)
        self.engine = self.model.make_engine(self.config.alpha, self.config.beta,
                                             self.config.kappa)
        self.noise = NoiseModel.from_config(self.config)
        if publisher is None:
            publisher = PosePublisher.from_config(self.config)
        self.publisher = publisher

        if timestamp is None:
            timestamp = time.time()
        initial = self.model.initial_belief(self.config, timestamp)
        self.store = BeliefStore(initial, lock_timeout=self.config.lock_timeout)
        self._last_pose = LastPose(timestamp, initial.state.position.copy())

        self.dropped: Counter = Counter()

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------

    def on_imu(self, event: ImuEvent) -> Optional[QuadBelief]:
        """
        Predict from one IMU sample.

        Returns:
            The committed belief, or None if the event was dropped
        """
        try:
            with self.store.exclusive() as store:
                belief = self._predict(store.read(), event)
                store.replace(belief)
                self._publish(belief)
        except EstimatorError as exc:
            self._drop("imu", event.timestamp, exc)
            return None
        return belief

    def on_pose(self, event: PoseEvent) -> Optional[QuadBelief]:
        """
        Correct from one absolute pose.

        Returns:
            The committed belief, or None if the event was dropped
        """
        try:
            with self.store.exclusive() as store:
                belief, last_pose = self._correct(store.read(), event)
                store.replace(belief)
                self._last_pose = last_pose
                self._publish(belief)
        except EstimatorError as exc:
            self._drop("pose", event.timestamp, exc)
            return None
        return belief

    def snapshot(self) -> QuadBelief:
        """Thread-safe copy of the current belief."""
        return self.store.snapshot()

    @property
    def last_pose(self) -> LastPose:
        return self._last_pose

    # -------------------------------------------------------------------------
    # Update steps
    # -------------------------------------------------------------------------

    def _predict(self, last: QuadBelief, event: ImuEvent) -> QuadBelief:
        working = last.copy()
        state = working.state

        state.angular_velocity, specific_force = imu_to_body(event)
        state.acceleration = self.model.remove_gravity(specific_force,
                                                       state.quaternion)

        dt = event.timestamp - last.timestamp
        if dt < 0.0:
            logger.debug(f"IMU event at t={event.timestamp:.6f} predates "
                         f"belief at t={last.timestamp:.6f}")

        state_tf = self.engine.predict(state.vector, working.covariance,
                                       self.noise.Q, dt,
                                       prev_accel=last.state.acceleration)

        predicted = QuadState(state_tf.vector)
        covariance = align_quaternion(last.state.quaternion, predicted,
                                      state_tf.covariance)
        linalg.ensure_finite("predicted belief", predicted.vector)
        linalg.check_covariance("predicted covariance", covariance)

        logger.debug(f"IMU predict dt={dt:.4f}: {predicted}")
        return QuadBelief(event.timestamp, dt, predicted, covariance)

    def build_measurement(self, last: QuadBelief, event: PoseEvent) -> np.ndarray:
        """
        10-element measurement [position, quaternion, velocity] in the filter
        frame, with the quaternion sign matched to the stored orientation.
        """
        position, orientation = pose_to_filter_frame(event)

        dt_pose = event.timestamp - self._last_pose.timestamp
        if dt_pose == 0.0:
            raise NumericNonFinite(
                f"Pose velocity undefined: zero interval at t={event.timestamp:.6f}")

        z = np.zeros(NUM_MEASUREMENTS)
        z[0:3] = position
        z[3:7] = quat.check_quat(last.state.quaternion, orientation)
        z[7:10] = (position - self._last_pose.position) / dt_pose
        linalg.ensure_finite("pose measurement", z)
        return z

    def _correct(self, last: QuadBelief, event: PoseEvent):
        z = self.build_measurement(last, event)

        dt = event.timestamp - last.timestamp
        x_pred = self.model.extrapolate(last.state.vector, dt)

        state_tf = self.engine.sigma_transform(x_pred, last.covariance)
        corrected = self.engine.correct(state_tf, z, self.noise.R)

        state = QuadState(corrected.state)
        covariance = align_quaternion(last.state.quaternion, state,
                                      corrected.covariance)
        linalg.check_covariance("corrected covariance", covariance)

        logger.debug(f"Pose correct dt={dt:.4f}: {state}")
        belief = QuadBelief(event.timestamp, dt, state, covariance)
        return belief, LastPose(event.timestamp, z[0:3].copy())

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _publish(self, belief: QuadBelief) -> None:
        self.publisher.publish_all(belief)

    def _drop(self, stream: str, timestamp: float, exc: EstimatorError) -> None:
        kind = type(exc).__name__
        self.dropped[kind] += 1
        logger.warning(f"Dropped {stream} event at t={timestamp:.6f}: "
                       f"{kind}: {exc}")
