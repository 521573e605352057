"""
===============================================================================
Quadrotor Process and Observation Models
===============================================================================
Defines the 16-element quadrotor state and the two functions the UKF engine
is parameterized with.

State vector (16 states), world frame unless noted:
    x = [position(3), quaternion(4) as (x, y, z, w), velocity(3),
         angular_velocity(3) body frame, acceleration(3)]

The acceleration slot holds the gravity-compensated BODY-frame acceleration
when an IMU sample is written into it; the process model rotates it into the
WORLD frame, and that world-frame value is what the filter carries forward.

Measurement vector (10 elements):
    z = [position(3), quaternion(4), velocity(3)]

so the observation function is a plain selection of the first 10 states.
===============================================================================
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from quad_ukf.core import quaternion as quat
from quad_ukf.core.config import EstimatorConfig
from quad_ukf.core.constants import (
    ACCELERATION,
    ANGULAR_VELOCITY,
    GRAVITY,
    INITIAL_DT,
    NUM_MEASUREMENTS,
    NUM_STATES,
    POSITION,
    QUATERNION,
    VELOCITY,
)
from quad_ukf.navigation.ukf import UkfEngine


class QuadState:
    """
    Named view over a contiguous 16-element state buffer.

    The properties return views into ``vector``, so model code can be written
    symbolically (``state.velocity``) while the filter sees plain numbers.
    Assigning to a property writes into the buffer.
    """

    __slots__ = ("vector",)

    def __init__(self, vector: Optional[np.ndarray] = None):
        if vector is None:
            vector = np.zeros(NUM_STATES)
            vector[QUATERNION] = quat.identity()
        vector = np.array(vector, dtype=np.float64)
        if vector.shape != (NUM_STATES,):
            raise ValueError(f"Expected state of shape ({NUM_STATES},), got {vector.shape}")
        self.vector = vector

    @classmethod
    def at_rest(cls, position: Sequence[float]) -> "QuadState":
        """Identity orientation, zero rates, at the given position."""
        state = cls()
        state.position = position
        return state

    @property
    def position(self) -> np.ndarray:
        return self.vector[POSITION]

    @position.setter
    def position(self, value):
        self.vector[POSITION] = value

    @property
    def quaternion(self) -> np.ndarray:
        """Orientation as [qx, qy, qz, qw]."""
        return self.vector[QUATERNION]

    @quaternion.setter
    def quaternion(self, value):
        self.vector[QUATERNION] = value

    @property
    def velocity(self) -> np.ndarray:
        return self.vector[VELOCITY]

    @velocity.setter
    def velocity(self, value):
        self.vector[VELOCITY] = value

    @property
    def angular_velocity(self) -> np.ndarray:
        """Body-frame angular velocity (rad/s)."""
        return self.vector[ANGULAR_VELOCITY]

    @angular_velocity.setter
    def angular_velocity(self, value):
        self.vector[ANGULAR_VELOCITY] = value

    @property
    def acceleration(self) -> np.ndarray:
        return self.vector[ACCELERATION]

    @acceleration.setter
    def acceleration(self, value):
        self.vector[ACCELERATION] = value

    def copy(self) -> "QuadState":
        return QuadState(self.vector)

    def __repr__(self) -> str:
        return (f"QuadState(p={np.round(self.position, 4)}, "
                f"q={np.round(self.quaternion, 4)}, "
                f"v={np.round(self.velocity, 4)})")


@dataclass
class QuadBelief:
    """
    State with its covariance at a point in time.

    Attributes:
        timestamp: Time of the message that produced this belief (s)
        dt: Time step that produced it (s)
        state: 16-element QuadState
        covariance: 16x16 covariance
    """
    timestamp: float
    dt: float
    state: QuadState
    covariance: np.ndarray

    def copy(self) -> "QuadBelief":
        return QuadBelief(self.timestamp, self.dt, self.state.copy(),
                          self.covariance.copy())


@dataclass
class NoiseModel:
    """Fixed process (16x16) and sensor (10x10) noise covariances."""
    Q: np.ndarray
    R: np.ndarray

    @classmethod
    def from_config(cls, config: EstimatorConfig) -> "NoiseModel":
        return cls(Q=np.eye(NUM_STATES) * config.process_noise,
                   R=np.eye(NUM_MEASUREMENTS) * config.measurement_noise)


class QuadModel:
    """
    Quadrotor kinematics supplied to the generic UKF engine.

    Args:
        gravity: Magnitude of gravity (m/s^2); the world vector is (0, 0, -g)
    """

    def __init__(self, gravity: float = GRAVITY):
        self.gravity_world = np.array([0.0, 0.0, -gravity])

        # Linear selection the observation function implements; kept for
        # analysis and tests (an EKF would use it directly).
        self.observation_matrix = np.zeros((NUM_MEASUREMENTS, NUM_STATES))
        self.observation_matrix[:, :NUM_MEASUREMENTS] = np.eye(NUM_MEASUREMENTS)

    def make_engine(self, alpha: float, beta: float, kappa: float) -> UkfEngine:
        return UkfEngine(self.process, self.observe, alpha=alpha, beta=beta,
                         kappa=kappa)

    def initial_belief(self, config: EstimatorConfig,
                       timestamp: float) -> QuadBelief:
        """One meter above the origin (by default), level and at rest."""
        state = QuadState.at_rest(config.initial_position)
        covariance = np.eye(NUM_STATES) * config.initial_covariance
        return QuadBelief(timestamp, INITIAL_DT, state, covariance)

    # -------------------------------------------------------------------------
    # Process / observation
    # -------------------------------------------------------------------------

    def process(self, x: np.ndarray, dt: float,
                prev_accel: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Propagate one state vector over dt.

        1. Normalize the prior quaternion and integrate it with the body
           angular velocity (first order, renormalized).
        2. Rotate the body acceleration into the world frame with the PRIOR
           orientation.
        3. Trapezoidal velocity update using the previous world-frame
           acceleration ``prev_accel`` and the new one. If not given, the
           new acceleration is used for both ends.
        4. Trapezoidal position update.
        5. Angular velocity is passed through (it is measured directly).

        Args:
            x: 16-element state vector
            dt: Time step (s)
            prev_accel: World-frame acceleration stored with the last belief

        Returns:
            Propagated 16-element state vector
        """
        prev = QuadState(x)
        q = quat.normalize(prev.quaternion)
        curr = QuadState()

        curr.quaternion = quat.integrate(q, prev.angular_velocity, dt)

        curr.acceleration = quat.rotation_matrix(q) @ prev.acceleration
        if prev_accel is None:
            prev_accel = curr.acceleration

        curr.velocity = prev.velocity + 0.5 * (prev_accel + curr.acceleration) * dt
        curr.position = prev.position + 0.5 * (prev.velocity + curr.velocity) * dt
        curr.angular_velocity = prev.angular_velocity

        return curr.vector

    def observe(self, x: np.ndarray) -> np.ndarray:
        """Position, quaternion and velocity: the first 10 states."""
        return np.asarray(x)[:NUM_MEASUREMENTS].copy()

    def extrapolate(self, x: np.ndarray, dt: float) -> np.ndarray:
        """
        Deterministic kinematic extrapolation of the mean.

        Holds the stored world-frame acceleration and angular velocity
        constant over dt:

            v' = v + a dt
            p' = p + (v + v') / 2 dt
            q' = normalize(q + 0.5 Omega(w) q dt)
        """
        prev = QuadState(x)
        curr = prev.copy()
        curr.velocity = prev.velocity + prev.acceleration * dt
        curr.position = prev.position + 0.5 * (prev.velocity + curr.velocity) * dt
        curr.quaternion = quat.integrate(prev.quaternion, prev.angular_velocity, dt)
        return curr.vector

    def remove_gravity(self, specific_force: np.ndarray,
                       q: np.ndarray) -> np.ndarray:
        """
        Body-frame kinematic acceleration from an accelerometer reading.

        An accelerometer at rest reads +g upward, so the reaction to gravity
        expressed in the body frame is removed:

            a = f + R(q)^T g_world
        """
        R_bw = quat.rotation_matrix(quat.normalize(q))
        return np.asarray(specific_force, dtype=np.float64) + R_bw.T @ self.gravity_world
