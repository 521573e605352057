"""
===============================================================================
QUAD UKF - Quadrotor Model Test Suite
===============================================================================
Tests for the 16-state QuadState view, the process and observation functions
handed to the UKF engine, the deterministic pose-time extrapolation and the
gravity removal applied to accelerometer readings.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from quad_ukf.core import quaternion as quat
from quad_ukf.core.config import EstimatorConfig
from quad_ukf.core.constants import INITIAL_DT, NUM_MEASUREMENTS, NUM_STATES
from quad_ukf.navigation.quad_model import NoiseModel, QuadModel, QuadState


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def model():
    return QuadModel()


@pytest.fixture
def state():
    return QuadState.at_rest([0.0, 0.0, 1.0])


# =============================================================================
# Test: QuadState
# =============================================================================

class TestQuadState:

    def test_default_layout(self):
        s = QuadState()
        assert s.vector.shape == (NUM_STATES,)
        assert_allclose(s.quaternion, [0, 0, 0, 1])
        assert_allclose(s.position, np.zeros(3))

    def test_views_write_through(self, state):
        state.velocity = [1.0, 2.0, 3.0]
        state.position[0] = 5.0
        assert_allclose(state.vector[7:10], [1.0, 2.0, 3.0])
        assert state.vector[0] == 5.0

    def test_copy_is_independent(self, state):
        other = state.copy()
        other.position = [9.0, 9.0, 9.0]
        assert_allclose(state.position, [0.0, 0.0, 1.0])

    def test_wrong_size_rejected(self):
        with pytest.raises(ValueError):
            QuadState(np.zeros(10))


# =============================================================================
# Test: Process model
# =============================================================================

class TestProcess:

    def test_rest_is_fixed_point(self, model, state):
        out = model.process(state.vector, 0.01, prev_accel=np.zeros(3))
        assert_allclose(out, state.vector, atol=1e-15)

    def test_trapezoidal_integration(self, model, state):
        dt = 0.1
        state.acceleration = [1.0, 0.0, 0.0]
        out = QuadState(model.process(state.vector, dt,
                                      prev_accel=np.array([1.0, 0.0, 0.0])))
        assert_allclose(out.velocity, [dt, 0.0, 0.0], atol=1e-15)
        assert_allclose(out.position, [0.5 * dt * dt, 0.0, 1.0], atol=1e-15)
        assert_allclose(out.acceleration, [1.0, 0.0, 0.0], atol=1e-15)

    def test_previous_acceleration_averaged(self, model, state):
        state.acceleration = [2.0, 0.0, 0.0]
        out = QuadState(model.process(state.vector, 1.0, prev_accel=np.zeros(3)))
        assert_allclose(out.velocity, [1.0, 0.0, 0.0], atol=1e-15)

    def test_acceleration_rotated_to_world(self, model, state):
        state.quaternion = quat.from_axis_angle([0, 0, 1], np.pi / 2)
        state.acceleration = [1.0, 0.0, 0.0]
        out = QuadState(model.process(state.vector, 0.1))
        assert_allclose(out.acceleration, [0.0, 1.0, 0.0], atol=1e-12)
        assert_allclose(out.velocity, [0.0, 0.1, 0.0], atol=1e-12)

    def test_attitude_integrated(self, model, state):
        state.angular_velocity = [0.0, 0.0, np.pi]
        out = QuadState(model.process(state.vector, 0.01))
        assert_allclose(out.quaternion,
                        quat.integrate(quat.identity(), [0.0, 0.0, np.pi], 0.01))
        assert_allclose(out.angular_velocity, [0.0, 0.0, np.pi])

    def test_prior_quaternion_normalized(self, model, state):
        state.quaternion = [0.0, 0.0, 0.0, 2.0]
        out = QuadState(model.process(state.vector, 0.01))
        assert np.linalg.norm(out.quaternion) == pytest.approx(1.0)

    def test_input_untouched(self, model, state):
        state.velocity = [1.0, 0.0, 0.0]
        before = state.vector.copy()
        model.process(state.vector, 0.1)
        assert_allclose(state.vector, before)


# =============================================================================
# Test: Observation model
# =============================================================================

class TestObserve:

    def test_selects_first_ten(self, model):
        x = np.arange(NUM_STATES, dtype=float)
        assert_allclose(model.observe(x), x[:NUM_MEASUREMENTS])

    def test_matches_observation_matrix(self, model):
        x = np.random.default_rng(3).standard_normal(NUM_STATES)
        assert model.observation_matrix.shape == (NUM_MEASUREMENTS, NUM_STATES)
        assert_allclose(model.observation_matrix @ x, model.observe(x))


# =============================================================================
# Test: Extrapolation and gravity
# =============================================================================

class TestExtrapolate:

    def test_kinematics(self, model, state):
        state.velocity = [1.0, 0.0, 0.0]
        state.acceleration = [0.0, 0.0, 2.0]
        out = QuadState(model.extrapolate(state.vector, 0.5))
        assert_allclose(out.velocity, [1.0, 0.0, 1.0])
        assert_allclose(out.position, [0.5, 0.0, 1.25])
        assert_allclose(out.acceleration, [0.0, 0.0, 2.0])

    def test_zero_dt(self, model, state):
        state.velocity = [1.0, 2.0, 3.0]
        assert_allclose(model.extrapolate(state.vector, 0.0), state.vector)


class TestRemoveGravity:

    def test_level_at_rest(self, model):
        a = model.remove_gravity([0.0, 0.0, 9.81], quat.identity())
        assert_allclose(a, np.zeros(3), atol=1e-12)

    def test_tilted_at_rest(self, model):
        q = quat.from_axis_angle([1, 0, 0], np.pi / 2)
        R = quat.rotation_matrix(q)
        f_body = -R.T @ model.gravity_world
        assert_allclose(model.remove_gravity(f_body, q), np.zeros(3), atol=1e-12)

    def test_free_fall(self, model):
        a = model.remove_gravity(np.zeros(3), quat.identity())
        assert_allclose(a, [0.0, 0.0, -9.81])


# =============================================================================
# Test: Initial belief and noise
# =============================================================================

class TestInitialBelief:

    def test_defaults(self, model):
        belief = model.initial_belief(EstimatorConfig(), 12.0)
        assert belief.timestamp == 12.0
        assert belief.dt == INITIAL_DT
        assert_allclose(belief.state.position, [0.0, 0.0, 1.0])
        assert_allclose(belief.state.quaternion, [0.0, 0.0, 0.0, 1.0])
        assert_allclose(belief.covariance, 0.01 * np.eye(NUM_STATES))

    def test_noise_model(self):
        noise = NoiseModel.from_config(EstimatorConfig(process_noise=0.02,
                                                       measurement_noise=0.5))
        assert_allclose(noise.Q, 0.02 * np.eye(NUM_STATES))
        assert_allclose(noise.R, 0.5 * np.eye(NUM_MEASUREMENTS))
