"""
===============================================================================
QUAD UKF - Quaternion Helper Test Suite
===============================================================================
Tests for the [x, y, z, w] quaternion helpers: rotation matrices, the Big
Omega kinematics matrix, first-order integration and hemisphere repair.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from quad_ukf.core import quaternion as quat
from quad_ukf.core.errors import StateDegenerate


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def yaw_90():
    """90 degree rotation about +z."""
    return quat.from_axis_angle([0, 0, 1], np.pi / 2)


# =============================================================================
# Test: Normalization
# =============================================================================

class TestNormalize:

    def test_unit_norm(self):
        q = quat.normalize([1.0, 2.0, 3.0, 4.0])
        assert np.linalg.norm(q) == pytest.approx(1.0, abs=1e-15)

    def test_zero_raises(self):
        with pytest.raises(StateDegenerate):
            quat.normalize(np.zeros(4))


# =============================================================================
# Test: Rotation matrix
# =============================================================================

class TestRotationMatrix:

    def test_identity(self):
        assert_allclose(quat.rotation_matrix(quat.identity()), np.eye(3), atol=1e-15)

    def test_yaw_rotates_x_to_y(self, yaw_90):
        R = quat.rotation_matrix(yaw_90)
        assert_allclose(R @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], atol=1e-12)

    def test_orthonormal(self):
        q = quat.normalize([0.3, -0.2, 0.5, 0.8])
        R = quat.rotation_matrix(q)
        assert_allclose(R @ R.T, np.eye(3), atol=1e-12)
        assert np.linalg.det(R) == pytest.approx(1.0, abs=1e-12)

    def test_double_cover(self):
        q = quat.normalize([0.3, -0.2, 0.5, 0.8])
        assert_allclose(quat.rotation_matrix(q), quat.rotation_matrix(-q), atol=1e-15)


# =============================================================================
# Test: Kinematics
# =============================================================================

class TestKinematics:

    def test_big_omega_layout(self):
        Om = quat.big_omega([1.0, 2.0, 3.0])
        expected = np.array([
            [0.0,  3.0, -2.0,  1.0],
            [-3.0, 0.0,  1.0,  2.0],
            [2.0, -1.0,  0.0,  3.0],
            [-1.0, -2.0, -3.0, 0.0],
        ])
        assert_allclose(Om, expected)

    def test_big_omega_skew(self):
        Om = quat.big_omega([0.4, -1.1, 2.5])
        assert_allclose(Om + Om.T, np.zeros((4, 4)))

    def test_zero_rate_is_fixed_point(self):
        q = quat.normalize([0.1, 0.2, 0.3, 0.9])
        assert_allclose(quat.integrate(q, np.zeros(3), 0.5), q, atol=1e-15)

    def test_integration_matches_axis_angle(self):
        """1000 small steps at 1 rad/s about z land on a 1 rad yaw."""
        q = quat.identity()
        for _ in range(1000):
            q = quat.integrate(q, [0.0, 0.0, 1.0], 0.001)
        assert_allclose(q, quat.from_axis_angle([0, 0, 1], 1.0), atol=1e-6)

    def test_integration_keeps_unit_norm(self):
        q = quat.identity()
        for _ in range(200):
            q = quat.integrate(q, [3.0, -2.0, 5.0], 0.01)
        assert np.linalg.norm(q) == pytest.approx(1.0, abs=1e-12)


# =============================================================================
# Test: Hemisphere repair
# =============================================================================

class TestCheckQuat:

    def test_keeps_same_hemisphere(self, yaw_90):
        out = quat.check_quat(quat.identity(), yaw_90)
        assert_allclose(out, yaw_90, atol=1e-15)

    def test_flips_opposite_hemisphere(self, yaw_90):
        out = quat.check_quat(quat.identity(), -yaw_90)
        assert_allclose(out, yaw_90, atol=1e-15)

    def test_negation_of_last(self):
        out = quat.check_quat(quat.identity(), [0.0, 0.0, 0.0, -1.0])
        assert_allclose(out, quat.identity())

    def test_orthogonal_tie_negates(self):
        out = quat.check_quat(quat.identity(), [1.0, 0.0, 0.0, 0.0])
        assert_allclose(out, [-1.0, 0.0, 0.0, 0.0])

    def test_normalizes_inputs(self):
        out = quat.check_quat([0.0, 0.0, 0.0, 3.0], [0.0, 0.0, 0.0, 2.0])
        assert_allclose(out, quat.identity())

    def test_result_is_same_rotation(self):
        q = quat.normalize([0.6, -0.1, 0.2, -0.7])
        out = quat.check_quat(quat.identity(), q)
        assert quat.angle_between(out, q) == pytest.approx(0.0, abs=1e-7)
        assert np.dot(out, quat.identity()) > 0.0


class TestAngleBetween:

    def test_sign_insensitive(self, yaw_90):
        assert quat.angle_between(yaw_90, -yaw_90) == pytest.approx(0.0, abs=1e-7)

    def test_yaw_angle(self, yaw_90):
        assert quat.angle_between(quat.identity(), yaw_90) == pytest.approx(np.pi / 2)
