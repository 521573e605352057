"""
===============================================================================
QUAD UKF - Linear Algebra Adapter Test Suite
===============================================================================
Tests for the LDL-derived matrix square root (definite, rank-deficient and
indefinite inputs), covariance validation, weighted statistics, and the
guarded inverse used for the innovation covariance.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import numpy as np
import pytest
from numpy.testing import assert_allclose

from quad_ukf.core import linalg
from quad_ukf.core.errors import NumericNonFinite, ObservationDegenerate, StateDegenerate


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def rng():
    return np.random.default_rng(7)


@pytest.fixture
def spd_matrix(rng):
    """Well-conditioned symmetric positive definite 6x6 matrix."""
    B = rng.standard_normal((6, 6))
    return B @ B.T + 6.0 * np.eye(6)


# =============================================================================
# Test: LDL square root
# =============================================================================

class TestLdlSqrt:
    """P = L L^T for every PSD input, failure for indefinite ones."""

    def test_reconstructs_definite(self, spd_matrix):
        L = linalg.ldl_sqrt(spd_matrix)
        assert_allclose(L @ L.T, spd_matrix, atol=1e-10)

    def test_reconstructs_diagonal(self):
        P = np.diag([0.01, 0.04, 0.09])
        L = linalg.ldl_sqrt(P)
        assert_allclose(L @ L.T, P, atol=1e-15)
        assert_allclose(np.abs(np.diag(L)), [0.1, 0.2, 0.3], atol=1e-15)

    def test_reconstructs_rank_deficient(self, rng):
        """Singular PSD matrices must factor (rank 2 of 5)."""
        B = rng.standard_normal((5, 2))
        P = B @ B.T
        L = linalg.ldl_sqrt(P)
        assert_allclose(L @ L.T, P, atol=1e-10)

    def test_zero_matrix(self):
        L = linalg.ldl_sqrt(np.zeros((4, 4)))
        assert_allclose(L, np.zeros((4, 4)), atol=0.0)

    def test_zero_rows_in_covariance(self):
        P = 0.01 * np.eye(6)
        P[2:4, :] = 0.0
        P[:, 2:4] = 0.0
        L = linalg.ldl_sqrt(P)
        assert_allclose(L @ L.T, P, atol=1e-15)

    @pytest.mark.parametrize("P", [
        np.diag([1.0, -1.0]),
        np.array([[0.0, 1.0], [1.0, 0.0]]),      # forces a 2x2 pivot
        np.array([[1.0, 2.0], [2.0, 1.0]]),
    ])
    def test_indefinite_raises(self, P):
        with pytest.raises(StateDegenerate):
            linalg.ldl_sqrt(P)

    def test_non_finite_raises(self):
        P = np.eye(3)
        P[1, 1] = np.nan
        with pytest.raises(NumericNonFinite):
            linalg.ldl_sqrt(P)

    def test_non_square_rejected(self):
        with pytest.raises(ValueError):
            linalg.ldl_sqrt(np.ones((2, 3)))


# =============================================================================
# Test: Covariance validation
# =============================================================================

class TestCheckCovariance:

    def test_accepts_definite(self, spd_matrix):
        linalg.check_covariance("P", spd_matrix)

    def test_accepts_semidefinite(self):
        linalg.check_covariance("P", np.diag([1.0, 0.0, 2.0]))

    def test_tolerates_round_off(self, spd_matrix):
        P = spd_matrix.copy()
        P[0, 1] += 1e-12
        linalg.check_covariance("P", P)
        linalg.check_covariance("P", np.diag([1.0, -1e-12]))

    def test_asymmetric_raises(self, spd_matrix):
        P = spd_matrix.copy()
        P[0, 1] += 1e-3
        with pytest.raises(StateDegenerate, match="symmetric"):
            linalg.check_covariance("P", P)

    @pytest.mark.parametrize("P", [
        np.diag([1.0, -1e-6]),
        np.array([[1.0, 2.0], [2.0, 1.0]]),
    ])
    def test_indefinite_raises(self, P):
        with pytest.raises(StateDegenerate, match="positive semidefinite"):
            linalg.check_covariance("P", P)

    def test_non_finite_raises(self):
        with pytest.raises(NumericNonFinite):
            linalg.check_covariance("P", np.array([[np.nan, 0.0], [0.0, 1.0]]))


# =============================================================================
# Test: Weighted statistics
# =============================================================================

class TestWeightedStatistics:

    def test_fill_columns(self):
        M = linalg.fill_columns(np.array([1.0, 2.0]), 3)
        assert M.shape == (2, 3)
        assert_allclose(M, [[1, 1, 1], [2, 2, 2]])

    def test_mean_and_covariance(self):
        sigmas = np.array([[0.0, 1.0, -1.0]])
        w = np.array([0.0, 0.5, 0.5])
        mean = linalg.weighted_mean(sigmas, w)
        assert_allclose(mean, [0.0])
        devs = linalg.deviations(sigmas, mean)
        cov = linalg.weighted_covariance(devs, w, np.array([[0.25]]))
        assert_allclose(cov, [[1.25]])

    def test_cross_covariance_shape(self):
        dx = np.ones((4, 9))
        dz = np.ones((2, 9))
        assert linalg.cross_covariance(dx, dz, np.full(9, 1 / 9)).shape == (4, 2)

    def test_symmetrize(self):
        A = np.array([[1.0, 2.0], [0.0, 1.0]])
        assert_allclose(linalg.symmetrize(A), [[1.0, 1.0], [1.0, 1.0]])


# =============================================================================
# Test: Guarded inverse
# =============================================================================

class TestGuardedInverse:

    def test_inverse(self, spd_matrix):
        assert_allclose(linalg.guarded_inverse(spd_matrix) @ spd_matrix,
                        np.eye(6), atol=1e-10)

    @pytest.mark.parametrize("S", [
        np.zeros((3, 3)),
        np.array([[1.0, 1.0], [1.0, 1.0]]),
        np.diag([1.0, 1e-14]),
        np.array([[np.inf, 0.0], [0.0, 1.0]]),
    ])
    def test_singular_raises(self, S):
        with pytest.raises(ObservationDegenerate):
            linalg.guarded_inverse(S)
