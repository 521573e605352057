"""
===============================================================================
Unscented Kalman Filter (UKF) Engine
===============================================================================
Generic sigma-point filter. The engine knows nothing about quadrotors: it is
parameterized by two callables,

    process(x, dt, **kwargs) -> x'      (n -> n)
    observe(x)               -> z       (n -> m)

and turns them into a predict / correct recursion.

Sigma Point Strategy:
    Generate 2n+1 sigma points from the state mean and covariance, push each
    through the nonlinear function, and rebuild a Gaussian from the weighted
    samples. The sigma points produced by predict() are kept in the returned
    Transform and re-used by correct(): their deviations from the predicted
    mean are what the state/measurement cross-covariance is built from, so
    the set is NOT re-sampled between the two steps.

Matrix square root:
    The covariance is factored through an LDL^T decomposition rather than a
    Cholesky one, because repeated corrections can leave P rank deficient.

References:
    - Julier & Uhlmann, "A New Extension of the Kalman Filter to
      Nonlinear Systems," 1997
    - Van der Merwe, "Sigma-Point Kalman Filters for Probabilistic
      Inference in Dynamic State-Space Models," 2004
===============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

import numpy as np

from quad_ukf.core import linalg
from quad_ukf.core.constants import UKF_ALPHA, UKF_BETA, UKF_KAPPA

logger = logging.getLogger(__name__)


@dataclass
class SigmaPointSet:
    """Sigma points stored column-wise, (dim, 2n+1), with their weighted mean."""
    vector: np.ndarray
    sigma_points: np.ndarray


@dataclass
class Transform:
    """
    Result of an unscented transform.

    Attributes:
        vector: Weighted mean of the transformed sigma points
        sigma_points: Transformed sigma points, one per column
        covariance: Weighted covariance of the deviations plus additive noise
        deviations: Each sigma column minus the mean
    """
    vector: np.ndarray
    sigma_points: np.ndarray
    covariance: np.ndarray
    deviations: np.ndarray


@dataclass
class Belief:
    """State estimate and its covariance."""
    state: np.ndarray
    covariance: np.ndarray


class UkfEngine:
    """
    Unscented Kalman Filter parameterized by a process and an observation
    function.

    Uses the scaled unscented transform with tuning parameters
    (alpha, beta, kappa):

        lambda = alpha^2 (n + kappa) - n
        Wm[0]  = lambda / (n + lambda)
        Wc[0]  = lambda / (n + lambda) + (1 - alpha^2 + beta)
        Wm[i]  = Wc[i] = 1 / (2 (n + lambda))        i = 1..2n

    Weights depend only on n and are cached the first time each state
    dimension is seen.

    Args:
        process: Function f(x, dt, **kwargs) -> propagated state
        observe: Function h(x) -> predicted measurement
        alpha: Spread of sigma points (typically 1e-4 to 1)
        beta: Prior knowledge parameter (2 is optimal for Gaussian)
        kappa: Secondary scaling parameter (typically 0 or 3-n)
    """

    def __init__(self, process: Callable[..., np.ndarray],
                 observe: Callable[[np.ndarray], np.ndarray],
                 alpha: float = UKF_ALPHA, beta: float = UKF_BETA,
                 kappa: float = UKF_KAPPA):
        self.process = process
        self.observe = observe
        self.alpha = alpha
        self.beta = beta
        self.kappa = kappa
        self._weights: Dict[int, Tuple[float, np.ndarray, np.ndarray]] = {}

    # -------------------------------------------------------------------------
    # Weights
    # -------------------------------------------------------------------------

    def weights(self, n: int) -> Tuple[float, np.ndarray, np.ndarray]:
        """
        Return (lambda, Wm, Wc) for state dimension n, computing them once.
        """
        cached = self._weights.get(n)
        if cached is not None:
            return cached

        lambda_ = self.alpha ** 2 * (n + self.kappa) - n
        if n + lambda_ <= 0.0:
            raise ValueError(
                f"n + lambda must be positive (alpha={self.alpha}, "
                f"kappa={self.kappa}, n={n})"
            )

        n_sigma = 2 * n + 1
        Wm = np.full(n_sigma, 1.0 / (2.0 * (n + lambda_)))
        Wc = Wm.copy()
        Wm[0] = lambda_ / (n + lambda_)
        Wc[0] = lambda_ / (n + lambda_) + (1.0 - self.alpha ** 2 + self.beta)

        self._weights[n] = (lambda_, Wm, Wc)
        logger.debug(f"Cached UKF weights for n={n}: lambda={lambda_:.6g}")
        return self._weights[n]

    # -------------------------------------------------------------------------
    # Sigma points
    # -------------------------------------------------------------------------

    def compute_sigma_points(self, x: np.ndarray, P: np.ndarray) -> np.ndarray:
        """
        Generate the 2n+1 sigma points of (x, P):

            X_0     = x
            X_i     = x + A_i        (i = 1..n)
            X_{n+i} = x - A_i        (i = 1..n)

        where A = sqrt(n + lambda) * L and P = L L^T (LDL-derived factor).

        Returns:
            Sigma points array of shape (n, 2n+1), one point per column

        Raises:
            StateDegenerate: If P is not positive semidefinite
            NumericNonFinite: If x or P holds NaN/inf
        """
        x = np.asarray(x, dtype=np.float64)
        P = np.asarray(P, dtype=np.float64)
        n = x.shape[0]
        if P.shape != (n, n):
            raise ValueError(f"P shape {P.shape} inconsistent with state dim {n}")
        linalg.ensure_finite("state", x)

        lambda_, _, _ = self.weights(n)
        A = np.sqrt(n + lambda_) * linalg.ldl_sqrt(P)

        Y = linalg.fill_columns(x, n)
        return np.hstack([x[:, np.newaxis], Y + A, Y - A])

    # -------------------------------------------------------------------------
    # Unscented transforms
    # -------------------------------------------------------------------------

    def sample_state_space(self, sigma_pts: np.ndarray, dt: float,
                           **process_kwargs) -> SigmaPointSet:
        """Push every sigma column through the process function."""
        _, Wm, _ = self.weights(sigma_pts.shape[0])
        sigmas = np.column_stack([
            self.process(sigma_pts[:, i], dt, **process_kwargs)
            for i in range(sigma_pts.shape[1])
        ])
        return SigmaPointSet(linalg.weighted_mean(sigmas, Wm), sigmas)

    def sample_sensor_space(self, sigma_pts: np.ndarray) -> SigmaPointSet:
        """Map every sigma column into measurement space."""
        _, Wm, _ = self.weights(sigma_pts.shape[0])
        sigmas = np.column_stack([
            self.observe(sigma_pts[:, i]) for i in range(sigma_pts.shape[1])
        ])
        return SigmaPointSet(linalg.weighted_mean(sigmas, Wm), sigmas)

    def _finish_transform(self, sample: SigmaPointSet, Wc: np.ndarray,
                          noise_cov: np.ndarray) -> Transform:
        devs = linalg.deviations(sample.sigma_points, sample.vector)
        cov = linalg.weighted_covariance(devs, Wc, noise_cov)
        linalg.ensure_finite("transformed covariance", sample.vector, cov)
        return Transform(sample.vector, sample.sigma_points, cov, devs)

    def unscented_state_transform(self, sigma_pts: np.ndarray,
                                  noise_cov: np.ndarray, dt: float,
                                  **process_kwargs) -> Transform:
        """
        Y = f(X), y = sum Wm_i Y_i, D = Y - y, P_y = D diag(Wc) D^T + Q.
        """
        _, _, Wc = self.weights(sigma_pts.shape[0])
        sample = self.sample_state_space(sigma_pts, dt, **process_kwargs)
        return self._finish_transform(sample, Wc, noise_cov)

    def unscented_sensor_transform(self, sigma_pts: np.ndarray,
                                   noise_cov: np.ndarray) -> Transform:
        """
        Z = h(X), z = sum Wm_i Z_i, D = Z - z, P_zz = D diag(Wc) D^T + R.
        """
        _, _, Wc = self.weights(sigma_pts.shape[0])
        sample = self.sample_sensor_space(sigma_pts)
        return self._finish_transform(sample, Wc, noise_cov)

    # -------------------------------------------------------------------------
    # Filter steps
    # -------------------------------------------------------------------------

    def predict(self, x: np.ndarray, P: np.ndarray, Q: np.ndarray,
                dt: float, **process_kwargs) -> Transform:
        """
        UKF prediction step (time update).

        1. Generate sigma points from (x, P)
        2. Propagate each through the process function
        3. Rebuild mean and covariance, adding Q

        Extra keyword arguments are forwarded to the process function.

        Returns:
            Transform holding the predicted mean, the propagated sigma points,
            their deviations, and the predicted covariance. Pass it to
            correct() unchanged.
        """
        sigma_pts = self.compute_sigma_points(x, P)
        return self.unscented_state_transform(sigma_pts, Q, dt, **process_kwargs)

    def sigma_transform(self, x: np.ndarray, P: np.ndarray) -> Transform:
        """
        Sigma-point Transform of (x, P) without propagation or added noise.

        Used when the mean has already been carried to measurement time by
        other means and only the sigma points are needed for a correction.
        """
        sigma_pts = self.compute_sigma_points(x, P)
        _, Wm, Wc = self.weights(sigma_pts.shape[0])
        sample = SigmaPointSet(linalg.weighted_mean(sigma_pts, Wm), sigma_pts)
        n = sigma_pts.shape[0]
        return self._finish_transform(sample, Wc, np.zeros((n, n)))

    def correct(self, state_tf: Transform, z: np.ndarray,
                R: np.ndarray) -> Belief:
        """
        UKF measurement update against the sigma points of a prediction.

            P_xz = Dx diag(Wc) Dz^T
            K    = P_xz P_zz^{-1}
            x'   = x + K (z - z_pred)
            P'   = P - K P_xz^T

        Raises:
            ObservationDegenerate: If P_zz is singular
            NumericNonFinite: If the corrected belief is not finite
        """
        z = np.asarray(z, dtype=np.float64)
        x_pred = state_tf.vector

        sensor_tf = self.unscented_sensor_transform(state_tf.sigma_points, R)
        if sensor_tf.vector.shape != z.shape:
            raise ValueError(
                f"Measurement shape {z.shape} does not match observation "
                f"shape {sensor_tf.vector.shape}"
            )
        z_pred = sensor_tf.vector
        P_zz = sensor_tf.covariance

        _, _, Wc = self.weights(x_pred.shape[0])
        P_xz = linalg.cross_covariance(state_tf.deviations, sensor_tf.deviations, Wc)

        K = P_xz @ linalg.guarded_inverse(P_zz)

        x_corr = x_pred + K @ (z - z_pred)
        P_corr = linalg.symmetrize(state_tf.covariance - K @ P_xz.T)

        linalg.ensure_finite("corrected belief", x_corr, P_corr)
        return Belief(x_corr, P_corr)

    def run(self, x: np.ndarray, P: np.ndarray, z: np.ndarray,
            Q: np.ndarray, R: np.ndarray, dt: float,
            **process_kwargs) -> Belief:
        """One full predict + correct cycle."""
        state_tf = self.predict(x, P, Q, dt, **process_kwargs)
        return self.correct(state_tf, z, R)
