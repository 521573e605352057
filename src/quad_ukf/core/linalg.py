"""
===============================================================================
QUAD UKF - Linear Algebra Adapter
===============================================================================
Thin layer over NumPy/SciPy holding the handful of matrix operations the
unscented filter needs: an LDL-derived matrix square root that tolerates
rank-deficient covariances, column replication, weighted sample statistics,
and a guarded inverse for the innovation covariance.

Keeping these behind one module means the filter code reads as algebra and
the numeric backend can be swapped without touching it.

Conventions
-----------
Sigma-point sets are stored column-wise: an (n, 2n+1) array whose i-th column
is the i-th sigma point. Weighted covariances are therefore D diag(w) D^T.
===============================================================================
"""

import numpy as np
import scipy.linalg

from quad_ukf.core.constants import (
    COVARIANCE_TOLERANCE,
    NEGATIVE_PIVOT_TOLERANCE,
    SINGULAR_CONDITION_LIMIT,
)
from quad_ukf.core.errors import (
    NumericNonFinite,
    ObservationDegenerate,
    StateDegenerate,
)


def ensure_finite(name: str, *arrays: np.ndarray) -> None:
    """Raise NumericNonFinite if any array holds NaN or infinity."""
    for arr in arrays:
        if not np.all(np.isfinite(arr)):
            raise NumericNonFinite(f"{name} contains non-finite values")


def check_covariance(name: str, P: np.ndarray,
                     tol: float = COVARIANCE_TOLERANCE) -> None:
    """
    Reject a covariance that is not fit to be committed.

    Raises
    ------
    NumericNonFinite
        If P holds NaN or infinity.
    StateDegenerate
        If ||P - P^T||_F exceeds tol or the smallest eigenvalue is below -tol.
    """
    ensure_finite(name, P)
    asymmetry = np.linalg.norm(P - P.T)
    if asymmetry > tol:
        raise StateDegenerate(f"{name} is not symmetric (|P - P^T| = {asymmetry:.3e})")
    min_eig = np.linalg.eigvalsh(P).min()
    if min_eig < -tol:
        raise StateDegenerate(
            f"{name} is not positive semidefinite (min eigenvalue = {min_eig:.3e})"
        )


def ldl_sqrt(P: np.ndarray) -> np.ndarray:
    """
    Lower square-root factor L of a symmetric PSD matrix, P = L L^T.

    Plain Cholesky refuses singular matrices, which a UKF covariance becomes
    after a near-perfect correction. Instead P is factored as
    P = U D U^T with SciPy's Bunch-Kaufman LDL^T and the factor is formed as
    L = U sqrt(D). D is block diagonal with 1x1 or 2x2 pivots; the blocks are
    diagonalised with a symmetric eigendecomposition so the same code covers
    both cases.

    Parameters
    ----------
    P : np.ndarray
        Symmetric (n, n) covariance.

    Returns
    -------
    np.ndarray
        (n, n) factor with L @ L.T == P to round-off. L is triangular up to
        the row permutation chosen by the pivoting.

    Raises
    ------
    NumericNonFinite
        If P holds NaN or infinity.
    StateDegenerate
        If any pivot of D is negative beyond round-off (P is not PSD).
    """
    P = np.asarray(P, dtype=np.float64)
    if P.ndim != 2 or P.shape[0] != P.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {P.shape}")
    ensure_finite("covariance", P)

    lu, d, _ = scipy.linalg.ldl(P, lower=True, hermitian=True)

    if np.count_nonzero(d - np.diag(np.diag(d))) == 0:
        pivots = np.diag(d).copy()
        basis = None
    else:
        pivots, basis = np.linalg.eigh(d)

    tol = NEGATIVE_PIVOT_TOLERANCE * max(1.0, float(np.max(np.abs(P))))
    if np.any(pivots < -tol):
        raise StateDegenerate(
            f"Covariance is not positive semidefinite "
            f"(min pivot = {pivots.min():.3e})"
        )
    root = np.sqrt(np.clip(pivots, 0.0, None))

    if basis is None:
        return lu * root
    return (lu @ basis) * root


def fill_columns(vec: np.ndarray, num_cols: int) -> np.ndarray:
    """Return an (len(vec), num_cols) matrix whose every column is vec."""
    vec = np.asarray(vec, dtype=np.float64)
    return np.tile(vec[:, np.newaxis], (1, num_cols))


def weighted_mean(sigmas: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Weighted sum of the columns of sigmas."""
    return sigmas @ weights


def deviations(sigmas: np.ndarray, mean: np.ndarray) -> np.ndarray:
    """Each column of sigmas minus the mean."""
    return sigmas - fill_columns(mean, sigmas.shape[1])


def weighted_covariance(devs: np.ndarray, weights: np.ndarray,
                        noise_cov: np.ndarray) -> np.ndarray:
    """D diag(w) D^T + noise, symmetrized against round-off."""
    return symmetrize((devs * weights) @ devs.T) + noise_cov


def cross_covariance(devs_x: np.ndarray, devs_z: np.ndarray,
                     weights: np.ndarray) -> np.ndarray:
    """Dx diag(w) Dz^T."""
    return (devs_x * weights) @ devs_z.T


def symmetrize(P: np.ndarray) -> np.ndarray:
    return 0.5 * (P + P.T)


def guarded_inverse(S: np.ndarray) -> np.ndarray:
    """
    Inverse of an innovation covariance.

    Raises
    ------
    ObservationDegenerate
        If S is non-finite, singular, or its condition number exceeds
        SINGULAR_CONDITION_LIMIT.
    """
    if not np.all(np.isfinite(S)):
        raise ObservationDegenerate("Innovation covariance is non-finite")
    cond = np.linalg.cond(S)
    if not np.isfinite(cond) or cond > SINGULAR_CONDITION_LIMIT:
        raise ObservationDegenerate(
            f"Innovation covariance is singular (cond = {cond:.3e})"
        )
    try:
        return np.linalg.inv(S)
    except np.linalg.LinAlgError as exc:
        raise ObservationDegenerate(str(exc)) from exc
