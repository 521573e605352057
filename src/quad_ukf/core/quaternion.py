"""
===============================================================================
QUAD UKF - Quaternion Helpers
===============================================================================

Attitude is carried inside the filter's flat state vector, so quaternions here
are plain length-4 NumPy arrays rather than objects.

Convention
----------
Vector-first storage, matching the state layout:

    q = [q_x, q_y, q_z, q_w]

A unit quaternion rotates body-frame vectors into the world frame:

    v_world = R(q) * v_body

Two quaternions q and -q represent the same rotation (double cover). The
filter does NOT force a canonical sign; instead check_quat() keeps
successive estimates on the same hemisphere so the estimate stays continuous
through large rotations.

References
----------
    [1] Markley & Crassidis, "Fundamentals of Spacecraft Attitude
        Determination and Control", Springer, 2014.
    [2] Trawny & Roumeliotis, "Indirect Kalman Filter for 3D Attitude
        Estimation", Tech. Rep. 2005-002, University of Minnesota.
===============================================================================
"""

import numpy as np

from quad_ukf.core.constants import QUAT_NORM_TOLERANCE
from quad_ukf.core.errors import StateDegenerate


def identity() -> np.ndarray:
    """Identity rotation [0, 0, 0, 1]."""
    return np.array([0.0, 0.0, 0.0, 1.0])


def normalize(q: np.ndarray) -> np.ndarray:
    """
    Return q scaled to unit norm.

    Raises
    ------
    StateDegenerate
        If q has near-zero norm; no rotation can be recovered from it.
    """
    q = np.asarray(q, dtype=np.float64)
    n = np.linalg.norm(q)
    if not n > QUAT_NORM_TOLERANCE:
        raise StateDegenerate(
            f"Cannot normalize near-zero quaternion (norm = {n:.2e})"
        )
    return q / n


def from_axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    """Quaternion for a rotation of `angle` radians about `axis`."""
    axis = np.asarray(axis, dtype=np.float64)
    axis = axis / np.linalg.norm(axis)
    half = 0.5 * angle
    return np.concatenate([np.sin(half) * axis, [np.cos(half)]])


def rotation_matrix(q: np.ndarray) -> np.ndarray:
    """
    Rotation matrix (body -> world) of a unit quaternion [x, y, z, w].

        R = | 1-2(y^2+z^2)    2(xy-wz)      2(xz+wy)   |
            | 2(xy+wz)      1-2(x^2+z^2)    2(yz-wx)   |
            | 2(xz-wy)      2(yz+wx)      1-2(x^2+y^2) |

    The inverse rotation (world -> body) is the transpose.
    """
    x, y, z, w = q

    xx = x * x
    yy = y * y
    zz = z * z
    xy = x * y
    xz = x * z
    yz = y * z
    wx = w * x
    wy = w * y
    wz = w * z

    return np.array([
        [1.0 - 2.0 * (yy + zz),  2.0 * (xy - wz),        2.0 * (xz + wy)],
        [2.0 * (xy + wz),         1.0 - 2.0 * (xx + zz),  2.0 * (yz - wx)],
        [2.0 * (xz - wy),         2.0 * (yz + wx),         1.0 - 2.0 * (xx + yy)]
    ], dtype=np.float64)


def big_omega(omega: np.ndarray) -> np.ndarray:
    """
    4x4 Big Omega matrix for quaternion kinematics, q_dot = 0.5 * Omega(w) q.

    For the [x, y, z, w] layout and body-frame angular velocity w:

        |  0    wz  -wy   wx |
        | -wz   0    wx   wy |
        |  wy  -wx   0    wz |
        | -wx  -wy  -wz   0  |

    The upper-left block is the negative skew-symmetric matrix of w, the
    right column is w and the bottom row is -w^T.
    """
    wx, wy, wz = omega
    return np.array([
        [0.0,  wz, -wy,  wx],
        [-wz, 0.0,  wx,  wy],
        [wy,  -wx, 0.0,  wz],
        [-wx, -wy, -wz, 0.0]
    ], dtype=np.float64)


def integrate(q: np.ndarray, omega: np.ndarray, dt: float) -> np.ndarray:
    """
    First-order quaternion propagation followed by renormalization:

        q(t + dt) = normalize(q + 0.5 * Omega(w) q dt)

    Adequate for dt << 1/|w|.
    """
    q = np.asarray(q, dtype=np.float64)
    return normalize(q + 0.5 * (big_omega(omega) @ q) * dt)


def check_quat(last_quat: np.ndarray, next_quat: np.ndarray) -> np.ndarray:
    """
    Keep `next_quat` on the same hemisphere as `last_quat`.

    Both inputs are normalized. If |last + next| > |last - next| the new
    quaternion is already continuous and is returned as is; otherwise its
    negation (the same rotation) is returned. This absorbs the sign flip seen
    after rotations beyond roughly 270 degrees, or from sources that report
    quaternions without continuity guarantees.

    Returns
    -------
    np.ndarray
        Unit quaternion equal to +/- normalize(next_quat).
    """
    last_vec = normalize(last_quat)
    next_vec = normalize(next_quat)

    total = np.linalg.norm(last_vec + next_vec)
    diff = np.linalg.norm(last_vec - next_vec)

    if total > diff:
        return next_vec
    return -next_vec


def angle_between(q1: np.ndarray, q2: np.ndarray) -> float:
    """Rotation angle (rad) separating two attitudes, sign-insensitive."""
    d = abs(float(np.dot(normalize(q1), normalize(q2))))
    return 2.0 * np.arccos(min(d, 1.0))
