"""
Data structures for the quadrotor estimator.

Structures
----------
PoseHistory -- Fixed-capacity ring buffer of published poses, read back
               newest first.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


POSE_DIM = 7   # [x, y, z, qx, qy, qz, qw]


class PoseHistory:
    """Fixed-size ring buffer for the rolling pose history.

    Every filter update prepends one pose; once ``capacity`` poses are held
    the oldest is dropped from the tail. The whole buffer is read back on each
    publish, newest first, which is the order trajectory viewers expect.

    Memory layout
    -------------
    Two arrays are pre-allocated at construction:

    * ``_timestamps`` -- ``float64[capacity]``
    * ``_poses``      -- ``float64[capacity, 7]``

    ``_head`` is the next write slot and ``_count`` the number of valid
    entries (<= capacity). Writing never allocates; overwriting the slot at
    ``_head`` once the buffer is full is what drops the oldest pose.

    Time complexity
    ---------------
    +-------------------+------+
    | Operation         | Cost |
    +===================+======+
    | push              | O(1) |
    | latest            | O(1) |
    | to_array          | O(n) |
    +-------------------+------+

    Parameters
    ----------
    capacity : int
        Maximum number of poses to retain.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")

        self._capacity: int = capacity
        self._timestamps: np.ndarray = np.zeros(capacity, dtype=np.float64)
        self._poses: np.ndarray = np.zeros((capacity, POSE_DIM), dtype=np.float64)

        self._head: int = 0      # Next write position.
        self._count: int = 0     # Number of valid entries (<= capacity).

    def push(self, timestamp: float, pose: np.ndarray) -> None:
        """Record a pose, overwriting the oldest one if the buffer is full.

        Parameters
        ----------
        timestamp : float
            Belief time (seconds).
        pose : np.ndarray
            ``[x, y, z, qx, qy, qz, qw]``.

        Raises
        ------
        ValueError
            If ``pose`` does not have 7 elements.
        """
        pose = np.asarray(pose, dtype=np.float64)
        if pose.shape != (POSE_DIM,):
            raise ValueError(f"Expected pose of shape ({POSE_DIM},), got {pose.shape}")

        self._timestamps[self._head] = timestamp
        self._poses[self._head] = pose
        self._head = (self._head + 1) % self._capacity
        self._count = min(self._count + 1, self._capacity)

    def latest(self) -> np.ndarray:
        """Most recently pushed pose (copy)."""
        if self._count == 0:
            raise IndexError("latest() on an empty PoseHistory")
        return self._poses[(self._head - 1) % self._capacity].copy()

    def to_array(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return the full history, newest first.

        Returns
        -------
        timestamps : np.ndarray, shape ``(count,)``
        poses : np.ndarray, shape ``(count, 7)``
        """
        indices = self._newest_first_indices()
        return self._timestamps[indices].copy(), self._poses[indices].copy()

    def clear(self) -> None:
        self._head = 0
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_full(self) -> bool:
        """``True`` once the buffer has started dropping old poses."""
        return self._count == self._capacity

    def _newest_first_indices(self) -> np.ndarray:
        # newest sits just behind _head; walk backwards count slots
        return (self._head - 1 - np.arange(self._count)) % self._capacity

    def __len__(self) -> int:
        return self._count

    def __repr__(self) -> str:
        return f"PoseHistory(count={self._count}/{self._capacity})"
