"""
Single-record store for the authoritative quadrotor belief.

Both sensor callbacks run on their own middleware threads. Each one takes the
store exclusively, reads the last belief, computes a new one and writes it
back before releasing, so a belief is never observed half-written.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from quad_ukf.core.constants import LOCK_TIMEOUT
from quad_ukf.core.errors import LockTimeout
from quad_ukf.navigation.quad_model import QuadBelief

logger = logging.getLogger(__name__)


class BeliefStore:
    """
    Lock-guarded holder of the current QuadBelief.

    Access goes through ``exclusive()``, which waits at most ``lock_timeout``
    seconds and raises LockTimeout instead of proceeding unguarded. Inside
    the block ``read()`` returns a private copy and ``replace()`` commits a
    new belief. No history is kept.

    Args:
        belief: Initial belief (copied)
        lock_timeout: Bounded wait on acquisition (s)
    """

    def __init__(self, belief: QuadBelief, lock_timeout: float = LOCK_TIMEOUT):
        self._belief = belief.copy()
        self._lock = threading.Lock()
        self._owner: Optional[int] = None
        self.lock_timeout = lock_timeout

    @contextmanager
    def exclusive(self) -> Iterator["BeliefStore"]:
        """
        Hold the store for the duration of the block.

        Raises:
            LockTimeout: If the lock is not acquired within lock_timeout
        """
        if not self._lock.acquire(timeout=self.lock_timeout):
            raise LockTimeout(
                f"Belief store busy for more than {self.lock_timeout * 1000:.0f} ms"
            )
        self._owner = threading.get_ident()
        try:
            yield self
        finally:
            self._owner = None
            self._lock.release()

    def _check_owner(self) -> None:
        if self._owner != threading.get_ident():
            raise RuntimeError("BeliefStore accessed without holding exclusive()")

    def read(self) -> QuadBelief:
        """Copy of the stored belief. Caller must hold exclusive()."""
        self._check_owner()
        return self._belief.copy()

    def replace(self, belief: QuadBelief) -> None:
        """Commit a new belief. Caller must hold exclusive()."""
        self._check_owner()
        self._belief = belief.copy()

    def snapshot(self) -> QuadBelief:
        """Acquire, copy, release."""
        with self.exclusive():
            return self.read()
