"""Keyed mutual exclusion for slot-map mutations.

Every write to a doctor's ``slots_booked`` map happens while holding the
lock registered for that doctor. Inside one process this serialises the
read-check-append sequence; across processes the booking service also takes
a row lock (``SELECT ... FOR UPDATE``) on the doctor.
"""

from contextlib import contextmanager
from typing import Dict, Hashable, Iterator
import logging
import threading

from .config import settings
from .exceptions import ServiceUnavailableError

logger = logging.getLogger(__name__)


class SlotLockRegistry:
    def __init__(self, timeout: float):
        self.timeout = timeout
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Hold the lock for ``key``; raise ServiceUnavailableError on timeout."""
        lock = self._lock_for(key)
        if not lock.acquire(timeout=self.timeout):
            logger.warning(f"Timed out waiting for slot lock on {key!r}")
            raise ServiceUnavailableError("Slot is being updated, please retry")
        try:
            yield
        finally:
            lock.release()


slot_locks = SlotLockRegistry(timeout=settings.SLOT_LOCK_TIMEOUT_SECONDS)
