"""In-process lock registry keyed by an arbitrary string."""

from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock


class KeyedLock:
    """Hands out one lock per key so work on the same record is serialised.

    Locks are reference counted and dropped once no holder or waiter is left,
    so the registry does not grow with the number of records ever touched.
    """

    def __init__(self) -> None:
        self._locks: dict[str, Lock] = {}
        self._waiters: dict[str, int] = {}
        self._guard = Lock()

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, Lock())
            self._waiters[key] = self._waiters.get(key, 0) + 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                remaining = self._waiters.get(key, 1) - 1
                if remaining <= 0:
                    self._waiters.pop(key, None)
                    self._locks.pop(key, None)
                else:
                    self._waiters[key] = remaining

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def reset(self) -> None:
        """Clear all tracked state (useful for testing).

        Holders active during a reset still release their own lock on exit.
        """
        with self._guard:
            self._locks.clear()
            self._waiters.clear()


coupon_locks = KeyedLock()
