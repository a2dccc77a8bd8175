from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Protocol

from answerboard.errors import LockTimeout

"""Process-wide mutual exclusion for store mutations.

One coarse lock guards every reaction / highlight / user write. Unrelated
rows serialise; correctness does not depend on the lock being per-row.
"""

__all__ = [
    "Lock",
    "ProcessLock",
    "PgAdvisoryLock",
    "held",
]

logger = logging.getLogger(__name__)


class Lock(Protocol):
    def try_lock(self, timeout_ms: int) -> bool: ...

    def release(self) -> None: ...


class ProcessLock:
    """`threading.Lock` with a bounded wait. Shared by every request in the process."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def try_lock(self, timeout_ms: int) -> bool:
        return self._lock.acquire(timeout=max(timeout_ms, 0) / 1000)

    def release(self) -> None:
        try:
            self._lock.release()
        except RuntimeError:
            logger.warning("release of an unheld lock ignored")

    @property
    def locked(self) -> bool:
        return self._lock.locked()


class PgAdvisoryLock:
    """Session-level PostgreSQL advisory lock, shared across processes.

    ``pg_try_advisory_lock`` is polled until the deadline; PostgreSQL has no
    timed variant for session locks. A session may take its own advisory
    lock again, so requests sharing the session are first serialised by a
    process mutex; the advisory lock then excludes other processes.
    """

    def __init__(
        self,
        cursor: Any,
        key: int = 0x42_0A_D0,
        poll_interval: float = 0.05,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cursor = cursor
        self.key = key
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock
        self._local = threading.Lock()

    def _try_once(self) -> bool:
        self.cursor.execute("SELECT pg_try_advisory_lock(%s)", (self.key,))
        row = self.cursor.fetchone()
        return bool(row and row[0])

    def try_lock(self, timeout_ms: int) -> bool:
        deadline = self._clock() + max(timeout_ms, 0) / 1000
        if not self._local.acquire(timeout=max(timeout_ms, 0) / 1000):
            return False
        try:
            while True:
                if self._try_once():
                    return True
                if self._clock() >= deadline:
                    break
                self._sleep(self.poll_interval)
        except BaseException:
            self._local.release()
            raise
        self._local.release()
        return False

    def release(self) -> None:
        try:
            self.cursor.execute("SELECT pg_advisory_unlock(%s)", (self.key,))
            row = self.cursor.fetchone()
            if not (row and row[0]):
                logger.warning("advisory lock %s was not held at release", self.key)
        finally:
            try:
                self._local.release()
            except RuntimeError:
                logger.warning("release of an unheld lock ignored")


@contextmanager
def held(lock: Lock, timeout_ms: int, operation: str) -> Iterator[None]:
    """Hold ``lock`` for the block; raises `LockTimeout` if not acquired in time."""
    if not lock.try_lock(timeout_ms):
        logger.warning("%s: lock timeout after %dms", operation, timeout_ms)
        raise LockTimeout(operation, timeout_ms)
    try:
        yield
    finally:
        try:
            lock.release()
        except Exception as e:
            # 元の例外を隠さない
            logger.warning("%s: lock release failed: %s", operation, e)
