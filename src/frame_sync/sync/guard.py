"""Concurrency Guard: one sync transaction at a time per process.

A trigger that arrives while a transaction is running is refused at once
with :class:`SyncBusyError` rather than queued. The lock is held only for
the duration of a ``with guard.hold():`` block, so it is released on every
exit path, including exceptions.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from .errors import SyncBusyError

T = TypeVar("T")
logger = logging.getLogger(__name__)


class ConcurrencyGuard:
    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Hold the guard for the duration of the block.

        Raises:
            SyncBusyError: If another holder is active.
        """
        if not self._lock.acquire(blocking=False):
            logger.info("Sync request rejected: transaction already running")
            raise SyncBusyError()
        try:
            yield
        finally:
            self._lock.release()

    def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call *func* while holding the guard."""
        with self.hold():
            return func(*args, **kwargs)
