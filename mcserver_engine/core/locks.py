# mcserver_engine/core/locks.py
"""Per-server operation locks."""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from mcserver_engine.core.errors import ServerOperationInProgress

logger = logging.getLogger(__name__)


class ServerLockRegistry:
    """
    One non-blocking lock per unique_id.

    Mutating operations on the same server reject with
    ServerOperationInProgress instead of interleaving.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._held: Dict[str, str] = {}

    @contextmanager
    def hold(self, unique_id: str, operation: str) -> Iterator[None]:
        with self._guard:
            current = self._held.get(unique_id)
            if current is not None:
                logger.warning(
                    f"[lock] {unique_id} busy with {current}, rejecting {operation}"
                )
                raise ServerOperationInProgress(unique_id, current)
            self._held[unique_id] = operation

        try:
            yield
        finally:
            with self._guard:
                self._held.pop(unique_id, None)

    def is_locked(self, unique_id: str) -> bool:
        with self._guard:
            return unique_id in self._held

    def current_operation(self, unique_id: str):
        with self._guard:
            return self._held.get(unique_id)
