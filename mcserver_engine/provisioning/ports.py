# mcserver_engine/provisioning/ports.py

import logging
import threading
from typing import Iterable, Optional, Set

from mcserver_engine.core.errors import ServerValidationError

logger = logging.getLogger(__name__)


class PortAllocator:
    """
    Hands out the first free external port in the server range.

    Ports handed out by `reserve` stay taken until `release`, so two
    provisions in flight never get the same port before either record
    is persisted.
    """

    def __init__(self, port_min: int, port_max: int, reserved: Iterable[int] = ()):
        if port_min > port_max:
            raise ValueError("port_min must be <= port_max")
        self.port_min = port_min
        self.port_max = port_max
        self.reserved: Set[int] = set(reserved)
        self._pending: Set[int] = set()
        self._lock = threading.Lock()

    def in_range(self, port: int) -> bool:
        return self.port_min <= port <= self.port_max

    @property
    def pending(self) -> Set[int]:
        with self._lock:
            return set(self._pending)

    def allocate(self, used: Iterable[int], preferred: Optional[int] = None) -> int:
        with self._lock:
            return self._pick(set(used), preferred)

    def reserve(self, used: Iterable[int], preferred: Optional[int] = None) -> int:
        with self._lock:
            port = self._pick(set(used), preferred)
            self._pending.add(port)
            return port

    def release(self, port: Optional[int]) -> None:
        with self._lock:
            self._pending.discard(port)

    def _pick(self, used: Set[int], preferred: Optional[int]) -> int:
        taken = used | self.reserved | self._pending

        if preferred is not None:
            if not self.in_range(preferred):
                raise ServerValidationError(
                    f"Port {preferred} is outside the server port range {self.port_min}-{self.port_max}"
                )
            if preferred in taken:
                raise ServerValidationError(f"Port {preferred} is already in use")
            return preferred

        for port in range(self.port_min, self.port_max + 1):
            if port not in taken:
                logger.info(f"[ports] allocated {port}")
                return port

        raise ServerValidationError(
            f"No free ports left in {self.port_min}-{self.port_max}"
        )
