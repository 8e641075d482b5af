"""Event emitters for server orchestration."""

import logging
from abc import ABC, abstractmethod
from typing import Iterable

from mcserver_engine.core.events_model import ServerEvent

logger = logging.getLogger(__name__)


ALLOWED_EVENTS = {
    "server.provisioned",
    "server.provision_failed",
    "server.start",
    "server.stop",
    "server.restart",
    "server.pause",
    "server.unpause",
    "server.kill",
    "server.deleted",
    "server.proxy_attached",
}


def _check(event: ServerEvent) -> None:
    if event.event_type not in ALLOWED_EVENTS:
        raise ValueError(f"Invalid event type: {event.event_type}")
    if not event.unique_id:
        raise ValueError("Event must have unique_id")


class EventEmitter(ABC):
    """Abstract event emitter."""

    @abstractmethod
    def emit(self, events: Iterable[ServerEvent]) -> None:
        """Emit one or more events."""
        pass


class LoggingEventEmitter(EventEmitter):
    """Writes events to the application log."""

    def emit(self, events: Iterable[ServerEvent]) -> None:
        for event in events:
            _check(event)
            logger.info(f"[EVENT] {event.event_type} | server={event.unique_id} | {event.metadata}")


class RecordingEventEmitter(EventEmitter):
    """Keeps events in memory."""

    def __init__(self):
        self.events = []

    def emit(self, events: Iterable[ServerEvent]) -> None:
        for event in events:
            _check(event)
            self.events.append(event)

    def types(self):
        return [e.event_type for e in self.events]


class MultiEventEmitter(EventEmitter):
    """Fan-out to multiple emitters."""

    def __init__(self, emitters: Iterable[EventEmitter]):
        self._emitters = list(emitters)

    def emit(self, events: Iterable[ServerEvent]) -> None:
        events = list(events)
        for emitter in self._emitters:
            emitter.emit(events)


class NullEventEmitter(EventEmitter):
    """No-op emitter."""

    def emit(self, events: Iterable[ServerEvent]) -> None:
        pass
