# mcserver_engine/lifecycle/controller.py
"""Lifecycle controller - start/stop/pause/... on an existing server."""

import logging
from typing import Any, Dict, Optional, Tuple

from mcserver_engine.core.adapters import ContainerPlatform
from mcserver_engine.core.errors import ContainerNotFound, ServerStateConflictError, ServerValidationError
from mcserver_engine.core.events import EventEmitter, NullEventEmitter
from mcserver_engine.core.events_model import ServerEvent
from mcserver_engine.core.locks import ServerLockRegistry
from mcserver_engine.core.models import Container, ContainerState, LifecycleResult, Server
from mcserver_engine.core.repository import ServerRepository
from mcserver_engine.core.state_machine import ContainerStateMachine, LifecycleAction

logger = logging.getLogger(__name__)


class LifecycleController:
    """
    One method per transition. Each one:
    - resolves the Server Record for this owner
    - resolves the container mc-<uniqueId>
    - checks the transition against the observed state (no platform call
      when it is invalid)
    - issues exactly one platform call
    - updates is_online on the record
    Platform failures are reported, never retried here.
    """

    def __init__(
        self,
        repository: ServerRepository,
        platform: ContainerPlatform,
        locks: ServerLockRegistry,
        emitter: Optional[EventEmitter] = None,
        allow_aliases: bool = True,
    ):
        self._repo = repository
        self._platform = platform
        self._locks = locks
        self._emitter = emitter or NullEventEmitter()
        self._allow_aliases = allow_aliases

    # -------------------------
    # TRANSITIONS
    # -------------------------

    def start(self, identifier: str, owner: str) -> LifecycleResult:
        return self._transition(LifecycleAction.START, identifier, owner)

    def stop(self, identifier: str, owner: str, timeout: int = 10) -> LifecycleResult:
        return self._transition(LifecycleAction.STOP, identifier, owner, timeout=timeout)

    def restart(self, identifier: str, owner: str, timeout: int = 10) -> LifecycleResult:
        return self._transition(LifecycleAction.RESTART, identifier, owner, timeout=timeout)

    def pause(self, identifier: str, owner: str) -> LifecycleResult:
        return self._transition(LifecycleAction.PAUSE, identifier, owner)

    def unpause(self, identifier: str, owner: str) -> LifecycleResult:
        return self._transition(LifecycleAction.UNPAUSE, identifier, owner)

    def kill(self, identifier: str, owner: str, signal: str = "SIGKILL") -> LifecycleResult:
        return self._transition(LifecycleAction.KILL, identifier, owner, signal=signal)

    def perform(self, action: str, identifier: str, owner: str, **options) -> LifecycleResult:
        """Dispatch by action name (as received at the HTTP boundary)."""
        try:
            parsed = LifecycleAction.parse(action)
        except ValueError as e:
            raise ServerValidationError(str(e)) from e
        return self._transition(parsed, identifier, owner, **options)

    def _transition(self, action: LifecycleAction, identifier: str, owner: str, **options) -> LifecycleResult:
        server = self._repo.require(owner, identifier, self._allow_aliases)

        with self._locks.hold(server.unique_id, action.value):
            container, environment_id = self._container(server)
            current = container.state
            should_call = ContainerStateMachine.check(action, server.container_name, current)
            online = ContainerStateMachine.online_after(action)

            if not should_call:
                # Already in the target state; the record still follows it.
                if online is not None and server.is_online != online:
                    self._repo.update_fields(server.unique_id, is_online=online)
                logger.info(f"[lifecycle] {action.value} {server.unique_id}: already {current.value}")
                return LifecycleResult(
                    unique_id=server.unique_id,
                    action=action.value,
                    container_id=container.id,
                    previous_state=current,
                    is_online=server.is_online if online is None else online,
                    message=f"Server is already {current.value}.",
                    changed=False,
                )

            self._call(action, container.id, environment_id, options)

            if online is not None:
                self._repo.update_fields(server.unique_id, is_online=online)
            else:
                online = server.is_online

            self._emitter.emit([ServerEvent.lifecycle(server, action.value, current.value)])
            logger.info(f"[lifecycle] {action.value} {server.unique_id} ({current.value}) -> done")

            return LifecycleResult(
                unique_id=server.unique_id,
                action=action.value,
                container_id=container.id,
                previous_state=current,
                is_online=online,
                message=f"Server {action.value} request completed.",
            )

    def _call(self, action: LifecycleAction, container_id: str, environment_id: int, options: Dict[str, Any]) -> None:
        if action == LifecycleAction.START:
            self._platform.start(container_id, environment_id)
        elif action == LifecycleAction.STOP:
            self._platform.stop(container_id, environment_id, timeout=options.get("timeout", 10))
        elif action == LifecycleAction.RESTART:
            self._platform.restart(container_id, environment_id, timeout=options.get("timeout", 10))
        elif action == LifecycleAction.PAUSE:
            self._platform.pause(container_id, environment_id)
        elif action == LifecycleAction.UNPAUSE:
            self._platform.unpause(container_id, environment_id)
        elif action == LifecycleAction.KILL:
            self._platform.kill(container_id, environment_id, signal=options.get("signal", "SIGKILL"))

    # -------------------------
    # READS
    # -------------------------

    def status(self, identifier: str, owner: str) -> Dict[str, Any]:
        server = self._repo.require(owner, identifier, self._allow_aliases)
        environment_id = self._platform.resolve_environment(server.environment_id)
        container = self._platform.find_container_by_name(server.container_name, environment_id)
        state = container.state if container else ContainerState.ABSENT
        return {
            "unique_id": server.unique_id,
            "container_name": server.container_name,
            "state": state.value,
            "status": container.status if container else None,
            "is_online": server.is_online,
        }

    def logs(self, identifier: str, owner: str, tail: int = 100) -> str:
        if tail < 1 or tail > 10000:
            raise ServerValidationError("tail must be between 1 and 10000")
        server, container, environment_id = self._resolve(identifier, owner)
        return self._platform.get_logs(container.id, environment_id, tail)

    def exec_command(self, identifier: str, owner: str, command: str) -> Dict[str, Any]:
        command = (command or "").strip()
        if not command:
            raise ServerValidationError("command is required")
        if command.startswith("/"):
            command = command[1:]

        server, container, environment_id = self._resolve(identifier, owner)
        if container.state != ContainerState.RUNNING:
            raise ServerStateConflictError(
                f"Server is not running. Current state: {container.state.value}",
                current_state=container.state.value,
            )
        return self._platform.exec_command(container.id, command, environment_id)

    def resources(self, identifier: str, owner: str) -> Dict[str, Any]:
        server, container, environment_id = self._resolve(identifier, owner)
        if container.state != ContainerState.RUNNING:
            return {
                "state": container.state.value,
                "cpu_percent": 0.0,
                "memory_usage_mb": 0.0,
                "memory_limit_mb": 0.0,
                "memory_percent": 0.0,
            }
        stats = self._platform.get_stats(container.id, environment_id)
        stats["state"] = container.state.value
        return stats

    # -------------------------
    # RESOLUTION
    # -------------------------

    def _resolve(self, identifier: str, owner: str) -> Tuple[Server, Container, int]:
        server = self._repo.require(owner, identifier, self._allow_aliases)
        container, environment_id = self._container(server)
        return server, container, environment_id

    def _container(self, server: Server) -> Tuple[Container, int]:
        environment_id = self._platform.resolve_environment(server.environment_id)
        container = self._platform.find_container_by_name(server.container_name, environment_id)
        if container is None:
            raise ContainerNotFound(server.container_name)
        return container, environment_id
