#mcserver_engine\core\state_machine.py

from enum import Enum

from mcserver_engine.core.models import ContainerState
from mcserver_engine.core.errors import ServerStateConflictError


class LifecycleAction(Enum):
    START = "start"
    STOP = "stop"
    RESTART = "restart"
    PAUSE = "pause"
    UNPAUSE = "unpause"
    KILL = "kill"

    @classmethod
    def parse(cls, value: str) -> "LifecycleAction":
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Invalid action '{value}'")


# Source states from which the platform call is issued.
ALLOWED_SOURCES = {
    LifecycleAction.START: {ContainerState.CREATED, ContainerState.EXITED},
    LifecycleAction.STOP: {ContainerState.RUNNING, ContainerState.PAUSED},
    LifecycleAction.KILL: {ContainerState.RUNNING, ContainerState.PAUSED},
    LifecycleAction.PAUSE: {ContainerState.RUNNING},
    LifecycleAction.UNPAUSE: {ContainerState.PAUSED},
    LifecycleAction.RESTART: {
        ContainerState.CREATED,
        ContainerState.RUNNING,
        ContainerState.PAUSED,
        ContainerState.EXITED,
    },
}

# Source states that are already the target: reported, no platform call.
NOOP_SOURCES = {
    LifecycleAction.START: {ContainerState.RUNNING},
    LifecycleAction.STOP: {ContainerState.EXITED, ContainerState.CREATED},
    LifecycleAction.KILL: {ContainerState.EXITED, ContainerState.CREATED},
}

# isOnline after a successful transition; None leaves the flag alone.
ONLINE_AFTER = {
    LifecycleAction.START: True,
    LifecycleAction.RESTART: True,
    LifecycleAction.STOP: False,
    LifecycleAction.KILL: False,
    LifecycleAction.PAUSE: None,
    LifecycleAction.UNPAUSE: None,
}

_REFUSAL = {
    LifecycleAction.PAUSE: "is not running and cannot be paused",
    LifecycleAction.UNPAUSE: "is not paused and cannot be unpaused",
    LifecycleAction.START: "cannot be started",
    LifecycleAction.STOP: "cannot be stopped",
    LifecycleAction.KILL: "cannot be killed",
    LifecycleAction.RESTART: "cannot be restarted",
}


class ContainerStateMachine:
    @staticmethod
    def check(action: LifecycleAction, container_name: str, current: ContainerState) -> bool:
        """
        Validate a transition before any platform call.

        Returns True when the platform call should be issued and False when
        the container is already in the target state. Raises
        ServerStateConflictError for any other source state.
        """
        if current in ALLOWED_SOURCES[action]:
            return True

        if current in NOOP_SOURCES.get(action, set()):
            return False

        raise ServerStateConflictError(
            f"Container '{container_name}' {_REFUSAL[action]}. Current state: {current.value}",
            current_state=current.value,
        )

    @staticmethod
    def online_after(action: LifecycleAction):
        return ONLINE_AFTER[action]
