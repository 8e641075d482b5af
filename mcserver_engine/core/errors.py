# mcserver_engine/core/errors.py

from typing import Optional

# -----------------------------
# Base Errors
# -----------------------------

class ServerEngineError(Exception):
    """Base class for all server orchestration errors."""
    pass


# -----------------------------
# Validation / Domain Errors
# -----------------------------

class ServerValidationError(ServerEngineError):
    """Missing or malformed input. Raised before any side effect."""
    pass


class ServerPermissionError(ServerEngineError):
    """Operation refused for this caller or this path."""
    pass


class ServerStateConflictError(ServerEngineError):
    """Operation is not valid for the container's observed state."""

    def __init__(self, message: str, current_state: Optional[str] = None):
        super().__init__(message)
        self.current_state = current_state


class ServerOperationInProgress(ServerStateConflictError):
    """Another mutating operation holds the lock for this server."""

    def __init__(self, unique_id: str, operation: Optional[str] = None):
        running = f" ({operation})" if operation else ""
        super().__init__(
            f"Another operation{running} is already in progress for server '{unique_id}'."
        )
        self.unique_id = unique_id
        self.operation = operation


# -----------------------------
# Not Found Errors
# -----------------------------

class ServerNotFoundError(ServerEngineError):
    """Base for missing resources. `resource` tells callers which one."""

    resource = "resource"

    def __init__(self, message: str, identifier: Optional[str] = None):
        super().__init__(message)
        self.identifier = identifier


class ServerNotFound(ServerNotFoundError):
    resource = "server"

    def __init__(self, identifier: str):
        super().__init__("Server not found or access denied.", identifier)


class ContainerNotFound(ServerNotFoundError):
    resource = "container"

    def __init__(self, container_name: str):
        super().__init__(
            f"Container '{container_name}' not found for this server.",
            container_name,
        )


class StackNotFound(ServerNotFoundError):
    resource = "stack"

    def __init__(self, stack_name: str):
        super().__init__(f"Stack '{stack_name}' not found.", stack_name)


class FileNotFoundOnServer(ServerNotFoundError):
    resource = "file"

    def __init__(self, path: str):
        super().__init__(f"File or folder '{path}' not found.", path)


# -----------------------------
# External System Errors
# -----------------------------

class PlatformError(ServerEngineError):
    """A backend (container platform, file storage, DNS) reported a failure."""

    def __init__(
        self,
        message: str,
        backend: str = "platform",
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.backend = backend
        self.status_code = status_code


class ProxyConfigurationError(PlatformError):
    """Writing proxy forwarding settings into server files failed."""

    def __init__(self, message: str):
        super().__init__(message, backend="storage")


class WaitTimeoutError(ServerEngineError):
    """A bounded wait ran out of attempts without converging."""

    def __init__(self, message: str, waiting_for: str, attempts: int):
        super().__init__(message)
        self.waiting_for = waiting_for
        self.attempts = attempts


class PartialFailureError(ServerEngineError):
    """Some teardown steps failed after the record was already removed."""

    def __init__(self, report):
        failed = ", ".join(step.name for step in report.failed_steps)
        super().__init__(f"Server '{report.unique_id}' deleted with errors in: {failed}")
        self.report = report


# -----------------------------
# Persistence Errors
# -----------------------------

class ServerPersistenceError(ServerEngineError):
    pass


class ServerAlreadyExists(ServerPersistenceError):
    pass
