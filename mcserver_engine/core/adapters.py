# mcserver_engine/core/adapters.py
"""Contracts for the external systems the orchestrators drive."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from mcserver_engine.core.models import Container, ContainerState, FileEntry, Stack


class ContainerPlatform(ABC):
    """Container management platform (Portainer in production)."""

    @abstractmethod
    def resolve_environment(self, hint: Optional[int] = None) -> int:
        """Validate a hinted environment id or discover the first available."""
        raise NotImplementedError

    @abstractmethod
    def list_containers(self, environment_id: int) -> List[Container]:
        raise NotImplementedError

    @abstractmethod
    def find_container_by_name(self, name: str, environment_id: int) -> Optional[Container]:
        raise NotImplementedError

    def container_state(self, name: str, environment_id: int) -> ContainerState:
        container = self.find_container_by_name(name, environment_id)
        return container.state if container else ContainerState.ABSENT

    @abstractmethod
    def start(self, container_id: str, environment_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def stop(self, container_id: str, environment_id: int, timeout: int = 10) -> None:
        raise NotImplementedError

    @abstractmethod
    def restart(self, container_id: str, environment_id: int, timeout: int = 10) -> None:
        raise NotImplementedError

    @abstractmethod
    def pause(self, container_id: str, environment_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def unpause(self, container_id: str, environment_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def kill(self, container_id: str, environment_id: int, signal: str = "SIGKILL") -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_container(
        self,
        container_id: str,
        environment_id: int,
        force: bool = True,
        volumes: bool = True,
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_logs(self, container_id: str, environment_id: int, tail: int = 100) -> str:
        raise NotImplementedError

    @abstractmethod
    def exec_command(self, container_id: str, command: str, environment_id: int) -> Dict[str, Any]:
        """Run a console command in the container. Returns {"output": ...}."""
        raise NotImplementedError

    @abstractmethod
    def get_stats(self, container_id: str, environment_id: int) -> Dict[str, Any]:
        raise NotImplementedError

    # -------------------------
    # Stacks
    # -------------------------

    @abstractmethod
    def list_stacks(self) -> List[Stack]:
        raise NotImplementedError

    def find_stack_by_name(self, name: str) -> Optional[Stack]:
        for stack in self.list_stacks():
            if stack.name == name:
                return stack
        return None

    @abstractmethod
    def create_stack(self, name: str, compose: str, environment_id: int) -> Stack:
        raise NotImplementedError

    @abstractmethod
    def update_stack(self, stack_id: int, compose: str, environment_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def redeploy_stack(self, stack_id: int, environment_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_stack(self, stack_id: int, environment_id: int) -> None:
        raise NotImplementedError


class FileStorage(ABC):
    """Network file storage holding each server's data directory."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def read(self, path: str) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def write(self, path: str, data: bytes) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, path: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_directory(self, path: str) -> None:
        """Recursive delete."""
        raise NotImplementedError

    @abstractmethod
    def list_directory(self, path: str) -> List[FileEntry]:
        raise NotImplementedError

    @abstractmethod
    def create_directory(self, path: str) -> None:
        """Create the directory and any missing parents."""
        raise NotImplementedError

    @abstractmethod
    def move(self, source: str, destination: str) -> None:
        raise NotImplementedError

    def read_text(self, path: str) -> str:
        return self.read(path).decode("utf-8")

    def write_text(self, path: str, text: str) -> None:
        self.write(path, text.encode("utf-8"))


class DnsProvider(ABC):
    """DNS registrar holding the per-server subdomain records."""

    @abstractmethod
    def create_record(self, subdomain: str, owner: str, port: Optional[int] = None) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete_record(self, subdomain: str, owner: str) -> None:
        raise NotImplementedError
