# mcserver_engine/core/repository.py

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Set

from mcserver_engine.core.models import Server
from mcserver_engine.core.errors import ServerNotFound, ServerValidationError


# Fields that update_fields() accepts. Identity and config are immutable here.
MUTABLE_FIELDS = {"is_online", "environment_id", "port", "rcon_port", "stack_id"}


class ServerRepository(ABC):
    """
    Persistence contract for Server Records.
    """

    @abstractmethod
    def create(self, server: Server) -> None:
        """
        Persist a new server.
        Must fail with ServerAlreadyExists if unique_id is taken.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, unique_id: str) -> Optional[Server]:
        """
        Fetch by primary key, unscoped.
        Internal use only; callers acting for a user go through find().
        """
        raise NotImplementedError

    @abstractmethod
    def find_candidates(self, owner: str, identifier: str, allow_aliases: bool) -> List[Server]:
        """
        Owner-scoped records matching the identifier.
        With allow_aliases, subdomain_name and server_name also match.
        """
        raise NotImplementedError

    @abstractmethod
    def list_by_owner(self, owner: str) -> Iterable[Server]:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> Iterable[Server]:
        raise NotImplementedError

    @abstractmethod
    def update_fields(self, unique_id: str, **fields) -> None:
        """
        Narrow field-level write. Last writer wins.
        Raises ServerNotFound when the record is gone.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, unique_id: str) -> bool:
        """
        Remove the record.
        Returns False if it did not exist.
        """
        raise NotImplementedError

    # -------------------------
    # Shared behaviour
    # -------------------------

    def find(self, owner: str, identifier: str, allow_aliases: bool = True) -> Optional[Server]:
        """
        Owner-scoped lookup. The primary key wins over aliases; an alias
        that matches several records is rejected as ambiguous.
        """
        if not identifier:
            raise ServerValidationError("Server identifier is required.")

        candidates = self.find_candidates(owner, identifier, allow_aliases)
        if not candidates:
            return None

        for server in candidates:
            if server.unique_id == identifier:
                return server

        if len(candidates) > 1:
            raise ServerValidationError(
                f"Identifier '{identifier}' matches {len(candidates)} servers; use the unique id."
            )
        return candidates[0]

    def require(self, owner: str, identifier: str, allow_aliases: bool = True) -> Server:
        server = self.find(owner, identifier, allow_aliases)
        if server is None:
            raise ServerNotFound(identifier)
        return server

    def used_ports(self) -> Set[int]:
        ports = set()
        for server in self.list_all():
            if server.port:
                ports.add(server.port)
            if server.rcon_port:
                ports.add(server.rcon_port)
        return ports

    def subdomain_taken(self, subdomain: str) -> bool:
        return any(s.subdomain_name == subdomain for s in self.list_all())

    @staticmethod
    def _check_fields(fields) -> None:
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise ServerValidationError(f"Fields not updatable: {', '.join(sorted(unknown))}")
