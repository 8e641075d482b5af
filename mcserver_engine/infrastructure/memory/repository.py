# mcserver_engine/infrastructure/memory/repository.py

from copy import deepcopy
from threading import Lock
from typing import Iterable, List

from mcserver_engine.core.repository import ServerRepository
from mcserver_engine.core.models import Server, utcnow
from mcserver_engine.core.errors import ServerAlreadyExists, ServerNotFound


class InMemoryServerRepository(ServerRepository):
    def __init__(self):
        self._store: dict[str, Server] = {}
        self._lock = Lock()

    def create(self, server: Server) -> None:
        with self._lock:
            if server.unique_id in self._store:
                raise ServerAlreadyExists(f"Server {server.unique_id} already exists")
            self._store[server.unique_id] = deepcopy(server)

    def get(self, unique_id: str) -> Server | None:
        server = self._store.get(unique_id)
        return deepcopy(server) if server else None

    def find_candidates(self, owner: str, identifier: str, allow_aliases: bool) -> List[Server]:
        results = []
        for s in list(self._store.values()):
            if s.owner != owner:
                continue
            if s.unique_id == identifier or (allow_aliases and s.matches(identifier)):
                results.append(deepcopy(s))
        return results

    def list_by_owner(self, owner: str) -> Iterable[Server]:
        return [deepcopy(s) for s in self._store.values() if s.owner == owner]

    def list_all(self) -> Iterable[Server]:
        return [deepcopy(s) for s in self._store.values()]

    def update_fields(self, unique_id: str, **fields) -> None:
        self._check_fields(fields)
        with self._lock:
            server = self._store.get(unique_id)
            if not server:
                raise ServerNotFound(unique_id)
            for name, value in fields.items():
                setattr(server, name, value)
            server.updated_at = utcnow()

    def delete(self, unique_id: str) -> bool:
        with self._lock:
            return self._store.pop(unique_id, None) is not None
