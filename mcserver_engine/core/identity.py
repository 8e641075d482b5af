# mcserver_engine/core/identity.py
"""Identity provider contract and the static-token implementation."""

import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class User:
    email: str
    is_admin: bool = False
    is_active: bool = True


class IdentityProvider(ABC):
    @abstractmethod
    def verify(self, token: str) -> Optional[User]:
        """Return the user for a bearer token, or None."""
        raise NotImplementedError


class StaticTokenIdentityProvider(IdentityProvider):
    """Fixed API tokens, configured as "token:email" or "token:email:admin"."""

    def __init__(self, users: Dict[str, User]):
        self._users = dict(users)

    @classmethod
    def from_entries(cls, entries: Iterable[str]) -> "StaticTokenIdentityProvider":
        users = {}
        for entry in entries:
            parts = entry.split(":")
            if len(parts) < 2 or not parts[0] or not parts[1]:
                logger.warning("[auth] ignoring malformed api token entry")
                continue
            users[parts[0]] = User(email=parts[1], is_admin=len(parts) > 2 and parts[2] == "admin")
        return cls(users)

    def verify(self, token: str) -> Optional[User]:
        if not token:
            return None
        for known, user in self._users.items():
            if hmac.compare_digest(known, token):
                return user
        return None
