"""Event models for server orchestration."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict


@dataclass
class ServerEvent:
    """Something that happened to a server."""

    event_type: str
    unique_id: str
    owner: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def provisioned(server, stack_id=None):
        return ServerEvent(
            event_type="server.provisioned",
            unique_id=server.unique_id,
            owner=server.owner,
            metadata={
                "server_type": server.server_config.server_type.value,
                "version": server.server_config.version,
                "port": server.port,
                "stack_id": stack_id,
            },
        )

    @staticmethod
    def provision_failed(unique_id: str, owner: str, step: str, reason: str):
        return ServerEvent(
            event_type="server.provision_failed",
            unique_id=unique_id,
            owner=owner,
            metadata={"step": step, "error_message": reason},
        )

    @staticmethod
    def lifecycle(server, action: str, previous_state: str):
        return ServerEvent(
            event_type=f"server.{action}",
            unique_id=server.unique_id,
            owner=server.owner,
            metadata={"previous_state": previous_state},
        )

    @staticmethod
    def deleted(server, reason: str, partial: bool, failed_steps):
        return ServerEvent(
            event_type="server.deleted",
            unique_id=server.unique_id,
            owner=server.owner,
            metadata={
                "reason": reason,
                "partial": partial,
                "failed_steps": list(failed_steps),
            },
        )

    @staticmethod
    def proxy_attached(server, proxy_id: str):
        return ServerEvent(
            event_type="server.proxy_attached",
            unique_id=server.unique_id,
            owner=server.owner,
            metadata={"proxy_id": proxy_id},
        )
