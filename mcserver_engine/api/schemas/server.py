from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from mcserver_engine.core.models import DeletionReport, LifecycleResult, ProvisionResult, Server


class ServerConfigRequest(BaseModel):
    version: str = "LATEST"
    server_type: str = "PAPER"
    game_mode: str = "survival"
    difficulty: str = "normal"
    max_players: int = 20
    port: Optional[int] = None
    motd: str = "A Minecraft Server"
    memory: str = "2G"
    online_mode: bool = True
    pvp: bool = True
    enable_command_block: bool = False
    view_distance: int = 10
    rcon_enabled: bool = True
    rcon_password: Optional[str] = None
    extra_env: Dict[str, str] = Field(default_factory=dict)


class ServerCreateRequest(BaseModel):
    server_name: str
    unique_id: Optional[str] = None
    subdomain_name: Optional[str] = None
    environment_id: Optional[int] = None
    attach_proxy: bool = False
    proxy_id: Optional[str] = None
    server_config: ServerConfigRequest = Field(default_factory=ServerConfigRequest)


class ServerResponse(BaseModel):
    unique_id: str
    owner: str
    server_name: str
    subdomain_name: Optional[str]
    container_name: str
    environment_id: Optional[int]
    port: Optional[int]
    stack_id: Optional[int]
    is_online: bool
    server_config: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, server: Server) -> "ServerResponse":
        return cls(
            unique_id=server.unique_id,
            owner=server.owner,
            server_name=server.server_name,
            subdomain_name=server.subdomain_name,
            container_name=server.container_name,
            environment_id=server.environment_id,
            port=server.port,
            stack_id=server.stack_id,
            is_online=server.is_online,
            server_config=server.server_config.to_dict(),
            created_at=server.created_at,
            updated_at=server.updated_at,
        )


class StepResponse(BaseModel):
    name: str
    ok: bool
    error: Optional[str] = None
    detail: Optional[str] = None


class ProvisionResponse(BaseModel):
    success: bool
    unique_id: str
    container_id: Optional[str] = None
    stack_id: Optional[int] = None
    deployment_method: str
    steps: List[StepResponse]
    error: Optional[str] = None
    server: Optional[ServerResponse] = None

    @classmethod
    def from_result(cls, result: ProvisionResult) -> "ProvisionResponse":
        return cls(
            success=result.success,
            unique_id=result.unique_id,
            container_id=result.container_id,
            stack_id=result.stack_id,
            deployment_method=result.deployment_method,
            steps=[StepResponse(**s.to_dict()) for s in result.steps],
            error=result.error,
            server=ServerResponse.from_domain(result.server) if result.server else None,
        )


class LifecycleResponse(BaseModel):
    unique_id: str
    action: str
    container_id: str
    previous_state: str
    is_online: bool
    changed: bool
    message: str

    @classmethod
    def from_result(cls, result: LifecycleResult) -> "LifecycleResponse":
        return cls(
            unique_id=result.unique_id,
            action=result.action,
            container_id=result.container_id,
            previous_state=result.previous_state.value,
            is_online=result.is_online,
            changed=result.changed,
            message=result.message,
        )


class LifecycleOptions(BaseModel):
    timeout: int = Field(default=10, ge=0, le=600)
    signal: str = "SIGKILL"


class DeletionResponse(BaseModel):
    unique_id: str
    success: bool
    partial: bool
    message: str
    details: Dict[str, str]
    steps: List[StepResponse]

    @classmethod
    def from_report(cls, report: DeletionReport) -> "DeletionResponse":
        if report.success:
            message = "Server deleted."
        elif report.partial:
            message = "Server deleted with errors."
        else:
            message = "Server could not be deleted."
        return cls(
            unique_id=report.unique_id,
            success=report.success,
            partial=report.partial,
            message=message,
            details=report.details,
            steps=[StepResponse(**s.to_dict()) for s in report.steps],
        )


class CommandRequest(BaseModel):
    command: str


class ProxyAttachRequest(BaseModel):
    proxy_id: Optional[str] = None


class AttachResponse(BaseModel):
    success: bool
    unique_id: str
    proxy_id: str
    details: List[str]
