from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse

from mcserver_engine.api.auth import get_current_user
from mcserver_engine.api.container import (
    get_deletion_orchestrator,
    get_lifecycle_controller,
    get_provisioning_orchestrator,
    get_proxy_coordinator,
    get_repository,
)
from mcserver_engine.api.schemas.server import (
    AttachResponse,
    CommandRequest,
    DeletionResponse,
    LifecycleOptions,
    LifecycleResponse,
    ProvisionResponse,
    ProxyAttachRequest,
    ServerCreateRequest,
    ServerResponse,
)
from mcserver_engine.core.errors import ServerValidationError
from mcserver_engine.core.identity import User
from mcserver_engine.core.models import ServerConfig, ServerSpec
from mcserver_engine.config import settings

router = APIRouter(prefix="/servers", tags=["servers"])


# -------------------------
# Provisioning / records
# -------------------------

@router.post("", response_model=ProvisionResponse, status_code=status.HTTP_201_CREATED)
def create_server(
    request: ServerCreateRequest,
    user: User = Depends(get_current_user),
    orchestrator=Depends(get_provisioning_orchestrator),
):
    try:
        config = ServerConfig.from_dict(request.server_config.model_dump())
    except ValueError as e:
        raise ServerValidationError(str(e)) from e

    spec = ServerSpec(
        owner=user.email,
        server_name=request.server_name,
        server_config=config,
        unique_id=request.unique_id,
        subdomain_name=request.subdomain_name,
        environment_id=request.environment_id,
        attach_proxy=request.attach_proxy,
        proxy_id=request.proxy_id,
    )

    result = orchestrator.provision(spec)
    response = ProvisionResponse.from_result(result)

    if not result.success:
        body = response.model_dump(mode="json")
        body["message"] = result.error
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)

    return response


@router.get("", response_model=List[ServerResponse])
def list_servers(
    user: User = Depends(get_current_user),
    repository=Depends(get_repository),
):
    return [ServerResponse.from_domain(s) for s in repository.list_by_owner(user.email)]


@router.get("/{server_id}", response_model=ServerResponse)
def get_server(
    server_id: str,
    user: User = Depends(get_current_user),
    repository=Depends(get_repository),
):
    server = repository.require(user.email, server_id, settings.allow_legacy_aliases)
    return ServerResponse.from_domain(server)


@router.delete("/{server_id}", response_model=DeletionResponse)
def delete_server(
    server_id: str,
    force: bool = Query(True),
    remove_volumes: bool = Query(True),
    user: User = Depends(get_current_user),
    orchestrator=Depends(get_deletion_orchestrator),
):
    report = orchestrator.delete(server_id, user.email, reason="user", force=force, remove_volumes=remove_volumes)
    response = DeletionResponse.from_report(report)

    if report.success:
        return response

    report.raise_for_partial()
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=response.model_dump(mode="json"))


# -------------------------
# Runtime reads
# -------------------------

@router.get("/{server_id}/status")
def server_status(
    server_id: str,
    user: User = Depends(get_current_user),
    controller=Depends(get_lifecycle_controller),
):
    return controller.status(server_id, user.email)


@router.get("/{server_id}/logs")
def server_logs(
    server_id: str,
    tail: int = Query(100),
    user: User = Depends(get_current_user),
    controller=Depends(get_lifecycle_controller),
):
    return {"unique_id": server_id, "logs": controller.logs(server_id, user.email, tail=tail)}


@router.get("/{server_id}/resources")
def server_resources(
    server_id: str,
    user: User = Depends(get_current_user),
    controller=Depends(get_lifecycle_controller),
):
    return controller.resources(server_id, user.email)


@router.post("/{server_id}/command")
def server_command(
    server_id: str,
    request: CommandRequest,
    user: User = Depends(get_current_user),
    controller=Depends(get_lifecycle_controller),
):
    return controller.exec_command(server_id, user.email, request.command)


# -------------------------
# Proxy
# -------------------------

@router.post("/{server_id}/proxy", response_model=AttachResponse)
def attach_proxy(
    server_id: str,
    request: Optional[ProxyAttachRequest] = Body(None),
    user: User = Depends(get_current_user),
    coordinator=Depends(get_proxy_coordinator),
):
    proxy_id = request.proxy_id if request else None
    result = coordinator.attach_to_proxy(server_id, user.email, proxy_id)
    return AttachResponse(
        success=result.success,
        unique_id=result.unique_id,
        proxy_id=result.proxy_id,
        details=result.details,
    )


# -------------------------
# Lifecycle
# -------------------------

@router.post("/{server_id}/{action}", response_model=LifecycleResponse)
def server_action(
    server_id: str,
    action: str,
    options: Optional[LifecycleOptions] = Body(None),
    user: User = Depends(get_current_user),
    controller=Depends(get_lifecycle_controller),
):
    options = options or LifecycleOptions()
    extra = {}
    if action in ("stop", "restart"):
        extra["timeout"] = options.timeout
    elif action == "kill":
        extra["signal"] = options.signal

    result = controller.perform(action, server_id, user.email, **extra)
    return LifecycleResponse.from_result(result)
