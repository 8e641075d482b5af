from typing import Optional

from fastapi import APIRouter, Depends, Query

from mcserver_engine.api.auth import require_admin
from mcserver_engine.api.container import get_container_platform, get_proxy_registry
from mcserver_engine.core.identity import User

router = APIRouter(prefix="/proxies", tags=["proxies"])


@router.get("")
def list_proxies(
    user: User = Depends(require_admin),
    registry=Depends(get_proxy_registry),
):
    return [
        {
            "id": p.id,
            "name": p.name,
            "type": p.type.value,
            "host": p.host,
            "port": p.port,
            "config_path": p.config_path,
            "network_name": p.network_name,
        }
        for p in registry.list()
    ]


@router.post("/ensure")
def ensure_proxies(
    environment_id: Optional[int] = Query(None),
    user: User = Depends(require_admin),
    registry=Depends(get_proxy_registry),
    platform=Depends(get_container_platform),
):
    env = platform.resolve_environment(environment_id)
    return {"environment_id": env, "details": registry.ensure_proxies(env)}


@router.get("/health")
def proxies_health(
    environment_id: Optional[int] = Query(None),
    user: User = Depends(require_admin),
    registry=Depends(get_proxy_registry),
    platform=Depends(get_container_platform),
):
    env = platform.resolve_environment(environment_id)
    return {"environment_id": env, "proxies": registry.health(env)}
