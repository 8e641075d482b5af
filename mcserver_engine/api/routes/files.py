from typing import List

from fastapi import APIRouter, Depends, Query

from mcserver_engine.api.auth import get_current_user
from mcserver_engine.api.container import get_file_manager
from mcserver_engine.api.schemas.files import FileCreateRequest, FileDeleteRequest, FileEntryResponse
from mcserver_engine.core.identity import User

router = APIRouter(prefix="/servers", tags=["files"])


@router.get("/{server_id}/files", response_model=List[FileEntryResponse])
def list_files(
    server_id: str,
    path: str = Query("/"),
    user: User = Depends(get_current_user),
    manager=Depends(get_file_manager),
):
    return [FileEntryResponse.from_domain(e) for e in manager.list(server_id, user.email, path)]


@router.post("/{server_id}/files", status_code=201)
def create_file(
    server_id: str,
    request: FileCreateRequest,
    user: User = Depends(get_current_user),
    manager=Depends(get_file_manager),
):
    content = request.content.encode("utf-8") if request.content is not None else None
    manager.create(server_id, user.email, request.path, request.type, content)
    return {"message": f"{request.type.capitalize()} created.", "path": request.path}


@router.delete("/{server_id}/files")
def delete_file(
    server_id: str,
    request: FileDeleteRequest,
    user: User = Depends(get_current_user),
    manager=Depends(get_file_manager),
):
    manager.delete(server_id, user.email, request.path, request.type)
    return {"message": f"{request.type.capitalize()} deleted successfully.", "path": request.path}
