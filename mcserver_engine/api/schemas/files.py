from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from mcserver_engine.core.models import FileEntry


class FileCreateRequest(BaseModel):
    path: str
    type: str = "file"
    content: Optional[str] = None


class FileDeleteRequest(BaseModel):
    path: str
    type: str


class FileEntryResponse(BaseModel):
    name: str
    path: str
    type: str
    size: int
    modified_at: Optional[datetime] = None
    mime_type: Optional[str] = None

    @classmethod
    def from_domain(cls, entry: FileEntry) -> "FileEntryResponse":
        return cls(
            name=entry.name,
            path=entry.path,
            type=entry.type,
            size=entry.size,
            modified_at=entry.modified_at,
            mime_type=entry.mime_type,
        )
