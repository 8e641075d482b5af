# mcserver_engine/provisioning/layout.py
"""Where a server's files live on the file storage, and the folders it starts with."""

import logging
import posixpath
from datetime import datetime, timezone
from typing import List

from mcserver_engine.core.adapters import FileStorage
from mcserver_engine.core.models import Server, owner_folder_for

logger = logging.getLogger(__name__)


SERVER_FOLDERS = ["data", "plugins", "mods", "worlds", "backups", "config", "logs"]

# Written by the server process on first boot.
READY_MARKER = "server.properties"


class ServerLayout:
    """Path scoping: <base>/<owner folder>/<uniqueId><relative>."""

    def __init__(self, storage: FileStorage, base_path: str = "/minecraft-servers"):
        self.storage = storage
        self.base_path = "/" + base_path.strip("/")

    def owner_root(self, owner: str) -> str:
        return f"{self.base_path}/{owner_folder_for(owner)}"

    def root(self, owner: str, unique_id: str) -> str:
        return f"{self.owner_root(owner)}/{unique_id}"

    def path(self, server: Server, relative: str = "") -> str:
        root = self.root(server.owner, server.unique_id)
        if not relative or relative == "/":
            return root
        joined = posixpath.normpath(f"{root}/{relative.lstrip('/')}")
        # Never let "../" escape the server's folder.
        if joined != root and not joined.startswith(root + "/"):
            raise ValueError(f"Path '{relative}' escapes the server folder")
        return joined

    def create(self, owner: str, unique_id: str) -> List[str]:
        root = self.root(owner, unique_id)
        self.storage.create_directory(root)
        created = [root]
        for folder in SERVER_FOLDERS:
            self.storage.create_directory(f"{root}/{folder}")
            created.append(f"{root}/{folder}")
        logger.info(f"[layout] created {len(created)} folders under {root}")
        return created

    def files_ready(self, server: Server) -> bool:
        return self.storage.exists(self.path(server, READY_MARKER))

    def archive_path(self, server: Server, reason: str, now: datetime = None) -> str:
        now = now or datetime.now(timezone.utc)
        stamp = now.strftime("%Y%m%dT%H%M%S")
        return f"{self.owner_root(server.owner)}/DELETED-{reason}-{stamp}-{server.unique_id}"
