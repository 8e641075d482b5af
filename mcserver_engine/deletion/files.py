# mcserver_engine/deletion/files.py
"""File manager operations on a server's folder, including verified delete."""

import logging
import posixpath
import time
from typing import Callable, Iterable, List, Optional

from mcserver_engine.core.errors import (
    FileNotFoundOnServer,
    ServerPermissionError,
    ServerValidationError,
)
from mcserver_engine.core.models import FileEntry, Server
from mcserver_engine.core.repository import ServerRepository
from mcserver_engine.provisioning.layout import ServerLayout

logger = logging.getLogger(__name__)

ITEM_TYPES = ("file", "folder")


class ServerFileManager:
    def __init__(
        self,
        repository: ServerRepository,
        layout: ServerLayout,
        protected_paths: Iterable[str] = (),
        clock: Callable[[], float] = time.time,
        allow_aliases: bool = True,
    ):
        self._repo = repository
        self._layout = layout
        self._protected = [p.strip("/") for p in protected_paths if p.strip("/")]
        self._clock = clock
        self._allow_aliases = allow_aliases

    def is_protected(self, path: str) -> bool:
        """Checked on the resolved path, so `a/../world` counts as `world`."""
        normalized = posixpath.normpath("/" + (path or "").strip()).strip("/")
        if not normalized:
            return True
        return any(normalized == p or normalized.startswith(p + "/") for p in self._protected)

    @staticmethod
    def _check_inside(path: str) -> None:
        normalized = posixpath.normpath(path.strip().lstrip("/") or ".")
        if normalized == ".." or normalized.startswith("../"):
            raise ServerValidationError(f"Path '{path}' escapes the server folder")

    def _full_path(self, server: Server, path: str) -> str:
        try:
            return self._layout.path(server, path)
        except ValueError as e:
            raise ServerValidationError(str(e)) from e

    # -------------------------
    # DELETE
    # -------------------------

    def delete(self, identifier: str, owner: str, path: str, item_type: str) -> str:
        """
        Delete a file or folder inside the server's folder.

        Files are copied to `<path>.deleted.<ms>` first, the original is
        deleted, then the copy. If deleting the original fails the copy is
        left in place and the error propagates.
        """
        if not path:
            raise ServerValidationError("path is required")
        self._check_inside(path)

        if self.is_protected(path):
            raise ServerPermissionError("This file or folder is protected and cannot be deleted.")

        if item_type not in ITEM_TYPES:
            raise ServerValidationError(f"Invalid type '{item_type}', expected 'file' or 'folder'")

        server = self._repo.require(owner, identifier, self._allow_aliases)
        storage = self._layout.storage
        full_path = self._full_path(server, path)

        if not storage.exists(full_path):
            raise FileNotFoundOnServer(path)

        if item_type == "folder":
            storage.delete_directory(full_path)
            logger.info(f"[files] {server.unique_id} deleted folder {path}")
            return full_path

        backup_path = f"{full_path}.deleted.{int(self._clock() * 1000)}"
        storage.write(backup_path, storage.read(full_path))

        try:
            storage.delete(full_path)
        except Exception:
            logger.error(f"[files] {server.unique_id} delete of {path} failed, backup kept at {backup_path}")
            raise

        if storage.exists(backup_path):
            storage.delete(backup_path)

        logger.info(f"[files] {server.unique_id} deleted file {path}")
        return full_path

    # -------------------------
    # CREATE / LIST
    # -------------------------

    def create(self, identifier: str, owner: str, path: str, item_type: str, content: Optional[bytes] = None) -> str:
        if not path or not path.strip("/"):
            raise ServerValidationError("path is required")
        if item_type not in ITEM_TYPES:
            raise ServerValidationError(f"Invalid type '{item_type}', expected 'file' or 'folder'")

        server = self._repo.require(owner, identifier, self._allow_aliases)
        storage = self._layout.storage
        full_path = self._full_path(server, path)

        if storage.exists(full_path):
            raise ServerValidationError(f"'{path}' already exists")

        if item_type == "folder":
            storage.create_directory(full_path)
        else:
            storage.write(full_path, content or b"")

        logger.info(f"[files] {server.unique_id} created {item_type} {path}")
        return full_path

    def list(self, identifier: str, owner: str, path: str = "/") -> List[FileEntry]:
        server = self._repo.require(owner, identifier, self._allow_aliases)
        full_path = self._full_path(server, path)
        if not self._layout.storage.exists(full_path):
            raise FileNotFoundOnServer(path)
        return self._layout.storage.list_directory(full_path)
