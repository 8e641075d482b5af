# mcserver_engine/infrastructure/webdav/client.py
"""WebDAV client implementing the file storage contract."""

import logging
import posixpath
from email.utils import parsedate_to_datetime
from typing import List, Optional
from urllib.parse import quote, unquote, urlparse
from xml.etree import ElementTree

import requests

from mcserver_engine.core.adapters import FileStorage
from mcserver_engine.core.errors import FileNotFoundOnServer, PlatformError
from mcserver_engine.core.models import FileEntry

logger = logging.getLogger(__name__)

DAV = "{DAV:}"

PROPFIND_BODY = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<d:propfind xmlns:d="DAV:"><d:prop>'
    "<d:resourcetype/><d:getcontentlength/><d:getlastmodified/><d:getcontenttype/>"
    "</d:prop></d:propfind>"
)


def parse_multistatus(xml_body: bytes, base_url_path: str = "") -> List[FileEntry]:
    """Turn a PROPFIND multistatus document into FileEntry objects."""
    entries = []
    root = ElementTree.fromstring(xml_body)

    for response in root.findall(f"{DAV}response"):
        href = unquote(response.findtext(f"{DAV}href", default=""))
        path = urlparse(href).path
        if base_url_path and path.startswith(base_url_path):
            path = path[len(base_url_path):] or "/"

        prop = response.find(f"{DAV}propstat/{DAV}prop")
        if prop is None:
            continue

        is_dir = prop.find(f"{DAV}resourcetype/{DAV}collection") is not None
        size = prop.findtext(f"{DAV}getcontentlength") or "0"
        modified = prop.findtext(f"{DAV}getlastmodified")

        entries.append(FileEntry(
            name=posixpath.basename(path.rstrip("/")),
            path=path.rstrip("/") or "/",
            type="dir" if is_dir else "file",
            size=int(size) if size.isdigit() else 0,
            modified_at=parsedate_to_datetime(modified) if modified else None,
            mime_type=None if is_dir else prop.findtext(f"{DAV}getcontenttype"),
        ))
    return entries


class WebDavStorage(FileStorage):
    """Client for a WebDAV file server."""

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._url_path = urlparse(self.base_url).path
        self._session = session or requests.Session()
        if username and password:
            self._session.auth = (username, password)

    # -------------------------
    # HTTP
    # -------------------------

    def _url(self, path: str) -> str:
        return f"{self.base_url}{quote('/' + path.lstrip('/'))}"

    def _request(self, method: str, path: str, ok=(200, 201, 204, 207), **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = self._session.request(method, self._url(path), **kwargs)
        except requests.RequestException as e:
            logger.error(f"[webdav] {method} {path} failed: {e}")
            raise PlatformError(f"WebDAV request failed: {e}", backend="webdav") from e

        if response.status_code == 404:
            raise FileNotFoundOnServer(path)
        if response.status_code not in ok:
            logger.error(f"[webdav] {method} {path} -> {response.status_code}")
            raise PlatformError(
                f"WebDAV {method} {path} returned {response.status_code}",
                backend="webdav",
                status_code=response.status_code,
            )
        return response

    # -------------------------
    # Contract
    # -------------------------

    def exists(self, path: str) -> bool:
        try:
            self._request("PROPFIND", path, headers={"Depth": "0"}, data=PROPFIND_BODY)
            return True
        except FileNotFoundOnServer:
            return False

    def read(self, path: str) -> bytes:
        return self._request("GET", path, ok=(200,)).content

    def write(self, path: str, data: bytes) -> None:
        try:
            self._request("PUT", path, data=data)
        except PlatformError as e:
            # Some servers refuse to overwrite; replace the file instead.
            if e.status_code != 409:
                raise
            logger.info(f"[webdav] {path} exists, replacing")
            self.delete(path)
            self._request("PUT", path, data=data)

    def delete(self, path: str) -> None:
        self._request("DELETE", path)
        logger.debug(f"[webdav] deleted {path}")

    def delete_directory(self, path: str) -> None:
        self._request("DELETE", path.rstrip("/") + "/")
        logger.info(f"[webdav] deleted directory {path}")

    def list_directory(self, path: str) -> List[FileEntry]:
        response = self._request("PROPFIND", path, headers={"Depth": "1"}, data=PROPFIND_BODY)
        own = "/" + path.strip("/")
        return [
            entry for entry in parse_multistatus(response.content, self._url_path)
            if entry.path.rstrip("/") != own.rstrip("/")
        ]

    def create_directory(self, path: str) -> None:
        current = ""
        for part in [p for p in path.split("/") if p]:
            current = f"{current}/{part}"
            # 405 means the collection is already there.
            self._request("MKCOL", current, ok=(200, 201, 405))

    def move(self, source: str, destination: str) -> None:
        self._request(
            "MOVE",
            source,
            headers={"Destination": self._url(destination), "Overwrite": "F"},
        )
        logger.info(f"[webdav] moved {source} -> {destination}")
