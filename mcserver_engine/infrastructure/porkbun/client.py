# mcserver_engine/infrastructure/porkbun/client.py
"""Porkbun DNS client implementing the DNS provider contract."""

import logging
from typing import Any, Dict, List, Optional

import requests

from mcserver_engine.core.adapters import DnsProvider
from mcserver_engine.core.errors import PlatformError
from mcserver_engine.core.models import GAME_PORT

logger = logging.getLogger(__name__)


def srv_name(subdomain: str) -> str:
    return f"_minecraft._tcp.{subdomain}"


class PorkbunDns(DnsProvider):
    """
    Minecraft SRV records under one domain.

    `_minecraft._tcp.<subdomain>.<domain>` -> `0 <port> <target>.`
    """

    def __init__(
        self,
        api_key: str,
        secret_key: str,
        domain: str,
        target: Optional[str] = None,
        api_url: str = "https://api.porkbun.com/api/json/v3",
        ttl: int = 600,
        timeout: int = 15,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip('/')
        self.domain = domain
        self.target = target or domain
        self.ttl = ttl
        self.timeout = timeout
        self._credentials = {"apikey": api_key, "secretapikey": secret_key}
        self._session = session or requests.Session()

    def _post(self, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body = dict(self._credentials)
        body.update(payload or {})
        try:
            response = self._session.post(f"{self.api_url}{path}", json=body, timeout=self.timeout)
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[porkbun] {path} failed: {e}")
            raise PlatformError(f"Porkbun request failed: {e}", backend="dns") from e

        if response.status_code != 200 or data.get("status") != "SUCCESS":
            message = data.get("message") or f"HTTP {response.status_code}"
            logger.error(f"[porkbun] {path} -> {message}")
            raise PlatformError(
                f"Porkbun error: {message}",
                backend="dns",
                status_code=response.status_code,
            )
        return data

    def list_records(self) -> List[Dict[str, Any]]:
        return self._post(f"/dns/retrieve/{self.domain}").get("records", [])

    def create_record(self, subdomain: str, owner: str, port: Optional[int] = None) -> None:
        port = port or GAME_PORT
        self._post(f"/dns/create/{self.domain}", {
            "name": srv_name(subdomain),
            "type": "SRV",
            "content": f"{port} {self.target}.",
            "prio": "0",
            "ttl": str(self.ttl),
            "notes": f"minecraft server of {owner}",
        })
        logger.info(f"[porkbun] created SRV for {subdomain}.{self.domain} -> {self.target}:{port}")

    def delete_record(self, subdomain: str, owner: str) -> None:
        """Delete every record whose name is the subdomain or its SRV name."""
        names = {
            f"{subdomain}.{self.domain}",
            f"{srv_name(subdomain)}.{self.domain}",
        }
        matching = [r for r in self.list_records() if r.get("name") in names]
        if not matching:
            logger.info(f"[porkbun] no records for {subdomain}.{self.domain}")
            return

        for record in matching:
            self._post(f"/dns/delete/{self.domain}/{record['id']}")
            logger.info(f"[porkbun] deleted {record.get('type')} {record.get('name')} for {owner}")
