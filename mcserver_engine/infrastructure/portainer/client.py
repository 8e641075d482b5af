# mcserver_engine/infrastructure/portainer/client.py
"""Portainer client implementing the container platform contract."""

import logging
import struct
from typing import Any, Dict, List, Optional

import requests

from mcserver_engine.core.adapters import ContainerPlatform
from mcserver_engine.core.errors import PlatformError, StackNotFound
from mcserver_engine.core.models import Container, ContainerState, Stack

logger = logging.getLogger(__name__)


# Docker answers 304 when the container is already in the requested state.
_OK_STATUSES = {200, 201, 204, 304}


def demux_docker_stream(raw: bytes) -> str:
    """
    Strip Docker's multiplexed stream headers from logs/exec output.

    Each frame is an 8 byte header (stream type, 3 padding bytes, big endian
    length) followed by the payload. Output from TTY containers has no
    headers and is returned as is.
    """
    if len(raw) < 8 or raw[0] not in (0, 1, 2) or raw[1:4] != b"\x00\x00\x00":
        return raw.decode("utf-8", errors="replace")

    chunks = []
    offset = 0
    while offset + 8 <= len(raw):
        size = struct.unpack(">I", raw[offset + 4:offset + 8])[0]
        offset += 8
        chunks.append(raw[offset:offset + size])
        offset += size
    return b"".join(chunks).decode("utf-8", errors="replace")


def calculate_stats(stats: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a Docker stats document to CPU and memory usage."""
    cpu = stats.get("cpu_stats", {})
    precpu = stats.get("precpu_stats", {})

    cpu_delta = cpu.get("cpu_usage", {}).get("total_usage", 0) - precpu.get("cpu_usage", {}).get("total_usage", 0)
    system_delta = cpu.get("system_cpu_usage", 0) - precpu.get("system_cpu_usage", 0)
    online_cpus = cpu.get("online_cpus") or len(cpu.get("cpu_usage", {}).get("percpu_usage") or []) or 1

    cpu_percent = 0.0
    if cpu_delta > 0 and system_delta > 0:
        cpu_percent = (cpu_delta / system_delta) * online_cpus * 100.0

    memory = stats.get("memory_stats", {})
    cache = memory.get("stats", {}).get("cache", 0)
    usage = max(memory.get("usage", 0) - cache, 0)
    limit = memory.get("limit", 0)

    return {
        "cpu_percent": round(cpu_percent, 2),
        "memory_usage_mb": round(usage / (1024 * 1024), 1),
        "memory_limit_mb": round(limit / (1024 * 1024), 1),
        "memory_percent": round((usage / limit) * 100.0, 2) if limit else 0.0,
    }


class PortainerClient(ContainerPlatform):
    """Client for the Portainer API (Docker endpoints proxied per environment)."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        default_environment_id: Optional[int] = None,
        timeout: int = 30,
        verify_tls: bool = True,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            base_url: Portainer URL (e.g., "https://portainer.example.com")
            api_key: access token sent as X-API-Key
            default_environment_id: pinned environment, validated on use
            timeout: request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.default_environment_id = default_environment_id
        self._session = session or requests.Session()
        self._session.headers.update({"X-API-Key": api_key})
        self._session.verify = verify_tls

    # -------------------------
    # HTTP
    # -------------------------

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = self._session.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.error(f"[portainer] {method} {path} failed: {e}")
            raise PlatformError(f"Portainer request failed: {e}", backend="portainer") from e

        if response.status_code not in _OK_STATUSES:
            detail = self._error_detail(response)
            logger.error(f"[portainer] {method} {path} -> {response.status_code}: {detail}")
            raise PlatformError(
                f"Portainer returned {response.status_code}: {detail}",
                backend="portainer",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason or "unknown error"
        if isinstance(body, dict):
            return body.get("message") or body.get("details") or str(body)
        return str(body)

    def _docker(self, environment_id: int, path: str) -> str:
        return f"/api/endpoints/{environment_id}/docker{path}"

    # -------------------------
    # Environments
    # -------------------------

    def list_environments(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/endpoints").json()

    def resolve_environment(self, hint: Optional[int] = None) -> int:
        """Use the hint (or the pinned default) when it exists, else the first environment."""
        environments = self.list_environments()
        if not environments:
            raise PlatformError("No Portainer environments available", backend="portainer")

        ids = [env["Id"] for env in environments]
        for candidate in (hint, self.default_environment_id):
            if candidate is not None and int(candidate) in ids:
                return int(candidate)
            if candidate is not None:
                logger.warning(f"[portainer] environment {candidate} not found, falling back")

        logger.info(f"[portainer] using first environment {ids[0]}")
        return ids[0]

    # -------------------------
    # Containers
    # -------------------------

    def list_containers(self, environment_id: int) -> List[Container]:
        response = self._request(
            "GET",
            self._docker(environment_id, "/containers/json"),
            params={"all": "true"},
        )
        return [
            Container(
                id=item["Id"],
                names=item.get("Names") or [],
                state=ContainerState.from_docker(item.get("State")),
                status=item.get("Status", ""),
                image=item.get("Image", ""),
                labels=item.get("Labels") or {},
                ports=sorted({p["PublicPort"] for p in item.get("Ports") or [] if p.get("PublicPort")}),
            )
            for item in response.json()
        ]

    def find_container_by_name(self, name: str, environment_id: int) -> Optional[Container]:
        for container in self.list_containers(environment_id):
            if name in (n.lstrip("/") for n in container.names):
                return container
        return None

    def _action(self, container_id: str, environment_id: int, action: str, params=None) -> None:
        logger.info(f"[portainer] {action} {container_id[:12]} (env {environment_id})")
        self._request(
            "POST",
            self._docker(environment_id, f"/containers/{container_id}/{action}"),
            params=params,
        )

    def start(self, container_id: str, environment_id: int) -> None:
        self._action(container_id, environment_id, "start")

    def stop(self, container_id: str, environment_id: int, timeout: int = 10) -> None:
        # The HTTP timeout has to outlast Docker's own grace period.
        self._request(
            "POST",
            self._docker(environment_id, f"/containers/{container_id}/stop"),
            params={"t": timeout},
            timeout=self.timeout + timeout,
        )
        logger.info(f"[portainer] stop {container_id[:12]} (t={timeout})")

    def restart(self, container_id: str, environment_id: int, timeout: int = 10) -> None:
        self._request(
            "POST",
            self._docker(environment_id, f"/containers/{container_id}/restart"),
            params={"t": timeout},
            timeout=self.timeout + timeout,
        )
        logger.info(f"[portainer] restart {container_id[:12]} (t={timeout})")

    def pause(self, container_id: str, environment_id: int) -> None:
        self._action(container_id, environment_id, "pause")

    def unpause(self, container_id: str, environment_id: int) -> None:
        self._action(container_id, environment_id, "unpause")

    def kill(self, container_id: str, environment_id: int, signal: str = "SIGKILL") -> None:
        self._action(container_id, environment_id, "kill", params={"signal": signal})

    def remove_container(
        self,
        container_id: str,
        environment_id: int,
        force: bool = True,
        volumes: bool = True,
    ) -> None:
        self._request(
            "DELETE",
            self._docker(environment_id, f"/containers/{container_id}"),
            params={"force": str(force).lower(), "v": str(volumes).lower()},
        )
        logger.info(f"[portainer] removed {container_id[:12]} (force={force}, volumes={volumes})")

    def get_logs(self, container_id: str, environment_id: int, tail: int = 100) -> str:
        response = self._request(
            "GET",
            self._docker(environment_id, f"/containers/{container_id}/logs"),
            params={"stdout": 1, "stderr": 1, "tail": tail},
        )
        return demux_docker_stream(response.content)

    def exec_command(self, container_id: str, command: str, environment_id: int) -> Dict[str, Any]:
        """Send a console command through rcon-cli inside the container."""
        created = self._request(
            "POST",
            self._docker(environment_id, f"/containers/{container_id}/exec"),
            json={
                "AttachStdout": True,
                "AttachStderr": True,
                "Tty": False,
                "Cmd": ["rcon-cli", command],
            },
        ).json()

        response = self._request(
            "POST",
            self._docker(environment_id, f"/exec/{created['Id']}/start"),
            json={"Detach": False, "Tty": False},
        )
        return {"output": demux_docker_stream(response.content).strip()}

    def get_stats(self, container_id: str, environment_id: int) -> Dict[str, Any]:
        response = self._request(
            "GET",
            self._docker(environment_id, f"/containers/{container_id}/stats"),
            params={"stream": "false"},
        )
        return calculate_stats(response.json())

    # -------------------------
    # Stacks
    # -------------------------

    def list_stacks(self) -> List[Stack]:
        return [
            Stack(
                id=item["Id"],
                name=item["Name"],
                environment_id=item.get("EndpointId"),
                status=item.get("Status"),
            )
            for item in self._request("GET", "/api/stacks").json()
        ]

    def create_stack(self, name: str, compose: str, environment_id: int) -> Stack:
        logger.info(f"[portainer] creating stack {name} on env {environment_id}")
        data = self._request(
            "POST",
            "/api/stacks/create/standalone/string",
            params={"endpointId": environment_id},
            json={"name": name, "stackFileContent": compose, "env": []},
        ).json()
        return Stack(id=data["Id"], name=data.get("Name", name), environment_id=environment_id)

    def get_stack_file(self, stack_id: int) -> str:
        data = self._request("GET", f"/api/stacks/{stack_id}/file").json()
        return data.get("StackFileContent", "")

    def update_stack(self, stack_id: int, compose: str, environment_id: int, pull_image: bool = False) -> None:
        self._request(
            "PUT",
            f"/api/stacks/{stack_id}",
            params={"endpointId": environment_id},
            json={"stackFileContent": compose, "env": [], "prune": False, "pullImage": pull_image},
        )
        logger.info(f"[portainer] updated stack {stack_id}")

    def redeploy_stack(self, stack_id: int, environment_id: int) -> None:
        compose = self.get_stack_file(stack_id)
        if not compose:
            raise StackNotFound(str(stack_id))
        self.update_stack(stack_id, compose, environment_id, pull_image=True)

    def delete_stack(self, stack_id: int, environment_id: int) -> None:
        self._request(
            "DELETE",
            f"/api/stacks/{stack_id}",
            params={"endpointId": environment_id, "external": "false"},
        )
        logger.info(f"[portainer] deleted stack {stack_id}")
