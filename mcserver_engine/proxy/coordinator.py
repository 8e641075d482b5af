# mcserver_engine/proxy/coordinator.py
"""Proxy membership - put an existing server behind a proxy."""

import logging
from typing import List, Optional

import yaml

from mcserver_engine.core.adapters import ContainerPlatform
from mcserver_engine.core.errors import (
    ContainerNotFound,
    PlatformError,
    ProxyConfigurationError,
    ServerNotFoundError,
)
from mcserver_engine.core.events import EventEmitter, NullEventEmitter
from mcserver_engine.core.events_model import ServerEvent
from mcserver_engine.core.locks import ServerLockRegistry
from mcserver_engine.core.models import (
    GAME_PORT,
    AttachResult,
    ContainerState,
    ForwardingMode,
    ProxyDefinition,
    ProxyType,
    Server,
)
from mcserver_engine.core.repository import ServerRepository
from mcserver_engine.core.retry import RetryPolicy
from mcserver_engine.provisioning.layout import READY_MARKER, ServerLayout
from mcserver_engine.proxy import forwarding
from mcserver_engine.proxy.registry import ProxyRegistry

logger = logging.getLogger(__name__)


class ProxyMembershipCoordinator:
    """
    Flow:
    1. Resolve the server's container, start it if it is down
    2. Wait for its config files on the file storage
    3. Stop it (only if running)
    4. Write forwarding settings and register it with the proxy
    5. Start it again
    """

    def __init__(
        self,
        repository: ServerRepository,
        platform: ContainerPlatform,
        layout: ServerLayout,
        registry: ProxyRegistry,
        locks: ServerLockRegistry,
        start_policy: RetryPolicy,
        files_policy: RetryPolicy,
        forwarding_secret: str = "",
        domain: Optional[str] = None,
        settle_seconds: float = 3.0,
        emitter: Optional[EventEmitter] = None,
        allow_aliases: bool = True,
    ):
        self._repo = repository
        self._platform = platform
        self._layout = layout
        self._registry = registry
        self._locks = locks
        self._start_policy = start_policy
        self._files_policy = files_policy
        self._secret = forwarding_secret
        self._domain = domain
        self._settle_seconds = settle_seconds
        self._emitter = emitter or NullEventEmitter()
        self._allow_aliases = allow_aliases

    # -------------------------
    # ATTACH
    # -------------------------

    def attach_to_proxy(self, identifier: str, owner: str, proxy_id: Optional[str] = None) -> AttachResult:
        server = self._repo.require(owner, identifier, self._allow_aliases)
        proxy = self._registry.resolve(proxy_id)

        with self._locks.hold(server.unique_id, "attach_proxy"):
            details: List[str] = []
            environment_id = self._platform.resolve_environment(server.environment_id)

            details.extend(self._registry.ensure_proxies(environment_id))

            container = self._ensure_running(server, environment_id, details)
            self.wait_for_files(server)
            details.append("Server files present")

            if self._platform.container_state(server.container_name, environment_id) in (
                ContainerState.RUNNING,
                ContainerState.PAUSED,
            ):
                self._platform.stop(container.id, environment_id)
                self._start_policy.pause(self._settle_seconds)
                details.append(f"Stopped {server.container_name} for configuration")

            details.extend(self.inject(server, proxy))

            try:
                self._platform.start(container.id, environment_id)
            except PlatformError as e:
                raise PlatformError(
                    f"Failed to restart container '{server.container_name}': {e}",
                    backend=e.backend,
                    status_code=e.status_code,
                ) from e
            details.append(f"Started {server.container_name}")

            self._repo.update_fields(server.unique_id, is_online=True)
            self._emitter.emit([ServerEvent.proxy_attached(server, proxy.id)])

            logger.info(f"[proxy] {server.unique_id} attached to {proxy.id}")
            return AttachResult(success=True, unique_id=server.unique_id, proxy_id=proxy.id, details=details)

    def _ensure_running(self, server: Server, environment_id: int, details: List[str]):
        name = server.container_name
        container = self._platform.find_container_by_name(name, environment_id)
        if container is None:
            raise ContainerNotFound(name)

        if container.state in (ContainerState.CREATED, ContainerState.EXITED):
            logger.info(f"[proxy] {name} is {container.state.value}, starting before configuration")
            self._platform.start(container.id, environment_id)
            self._start_policy.wait_until(
                lambda: self._platform.container_state(name, environment_id) == ContainerState.RUNNING,
                waiting_for="waiting for container to start",
                message=f"Container '{name}' did not start in time",
            )
            details.append(f"Started {name}")
        return container

    def wait_for_files(self, server: Server) -> None:
        self._files_policy.wait_until(
            lambda: self._layout.files_ready(server),
            waiting_for="waiting for server files",
            message=f"Timed out waiting for server files ({READY_MARKER}) of '{server.unique_id}'",
        )

    # -------------------------
    # CONFIGURATION
    # -------------------------

    def inject(self, server: Server, proxy: ProxyDefinition) -> List[str]:
        """Write forwarding settings into the server and register it with the proxy."""
        try:
            details = self._configure_backend(server, proxy)
            details.extend(self._register(server, proxy))
            return details
        except (PlatformError, ServerNotFoundError, ValueError, yaml.YAMLError) as e:
            logger.error(f"[proxy] configuration of {server.unique_id} failed: {e}")
            raise ProxyConfigurationError(f"Failed to write proxy configuration: {e}") from e

    def _configure_backend(self, server: Server, proxy: ProxyDefinition) -> List[str]:
        storage = self._layout.storage
        server_type = server.server_config.server_type
        mode = forwarding.forwarding_mode_for(proxy, server_type, self._secret)
        details = [f"Forwarding mode: {mode.value}"]

        properties_path = self._layout.path(server, "server.properties")
        text = storage.read_text(properties_path)
        storage.write_text(
            properties_path,
            forwarding.update_properties(text, forwarding.forwarding_properties(mode, self._secret)),
        )
        details.append("Updated server.properties")

        spigot_path = self._layout.path(server, "spigot.yml")
        if mode == ForwardingMode.LEGACY and storage.exists(spigot_path):
            storage.write_text(spigot_path, forwarding.update_spigot_yml(storage.read_text(spigot_path)))
            details.append("Enabled bungeecord in spigot.yml")

        paper_path = self._layout.path(server, "config/paper-global.yml")
        if server_type.is_paper_family and storage.exists(paper_path):
            storage.write_text(
                paper_path,
                forwarding.update_paper_global(storage.read_text(paper_path), mode, self._secret),
            )
            details.append("Updated config/paper-global.yml")

        return details

    def _proxy_config_path(self, proxy: ProxyDefinition) -> str:
        return f"{self._layout.base_path}/{proxy.config_path.lstrip('/')}"

    def _hostname(self, server: Server) -> Optional[str]:
        if server.subdomain_name and self._domain:
            return f"{server.subdomain_name}.{self._domain}"
        return None

    def _register(self, server: Server, proxy: ProxyDefinition) -> List[str]:
        storage = self._layout.storage
        path = self._proxy_config_path(proxy)
        if not storage.exists(path):
            return [f"Proxy config {proxy.config_path} not found, registration skipped"]

        address = f"{server.container_name}:{GAME_PORT}"
        text = storage.read_text(path)
        if proxy.type == ProxyType.VELOCITY:
            updated, details = forwarding.add_server_to_velocity(
                text, server.unique_id, address, self._hostname(server)
            )
        else:
            updated, details = forwarding.add_server_to_bungee(
                text, server.unique_id, address, server.server_config.motd
            )
        storage.write_text(path, updated)
        return details

    # -------------------------
    # DETACH
    # -------------------------

    def detach_from_proxy(self, identifier: str, owner: str, proxy_id: Optional[str] = None) -> AttachResult:
        server = self._repo.require(owner, identifier, self._allow_aliases)
        proxy = self._registry.resolve(proxy_id)

        with self._locks.hold(server.unique_id, "detach_proxy"):
            details = self.unregister(server, proxy)
            return AttachResult(success=True, unique_id=server.unique_id, proxy_id=proxy.id, details=details)

    def unregister(self, server: Server, proxy: ProxyDefinition) -> List[str]:
        storage = self._layout.storage
        path = self._proxy_config_path(proxy)
        if not storage.exists(path):
            return [f"Proxy config {proxy.config_path} not found"]

        text = storage.read_text(path)
        if proxy.type == ProxyType.VELOCITY:
            updated, details = forwarding.remove_server_from_velocity(text, server.unique_id)
        else:
            updated, details = forwarding.remove_server_from_bungee(text, server.unique_id)
        storage.write_text(path, updated)
        return details
