# mcserver_engine/proxy/registry.py
"""Declared proxies and the containers that back them."""

import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from mcserver_engine.core.adapters import ContainerPlatform
from mcserver_engine.core.errors import PlatformError, ServerNotFoundError, ServerValidationError
from mcserver_engine.core.models import ContainerState, ProxyDefinition
from mcserver_engine.provisioning.compose import proxy_compose

logger = logging.getLogger(__name__)


def load_definitions(path: str) -> List[ProxyDefinition]:
    """Read `proxies:` from a YAML file. A missing file means no proxies."""
    file = Path(path)
    if not file.exists():
        logger.warning(f"[proxy] {path} not found, no proxies defined")
        return []

    data = yaml.safe_load(file.read_text(encoding="utf-8")) or {}
    try:
        return [ProxyDefinition.from_dict(item) for item in data.get("proxies") or []]
    except (KeyError, TypeError, ValueError) as e:
        raise ServerValidationError(f"Invalid proxy definition in {path}: {e}") from e


class ProxyRegistry:
    """
    Proxies known to the orchestration layer.

    Built from the declared configuration at startup and passed to whoever
    needs it. `ensure_proxies` turns declarations into running stacks.
    """

    def __init__(
        self,
        definitions: List[ProxyDefinition],
        platform: ContainerPlatform,
        host_data_root: str,
        source: Optional[str] = None,
    ):
        self._platform = platform
        self._host_data_root = host_data_root
        self._source = source
        self._definitions: Dict[str, ProxyDefinition] = {}
        self._replace(definitions)

    @classmethod
    def from_yaml(cls, path: str, platform: ContainerPlatform, host_data_root: str) -> "ProxyRegistry":
        return cls(load_definitions(path), platform, host_data_root, source=path)

    def _replace(self, definitions: List[ProxyDefinition]) -> None:
        ids = [d.id for d in definitions]
        duplicates = {i for i in ids if ids.count(i) > 1}
        if duplicates:
            raise ServerValidationError(f"Duplicate proxy ids: {', '.join(sorted(duplicates))}")
        self._definitions = {d.id: d for d in definitions}

    def reload(self) -> List[ProxyDefinition]:
        if self._source:
            self._replace(load_definitions(self._source))
        return self.list()

    # -------------------------
    # Lookup
    # -------------------------

    def list(self) -> List[ProxyDefinition]:
        return list(self._definitions.values())

    def get(self, proxy_id: str) -> ProxyDefinition:
        proxy = self._definitions.get(proxy_id)
        if proxy is None:
            raise ServerValidationError(f"Unknown proxy '{proxy_id}'")
        return proxy

    def default(self) -> ProxyDefinition:
        if not self._definitions:
            raise ServerValidationError("No proxies are defined")
        return next(iter(self._definitions.values()))

    def resolve(self, proxy_id: Optional[str]) -> ProxyDefinition:
        return self.get(proxy_id) if proxy_id else self.default()

    # -------------------------
    # Runtime
    # -------------------------

    def ensure_proxies(self, environment_id: int) -> List[str]:
        """Deploy every declared proxy that has no container. Never removes anything."""
        details = []
        for proxy in self.list():
            container = self._platform.find_container_by_name(proxy.host, environment_id)
            if container is not None:
                details.append(f"Proxy {proxy.id} present ({container.state.value})")
                continue

            if self._platform.find_stack_by_name(proxy.stack_name) is not None:
                details.append(f"Proxy {proxy.id} stack exists without a container")
                continue

            logger.info(f"[proxy] deploying missing proxy {proxy.id} on env {environment_id}")
            stack = self._platform.create_stack(
                proxy.stack_name,
                proxy_compose(proxy, self._host_data_root),
                environment_id,
            )
            details.append(f"Deployed proxy {proxy.id} as stack {stack.id}")
        return details

    def health(self, environment_id: int) -> List[Dict[str, object]]:
        report = []
        for proxy in self.list():
            try:
                state = self._platform.container_state(proxy.host, environment_id)
                error = None
            except (PlatformError, ServerNotFoundError) as e:
                state = ContainerState.ABSENT
                error = str(e)
            report.append({
                "id": proxy.id,
                "name": proxy.name,
                "type": proxy.type.value,
                "port": proxy.port,
                "state": state.value,
                "healthy": state == ContainerState.RUNNING,
                "error": error,
            })
        return report
