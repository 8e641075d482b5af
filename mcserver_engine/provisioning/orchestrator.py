# mcserver_engine/provisioning/orchestrator.py
"""Provisioning orchestrator - turns a server request into a running container."""

import logging
from typing import Any, Callable, List, Optional, Set
from uuid import uuid4

from mcserver_engine.core.adapters import ContainerPlatform, DnsProvider
from mcserver_engine.core.errors import (
    PlatformError,
    ServerAlreadyExists,
    ServerEngineError,
    ServerValidationError,
)
from mcserver_engine.core.events import EventEmitter, NullEventEmitter
from mcserver_engine.core.events_model import ServerEvent
from mcserver_engine.core.locks import ServerLockRegistry
from mcserver_engine.core.models import (
    Container,
    ContainerState,
    ProvisionResult,
    Server,
    ServerSpec,
    Stack,
    StepResult,
)
from mcserver_engine.core.repository import ServerRepository
from mcserver_engine.core.retry import RetryPolicy
from mcserver_engine.core.validation import validate_server_spec
from mcserver_engine.provisioning.compose import server_compose
from mcserver_engine.provisioning.layout import READY_MARKER, ServerLayout
from mcserver_engine.provisioning.ports import PortAllocator

logger = logging.getLogger(__name__)


def generate_unique_id() -> str:
    return uuid4().hex[:12]


class ProvisioningOrchestrator:
    """
    Flow:
    1. Resolve the container platform environment
    2. Create the server's folders on the file storage
    3. Deploy the stack (container mc-<uniqueId>)
    4. Wait for the container to run
    5. Wait for the server to write its files
    6. Optionally inject proxy forwarding and restart
    7. Persist the Server Record
    8. Create the DNS record (best effort)

    Any failure before step 7 rolls back the stack and folders; no record
    is left behind.
    """

    def __init__(
        self,
        repository: ServerRepository,
        platform: ContainerPlatform,
        layout: ServerLayout,
        ports: PortAllocator,
        locks: ServerLockRegistry,
        start_policy: RetryPolicy,
        files_policy: RetryPolicy,
        settings,
        dns: Optional[DnsProvider] = None,
        proxy_coordinator=None,
        proxy_registry=None,
        emitter: Optional[EventEmitter] = None,
    ):
        self._repo = repository
        self._platform = platform
        self._layout = layout
        self._ports = ports
        self._locks = locks
        self._start_policy = start_policy
        self._files_policy = files_policy
        self._settings = settings
        self._dns = dns
        self._proxy_coordinator = proxy_coordinator
        self._proxy_registry = proxy_registry
        self._emitter = emitter or NullEventEmitter()

    # -------------------------
    # PROVISION
    # -------------------------

    def provision(self, spec: ServerSpec) -> ProvisionResult:
        """
        Validation problems raise ServerValidationError before anything is
        touched. Failures after that come back as a failed ProvisionResult.

        The port stays reserved in the allocator until the record is
        persisted or the provision has been rolled back.
        """
        spec.unique_id = spec.unique_id or generate_unique_id()
        config = spec.server_config
        preferred = config.port
        port = self._ports.reserve(self._repo.used_ports(), preferred=preferred)

        try:
            config.port = port
            validate_server_spec(spec, self._settings)

            if self._repo.get(spec.unique_id) is not None:
                raise ServerAlreadyExists(f"Server {spec.unique_id} already exists")
            if spec.subdomain_name and self._repo.subdomain_taken(spec.subdomain_name):
                raise ServerValidationError(f"Subdomain '{spec.subdomain_name}' is already taken")

            proxy = None
            if spec.attach_proxy:
                if self._proxy_coordinator is None or self._proxy_registry is None:
                    raise ServerValidationError("Proxy integration is not configured")
                proxy = self._proxy_registry.resolve(spec.proxy_id)

            published = self._published_ports(spec.environment_id)
            if port in published:
                self._ports.release(port)
                port = None
                port = self._ports.reserve(self._repo.used_ports() | published, preferred=preferred)
                config.port = port

            server = Server(
                unique_id=spec.unique_id,
                owner=spec.owner,
                server_name=spec.server_name.strip(),
                subdomain_name=spec.subdomain_name,
                server_config=config,
                port=config.port,
                is_online=False,
            )

            with self._locks.hold(server.unique_id, "provision"):
                return self._provision(server, spec, proxy)
        finally:
            self._ports.release(port)

    def _provision(self, server: Server, spec: ServerSpec, proxy) -> ProvisionResult:
        logger.info(f"[provision] starting {server.unique_id} ({server.server_config.server_type.value} {server.server_config.version}) on port {server.port}")

        steps: List[StepResult] = []
        stack: Optional[Stack] = None
        environment_id: Optional[int] = None
        layout_created = False

        try:
            environment_id = self._step(steps, "resolve_environment",
                                        lambda: self._platform.resolve_environment(spec.environment_id))
            server.environment_id = environment_id

            self._step(steps, "create_layout", lambda: self._layout.create(server.owner, server.unique_id))
            layout_created = True

            network = proxy.network_name if proxy else None
            compose = server_compose(server, self._settings.host_data_root, network)
            stack = self._step(steps, "deploy_stack",
                               lambda: self._platform.create_stack(server.stack_name, compose, environment_id))
            server.stack_id = stack.id

            container = self._step(steps, "wait_running", lambda: self._start_policy.wait_until(
                lambda: self._running_container(server, environment_id),
                waiting_for="waiting for container to start",
                message=f"Container '{server.container_name}' did not reach running in time",
            ))

            self._step(steps, "wait_files", lambda: self._files_policy.wait_until(
                lambda: self._layout.files_ready(server),
                waiting_for="waiting for server files",
                message=f"Timed out waiting for server files ({READY_MARKER}) of '{server.unique_id}'",
            ))

            if proxy is not None:
                self._step(steps, "configure_proxy", lambda: self._proxy_coordinator.inject(server, proxy))
                self._step(steps, "restart",
                           lambda: self._platform.restart(container.id, environment_id))

            self._step(steps, "persist_record", lambda: self._repo.create(server))

        except ServerEngineError as e:
            failed_step = steps[-1].name if steps else "unknown"
            steps.extend(self._rollback(server, stack, environment_id, layout_created))
            self._emitter.emit([ServerEvent.provision_failed(server.unique_id, server.owner, failed_step, str(e))])
            logger.error(f"[provision] {server.unique_id} failed at {failed_step}: {e}")
            return ProvisionResult(
                success=False,
                unique_id=server.unique_id,
                stack_id=stack.id if stack else None,
                steps=steps,
                error=str(e),
            )
        except Exception:
            self._rollback(server, stack, environment_id, layout_created)
            raise

        steps.append(self._create_dns(server))

        self._emitter.emit([ServerEvent.provisioned(server, stack.id)])
        logger.info(f"[provision] {server.unique_id} ready as {server.container_name}")

        return ProvisionResult(
            success=True,
            unique_id=server.unique_id,
            container_id=container.id,
            stack_id=stack.id,
            deployment_method="stack",
            steps=steps,
            server=server,
        )

    # -------------------------
    # HELPERS
    # -------------------------

    @staticmethod
    def _step(steps: List[StepResult], name: str, action: Callable[[], Any]):
        try:
            result = action()
        except ServerEngineError as e:
            steps.append(StepResult(name=name, ok=False, error=str(e)))
            raise
        steps.append(StepResult(name=name, ok=True))
        return result

    def _published_ports(self, environment_hint: Optional[int]) -> Set[int]:
        """Host ports already bound by containers on the target environment."""
        try:
            environment_id = self._platform.resolve_environment(environment_hint)
            containers = self._platform.list_containers(environment_id)
        except PlatformError as e:
            # The resolve_environment step reports the outage.
            logger.warning(f"[provision] could not list containers for port check: {e}")
            return set()
        return {port for container in containers for port in container.ports}

    def _running_container(self, server: Server, environment_id: int) -> Optional[Container]:
        container = self._platform.find_container_by_name(server.container_name, environment_id)
        if container is not None and container.state == ContainerState.RUNNING:
            return container
        return None

    def _create_dns(self, server: Server) -> StepResult:
        if not server.subdomain_name or self._dns is None:
            return StepResult(name="dns", ok=True, detail="no subdomain")
        try:
            self._dns.create_record(server.subdomain_name, server.owner, server.port)
            return StepResult(name="dns", ok=True)
        except PlatformError as e:
            logger.warning(f"[provision] DNS record for {server.subdomain_name} not created: {e}")
            return StepResult(name="dns", ok=False, error=str(e))

    def _rollback(
        self,
        server: Server,
        stack: Optional[Stack],
        environment_id: Optional[int],
        layout_created: bool,
    ) -> List[StepResult]:
        results = []

        if stack is not None and environment_id is not None:
            try:
                self._platform.delete_stack(stack.id, environment_id)
                results.append(StepResult(name="rollback_stack", ok=True))
            except ServerEngineError as e:
                logger.error(f"[provision] rollback: stack {stack.id} not deleted: {e}")
                results.append(StepResult(name="rollback_stack", ok=False, error=str(e)))

            try:
                leftover = self._platform.find_container_by_name(server.container_name, environment_id)
                if leftover is not None:
                    self._platform.remove_container(leftover.id, environment_id, force=True, volumes=True)
                results.append(StepResult(name="rollback_container", ok=True))
            except ServerEngineError as e:
                logger.error(f"[provision] rollback: container {server.container_name} not removed: {e}")
                results.append(StepResult(name="rollback_container", ok=False, error=str(e)))

        if layout_created:
            try:
                self._layout.storage.delete_directory(self._layout.root(server.owner, server.unique_id))
                results.append(StepResult(name="rollback_files", ok=True))
            except ServerEngineError as e:
                logger.error(f"[provision] rollback: folder of {server.unique_id} not removed: {e}")
                results.append(StepResult(name="rollback_files", ok=False, error=str(e)))

        return results
