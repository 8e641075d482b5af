#mcserver_engine\container.py

"""Dependency injection container - wires all services together."""

from mcserver_engine.config import settings as engine_settings
from mcserver_engine.core.events import LoggingEventEmitter, MultiEventEmitter
from mcserver_engine.core.identity import StaticTokenIdentityProvider
from mcserver_engine.core.locks import ServerLockRegistry
from mcserver_engine.core.retry import RetryPolicy
from mcserver_engine.deletion.files import ServerFileManager
from mcserver_engine.deletion.orchestrator import DeletionOrchestrator
from mcserver_engine.infrastructure.porkbun.client import PorkbunDns
from mcserver_engine.infrastructure.porkbun.config import settings as porkbun_settings
from mcserver_engine.infrastructure.portainer.client import PortainerClient
from mcserver_engine.infrastructure.portainer.config import settings as portainer_settings
from mcserver_engine.infrastructure.postgres.repository import PostgresServerRepository
from mcserver_engine.infrastructure.webdav.client import WebDavStorage
from mcserver_engine.infrastructure.webdav.config import settings as webdav_settings
from mcserver_engine.lifecycle.controller import LifecycleController
from mcserver_engine.provisioning.layout import ServerLayout
from mcserver_engine.provisioning.orchestrator import ProvisioningOrchestrator
from mcserver_engine.provisioning.ports import PortAllocator
from mcserver_engine.proxy.coordinator import ProxyMembershipCoordinator
from mcserver_engine.proxy.registry import ProxyRegistry


# ============================================
# REPOSITORIES
# ============================================

server_repository = PostgresServerRepository()


# ============================================
# EXTERNAL SYSTEMS
# ============================================

container_platform = PortainerClient(
    base_url=portainer_settings.url,
    api_key=portainer_settings.api_key,
    default_environment_id=portainer_settings.env_id,
    timeout=portainer_settings.timeout,
    verify_tls=portainer_settings.verify_tls,
)

file_storage = WebDavStorage(
    base_url=webdav_settings.url,
    username=webdav_settings.username,
    password=webdav_settings.password,
    timeout=webdav_settings.timeout,
)

dns_provider = (
    PorkbunDns(
        api_key=porkbun_settings.api_key,
        secret_key=porkbun_settings.secret_key,
        domain=porkbun_settings.domain,
        target=porkbun_settings.target or None,
        api_url=porkbun_settings.api_url,
        ttl=porkbun_settings.ttl,
        timeout=porkbun_settings.timeout,
    )
    if porkbun_settings.api_key
    else None
)

identity_provider = StaticTokenIdentityProvider.from_entries(engine_settings.api_tokens)


# ============================================
# SHARED POLICY
# ============================================

emitters = MultiEventEmitter([
    LoggingEventEmitter()
])

server_locks = ServerLockRegistry()

start_policy = RetryPolicy(
    max_attempts=engine_settings.container_start_attempts,
    interval_seconds=engine_settings.container_start_interval,
)

files_policy = RetryPolicy(
    max_attempts=engine_settings.files_wait_attempts,
    interval_seconds=engine_settings.files_wait_interval,
)

layout = ServerLayout(file_storage, webdav_settings.server_base_path)

port_allocator = PortAllocator(
    engine_settings.server_port_min,
    engine_settings.server_port_max,
    reserved=engine_settings.important_ports,
)

proxy_registry = ProxyRegistry.from_yaml(
    engine_settings.proxies_file,
    container_platform,
    engine_settings.host_data_root,
)


# ============================================
# SERVICES
# ============================================

proxy_coordinator = ProxyMembershipCoordinator(
    repository=server_repository,
    platform=container_platform,
    layout=layout,
    registry=proxy_registry,
    locks=server_locks,
    start_policy=start_policy,
    files_policy=files_policy,
    forwarding_secret=engine_settings.velocity_forwarding_secret,
    domain=porkbun_settings.domain,
    settle_seconds=engine_settings.proxy_stop_settle_seconds,
    emitter=emitters,
    allow_aliases=engine_settings.allow_legacy_aliases,
)

provisioning_orchestrator = ProvisioningOrchestrator(
    repository=server_repository,
    platform=container_platform,
    layout=layout,
    ports=port_allocator,
    locks=server_locks,
    start_policy=start_policy,
    files_policy=files_policy,
    settings=engine_settings,
    dns=dns_provider,
    proxy_coordinator=proxy_coordinator,
    proxy_registry=proxy_registry,
    emitter=emitters,
)

lifecycle_controller = LifecycleController(
    repository=server_repository,
    platform=container_platform,
    locks=server_locks,
    emitter=emitters,
    allow_aliases=engine_settings.allow_legacy_aliases,
)

deletion_orchestrator = DeletionOrchestrator(
    repository=server_repository,
    platform=container_platform,
    layout=layout,
    locks=server_locks,
    dns=dns_provider,
    delete_server_folders=engine_settings.delete_server_folders,
    emitter=emitters,
    allow_aliases=engine_settings.allow_legacy_aliases,
)

file_manager = ServerFileManager(
    repository=server_repository,
    layout=layout,
    protected_paths=engine_settings.protected_paths,
    allow_aliases=engine_settings.allow_legacy_aliases,
)
