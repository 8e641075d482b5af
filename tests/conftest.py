#tests\conftest.py

"""Pytest configuration and fixtures."""

import pytest

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from fakes import BASE_PATH, OWNER, FakeDns, FakePlatform, FakeStorage

from mcserver_engine.config import EngineSettings
from mcserver_engine.core.events import RecordingEventEmitter
from mcserver_engine.core.locks import ServerLockRegistry
from mcserver_engine.core.models import ContainerState, ProxyDefinition, ProxyType, Server, ServerConfig, ServerType
from mcserver_engine.core.retry import RetryPolicy
from mcserver_engine.deletion.files import ServerFileManager
from mcserver_engine.deletion.orchestrator import DeletionOrchestrator
from mcserver_engine.infrastructure.memory.repository import InMemoryServerRepository
from mcserver_engine.infrastructure.postgres.database import get_session_factory, init_db
from mcserver_engine.infrastructure.postgres.repository import PostgresServerRepository
from mcserver_engine.lifecycle.controller import LifecycleController
from mcserver_engine.provisioning.layout import ServerLayout
from mcserver_engine.provisioning.orchestrator import ProvisioningOrchestrator
from mcserver_engine.provisioning.ports import PortAllocator
from mcserver_engine.proxy.coordinator import ProxyMembershipCoordinator
from mcserver_engine.proxy.registry import ProxyRegistry


# ============================================
# Settings / policies
# ============================================

@pytest.fixture
def settings():
    """Engine settings with defaults, independent of the environment."""
    return EngineSettings(proxies_file="does-not-exist.yaml", velocity_forwarding_secret="")


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fast_policy(sleeps):
    """Three attempts, no real waiting."""
    return RetryPolicy(max_attempts=3, interval_seconds=2.0, sleep=sleeps.append)


@pytest.fixture
def locks():
    return ServerLockRegistry()


@pytest.fixture
def emitter():
    return RecordingEventEmitter()


# ============================================
# Repositories
# ============================================

@pytest.fixture
def memory_repository():
    return InMemoryServerRepository()


@pytest.fixture
def sqlite_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def postgres_repository(sqlite_engine):
    """SQLAlchemy repository on an in-memory database."""
    return PostgresServerRepository(session_factory=get_session_factory(sqlite_engine))


@pytest.fixture(params=["memory", "sqlalchemy"])
def any_repository(request):
    """Run a test against both repository implementations."""
    if request.param == "memory":
        return InMemoryServerRepository()
    return request.getfixturevalue("postgres_repository")


@pytest.fixture
def repository(memory_repository):
    return memory_repository


# ============================================
# External systems
# ============================================

@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def dns():
    return FakeDns()


@pytest.fixture
def layout(storage):
    return ServerLayout(storage, BASE_PATH)


# ============================================
# Domain objects
# ============================================

@pytest.fixture
def sample_server():
    return Server(
        unique_id="abc123",
        owner=OWNER,
        server_name="Survival World",
        subdomain_name="survival",
        server_config=ServerConfig(version="1.21.1", server_type=ServerType.PAPER, port=25570),
        environment_id=1,
        port=25570,
        stack_id=None,
        is_online=True,
    )


@pytest.fixture
def running_server(repository, platform, sample_server):
    """Stored record plus a running container mc-abc123."""
    repository.create(sample_server)
    platform.add_container("mc-abc123", ContainerState.RUNNING)
    return sample_server


@pytest.fixture
def velocity_proxy():
    return ProxyDefinition(
        id="main",
        name="Main Velocity",
        host="velocity-proxy",
        port=25565,
        config_path="velocity/velocity.toml",
        network_name="minecraft",
        type=ProxyType.VELOCITY,
    )


# ============================================
# Services
# ============================================

@pytest.fixture
def proxy_registry(velocity_proxy, platform):
    return ProxyRegistry([velocity_proxy], platform, "/mnt/minecraft-servers")


@pytest.fixture
def proxy_coordinator(repository, platform, layout, proxy_registry, locks, fast_policy, emitter):
    return ProxyMembershipCoordinator(
        repository=repository,
        platform=platform,
        layout=layout,
        registry=proxy_registry,
        locks=locks,
        start_policy=fast_policy,
        files_policy=fast_policy,
        domain="example.com",
        settle_seconds=3.0,
        emitter=emitter,
    )


@pytest.fixture
def provisioning(repository, platform, layout, locks, fast_policy, settings, dns, proxy_coordinator, proxy_registry, emitter):
    return ProvisioningOrchestrator(
        repository=repository,
        platform=platform,
        layout=layout,
        ports=PortAllocator(settings.server_port_min, settings.server_port_max, settings.important_ports),
        locks=locks,
        start_policy=fast_policy,
        files_policy=fast_policy,
        settings=settings,
        dns=dns,
        proxy_coordinator=proxy_coordinator,
        proxy_registry=proxy_registry,
        emitter=emitter,
    )


@pytest.fixture
def lifecycle(repository, platform, locks, emitter):
    return LifecycleController(repository, platform, locks, emitter=emitter)


@pytest.fixture
def deletion(repository, platform, layout, locks, dns, emitter):
    return DeletionOrchestrator(repository, platform, layout, locks, dns=dns, emitter=emitter)


@pytest.fixture
def file_manager(repository, layout, settings):
    return ServerFileManager(
        repository,
        layout,
        protected_paths=settings.protected_paths,
        clock=lambda: 1700000000.0,
    )
