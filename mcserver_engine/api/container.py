#mcserver_engine\api\container.py
from mcserver_engine.container import (
    container_platform,
    deletion_orchestrator,
    file_manager,
    identity_provider,
    lifecycle_controller,
    provisioning_orchestrator,
    proxy_coordinator,
    proxy_registry,
    server_repository,
)


def get_repository():
    return server_repository


def get_provisioning_orchestrator():
    return provisioning_orchestrator


def get_lifecycle_controller():
    return lifecycle_controller


def get_deletion_orchestrator():
    return deletion_orchestrator


def get_file_manager():
    return file_manager


def get_proxy_coordinator():
    return proxy_coordinator


def get_proxy_registry():
    return proxy_registry


def get_container_platform():
    return container_platform


def get_identity_provider():
    return identity_provider
