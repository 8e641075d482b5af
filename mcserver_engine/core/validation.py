#mcserver_engine\core\validation.py
import re

from mcserver_engine.core.models import ServerSpec, ServerType
from mcserver_engine.core.errors import ServerValidationError


UNIQUE_ID_RE = re.compile(r"^[a-z0-9][a-z0-9-]{2,31}$")
SUBDOMAIN_RE = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")
MEMORY_RE = re.compile(r"^\d+[MG]$")


def validate_port(port, port_min: int, port_max: int) -> None:
    if port is None:
        raise ServerValidationError("port is required")
    if not isinstance(port, int) or isinstance(port, bool):
        raise ServerValidationError("port must be an integer")
    if not port_min <= port <= port_max:
        raise ServerValidationError(
            f"Port {port} is outside the server port range {port_min}-{port_max}"
        )


def validate_subdomain(subdomain: str, reserved) -> None:
    if not SUBDOMAIN_RE.match(subdomain):
        raise ServerValidationError(
            f"Subdomain '{subdomain}' must be lowercase letters, digits and dashes"
        )
    if subdomain in set(reserved):
        raise ServerValidationError(f"Subdomain '{subdomain}' is reserved")


def validate_server_spec(spec: ServerSpec, settings) -> None:
    # -------------------------
    # Identity
    # -------------------------
    if not spec.owner:
        raise ServerValidationError("owner is required")

    if not spec.server_name or not spec.server_name.strip():
        raise ServerValidationError("server_name is required")

    if not spec.unique_id:
        raise ServerValidationError("unique_id is required")

    if not UNIQUE_ID_RE.match(spec.unique_id):
        raise ServerValidationError(
            f"unique_id '{spec.unique_id}' must be 3-32 lowercase letters, digits or dashes"
        )

    if spec.subdomain_name:
        validate_subdomain(spec.subdomain_name, settings.reserved_subdomains)

    # -------------------------
    # Runtime
    # -------------------------
    config = spec.server_config

    if not isinstance(config.server_type, ServerType):
        raise ServerValidationError(f"Unsupported server type '{config.server_type}'")

    if not config.version:
        raise ServerValidationError("version is required")

    if not MEMORY_RE.match(config.memory or ""):
        raise ServerValidationError(f"memory '{config.memory}' must look like 2G or 512M")

    if not 1 <= config.max_players <= 1000:
        raise ServerValidationError("max_players must be between 1 and 1000")

    validate_port(config.port, settings.server_port_min, settings.server_port_max)

    if config.port in set(settings.important_ports):
        raise ServerValidationError(f"Port {config.port} is reserved")

    # -------------------------
    # Proxy
    # -------------------------
    if spec.proxy_id and not spec.attach_proxy:
        raise ServerValidationError("proxy_id given without attach_proxy")
