"""Core domain models for Minecraft servers and their runtime."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from mcserver_engine.core.errors import PartialFailureError


CONTAINER_PREFIX = "mc-"
STACK_PREFIX = "minecraft-"
GAME_PORT = 25565


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ServerType(Enum):
    """Supported server engines."""

    VANILLA = "VANILLA"
    SPIGOT = "SPIGOT"
    PAPER = "PAPER"
    BUKKIT = "BUKKIT"
    PURPUR = "PURPUR"
    FORGE = "FORGE"
    FABRIC = "FABRIC"

    @classmethod
    def parse(cls, value: str) -> "ServerType":
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            supported = ", ".join(t.value for t in cls)
            raise ValueError(f"Unsupported server type '{value}'. Supported: {supported}")

    @property
    def supports_plugins(self) -> bool:
        return self in (ServerType.SPIGOT, ServerType.PAPER, ServerType.BUKKIT, ServerType.PURPUR)

    @property
    def is_paper_family(self) -> bool:
        return self in (ServerType.PAPER, ServerType.PURPUR)


class ContainerState(Enum):
    """Observed container state, normalised from the Docker state string."""

    ABSENT = "absent"
    CREATED = "created"
    RUNNING = "running"
    PAUSED = "paused"
    EXITED = "exited"

    @classmethod
    def from_docker(cls, raw: Optional[str]) -> "ContainerState":
        if not raw:
            return cls.ABSENT
        value = raw.strip().lower()
        if value in ("running", "restarting"):
            return cls.RUNNING
        if value in ("exited", "dead", "removing"):
            return cls.EXITED
        if value == "paused":
            return cls.PAUSED
        if value == "created":
            return cls.CREATED
        return cls.ABSENT


class ProxyType(Enum):
    VELOCITY = "velocity"
    BUNGEECORD = "bungeecord"
    WATERFALL = "waterfall"


class ForwardingMode(Enum):
    LEGACY = "legacy"
    MODERN = "modern"


@dataclass
class ServerConfig:
    """Configuration embedded in a Server Record. Fixed at creation."""

    version: str = "LATEST"
    server_type: ServerType = ServerType.PAPER
    game_mode: str = "survival"
    difficulty: str = "normal"
    max_players: int = 20
    port: Optional[int] = None
    motd: str = "A Minecraft Server"
    memory: str = "2G"
    online_mode: bool = True
    pvp: bool = True
    enable_command_block: bool = False
    view_distance: int = 10
    rcon_enabled: bool = True
    rcon_password: Optional[str] = None
    extra_env: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "server_type": self.server_type.value,
            "game_mode": self.game_mode,
            "difficulty": self.difficulty,
            "max_players": self.max_players,
            "port": self.port,
            "motd": self.motd,
            "memory": self.memory,
            "online_mode": self.online_mode,
            "pvp": self.pvp,
            "enable_command_block": self.enable_command_block,
            "view_distance": self.view_distance,
            "rcon_enabled": self.rcon_enabled,
            "rcon_password": self.rcon_password,
            "extra_env": dict(self.extra_env),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        data = dict(data or {})
        if "server_type" in data:
            data["server_type"] = ServerType.parse(data["server_type"])
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class Server:
    """Server Record - authoritative entity for a provisioned server."""

    # Identity
    unique_id: str
    owner: str
    server_name: str
    subdomain_name: Optional[str] = None

    # Configuration
    server_config: ServerConfig = field(default_factory=ServerConfig)
    environment_id: Optional[int] = None
    port: Optional[int] = None
    rcon_port: Optional[int] = None
    stack_id: Optional[int] = None

    # Cached runtime status
    is_online: bool = False

    # Timestamps
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def container_name(self) -> str:
        return container_name_for(self.unique_id)

    @property
    def stack_name(self) -> str:
        return f"{STACK_PREFIX}{self.unique_id}"

    @property
    def owner_folder(self) -> str:
        return owner_folder_for(self.owner)

    def matches(self, identifier: str) -> bool:
        return identifier in (self.unique_id, self.subdomain_name, self.server_name)


def container_name_for(unique_id: str) -> str:
    return f"{CONTAINER_PREFIX}{unique_id}"


def owner_folder_for(owner: str) -> str:
    """Storage folder for an owner: the local part of the email."""
    return owner.split("@", 1)[0]


@dataclass
class ProxyDefinition:
    """A reverse proxy declared in proxies.yaml."""

    id: str
    name: str
    host: str
    port: int
    config_path: str
    network_name: str
    memory: str = "512M"
    type: ProxyType = ProxyType.VELOCITY

    @property
    def stack_name(self) -> str:
        return f"proxy-{self.id}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProxyDefinition":
        return cls(
            id=str(data["id"]),
            name=data.get("name", data["id"]),
            host=data["host"],
            port=int(data["port"]),
            config_path=data.get("configPath") or data.get("config_path") or "velocity/velocity.toml",
            network_name=data.get("networkName") or data.get("network_name") or "minecraft",
            memory=data.get("memory", "512M"),
            type=ProxyType(data.get("type", "velocity")),
        )


@dataclass
class ServerSpec:
    """Desired server, as requested by an owner."""

    owner: str
    server_name: str
    server_config: ServerConfig = field(default_factory=ServerConfig)
    unique_id: Optional[str] = None
    subdomain_name: Optional[str] = None
    environment_id: Optional[int] = None
    attach_proxy: bool = False
    proxy_id: Optional[str] = None


# -------------------------
# Runtime views
# -------------------------

@dataclass
class Container:
    id: str
    names: List[str]
    state: ContainerState
    status: str = ""
    image: str = ""
    labels: Dict[str, str] = field(default_factory=dict)
    # Host ports published by the container
    ports: List[int] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.names[0].lstrip("/") if self.names else ""


@dataclass
class Stack:
    id: int
    name: str
    environment_id: Optional[int] = None
    status: Optional[int] = None


@dataclass
class FileEntry:
    name: str
    path: str
    type: str  # "file" | "dir"
    size: int = 0
    modified_at: Optional[datetime] = None
    mime_type: Optional[str] = None

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"


# -------------------------
# Operation results
# -------------------------

@dataclass
class StepResult:
    name: str
    ok: bool
    error: Optional[str] = None
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "ok": self.ok, "error": self.error, "detail": self.detail}


@dataclass
class ProvisionResult:
    success: bool
    unique_id: str
    container_id: Optional[str] = None
    stack_id: Optional[int] = None
    deployment_method: str = "stack"
    steps: List[StepResult] = field(default_factory=list)
    error: Optional[str] = None
    server: Optional[Server] = None


@dataclass
class LifecycleResult:
    unique_id: str
    action: str
    container_id: str
    previous_state: ContainerState
    is_online: bool
    message: str
    changed: bool = True


@dataclass
class DeletionReport:
    unique_id: str
    steps: List[StepResult] = field(default_factory=list)

    @property
    def record_removed(self) -> bool:
        return any(s.name == "database_record" and s.ok for s in self.steps)

    @property
    def failed_steps(self) -> List[StepResult]:
        return [s for s in self.steps if not s.ok]

    @property
    def success(self) -> bool:
        return bool(self.steps) and not self.failed_steps

    @property
    def partial(self) -> bool:
        return self.record_removed and bool(self.failed_steps)

    @property
    def details(self) -> Dict[str, str]:
        return {s.name: ("ok" if s.ok else "failed") for s in self.steps}

    def step(self, name: str) -> Optional[StepResult]:
        for s in self.steps:
            if s.name == name:
                return s
        return None

    def raise_for_partial(self) -> None:
        if self.partial:
            raise PartialFailureError(self)


@dataclass
class AttachResult:
    success: bool
    unique_id: str
    proxy_id: str
    details: List[str] = field(default_factory=list)
