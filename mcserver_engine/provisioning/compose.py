# mcserver_engine/provisioning/compose.py
"""Compose documents for server and proxy stacks."""

from typing import Any, Dict, Optional

import yaml

from mcserver_engine.core.models import GAME_PORT, ProxyDefinition, Server, ServerType


SERVER_IMAGE = "itzg/minecraft-server:latest"
PROXY_IMAGE = "itzg/mc-proxy:latest"
PROXY_PORT = 25577

# Extra environment the image needs per engine.
ENGINE_ENV = {
    ServerType.FORGE: {"FORGE_VERSION": "RECOMMENDED"},
    ServerType.FABRIC: {"FABRIC_LOADER_VERSION": "LATEST"},
}


def _flag(value: bool) -> str:
    return "TRUE" if value else "FALSE"


def server_environment(server: Server) -> Dict[str, str]:
    config = server.server_config
    env = {
        "EULA": "TRUE",
        "TYPE": config.server_type.value,
        "VERSION": config.version,
        "MEMORY": config.memory,
        "USE_AIKAR_FLAGS": "TRUE",
        "MOTD": config.motd,
        "MODE": config.game_mode,
        "DIFFICULTY": config.difficulty,
        "MAX_PLAYERS": str(config.max_players),
        "ONLINE_MODE": _flag(config.online_mode),
        "PVP": _flag(config.pvp),
        "ENABLE_COMMAND_BLOCK": _flag(config.enable_command_block),
        "VIEW_DISTANCE": str(config.view_distance),
        "ENABLE_RCON": _flag(config.rcon_enabled),
    }
    if config.rcon_enabled and config.rcon_password:
        env["RCON_PASSWORD"] = config.rcon_password
    env.update(ENGINE_ENV.get(config.server_type, {}))
    env.update(config.extra_env)
    return env


def server_compose(server: Server, host_data_root: str, network: Optional[str] = None) -> str:
    config = server.server_config
    volume = f"{host_data_root.rstrip('/')}/{server.owner_folder}/{server.unique_id}"

    service: Dict[str, Any] = {
        "image": SERVER_IMAGE,
        "container_name": server.container_name,
        "environment": server_environment(server),
        "ports": [f"{server.port}:{GAME_PORT}"],
        "volumes": [f"{volume}:/data"],
        "restart": "unless-stopped",
        "tty": True,
        "stdin_open": True,
        "labels": {
            "minecraft.server.id": server.unique_id,
            "minecraft.server.name": server.server_name,
            "minecraft.server.version": config.version,
            "minecraft.server.type": config.server_type.value,
        },
    }
    document: Dict[str, Any] = {"version": "3.8", "services": {"minecraft": service}}

    if network:
        service["networks"] = [network]
        document["networks"] = {network: {"external": True}}

    return yaml.safe_dump(document, sort_keys=False)


def proxy_compose(proxy: ProxyDefinition, host_data_root: str) -> str:
    config_dir = proxy.config_path.split("/")[0]
    service = {
        "image": PROXY_IMAGE,
        "container_name": proxy.host,
        "environment": {
            "TYPE": proxy.type.value.upper(),
            "MEMORY": proxy.memory,
        },
        "ports": [f"{proxy.port}:{PROXY_PORT}"],
        "volumes": [f"{host_data_root.rstrip('/')}/{config_dir}:/server"],
        "restart": "unless-stopped",
        "networks": [proxy.network_name],
        "labels": {
            "minecraft.proxy.id": proxy.id,
            "minecraft.proxy.type": proxy.type.value,
        },
    }
    document = {
        "version": "3.8",
        "services": {"proxy": service},
        "networks": {proxy.network_name: {"external": True}},
    }
    return yaml.safe_dump(document, sort_keys=False)
