# mcserver_engine/proxy/forwarding.py
"""
Text edits that put a backend server behind a proxy.

Backend side: server.properties, spigot.yml, config/paper-global.yml.
Proxy side: velocity.toml ([servers], try, [forced-hosts]) or the
BungeeCord/Waterfall config.yml `servers` map.
"""

import re
from typing import Dict, List, Optional, Tuple

import yaml

from mcserver_engine.core.models import ForwardingMode, ProxyDefinition, ProxyType, ServerType


COMMON_PROPERTIES = {
    "enforce-secure-profile": "false",
    "network-compression-threshold": "256",
    "enable-query": "false",
}


def forwarding_mode_for(proxy: ProxyDefinition, server_type: ServerType, secret: str) -> ForwardingMode:
    """Modern forwarding needs Velocity, a shared secret and a Paper-family backend."""
    if proxy.type == ProxyType.VELOCITY and secret and server_type.is_paper_family:
        return ForwardingMode.MODERN
    return ForwardingMode.LEGACY


# ============================================
# server.properties
# ============================================

def parse_properties(text: str) -> Dict[str, str]:
    properties = {}
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, value = line.split("=", 1)
            properties[key.strip()] = value.strip()
    return properties


def update_properties(text: str, updates: Dict[str, str]) -> str:
    """Replace keys in place, keep comments and order, append new keys."""
    new_lines = []
    written = set()

    for line in text.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#") and "=" in stripped:
            key = stripped.split("=", 1)[0].strip()
            if key in updates:
                new_lines.append(f"{key}={updates[key]}")
                written.add(key)
                continue
        new_lines.append(line)

    for key, value in updates.items():
        if key not in written:
            new_lines.append(f"{key}={value}")

    return "\n".join(new_lines) + "\n"


def forwarding_properties(mode: ForwardingMode, secret: str = "") -> Dict[str, str]:
    if mode == ForwardingMode.MODERN:
        updates = {
            "online-mode": "false",
            "velocity-support": "true",
            "velocity-secret": secret,
        }
    else:
        updates = {
            "online-mode": "false",
            "bungeecord": "true",
            "prevent-proxy-connections": "false",
        }
    updates.update(COMMON_PROPERTIES)
    return updates


# ============================================
# spigot.yml / paper-global.yml
# ============================================

def _load_yaml(text: str) -> dict:
    data = yaml.safe_load(text) if text.strip() else {}
    if not isinstance(data, dict):
        raise ValueError("expected a YAML mapping")
    return data


def update_spigot_yml(text: str) -> str:
    data = _load_yaml(text)
    data.setdefault("settings", {})["bungeecord"] = True
    return yaml.safe_dump(data, sort_keys=False)


def update_paper_global(text: str, mode: ForwardingMode, secret: str = "") -> str:
    data = _load_yaml(text)
    proxies = data.setdefault("proxies", {})
    if mode == ForwardingMode.MODERN:
        velocity = proxies.setdefault("velocity", {})
        velocity["enabled"] = True
        velocity["online-mode"] = True
        velocity["secret"] = secret
    else:
        proxies.setdefault("bungee-cord", {})["online-mode"] = True
    return yaml.safe_dump(data, sort_keys=False)


# ============================================
# velocity.toml
# ============================================

_HEADER_RE = re.compile(r"^\s*\[[^\]]+\]\s*$")
_TRY_RE = re.compile(r"try\s*=\s*\[([\s\S]*?)\]")


def _section(lines: List[str], header: str) -> Optional[Tuple[int, int]]:
    """(header index, end index exclusive) of a TOML table, or None."""
    start = None
    for i, line in enumerate(lines):
        if line.strip() == header:
            start = i
            continue
        if start is not None and _HEADER_RE.match(line):
            return start, i
    if start is None:
        return None
    return start, len(lines)


def _key_pattern(key: str) -> re.Pattern:
    return re.compile(rf'^\s*"?{re.escape(key)}"?\s*=')


def _set_key(lines: List[str], header: str, key: str, entry: str) -> Optional[str]:
    bounds = _section(lines, header)
    if bounds is None:
        return None
    start, end = bounds
    pattern = _key_pattern(key)
    for i in range(start + 1, end):
        if pattern.match(lines[i]):
            lines[i] = entry
            return "updated"
    lines.insert(start + 1, entry)
    return "added"


def add_server_to_velocity(
    text: str,
    name: str,
    address: str,
    hostname: Optional[str] = None,
) -> Tuple[str, List[str]]:
    details = []
    lines = text.splitlines()

    outcome = _set_key(lines, "[servers]", name, f'{name} = "{address}"')
    if outcome is None:
        raise ValueError("Could not find [servers] section in velocity.toml")
    details.append(f"{outcome} {name} = {address} in [servers]")

    if hostname:
        host_outcome = _set_key(lines, "[forced-hosts]", hostname, f'"{hostname}" = ["{name}"]')
        if host_outcome is None:
            details.append("[forced-hosts] section not found, skipping hostname mapping")
        else:
            details.append(f"{host_outcome} forced host {hostname}")

    result = "\n".join(lines) + "\n"

    match = _TRY_RE.search(result)
    if match:
        names = re.findall(r'"([^"]+)"', match.group(1))
        if name not in names:
            names.append(name)
            listed = ", ".join(f'"{n}"' for n in names)
            result = result[:match.start()] + f"try = [{listed}]" + result[match.end():]
            details.append(f"added {name} to try list")

    return result, details


def remove_server_from_velocity(text: str, name: str) -> Tuple[str, List[str]]:
    details = []
    lines = text.splitlines()
    pattern = _key_pattern(name)
    host_ref = f'["{name}"]'

    bounds = _section(lines, "[servers]")
    kept = []
    for i, line in enumerate(lines):
        in_servers = bounds is not None and bounds[0] < i < bounds[1]
        if in_servers and pattern.match(line):
            details.append(f"removed {name} from [servers]")
            continue
        if line.strip().endswith(host_ref) and not _TRY_RE.match(line.strip()):
            details.append(f"removed forced host {line.split('=', 1)[0].strip()}")
            continue
        kept.append(line)

    result = "\n".join(kept) + "\n"
    match = _TRY_RE.search(result)
    if match:
        names = re.findall(r'"([^"]+)"', match.group(1))
        if name in names:
            names.remove(name)
            listed = ", ".join(f'"{n}"' for n in names)
            result = result[:match.start()] + f"try = [{listed}]" + result[match.end():]
            details.append(f"removed {name} from try list")
    return result, details


# ============================================
# BungeeCord / Waterfall config.yml
# ============================================

def add_server_to_bungee(text: str, name: str, address: str, motd: str = "") -> Tuple[str, List[str]]:
    data = _load_yaml(text)
    servers = data.setdefault("servers", {})
    outcome = "updated" if name in servers else "added"
    servers[name] = {"address": address, "motd": motd or name, "restricted": False}

    listeners = data.get("listeners") or []
    for listener in listeners:
        priorities = listener.setdefault("priorities", [])
        if name not in priorities:
            priorities.append(name)

    return yaml.safe_dump(data, sort_keys=False), [f"{outcome} {name} = {address} in servers"]


def remove_server_from_bungee(text: str, name: str) -> Tuple[str, List[str]]:
    data = _load_yaml(text)
    details = []
    if data.get("servers", {}).pop(name, None) is not None:
        details.append(f"removed {name} from servers")
    for listener in data.get("listeners") or []:
        if name in listener.get("priorities", []):
            listener["priorities"].remove(name)
    return yaml.safe_dump(data, sort_keys=False), details
