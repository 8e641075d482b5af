#tests\test_proxy.py

"""Test proxy forwarding edits, the proxy registry and attach."""

import pytest
import yaml

from fakes import OWNER, SERVER_ROOT, VELOCITY_TOML

from mcserver_engine.core.errors import (
    ContainerNotFound,
    PlatformError,
    ProxyConfigurationError,
    ServerValidationError,
    WaitTimeoutError,
)
from mcserver_engine.core.models import ContainerState, ForwardingMode, ProxyDefinition, ProxyType, ServerType
from mcserver_engine.proxy import forwarding
from mcserver_engine.proxy.registry import ProxyRegistry, load_definitions

VELOCITY_PATH = "/minecraft-servers/velocity/velocity.toml"


class TestForwardingEdits:
    """Test text edits on backend and proxy files."""

    def test_mode_selection(self, velocity_proxy):
        bungee = ProxyDefinition("b", "b", "bungee", 25565, "bungee/config.yml", "minecraft", type=ProxyType.BUNGEECORD)

        assert forwarding.forwarding_mode_for(velocity_proxy, ServerType.PAPER, "s3cret") == ForwardingMode.MODERN
        assert forwarding.forwarding_mode_for(velocity_proxy, ServerType.PAPER, "") == ForwardingMode.LEGACY
        assert forwarding.forwarding_mode_for(velocity_proxy, ServerType.SPIGOT, "s3cret") == ForwardingMode.LEGACY
        assert forwarding.forwarding_mode_for(bungee, ServerType.PAPER, "s3cret") == ForwardingMode.LEGACY

    def test_legacy_properties(self):
        text = "# Minecraft server properties\nonline-mode=true\nmotd=Hello\n"

        updated = forwarding.update_properties(text, forwarding.forwarding_properties(ForwardingMode.LEGACY))
        props = forwarding.parse_properties(updated)

        assert updated.startswith("# Minecraft server properties\n")
        assert props["online-mode"] == "false"
        assert props["bungeecord"] == "true"
        assert props["prevent-proxy-connections"] == "false"
        assert props["enforce-secure-profile"] == "false"
        assert props["network-compression-threshold"] == "256"
        assert props["motd"] == "Hello"

    def test_modern_properties(self):
        props = forwarding.forwarding_properties(ForwardingMode.MODERN, "s3cret")

        assert props["velocity-support"] == "true"
        assert props["velocity-secret"] == "s3cret"
        assert "bungeecord" not in props

    def test_spigot_and_paper_yaml(self):
        spigot = yaml.safe_load(forwarding.update_spigot_yml("settings:\n  debug: false\n"))
        assert spigot["settings"] == {"debug": False, "bungeecord": True}

        paper = yaml.safe_load(forwarding.update_paper_global("", ForwardingMode.MODERN, "s3cret"))
        assert paper["proxies"]["velocity"] == {"enabled": True, "online-mode": True, "secret": "s3cret"}

        legacy = yaml.safe_load(forwarding.update_paper_global("proxies: {}\n", ForwardingMode.LEGACY))
        assert legacy["proxies"]["bungee-cord"]["online-mode"] is True

    def test_add_to_velocity(self):
        text, details = forwarding.add_server_to_velocity(
            VELOCITY_TOML, "abc123", "mc-abc123:25565", "survival.example.com"
        )

        assert 'abc123 = "mc-abc123:25565"' in text
        assert 'try = ["lobby", "abc123"]' in text
        assert '"survival.example.com" = ["abc123"]' in text
        assert 'lobby = "lobby:25565"' in text
        assert any("try list" in d for d in details)

    def test_add_to_velocity_is_idempotent(self):
        once, _ = forwarding.add_server_to_velocity(VELOCITY_TOML, "abc123", "mc-abc123:25565")
        twice, details = forwarding.add_server_to_velocity(once, "abc123", "mc-abc123:25565")

        assert twice.count("abc123 = ") == 1
        assert twice.count('"abc123"') == 1
        assert details[0].startswith("updated")

    def test_add_to_velocity_without_servers_section(self):
        with pytest.raises(ValueError):
            forwarding.add_server_to_velocity('bind = "0.0.0.0:25577"\n', "abc123", "mc-abc123:25565")

    def test_remove_from_velocity(self):
        added, _ = forwarding.add_server_to_velocity(
            VELOCITY_TOML, "abc123", "mc-abc123:25565", "survival.example.com"
        )

        removed, details = forwarding.remove_server_from_velocity(added, "abc123")

        assert "mc-abc123" not in removed
        assert "survival.example.com" not in removed
        assert 'try = ["lobby"]' in removed
        assert len(details) == 3

    def test_bungee_config(self):
        text = yaml.safe_dump({"servers": {"lobby": {"address": "lobby:25565"}}, "listeners": [{"priorities": ["lobby"]}]})

        added, _ = forwarding.add_server_to_bungee(text, "abc123", "mc-abc123:25565", "Survival")
        data = yaml.safe_load(added)
        assert data["servers"]["abc123"]["address"] == "mc-abc123:25565"
        assert data["listeners"][0]["priorities"] == ["lobby", "abc123"]

        removed = yaml.safe_load(forwarding.remove_server_from_bungee(added, "abc123")[0])
        assert "abc123" not in removed["servers"]
        assert removed["listeners"][0]["priorities"] == ["lobby"]


class TestProxyRegistry:
    """Test proxy declarations and their containers."""

    def test_load_from_yaml(self, tmp_path, platform):
        path = tmp_path / "proxies.yaml"
        path.write_text(
            "proxies:\n"
            "  - id: main\n"
            "    host: velocity-proxy\n"
            "    port: 25565\n"
            "    configPath: velocity/velocity.toml\n"
            "    networkName: minecraft\n"
        )

        registry = ProxyRegistry.from_yaml(str(path), platform, "/mnt/minecraft-servers")

        assert [p.id for p in registry.list()] == ["main"]
        assert registry.default().host == "velocity-proxy"
        assert registry.resolve(None).id == "main"

    def test_missing_file_means_no_proxies(self, tmp_path, platform):
        registry = ProxyRegistry.from_yaml(str(tmp_path / "none.yaml"), platform, "/data")

        assert registry.list() == []
        with pytest.raises(ServerValidationError):
            registry.default()

    def test_invalid_definition(self, tmp_path):
        path = tmp_path / "proxies.yaml"
        path.write_text("proxies:\n  - id: main\n")

        with pytest.raises(ServerValidationError):
            load_definitions(str(path))

    def test_duplicate_ids(self, velocity_proxy, platform):
        with pytest.raises(ServerValidationError):
            ProxyRegistry([velocity_proxy, velocity_proxy], platform, "/data")

    def test_unknown_proxy(self, proxy_registry):
        with pytest.raises(ServerValidationError):
            proxy_registry.get("nope")

    def test_ensure_deploys_missing_proxy(self, proxy_registry, platform):
        details = proxy_registry.ensure_proxies(1)

        assert platform.called("create_stack") == [("create_stack", "proxy-main")]
        assert "velocity-proxy" in platform.containers
        assert details[0].startswith("Deployed proxy main")

    def test_ensure_never_touches_existing(self, proxy_registry, platform):
        platform.add_container("velocity-proxy", ContainerState.EXITED)

        details = proxy_registry.ensure_proxies(1)

        assert platform.mutating_calls() == []
        assert details == ["Proxy main present (exited)"]

    def test_health(self, proxy_registry, platform):
        platform.add_container("velocity-proxy", ContainerState.RUNNING)

        report = proxy_registry.health(1)

        assert report[0]["healthy"] is True
        assert report[0]["state"] == "running"


class TestAttachToProxy:
    """Test the attach protocol."""

    @pytest.fixture
    def proxy_ready(self, platform, storage):
        platform.add_container("velocity-proxy", ContainerState.RUNNING)
        storage.put(VELOCITY_PATH, VELOCITY_TOML)

    @pytest.fixture
    def server_files(self, storage):
        storage.put(f"{SERVER_ROOT}/server.properties", "online-mode=true\n")
        storage.put(f"{SERVER_ROOT}/spigot.yml", "settings:\n  bungeecord: false\n")
        storage.put(f"{SERVER_ROOT}/config/paper-global.yml", "proxies:\n  velocity:\n    enabled: false\n")

    def test_attach_running_server(self, proxy_coordinator, repository, platform, storage, sleeps,
                                   emitter, running_server, proxy_ready, server_files):
        repository.update_fields("abc123", is_online=False)

        result = proxy_coordinator.attach_to_proxy("abc123", OWNER)

        assert result.success
        assert result.proxy_id == "main"
        assert [c[0] for c in platform.mutating_calls()] == ["stop", "start"]
        assert platform.containers["mc-abc123"].state == ContainerState.RUNNING
        assert 3.0 in sleeps

        props = forwarding.parse_properties(storage.text(f"{SERVER_ROOT}/server.properties"))
        assert props["online-mode"] == "false"
        assert props["bungeecord"] == "true"
        assert yaml.safe_load(storage.text(f"{SERVER_ROOT}/spigot.yml"))["settings"]["bungeecord"] is True

        velocity = storage.text(VELOCITY_PATH)
        assert 'abc123 = "mc-abc123:25565"' in velocity
        assert '"survival.example.com" = ["abc123"]' in velocity

        assert repository.get("abc123").is_online is True
        assert emitter.types() == ["server.proxy_attached"]

    def test_attach_starts_exited_server_first(self, proxy_coordinator, repository, platform, sample_server,
                                               proxy_ready, server_files):
        repository.create(sample_server)
        platform.add_container("mc-abc123", ContainerState.EXITED)

        result = proxy_coordinator.attach_to_proxy("abc123", OWNER)

        assert [c[0] for c in platform.mutating_calls()] == ["start", "stop", "start"]
        assert "Started mc-abc123" in result.details

    def test_files_timeout_does_not_restart(self, proxy_coordinator, repository, platform, running_server, proxy_ready):
        with pytest.raises(WaitTimeoutError) as exc:
            proxy_coordinator.attach_to_proxy("abc123", OWNER)

        assert "Timed out waiting for server files" in str(exc.value)
        assert platform.mutating_calls() == []
        assert platform.containers["mc-abc123"].state == ContainerState.RUNNING
        assert repository.get("abc123").is_online is True

    def test_missing_container(self, proxy_coordinator, repository, sample_server, proxy_ready):
        repository.create(sample_server)

        with pytest.raises(ContainerNotFound):
            proxy_coordinator.attach_to_proxy("abc123", OWNER)

    def test_start_timeout(self, proxy_coordinator, repository, platform, sample_server, proxy_ready, server_files):
        repository.create(sample_server)
        platform.add_container("mc-abc123", ContainerState.EXITED)
        platform.start = lambda container_id, environment_id: platform.calls.append(("start", container_id))

        with pytest.raises(WaitTimeoutError) as exc:
            proxy_coordinator.attach_to_proxy("abc123", OWNER)
        assert "did not start in time" in str(exc.value)

    def test_config_write_failure(self, proxy_coordinator, platform, storage, running_server, proxy_ready, server_files):
        storage.fail("write", PlatformError("WebDAV PUT returned 507", backend="webdav", status_code=507))

        with pytest.raises(ProxyConfigurationError):
            proxy_coordinator.attach_to_proxy("abc123", OWNER)

        assert [c[0] for c in platform.mutating_calls()] == ["stop"]

    def test_restart_failure(self, proxy_coordinator, platform, running_server, proxy_ready, server_files):
        platform.fail("start", PlatformError("Portainer returned 500: oops", backend="portainer", status_code=500))

        with pytest.raises(PlatformError) as exc:
            proxy_coordinator.attach_to_proxy("abc123", OWNER)
        assert "Failed to restart container 'mc-abc123'" in str(exc.value)

    def test_missing_proxy_config_is_skipped(self, proxy_coordinator, platform, running_server, server_files):
        platform.add_container("velocity-proxy", ContainerState.RUNNING)

        result = proxy_coordinator.attach_to_proxy("abc123", OWNER)

        assert any("registration skipped" in d for d in result.details)

    def test_detach(self, proxy_coordinator, storage, running_server, proxy_ready, server_files):
        proxy_coordinator.attach_to_proxy("abc123", OWNER)

        result = proxy_coordinator.detach_from_proxy("abc123", OWNER)

        assert "mc-abc123" not in storage.text(VELOCITY_PATH)
        assert result.details
