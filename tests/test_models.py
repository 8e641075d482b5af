#tests\test_models.py

"""Test domain models."""

import pytest

from mcserver_engine.core.errors import PartialFailureError
from mcserver_engine.core.models import (
    ContainerState,
    DeletionReport,
    ProxyDefinition,
    ProxyType,
    Server,
    ServerConfig,
    ServerType,
    StepResult,
    container_name_for,
    owner_folder_for,
)


class TestServerType:
    """Test engine type parsing."""

    def test_parse_is_case_insensitive(self):
        assert ServerType.parse("paper") == ServerType.PAPER
        assert ServerType.parse(" Fabric ") == ServerType.FABRIC

    def test_parse_unknown_lists_supported(self):
        with pytest.raises(ValueError) as exc:
            ServerType.parse("sponge")
        assert "Supported" in str(exc.value)

    def test_plugin_support(self):
        assert ServerType.PAPER.supports_plugins
        assert not ServerType.FORGE.supports_plugins
        assert ServerType.PURPUR.is_paper_family
        assert not ServerType.SPIGOT.is_paper_family


class TestContainerState:
    """Test Docker state normalisation."""

    @pytest.mark.parametrize("raw,expected", [
        ("running", ContainerState.RUNNING),
        ("restarting", ContainerState.RUNNING),
        ("exited", ContainerState.EXITED),
        ("dead", ContainerState.EXITED),
        ("paused", ContainerState.PAUSED),
        ("created", ContainerState.CREATED),
        (None, ContainerState.ABSENT),
        ("", ContainerState.ABSENT),
    ])
    def test_from_docker(self, raw, expected):
        assert ContainerState.from_docker(raw) == expected


class TestServer:
    """Test derived identifiers."""

    def test_derived_names(self, sample_server):
        assert sample_server.container_name == "mc-abc123"
        assert sample_server.stack_name == "minecraft-abc123"
        assert sample_server.owner_folder == "alice"

    def test_helpers(self):
        assert container_name_for("xyz") == "mc-xyz"
        assert owner_folder_for("bob@example.org") == "bob"

    def test_matches_aliases(self, sample_server):
        assert sample_server.matches("abc123")
        assert sample_server.matches("survival")
        assert sample_server.matches("Survival World")
        assert not sample_server.matches("creative")

    def test_config_round_trip_keeps_type(self):
        config = ServerConfig(version="1.20.4", server_type=ServerType.FABRIC, memory="4G")

        restored = ServerConfig.from_dict(config.to_dict())

        assert restored.server_type == ServerType.FABRIC
        assert restored.memory == "4G"

    def test_config_from_dict_ignores_unknown_keys(self):
        config = ServerConfig.from_dict({"version": "1.21.1", "legacy_field": 1})
        assert config.version == "1.21.1"


class TestProxyDefinition:
    """Test proxy declarations."""

    def test_from_dict_accepts_camel_case(self):
        proxy = ProxyDefinition.from_dict({
            "id": "eu",
            "host": "velocity-eu",
            "port": "25565",
            "configPath": "eu/velocity.toml",
            "networkName": "mc-eu",
        })

        assert proxy.port == 25565
        assert proxy.config_path == "eu/velocity.toml"
        assert proxy.network_name == "mc-eu"
        assert proxy.type == ProxyType.VELOCITY
        assert proxy.stack_name == "proxy-eu"

    def test_missing_host_fails(self):
        with pytest.raises(KeyError):
            ProxyDefinition.from_dict({"id": "eu", "port": 25565})


class TestDeletionReport:
    """Test deletion report aggregation."""

    def test_all_steps_ok(self):
        report = DeletionReport("abc123", [
            StepResult("container", True),
            StepResult("database_record", True),
        ])

        assert report.success
        assert not report.partial
        report.raise_for_partial()

    def test_partial_after_record_removed(self):
        report = DeletionReport("abc123", [
            StepResult("container", True),
            StepResult("database_record", True),
            StepResult("dns_record", False, error="boom"),
        ])

        assert report.partial
        assert report.details == {"container": "ok", "database_record": "ok", "dns_record": "failed"}
        with pytest.raises(PartialFailureError) as exc:
            report.raise_for_partial()
        assert "dns_record" in str(exc.value)

    def test_failed_record_is_not_partial(self):
        report = DeletionReport("abc123", [StepResult("database_record", False, error="db down")])

        assert not report.success
        assert not report.partial
        assert report.step("database_record").error == "db down"
        assert report.step("files") is None
