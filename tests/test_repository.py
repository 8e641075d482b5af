#tests\test_repository.py

"""Test Server Record repositories (in-memory and SQLAlchemy)."""

import pytest

from fakes import OWNER

from mcserver_engine.core.errors import ServerAlreadyExists, ServerNotFound, ServerValidationError
from mcserver_engine.core.models import Server, ServerConfig, ServerType


def make_server(unique_id, owner=OWNER, server_name=None, subdomain_name=None, port=None):
    return Server(
        unique_id=unique_id,
        owner=owner,
        server_name=server_name or f"Server {unique_id}",
        subdomain_name=subdomain_name,
        server_config=ServerConfig(version="1.21.1", server_type=ServerType.PAPER, port=port),
        port=port,
    )


class TestServerRepository:
    """Behaviour shared by every repository implementation."""

    # -------------------------
    # CREATE / READ
    # -------------------------

    def test_create_and_get(self, any_repository, sample_server):
        any_repository.create(sample_server)

        stored = any_repository.get("abc123")

        assert stored is not None
        assert stored.owner == OWNER
        assert stored.server_config.server_type == ServerType.PAPER
        assert stored.server_config.version == "1.21.1"
        assert stored.port == 25570

    def test_create_duplicate_fails(self, any_repository, sample_server):
        any_repository.create(sample_server)

        with pytest.raises(ServerAlreadyExists):
            any_repository.create(sample_server)

    def test_get_missing(self, any_repository):
        assert any_repository.get("nope") is None

    def test_list_by_owner(self, any_repository):
        any_repository.create(make_server("aaa111"))
        any_repository.create(make_server("bbb222"))
        any_repository.create(make_server("ccc333", owner="bob@example.com"))

        ids = sorted(s.unique_id for s in any_repository.list_by_owner(OWNER))

        assert ids == ["aaa111", "bbb222"]

    # -------------------------
    # OWNER-SCOPED LOOKUP
    # -------------------------

    def test_find_is_owner_scoped(self, any_repository, sample_server):
        any_repository.create(sample_server)

        assert any_repository.find("bob@example.com", "abc123") is None
        with pytest.raises(ServerNotFound):
            any_repository.require("bob@example.com", "abc123")

    def test_find_by_alias(self, any_repository, sample_server):
        any_repository.create(sample_server)

        assert any_repository.find(OWNER, "survival").unique_id == "abc123"
        assert any_repository.find(OWNER, "Survival World").unique_id == "abc123"

    def test_aliases_disabled(self, any_repository, sample_server):
        any_repository.create(sample_server)

        assert any_repository.find(OWNER, "survival", allow_aliases=False) is None
        assert any_repository.find(OWNER, "abc123", allow_aliases=False) is not None

    def test_primary_key_wins_over_alias(self, any_repository):
        any_repository.create(make_server("lobby1"))
        any_repository.create(make_server("zzz999", server_name="lobby1"))

        assert any_repository.find(OWNER, "lobby1").unique_id == "lobby1"

    def test_ambiguous_alias_rejected(self, any_repository):
        any_repository.create(make_server("aaa111", server_name="Survival"))
        any_repository.create(make_server("bbb222", server_name="Survival"))

        with pytest.raises(ServerValidationError):
            any_repository.find(OWNER, "Survival")

    def test_empty_identifier_rejected(self, any_repository):
        with pytest.raises(ServerValidationError):
            any_repository.find(OWNER, "")

    # -------------------------
    # UPDATE / DELETE
    # -------------------------

    def test_update_fields(self, any_repository, sample_server):
        any_repository.create(sample_server)

        any_repository.update_fields("abc123", is_online=False, stack_id=7)

        stored = any_repository.get("abc123")
        assert stored.is_online is False
        assert stored.stack_id == 7
        assert stored.server_name == "Survival World"

    def test_update_rejects_immutable_fields(self, any_repository, sample_server):
        any_repository.create(sample_server)

        with pytest.raises(ServerValidationError):
            any_repository.update_fields("abc123", owner="mallory@example.com")

    def test_update_missing_record(self, any_repository):
        with pytest.raises(ServerNotFound):
            any_repository.update_fields("nope", is_online=True)

    def test_delete(self, any_repository, sample_server):
        any_repository.create(sample_server)

        assert any_repository.delete("abc123") is True
        assert any_repository.delete("abc123") is False
        assert any_repository.get("abc123") is None

    def test_used_ports_and_subdomains(self, any_repository):
        any_repository.create(make_server("aaa111", port=25566, subdomain_name="alpha"))
        any_repository.create(make_server("bbb222", port=25567))

        assert any_repository.used_ports() == {25566, 25567}
        assert any_repository.subdomain_taken("alpha")
        assert not any_repository.subdomain_taken("beta")
