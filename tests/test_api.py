#tests\test_api.py

"""Test the HTTP API: auth, status codes and error bodies."""

import pytest
from fastapi.testclient import TestClient

from fakes import OWNER, SERVER_ROOT

from mcserver_engine.api import container as api_container
from mcserver_engine.api.main import app
from mcserver_engine.core.errors import PlatformError
from mcserver_engine.core.identity import StaticTokenIdentityProvider, User
from mcserver_engine.core.models import ContainerState

USER = {"Authorization": "Bearer tok"}
ADMIN = {"Authorization": "Bearer admintok"}


@pytest.fixture
def client(repository, platform, provisioning, lifecycle, deletion, file_manager, proxy_coordinator, proxy_registry):
    identity = StaticTokenIdentityProvider({
        "tok": User(OWNER),
        "admintok": User("admin@example.com", is_admin=True),
        "oldtok": User("old@example.com", is_active=False),
    })
    app.dependency_overrides = {
        api_container.get_repository: lambda: repository,
        api_container.get_provisioning_orchestrator: lambda: provisioning,
        api_container.get_lifecycle_controller: lambda: lifecycle,
        api_container.get_deletion_orchestrator: lambda: deletion,
        api_container.get_file_manager: lambda: file_manager,
        api_container.get_proxy_coordinator: lambda: proxy_coordinator,
        api_container.get_proxy_registry: lambda: proxy_registry,
        api_container.get_container_platform: lambda: platform,
        api_container.get_identity_provider: lambda: identity,
    }
    yield TestClient(app)
    app.dependency_overrides = {}


class TestAuth:
    """Bearer token handling."""

    def test_health_is_public(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_missing_token(self, client):
        response = client.get("/servers")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_unknown_token(self, client):
        response = client.get("/servers", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    def test_disabled_user(self, client):
        response = client.get("/servers", headers={"Authorization": "Bearer oldtok"})

        assert response.status_code == 403

    def test_proxies_require_admin(self, client):
        assert client.get("/proxies", headers=USER).status_code == 403

        response = client.get("/proxies", headers=ADMIN)

        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == ["main"]


class TestServers:
    """Server records, provisioning and deletion."""

    def test_create_server(self, client, storage):
        storage.put(f"{SERVER_ROOT}/server.properties", "motd=hi\n")

        response = client.post("/servers", headers=USER, json={
            "server_name": "Survival World",
            "unique_id": "abc123",
            "server_config": {"version": "1.21.1", "server_type": "PAPER", "port": 25570},
        })

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["server"]["owner"] == OWNER
        assert body["server"]["container_name"] == "mc-abc123"

    def test_create_invalid_name(self, client, platform):
        response = client.post("/servers", headers=USER, json={"server_name": "   "})

        assert response.status_code == 400
        assert response.json()["error"] == "ServerValidationError"
        assert platform.mutating_calls() == []

    def test_list_only_own_servers(self, client, running_server):
        assert [s["unique_id"] for s in client.get("/servers", headers=USER).json()] == ["abc123"]
        assert client.get("/servers", headers=ADMIN).json() == []

    def test_get_by_name(self, client, running_server):
        response = client.get("/servers/survival", headers=USER)

        assert response.status_code == 200
        assert response.json()["unique_id"] == "abc123"

    def test_not_found(self, client):
        response = client.get("/servers/missing", headers=USER)

        assert response.status_code == 404
        assert response.json() == {
            "message": "Server not found or access denied.",
            "error": "ServerNotFound",
            "resource": "server",
        }

    def test_delete_server(self, client, repository, running_server):
        response = client.delete("/servers/abc123", headers=USER)

        assert response.status_code == 200
        assert response.json()["message"] == "Server deleted."
        assert repository.get("abc123") is None

    def test_delete_with_dns_failure(self, client, dns, running_server):
        dns.fail("delete_record", PlatformError("Porkbun error: rate limited", backend="dns"))

        response = client.delete("/servers/abc123", headers=USER)

        assert response.status_code == 207
        assert response.json()["details"]["dns_record"] == "failed"
        assert response.json()["message"] == "Server 'abc123' deleted with errors in: dns_record"
        assert response.json()["error"] == "PartialFailureError"
        assert response.json()["partial"] is True


class TestLifecycleRoutes:
    """Lifecycle actions and runtime reads."""

    def test_stop(self, client, repository, platform, running_server):
        response = client.post("/servers/abc123/stop", headers=USER, json={"timeout": 5})

        assert response.status_code == 200
        assert response.json()["is_online"] is False
        assert platform.called("stop") == [("stop", "id-mc-abc123", 5)]
        assert repository.get("abc123").is_online is False

    def test_start_without_body(self, client, platform, repository, sample_server):
        repository.create(sample_server)
        platform.add_container("mc-abc123", ContainerState.EXITED)

        response = client.post("/servers/abc123/start", headers=USER)

        assert response.status_code == 200
        assert response.json()["changed"] is True

    def test_pause_exited_is_conflict(self, client, platform, repository, sample_server):
        repository.create(sample_server)
        platform.add_container("mc-abc123", ContainerState.EXITED)

        response = client.post("/servers/abc123/pause", headers=USER)

        assert response.status_code == 409
        assert response.json()["current_state"] == "exited"

    def test_unknown_action(self, client, running_server):
        response = client.post("/servers/abc123/explode", headers=USER)

        assert response.status_code == 400

    def test_missing_container(self, client, repository, sample_server):
        repository.create(sample_server)

        response = client.post("/servers/abc123/start", headers=USER)

        assert response.status_code == 404
        assert response.json()["resource"] == "container"

    def test_platform_error(self, client, platform, running_server):
        platform.fail("stop", PlatformError("Portainer returned 500: daemon error", backend="portainer", status_code=500))

        response = client.post("/servers/abc123/stop", headers=USER)

        assert response.status_code == 500
        assert response.json()["backend"] == "portainer"

    def test_status_and_logs(self, client, running_server):
        assert client.get("/servers/abc123/status", headers=USER).json()["state"] == "running"

        response = client.get("/servers/abc123/logs", headers=USER, params={"tail": 20})
        assert response.status_code == 200
        assert response.json()["unique_id"] == "abc123"

    def test_command(self, client, running_server):
        response = client.post("/servers/abc123/command", headers=USER, json={"command": "/list"})

        assert response.json() == {"output": "ran list"}


class TestFileRoutes:
    """File listing, creation and protected deletes."""

    def test_protected_delete(self, client, storage, running_server):
        response = client.request(
            "DELETE",
            "/servers/abc123/files",
            headers=USER,
            json={"path": "server.properties", "type": "file"},
        )

        assert response.status_code == 403
        assert response.json()["message"] == "This file or folder is protected and cannot be deleted."
        assert storage.calls == []

    def test_create_and_delete_file(self, client, storage, running_server):
        storage.put(f"{SERVER_ROOT}/plugins/.keep", "")

        created = client.post("/servers/abc123/files", headers=USER, json={
            "path": "plugins/config.yml",
            "type": "file",
            "content": "enabled: true\n",
        })
        assert created.status_code == 201
        assert storage.files[f"{SERVER_ROOT}/plugins/config.yml"] == b"enabled: true\n"

        deleted = client.request(
            "DELETE",
            "/servers/abc123/files",
            headers=USER,
            json={"path": "plugins/config.yml", "type": "file"},
        )
        assert deleted.status_code == 200
        assert deleted.json()["message"] == "File deleted successfully."
        assert f"{SERVER_ROOT}/plugins/config.yml" not in storage.files

    def test_list_files(self, client, storage, running_server):
        storage.put(f"{SERVER_ROOT}/server.properties", "motd=hi\n")

        response = client.get("/servers/abc123/files", headers=USER)

        assert [e["name"] for e in response.json()] == ["server.properties"]
