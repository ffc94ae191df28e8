"""HTTP tests for the session and health endpoints."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.kv_store.in_memory import InMemoryKeyValueStore
from app.adapters.kv_store.provider import get_key_value_store
from app.core.app_factory import create_app
from app.core.config import settings
from app.core.errors import StoreUnavailableError


class UnreachableStore(InMemoryKeyValueStore):
    """Every command fails as if Redis were down."""

    async def increment(self, key: str) -> int:
        raise StoreUnavailableError(code="store_unavailable", message="Redis is unreachable")

    async def get(self, key: str) -> str | None:
        raise StoreUnavailableError(code="store_unavailable", message="Redis is unreachable")

    async def ping(self) -> bool:
        raise StoreUnavailableError(code="store_unavailable", message="Redis is unreachable")


@pytest.fixture
def app(memory_store) -> FastAPI:
    application = create_app()
    application.dependency_overrides[get_key_value_store] = lambda: memory_store
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


class TestSessionLifecycle:
    def test_login_lookup_logout(self, client: TestClient) -> None:
        resp = client.post("/v1/sessions", json={"username": "alice", "token": "tok-123"})
        assert resp.status_code == 201
        assert resp.json() == {
            "message": "User has logged in successfully",
            "username": "alice",
            "ttl_seconds": settings.app.session_ttl_seconds,
        }

        resp = client.get("/v1/sessions/alice")
        assert resp.status_code == 200
        assert resp.json() == {"username": "alice", "token": "tok-123"}

        resp = client.delete("/v1/sessions/alice")
        assert resp.status_code == 200
        assert resp.json()["message"] == "User logged out successfully"

        assert client.get("/v1/sessions/alice").status_code == 404

    def test_logout_without_session_is_404(self, client: TestClient) -> None:
        resp = client.delete("/v1/sessions/nobody")

        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"
        assert resp.json()["error"]["message"] == "User session not found"

    def test_login_with_custom_ttl(self, client: TestClient, memory_store, clock) -> None:
        resp = client.post(
            "/v1/sessions",
            json={"username": "alice", "token": "tok-123", "ttl_seconds": 60},
        )
        assert resp.json()["ttl_seconds"] == 60

        clock.advance(61)

        assert client.get("/v1/sessions/alice").status_code == 404

    @pytest.mark.parametrize(
        "payload",
        [
            {"username": "alice"},
            {"token": "tok-123"},
            {"username": "", "token": "tok-123"},
            {"username": "alice", "token": ""},
            {"username": "alice", "token": "tok-123", "ttl_seconds": 0},
        ],
    )
    def test_login_rejects_invalid_payload(self, client: TestClient, payload: dict) -> None:
        assert client.post("/v1/sessions", json=payload).status_code == 422


class TestRateLimitedRoutes:
    def test_requests_over_limit_get_429(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_requests", 3)
        monkeypatch.setattr(settings.app, "rate_limit_window_seconds", 300)

        statuses = [client.get("/v1/sessions/alice").status_code for _ in range(3)]
        assert statuses == [404, 404, 404]

        resp = client.get("/v1/sessions/alice")
        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "300"
        assert resp.headers["X-RateLimit-Limit"] == "3"
        assert resp.headers["X-RateLimit-Remaining"] == "0"

    def test_throttled_body_carries_request_id(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_requests", 1)

        client.get("/v1/sessions/alice")
        resp = client.get("/v1/sessions/alice", headers={"X-Request-ID": "req-429"})

        assert resp.status_code == 429
        assert resp.json() == {
            "error": {
                "code": "rate_limited",
                "message": "Too many requests. Try again later.",
                "request_id": "req-429",
            }
        }
        assert resp.headers["X-Request-ID"] == "req-429"
        assert resp.headers["Retry-After"] == str(settings.app.rate_limit_window_seconds)

    def test_window_reset_admits_again(
        self, client: TestClient, clock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_requests", 1)
        monkeypatch.setattr(settings.app, "rate_limit_window_seconds", 10)

        assert client.get("/v1/sessions/alice").status_code == 404
        assert client.get("/v1/sessions/alice").status_code == 429

        clock.advance(10)

        assert client.get("/v1/sessions/alice").status_code == 404

    def test_headers_can_be_disabled(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_requests", 1)
        monkeypatch.setattr(settings.app, "rate_limit_include_headers", False)

        client.get("/v1/sessions/alice")
        resp = client.get("/v1/sessions/alice")

        assert resp.status_code == 429
        assert "Retry-After" not in resp.headers

    def test_health_is_not_rate_limited(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_requests", 1)

        for _ in range(5):
            assert client.get("/health").status_code == 200

    def test_disabled_limiter_admits_everything(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_enabled", False)
        monkeypatch.setattr(settings.app, "rate_limit_requests", 1)

        statuses = {client.get("/v1/sessions/alice").status_code for _ in range(5)}

        assert statuses == {404}


class TestStoreOutage:
    @pytest.fixture
    def down_client(self, app: FastAPI) -> TestClient:
        store = UnreachableStore()
        app.dependency_overrides[get_key_value_store] = lambda: store
        return TestClient(app)

    def test_fail_closed_returns_503(self, down_client: TestClient) -> None:
        resp = down_client.get("/v1/sessions/alice")

        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "store_unavailable"

    def test_readiness_reports_unavailable_store(self, down_client: TestClient) -> None:
        resp = down_client.get("/health/ready")

        assert resp.status_code == 503
        assert resp.json() == {"status": "unavailable", "store": "store_unavailable"}


def test_readiness_ok(client: TestClient) -> None:
    resp = client.get("/health/ready")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_openapi_documents_throttling(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()

    assert "429" in schema["paths"]["/v1/sessions/{username}"]["get"]["responses"]
    assert "429" not in schema["paths"]["/health"]["get"]["responses"]
    assert {t["name"] for t in schema["tags"]} >= {"Sessions", "Health"}
