# tests/test_main.py
import pytest

from bikerental import main
from bikerental.core.rate_limiter import limiter
from bikerental.middleware.authentication import is_public_path


class _HealthyAdmin:
    async def command(self, name):
        return {"ok": 1.0}


class _HealthyClient:
    admin = _HealthyAdmin()


async def test_root_is_public(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_health_db_ok(client, monkeypatch):
    monkeypatch.setattr(main, "get_client", lambda: _HealthyClient())
    response = await client.get("/health/db")
    assert response.status_code == 200
    assert response.json()["status"] == "database healthy"


async def test_health_db_unavailable(client, monkeypatch):
    def broken_client():
        raise RuntimeError("Database client is not initialised")

    monkeypatch.setattr(main, "get_client", broken_client)
    response = await client.get("/health/db")
    assert response.status_code == 503
    assert response.json()["message"] == "Database connection failed"


async def test_responses_carry_request_id(client):
    response = await client.get("/health")
    assert response.headers.get("X-Request-ID")


async def test_unknown_route_with_session_is_not_found(client, student_headers):
    response = await client.get("/api/v1/nothing-here", headers=student_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Not Found"


async def test_unknown_route_without_session_is_unauthorized(client):
    response = await client.get("/api/v1/nothing-here")
    assert response.status_code == 401


async def test_token_for_deleted_user_is_rejected(client, student, student_headers):
    await student.delete()
    response = await client.get("/api/v1/auth/me", headers=student_headers)
    assert response.status_code == 401
    assert response.json()["message"] == "Could not validate credentials"


async def test_malformed_json_is_bad_request(client, student_headers):
    response = await client.post(
        "/api/v1/rentals",
        content=b"{not json",
        headers={**student_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400


@pytest.mark.parametrize("path,expected", [
    ("/", True),
    ("/health/db", True),
    ("/docs/oauth2-redirect", True),
    ("/api/v1/auth/login", True),
    ("/api/v1/auth/me", False),
    ("/api/v1/rentals", False),
    ("/generated_pdfs/x.pdf", False),
])
def test_is_public_path(path, expected):
    assert is_public_path(path) is expected


async def test_rate_limit_returns_message(client, monkeypatch):
    monkeypatch.setattr(limiter, "enabled", True)
    limiter.reset()
    try:
        credentials = {"email": "nobody@g.batstate-u.edu.ph", "password": "secret123"}
        for _ in range(10):
            response = await client.post("/api/v1/auth/login", json=credentials)
            assert response.status_code == 401

        limited = await client.post("/api/v1/auth/login", json=credentials)
        assert limited.status_code == 429
        assert limited.json()["message"].startswith("Rate limit exceeded")
    finally:
        limiter.reset()
