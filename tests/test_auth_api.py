"""
HTTP-level tests: status codes, response shapes and the auth guard.
"""

import httpx
import pytest
import pytest_asyncio

from conftest import TEST_EMAIL, TEST_NAME, TEST_PASSWORD
from momentum.main import create_app


@pytest_asyncio.fixture
async def client(settings, database, notifier):
    app = create_app(settings, database=database, notifier=notifier)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _register(client, email=TEST_EMAIL):
    response = await client.post(
        "/api/auth/register",
        json={"name": TEST_NAME, "email": email, "password": TEST_PASSWORD},
    )
    assert response.status_code == 201, response.text
    return response.json()


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestRegisterAndLogin:
    @pytest.mark.asyncio
    async def test_register_returns_safe_user_and_tokens(self, client):
        body = await _register(client)

        assert body["user"]["email"] == TEST_EMAIL
        assert body["user"]["is_email_verified"] is False
        assert "password_hash" not in body["user"]
        assert "password_reset_token" not in body["user"]
        assert body["tokens"]["token_type"] == "bearer"
        assert body["tokens"]["access_token"]
        assert body["tokens"]["refresh_token"]

    @pytest.mark.asyncio
    async def test_duplicate_email_is_409(self, client):
        await _register(client)

        response = await client.post(
            "/api/auth/register",
            json={"name": "B", "email": "A@X.com", "password": TEST_PASSWORD},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_single_character_name_is_accepted(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"name": "A", "email": "a@x.com", "password": "Abcdef1!"},
        )

        assert response.status_code == 201
        assert response.json()["user"]["name"] == "A"

    @pytest.mark.asyncio
    async def test_empty_name_is_rejected_by_schema(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"name": "", "email": TEST_EMAIL, "password": TEST_PASSWORD},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_short_password_is_rejected_by_schema(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"name": TEST_NAME, "email": TEST_EMAIL, "password": "Ab1"},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_login_failures_are_indistinguishable(self, client):
        await _register(client)

        unknown = await client.post(
            "/api/auth/login", json={"email": "nobody@x.com", "password": TEST_PASSWORD},
        )
        wrong = await client.post(
            "/api/auth/login", json={"email": TEST_EMAIL, "password": "Wrong-pass1"},
        )

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()
        assert unknown.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_login_success(self, client):
        await _register(client)

        response = await client.post(
            "/api/auth/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD},
        )

        assert response.status_code == 200
        assert response.json()["user"]["last_login_at"] is not None


class TestRefreshAndLogout:
    @pytest.mark.asyncio
    async def test_missing_refresh_token_is_400(self, client):
        response = await client.post("/api/auth/refresh", json={})
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION"

    @pytest.mark.asyncio
    async def test_garbage_refresh_token_is_401(self, client):
        response = await client.post("/api/auth/refresh", json={"refresh_token": "garbage"})
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_refresh_then_logout_everywhere(self, client):
        registered = await _register(client)
        refresh = registered["tokens"]["refresh_token"]

        refreshed = await client.post("/api/auth/refresh", json={"refresh_token": refresh})
        assert refreshed.status_code == 200
        new_access = refreshed.json()["access_token"]
        assert refreshed.json()["refresh_token"] is None

        logout = await client.post("/api/auth/logout", headers=_bearer(new_access))
        assert logout.status_code == 200

        again = await client.post("/api/auth/refresh", json={"refresh_token": refresh})
        assert again.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_requires_access_token(self, client):
        response = await client.post("/api/auth/logout", json={})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_token_is_not_an_access_token(self, client):
        registered = await _register(client)
        response = await client.get(
            "/api/auth/me", headers=_bearer(registered["tokens"]["refresh_token"]),
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_single_session_is_idempotent(self, client):
        registered = await _register(client)
        headers = _bearer(registered["tokens"]["access_token"])
        body = {"refresh_token": registered["tokens"]["refresh_token"]}

        first = await client.post("/api/auth/logout", json=body, headers=headers)
        second = await client.post("/api/auth/logout", json=body, headers=headers)

        assert first.status_code == second.status_code == 200
        assert first.json() == second.json()


class TestProfileAndSessions:
    @pytest.mark.asyncio
    async def test_me(self, client):
        registered = await _register(client)

        response = await client.get("/api/auth/me", headers=_bearer(registered["tokens"]["access_token"]))

        assert response.status_code == 200
        assert response.json()["id"] == registered["user"]["id"]

    @pytest.mark.asyncio
    async def test_list_and_revoke_sessions(self, client):
        registered = await _register(client)
        headers = _bearer(registered["tokens"]["access_token"])
        await client.post("/api/auth/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD})

        listed = await client.get("/api/users/me/sessions", headers=headers)
        assert listed.status_code == 200
        sessions = listed.json()
        assert len(sessions) == 2
        assert set(sessions[0]) == {"id", "created_at", "expires_at"}

        revoked = await client.delete(f"/api/users/me/sessions/{sessions[0]['id']}", headers=headers)
        assert revoked.status_code == 200
        assert len((await client.get("/api/users/me/sessions", headers=headers)).json()) == 1

        cleared = await client.delete("/api/users/me/sessions", headers=headers)
        assert cleared.status_code == 200
        assert (await client.get("/api/users/me/sessions", headers=headers)).json() == []

    @pytest.mark.asyncio
    async def test_change_password(self, client):
        registered = await _register(client)
        headers = _bearer(registered["tokens"]["access_token"])

        wrong = await client.put(
            "/api/users/me/password",
            json={"current_password": "nope", "new_password": "N3w-Password!"},
            headers=headers,
        )
        assert wrong.status_code == 400
        assert wrong.json()["code"] == "INVALID_CREDENTIALS"

        ok = await client.put(
            "/api/users/me/password",
            json={"current_password": TEST_PASSWORD, "new_password": "N3w-Password!"},
            headers=headers,
        )
        assert ok.status_code == 200

        stale = await client.post(
            "/api/auth/refresh", json={"refresh_token": registered["tokens"]["refresh_token"]},
        )
        assert stale.status_code == 401


class TestPasswordFlows:
    @pytest.mark.asyncio
    async def test_forgot_password_does_not_reveal_accounts(self, client, notifier):
        await _register(client)

        unknown = await client.post("/api/auth/forgot-password", json={"email": "nobody@x.com"})
        known = await client.post("/api/auth/forgot-password", json={"email": TEST_EMAIL})

        assert unknown.status_code == known.status_code == 200
        assert unknown.json() == known.json()
        assert notifier.last("password_reset").to == TEST_EMAIL

    @pytest.mark.asyncio
    async def test_reset_password_with_emailed_token(self, client, notifier):
        await _register(client)
        await client.post("/api/auth/forgot-password", json={"email": TEST_EMAIL})
        token = notifier.last("password_reset").token

        first = await client.post(
            "/api/auth/reset-password", json={"token": token, "new_password": "Brand-New-1!"},
        )
        second = await client.post(
            "/api/auth/reset-password", json={"token": token, "new_password": "Brand-New-1!"},
        )

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json()["code"] == "INVALID_TOKEN"
        login = await client.post(
            "/api/auth/login", json={"email": TEST_EMAIL, "password": "Brand-New-1!"},
        )
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_verify_email(self, client, notifier):
        registered = await _register(client)
        token = notifier.last("email_verification").token

        response = await client.post("/api/auth/verify-email", json={"token": token})
        assert response.status_code == 200

        me = await client.get("/api/auth/me", headers=_bearer(registered["tokens"]["access_token"]))
        assert me.json()["is_email_verified"] is True

    @pytest.mark.asyncio
    async def test_password_strength(self, client):
        response = await client.post("/api/auth/password-strength", json={"password": "abc"})

        assert response.status_code == 200
        body = response.json()
        assert body["score"] == 1
        assert body["is_strong"] is False
        assert body["suggestions"]
