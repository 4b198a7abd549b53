"""
Tests for the auth routes: login, session cookie, logout, password change and staff accounts.
"""

import pytest
from httpx import AsyncClient

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, create_user
from talent_quest.core.security import create_session_token, get_session_claims

pytestmark = pytest.mark.asyncio


class TestLogin:
    async def test_login_requires_email_and_password(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/login", json={"email": "a@b.com"})
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Email and password are required"

    async def test_login_rejects_bad_password(self, client: AsyncClient, db):
        await create_user(db, ADMIN_EMAIL, ADMIN_PASSWORD)
        response = await client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": "nope"})
        assert response.status_code == 401

    async def test_login_rejects_unknown_user(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/login", json={"email": "who@x.com", "password": "secret1"})
        assert response.status_code == 401

    async def test_login_sets_session_cookie(self, client: AsyncClient, db):
        await create_user(db, ADMIN_EMAIL, ADMIN_PASSWORD)
        response = await client.post(
            "/api/v1/auth/login", json={"email": ADMIN_EMAIL.upper(), "password": ADMIN_PASSWORD}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["email"] == ADMIN_EMAIL
        assert body["user"]["role"] == "admin"
        assert "session" in response.cookies
        assert "httponly" in response.headers["set-cookie"].lower()
        claims = get_session_claims(body["access_token"])
        assert claims["email"] == ADMIN_EMAIL
        assert claims["role"] == "admin"

    async def test_token_endpoint_accepts_password_form(self, client: AsyncClient, db):
        await create_user(db, ADMIN_EMAIL, ADMIN_PASSWORD)
        response = await client.post(
            "/api/v1/auth/token", data={"username": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        )
        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"


class TestSession:
    async def test_anonymous_session_is_null(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/session")
        assert response.status_code == 200
        assert response.json() == {"user": None}

    async def test_session_after_login(self, admin_client: AsyncClient):
        response = await admin_client.get("/api/v1/auth/session")
        assert response.json()["user"]["email"] == ADMIN_EMAIL

    async def test_invalid_token_is_anonymous(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/session", headers={"Authorization": "Bearer garbage"})
        assert response.json() == {"user": None}

    async def test_bearer_token_is_accepted(self, client: AsyncClient, db):
        user = await create_user(db, "staff@test.local", "staff-pass", role="user")
        token = create_session_token(user.user_id, user.email, user.role)
        response = await client.get("/api/v1/auth/session", headers={"Authorization": f"Bearer {token}"})
        assert response.json()["user"]["email"] == "staff@test.local"

    async def test_logout_clears_cookie(self, admin_client: AsyncClient):
        response = await admin_client.post("/api/v1/auth/logout")
        assert response.status_code == 200
        admin_client.cookies.clear()
        session = await admin_client.get("/api/v1/auth/session")
        assert session.json() == {"user": None}


class TestChangePassword:
    async def test_requires_authentication(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/change-password",
            json={"currentPassword": "a", "newPassword": "bbbbbb", "confirmNewPassword": "bbbbbb"},
        )
        assert response.status_code == 401

    @pytest.mark.parametrize(
        "payload, message",
        [
            ({"currentPassword": ADMIN_PASSWORD, "newPassword": "abcdef"}, "All password fields are required"),
            (
                {"currentPassword": ADMIN_PASSWORD, "newPassword": "abcdef", "confirmNewPassword": "abcdeg"},
                "New passwords do not match",
            ),
            (
                {"currentPassword": ADMIN_PASSWORD, "newPassword": "abc", "confirmNewPassword": "abc"},
                "New password must be at least 6 characters long",
            ),
            (
                {"currentPassword": "wrong-pass", "newPassword": "abcdef", "confirmNewPassword": "abcdef"},
                "Current password is incorrect",
            ),
        ],
    )
    async def test_rejects_invalid_changes(self, admin_client: AsyncClient, payload, message):
        response = await admin_client.post("/api/v1/auth/change-password", json=payload)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == message

    async def test_changes_password(self, admin_client: AsyncClient):
        response = await admin_client.post(
            "/api/v1/auth/change-password",
            json={"currentPassword": ADMIN_PASSWORD, "newPassword": "new-pass-1", "confirmNewPassword": "new-pass-1"},
        )
        assert response.status_code == 200
        old = await admin_client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        assert old.status_code == 401
        new = await admin_client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": "new-pass-1"})
        assert new.status_code == 200


class TestStaffAccounts:
    async def test_admin_routes_require_login(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/users")
        assert response.status_code == 401

    async def test_non_admin_is_forbidden(self, client: AsyncClient, db):
        await create_user(db, "staff@test.local", "staff-pass", role="user")
        await client.post("/api/v1/auth/login", json={"email": "staff@test.local", "password": "staff-pass"})
        response = await client.get("/api/v1/guests")
        assert response.status_code == 403

    async def test_admin_creates_and_lists_users(self, admin_client: AsyncClient):
        response = await admin_client.post(
            "/api/v1/auth/users",
            json={"email": "usher@test.local", "password": "usher-pass", "full_name": "Usher", "role": "user"},
        )
        assert response.status_code == 201
        assert response.json()["role"] == "user"

        duplicate = await admin_client.post(
            "/api/v1/auth/users", json={"email": "usher@test.local", "password": "usher-pass"}
        )
        assert duplicate.status_code == 400

        listing = await admin_client.get("/api/v1/auth/users")
        emails = {u["email"] for u in listing.json()}
        assert emails == {ADMIN_EMAIL, "usher@test.local"}
