"""
Tests for authentication endpoints (register, login, profile, password).

These tests verify:
  - Registration returns the user (without password hash) and a working token
  - Duplicate email registration is rejected (409), case-insensitively
  - Invalid role/department/email/password are rejected (422)
  - Login with an unknown email and with a wrong password are indistinguishable
  - Inactive accounts get a distinct 403 on login, whatever the password
  - Profile updates only touch name and department
  - Password change requires the current password
"""

import asyncio

import pytest


REGISTER_PAYLOAD = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "password": "StrongPass99",
    "department": "finance",
}


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------

class TestRegister:
    """Tests for POST /api/auth/register."""

    async def test_register_success(self, client):
        response = await client.post("/api/auth/register", json=REGISTER_PAYLOAD)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User registered successfully"
        user = body["data"]["user"]
        assert user["email"] == "jane@example.com"
        assert user["role"] == "viewer"
        assert user["department"] == "finance"
        assert user["is_active"] is True
        assert "token" in body["data"]

    async def test_register_never_returns_password(self, client):
        response = await client.post("/api/auth/register", json=REGISTER_PAYLOAD)
        user = response.json()["data"]["user"]
        assert "password" not in user
        assert "hashed_password" not in user
        assert "StrongPass99" not in response.text

    async def test_registered_user_can_log_in(self, client):
        await client.post("/api/auth/register", json=REGISTER_PAYLOAD)
        response = await client.post(
            "/api/auth/login",
            json={"email": "jane@example.com", "password": "StrongPass99"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == "jane@example.com"

    async def test_register_token_works(self, client):
        response = await client.post("/api/auth/register", json=REGISTER_PAYLOAD)
        token = response.json()["data"]["token"]
        profile = await client.get(
            "/api/auth/profile", headers={"Authorization": f"Bearer {token}"}
        )
        assert profile.status_code == 200

    async def test_register_with_explicit_role(self, client):
        response = await client.post(
            "/api/auth/register",
            json={**REGISTER_PAYLOAD, "role": "accountant"},
        )
        assert response.status_code == 201
        assert response.json()["data"]["user"]["role"] == "accountant"

    async def test_email_is_lowercased_and_trimmed(self, client):
        response = await client.post(
            "/api/auth/register",
            json={**REGISTER_PAYLOAD, "email": "  Jane@Example.COM "},
        )
        assert response.status_code == 201
        assert response.json()["data"]["user"]["email"] == "jane@example.com"

    async def test_duplicate_email(self, client):
        first = await client.post("/api/auth/register", json=REGISTER_PAYLOAD)
        assert first.status_code == 201

        second = await client.post("/api/auth/register", json=REGISTER_PAYLOAD)
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "USER_EXISTS"

    async def test_concurrent_duplicate_registrations(self, client):
        """Exactly one of two simultaneous registrations for an email wins."""
        responses = await asyncio.gather(
            client.post("/api/auth/register", json=REGISTER_PAYLOAD),
            client.post("/api/auth/register", json=REGISTER_PAYLOAD),
        )
        assert sorted(r.status_code for r in responses) == [201, 409]
        loser = next(r for r in responses if r.status_code == 409)
        assert loser.json()["error"]["code"] in ("USER_EXISTS", "DUPLICATE_ERROR")

        login = await client.post(
            "/api/auth/login",
            json={"email": REGISTER_PAYLOAD["email"], "password": REGISTER_PAYLOAD["password"]},
        )
        assert login.status_code == 200

    async def test_duplicate_email_differs_only_in_case(self, client):
        await client.post("/api/auth/register", json=REGISTER_PAYLOAD)
        response = await client.post(
            "/api/auth/register",
            json={**REGISTER_PAYLOAD, "email": "JANE@example.com"},
        )
        assert response.status_code == 409

    @pytest.mark.parametrize(
        "override, field",
        [
            ({"role": "superuser"}, "role"),
            ({"department": "marketing"}, "department"),
            ({"email": "not-an-email"}, "email"),
            ({"password": "12345"}, "password"),
            ({"name": "J"}, "name"),
        ],
    )
    async def test_invalid_fields_rejected(self, client, override, field):
        response = await client.post(
            "/api/auth/register", json={**REGISTER_PAYLOAD, **override}
        )
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert field in [e["field"] for e in error["errors"]]

    async def test_missing_department(self, client):
        payload = {k: v for k, v in REGISTER_PAYLOAD.items() if k != "department"}
        response = await client.post("/api/auth/register", json=payload)
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

class TestLogin:
    """Tests for POST /api/auth/login."""

    async def test_login_success(self, client, register):
        await register("login@example.com", password="CorrectPass1")
        response = await client.post(
            "/api/auth/login",
            json={"email": "login@example.com", "password": "CorrectPass1"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["data"]["token_type"] == "bearer"
        assert "hashed_password" not in body["data"]["user"]

    async def test_login_email_is_case_insensitive(self, client, register):
        await register("login@example.com", password="CorrectPass1")
        response = await client.post(
            "/api/auth/login",
            json={"email": "LOGIN@Example.com", "password": "CorrectPass1"},
        )
        assert response.status_code == 200

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"email": "login@example.com"},
            {"password": "CorrectPass1"},
            {"email": "", "password": ""},
        ],
    )
    async def test_missing_credentials(self, client, payload):
        response = await client.post("/api/auth/login", json=payload)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_CREDENTIALS"

    async def test_wrong_password_and_unknown_email_are_identical(
        self, client, register
    ):
        """
        Important: the error must be identical in both cases to prevent
        user enumeration attacks.
        """
        await register("known@example.com", password="CorrectPass1")

        wrong_password = await client.post(
            "/api/auth/login",
            json={"email": "known@example.com", "password": "WrongPass1"},
        )
        unknown_email = await client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": "WrongPass1"},
        )

        assert wrong_password.status_code == 401
        assert unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()["error"] == {
            "code": "INVALID_CREDENTIALS",
            "message": "Invalid email or password",
        }

    async def test_inactive_account(self, client, register, admin_headers):
        _, user = await register("inactive@example.com", password="CorrectPass1")
        await client.patch(
            f"/api/users/{user['id']}/status",
            json={"is_active": False},
            headers=admin_headers,
        )

        response = await client.post(
            "/api/auth/login",
            json={"email": "inactive@example.com", "password": "CorrectPass1"},
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ACCOUNT_INACTIVE"

    async def test_inactive_account_with_wrong_password(
        self, client, register, admin_headers
    ):
        """Deactivation is reported even when the password is wrong."""
        _, user = await register("inactive@example.com", password="CorrectPass1")
        await client.patch(
            f"/api/users/{user['id']}/status",
            json={"is_active": False},
            headers=admin_headers,
        )

        response = await client.post(
            "/api/auth/login",
            json={"email": "inactive@example.com", "password": "WrongPass1"},
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ACCOUNT_INACTIVE"


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

class TestProfile:
    """Tests for GET/PUT /api/auth/profile."""

    async def test_get_profile(self, client, viewer_headers):
        response = await client.get("/api/auth/profile", headers=viewer_headers)
        assert response.status_code == 200
        user = response.json()["data"]["user"]
        assert user["email"] == "viewer@example.com"
        assert "hashed_password" not in user

    async def test_update_name_and_department(self, client, viewer_headers):
        response = await client.put(
            "/api/auth/profile",
            json={"name": "Renamed User", "department": "operations"},
            headers=viewer_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Profile updated successfully"
        assert body["data"]["user"]["name"] == "Renamed User"
        assert body["data"]["user"]["department"] == "operations"

    async def test_role_cannot_be_changed(self, client, viewer_headers):
        """Unrecognized fields like role are ignored, never applied."""
        response = await client.put(
            "/api/auth/profile",
            json={"name": "Sneaky User", "role": "admin", "email": "x@example.com"},
            headers=viewer_headers,
        )
        assert response.status_code == 200

        profile = await client.get("/api/auth/profile", headers=viewer_headers)
        user = profile.json()["data"]["user"]
        assert user["role"] == "viewer"
        assert user["email"] == "viewer@example.com"
        assert user["name"] == "Sneaky User"

    async def test_only_unknown_fields_is_no_update(self, client, viewer_headers):
        response = await client.put(
            "/api/auth/profile",
            json={"role": "admin", "is_active": False},
            headers=viewer_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "NO_UPDATES"

        profile = await client.get("/api/auth/profile", headers=viewer_headers)
        assert profile.json()["data"]["user"]["role"] == "viewer"

    async def test_invalid_department_rejected(self, client, viewer_headers):
        response = await client.put(
            "/api/auth/profile",
            json={"department": "marketing"},
            headers=viewer_headers,
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# ---------------------------------------------------------------------------
# Change password
# ---------------------------------------------------------------------------

class TestChangePassword:
    """Tests for PUT /api/auth/change-password."""

    async def test_change_password(self, client, register):
        headers, _ = await register("pw@example.com", password="OldPass123")
        response = await client.put(
            "/api/auth/change-password",
            json={"currentPassword": "OldPass123", "newPassword": "NewPass456"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Password changed successfully"

        old = await client.post(
            "/api/auth/login",
            json={"email": "pw@example.com", "password": "OldPass123"},
        )
        new = await client.post(
            "/api/auth/login",
            json={"email": "pw@example.com", "password": "NewPass456"},
        )
        assert old.status_code == 401
        assert new.status_code == 200

    async def test_missing_passwords(self, client, viewer_headers):
        response = await client.put(
            "/api/auth/change-password",
            json={"currentPassword": "SecurePass123"},
            headers=viewer_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "MISSING_PASSWORDS"

    async def test_weak_new_password(self, client, viewer_headers):
        response = await client.put(
            "/api/auth/change-password",
            json={"currentPassword": "SecurePass123", "newPassword": "123"},
            headers=viewer_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "WEAK_PASSWORD"

    async def test_wrong_current_password(self, client, viewer_headers):
        response = await client.put(
            "/api/auth/change-password",
            json={"currentPassword": "NotMyPassword", "newPassword": "NewPass456"},
            headers=viewer_headers,
        )
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_PASSWORD"

    async def test_requires_authentication(self, client):
        response = await client.put(
            "/api/auth/change-password",
            json={"currentPassword": "a", "newPassword": "b"},
        )
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "NO_TOKEN"
