"""End-to-end authentication flows."""

from httpx import AsyncClient

from tests.conftest import PASSWORD, auth_headers, register


class TestRegistration:
    async def test_register_success(self, client: AsyncClient, mock_email_service):
        data = await register(client, "kid@example.com", "Kid")
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 3600
        assert data["user"]["email"] == "kid@example.com"
        assert data["user"]["role"] == "user"
        assert data["user"]["points"] == 0
        mock_email_service.send_template.assert_called_once()
        assert mock_email_service.send_template.call_args.kwargs["template_name"] == "welcome"

    async def test_bootstrap_admin_email_gets_admin_role(self, admin_tokens):
        assert admin_tokens["user"]["role"] == "admin"

    async def test_duplicate_email_rejected(self, client: AsyncClient):
        await register(client, "dup@example.com", "First")
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "DUP@example.com", "password": PASSWORD, "username": "Second"},
        )
        assert response.status_code == 409

    async def test_duplicate_username_is_case_insensitive(self, client: AsyncClient):
        await register(client, "a@example.com", "Sam")
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "b@example.com", "password": PASSWORD, "username": "sam"},
        )
        assert response.status_code == 409

    async def test_weak_password_rejected(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "weak@example.com", "password": "short", "username": "Weak"},
        )
        assert response.status_code in (400, 422)

    async def test_register_survives_email_failure(self, client: AsyncClient, mock_email_service):
        mock_email_service.send_template.side_effect = OSError("relay down")
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "nomail@example.com", "password": PASSWORD, "username": "NoMail"},
        )
        assert response.status_code == 201


class TestLogin:
    async def test_login_success(self, client: AsyncClient, user_tokens):
        response = await client.post("/api/v1/auth/login", json={"email": "kid@example.com", "password": PASSWORD})
        assert response.status_code == 200
        assert response.json()["user"]["username"] == "Kid"

    async def test_wrong_password(self, client: AsyncClient, user_tokens):
        response = await client.post(
            "/api/v1/auth/login", json={"email": "kid@example.com", "password": "WrongP@ss1"}
        )
        assert response.status_code == 401

    async def test_unknown_email(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/login", json={"email": "nobody@example.com", "password": PASSWORD}
        )
        assert response.status_code == 401

    async def test_lockout_after_repeated_failures(self, client: AsyncClient, user_tokens):
        for _ in range(10):
            await client.post("/api/v1/auth/login", json={"email": "kid@example.com", "password": "WrongP@ss1"})
        response = await client.post("/api/v1/auth/login", json={"email": "kid@example.com", "password": PASSWORD})
        assert response.status_code == 429

    async def test_blocked_user_cannot_login(self, client: AsyncClient, admin_headers, user_tokens):
        user_id = user_tokens["user"]["id"]
        response = await client.patch(
            f"/api/v1/users/{user_id}/block", json={"is_blocked": True}, headers=admin_headers
        )
        assert response.status_code == 200
        response = await client.post("/api/v1/auth/login", json={"email": "kid@example.com", "password": PASSWORD})
        assert response.status_code == 403


class TestTokens:
    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/users/me")
        assert response.status_code == 401

    async def test_refresh_rotates(self, client: AsyncClient, user_tokens):
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": user_tokens["refresh_token"]})
        assert response.status_code == 200
        assert response.json()["refresh_token"] != user_tokens["refresh_token"]

    async def test_refresh_reuse_revokes_family(self, client: AsyncClient, user_tokens):
        first = await client.post("/api/v1/auth/refresh", json={"refresh_token": user_tokens["refresh_token"]})
        rotated = first.json()["refresh_token"]

        reuse = await client.post("/api/v1/auth/refresh", json={"refresh_token": user_tokens["refresh_token"]})
        assert reuse.status_code == 401

        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": rotated})
        assert response.status_code == 401

    async def test_logout_revokes_refresh_token(self, client: AsyncClient, user_tokens):
        response = await client.post("/api/v1/auth/logout", json={"refresh_token": user_tokens["refresh_token"]})
        assert response.status_code == 200
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": user_tokens["refresh_token"]})
        assert response.status_code == 401

    async def test_logout_all(self, client: AsyncClient, user_tokens):
        response = await client.post("/api/v1/auth/logout-all", headers=auth_headers(user_tokens))
        assert response.status_code == 200
        assert response.json()["revoked_count"] == 1


class TestPasswordFlows:
    async def test_change_password(self, client: AsyncClient, user_tokens, mock_email_service):
        response = await client.post(
            "/api/v1/auth/change-password",
            json={"current_password": PASSWORD, "new_password": "NewSecureP@ss2"},
            headers=auth_headers(user_tokens),
        )
        assert response.status_code == 200
        login = await client.post(
            "/api/v1/auth/login", json={"email": "kid@example.com", "password": "NewSecureP@ss2"}
        )
        assert login.status_code == 200

    async def test_change_password_wrong_current(self, client: AsyncClient, user_tokens):
        response = await client.post(
            "/api/v1/auth/change-password",
            json={"current_password": "WrongP@ss1", "new_password": "NewSecureP@ss2"},
            headers=auth_headers(user_tokens),
        )
        assert response.status_code == 401

    async def test_forgot_password_unknown_email_still_200(self, client: AsyncClient, mock_email_service):
        response = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})
        assert response.status_code == 200
        mock_email_service.send_template.assert_not_called()

    async def test_reset_password_with_emailed_token(self, client: AsyncClient, user_tokens, mock_email_service):
        mock_email_service.send_template.reset_mock()
        await client.post("/api/v1/auth/forgot-password", json={"email": "kid@example.com"})
        reset_url = mock_email_service.send_template.call_args.kwargs["context"]["reset_url"]
        token = reset_url.split("token=")[1]

        response = await client.post(
            "/api/v1/auth/reset-password", json={"token": token, "new_password": "ResetP@ss99"}
        )
        assert response.status_code == 200

        again = await client.post("/api/v1/auth/reset-password", json={"token": token, "new_password": "ResetP@ss98"})
        assert again.status_code == 400

    async def test_verify_email_with_emailed_token(self, client: AsyncClient, mock_email_service):
        tokens = await register(client, "verify@example.com", "Verifier")
        verify_url = mock_email_service.send_template.call_args.kwargs["context"]["verify_url"]
        token = verify_url.split("token=")[1]

        response = await client.post("/api/v1/auth/verify-email", json={"token": token})
        assert response.status_code == 200

        me = await client.get("/api/v1/users/me", headers=auth_headers(tokens))
        assert me.json()["email_verified"] is True
