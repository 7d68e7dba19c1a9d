"""Profile, administration and leaderboard endpoints."""

from httpx import AsyncClient

from tests.conftest import auth_headers, register
from tests.integration.helpers import balance, grant_points


class TestProfile:
    async def test_get_me(self, client: AsyncClient, user_headers):
        response = await client.get("/api/v1/users/me", headers=user_headers)
        assert response.json()["username"] == "Kid"

    async def test_update_profile(self, client: AsyncClient, user_headers):
        response = await client.patch(
            "/api/v1/users/me", json={"full_name": "Little One", "username": "Kiddo"}, headers=user_headers
        )
        assert response.status_code == 200
        assert response.json()["full_name"] == "Little One"
        assert response.json()["username"] == "Kiddo"

    async def test_username_taken(self, client: AsyncClient, admin_tokens, user_headers):
        response = await client.patch("/api/v1/users/me", json={"username": "MUM"}, headers=user_headers)
        assert response.status_code == 409


class TestAdministration:
    async def test_non_admin_forbidden(self, client: AsyncClient, user_tokens, user_headers):
        user_id = user_tokens["user"]["id"]
        assert (await client.get("/api/v1/users", headers=user_headers)).status_code == 403
        response = await client.post(
            f"/api/v1/users/{user_id}/points", json={"points": 100, "reason": "cheat"}, headers=user_headers
        )
        assert response.status_code == 403
        assert await balance(client, user_headers) == 0

    async def test_list_users(self, client: AsyncClient, admin_headers, user_tokens):
        response = await client.get("/api/v1/users", headers=admin_headers)
        assert {u["username"] for u in response.json()} == {"Mum", "Kid"}

    async def test_promote_user(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        user_id = user_tokens["user"]["id"]
        response = await client.patch(f"/api/v1/users/{user_id}/role", json={"role": "admin"}, headers=admin_headers)
        assert response.json()["role"] == "admin"
        assert (await client.get("/api/v1/users", headers=user_headers)).status_code == 200

    async def test_admin_cannot_demote_or_block_self(self, client: AsyncClient, admin_tokens, admin_headers):
        admin_id = admin_tokens["user"]["id"]
        demote = await client.patch(f"/api/v1/users/{admin_id}/role", json={"role": "user"}, headers=admin_headers)
        block = await client.patch(f"/api/v1/users/{admin_id}/block", json={"is_blocked": True}, headers=admin_headers)
        assert demote.status_code == 400
        assert block.status_code == 400

    async def test_blocked_user_token_rejected(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        user_id = user_tokens["user"]["id"]
        await client.patch(f"/api/v1/users/{user_id}/block", json={"is_blocked": True}, headers=admin_headers)
        response = await client.get("/api/v1/users/me", headers=user_headers)
        assert response.status_code == 403

    async def test_negative_grant_cannot_go_below_zero(
        self, client: AsyncClient, admin_headers, user_tokens, user_headers
    ):
        user_id = user_tokens["user"]["id"]
        await grant_points(client, admin_headers, user_id, 10)
        response = await client.post(
            f"/api/v1/users/{user_id}/points", json={"points": -20, "reason": "oops"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert await balance(client, user_headers) == 10

    async def test_grant_to_unknown_user(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/v1/users/999/points", json={"points": 5, "reason": "x"}, headers=admin_headers
        )
        assert response.status_code == 404


class TestLeaderboard:
    async def test_ranked_by_points_without_admins(self, client: AsyncClient, admin_headers, user_tokens):
        other = await register(client, "sib@example.com", "Sibling")
        await grant_points(client, admin_headers, user_tokens["user"]["id"], 5)
        await grant_points(client, admin_headers, other["user"]["id"], 15)

        response = await client.get("/api/v1/leaderboard", headers=auth_headers(other))
        board = response.json()
        assert [(e["rank"], e["username"], e["points"]) for e in board] == [(1, "Sibling", 15), (2, "Kid", 5)]
