"""Key inventory endpoints."""

from httpx import AsyncClient

from tests.integration.helpers import gift_keys


class TestKeys:
    async def test_key_types(self, client: AsyncClient):
        response = await client.get("/api/v1/keys/types")
        assert [k["key_type"] for k in response.json()] == ["copper", "silver", "golden", "diamond", "ruby"]

    async def test_inventory_is_zero_filled(self, client: AsyncClient, user_headers):
        response = await client.get("/api/v1/users/me/keys", headers=user_headers)
        assert response.json()["total"] == 0
        assert set(response.json()["keys"]) == {"copper", "silver", "golden", "diamond", "ruby"}

    async def test_gifts_accumulate(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        user_id = user_tokens["user"]["id"]
        await gift_keys(client, admin_headers, user_id, "silver", 2)
        gift = await gift_keys(client, admin_headers, user_id, "silver", 3)
        assert gift["new_total"] == 5

        history = await client.get("/api/v1/users/me/keys/history", headers=user_headers)
        assert [(e["quantity"], e["new_total"]) for e in history.json()] == [(3, 5), (2, 2)]

    async def test_gift_requires_admin(self, client: AsyncClient, user_tokens, user_headers):
        response = await client.post(
            f"/api/v1/users/{user_tokens['user']['id']}/keys",
            json={"key_type": "ruby", "quantity": 1},
            headers=user_headers,
        )
        assert response.status_code == 403

    async def test_gift_validation(self, client: AsyncClient, admin_headers, user_tokens):
        user_id = user_tokens["user"]["id"]
        bad_type = await client.post(
            f"/api/v1/users/{user_id}/keys", json={"key_type": "wooden", "quantity": 1}, headers=admin_headers
        )
        zero = await client.post(
            f"/api/v1/users/{user_id}/keys", json={"key_type": "ruby", "quantity": 0}, headers=admin_headers
        )
        unknown_user = await client.post(
            "/api/v1/users/999/keys", json={"key_type": "ruby", "quantity": 1}, headers=admin_headers
        )
        assert bad_type.status_code == 422
        assert zero.status_code == 422
        assert unknown_user.status_code == 404

    async def test_check(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        await gift_keys(client, admin_headers, user_tokens["user"]["id"], "copper", 2)
        response = await client.post(
            "/api/v1/keys/check",
            json={"requirements": [{"key_type": "copper", "quantity": 4}]},
            headers=user_headers,
        )
        assert response.json() == {"has_required_keys": False, "missing": {"copper": 2}}

        empty = await client.post("/api/v1/keys/check", json={"requirements": []}, headers=user_headers)
        assert empty.json()["has_required_keys"] is True

    async def test_check_passes_after_gift(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        user_id = user_tokens["user"]["id"]
        requirement = {"requirements": [{"key_type": "copper", "quantity": 3}]}
        await gift_keys(client, admin_headers, user_id, "copper", 2)

        before = await client.post("/api/v1/keys/check", json=requirement, headers=user_headers)
        assert before.json() == {"has_required_keys": False, "missing": {"copper": 1}}

        await gift_keys(client, admin_headers, user_id, "copper", 2)
        after = await client.post("/api/v1/keys/check", json=requirement, headers=user_headers)
        assert after.json() == {"has_required_keys": True, "missing": {}}
