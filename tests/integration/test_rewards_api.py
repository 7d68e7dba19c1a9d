"""Reward catalogue and redemption."""

from httpx import AsyncClient
from sqlalchemy import update

from perfo.db.models import User
from perfo.keys.service import get_inventory
from tests.integration.helpers import balance, create_reward, gift_keys, grant_points


class TestRewardCatalogue:
    async def test_admin_creates_reward(self, client: AsyncClient, admin_headers):
        reward = await create_reward(
            client, admin_headers, key_requirements=[{"key_type": "copper", "quantity": 4}]
        )
        assert reward["point_cost"] == 50
        assert reward["approval_key_required"] is False
        assert reward["key_requirements"] == [{"key_type": "copper", "quantity": 4}]

    async def test_user_cannot_create_reward(self, client: AsyncClient, user_headers):
        response = await client.post("/api/v1/rewards", json={"title": "x", "point_cost": 1}, headers=user_headers)
        assert response.status_code == 403

    async def test_listing_marks_redeemable(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        await create_reward(client, admin_headers, title="Cheap", point_cost=5)
        await create_reward(client, admin_headers, title="Dear", point_cost=500)
        await grant_points(client, admin_headers, user_tokens["user"]["id"], 10)

        response = await client.get("/api/v1/rewards", headers=user_headers)
        flags = {r["title"]: r["can_redeem"] for r in response.json()}
        assert flags == {"Cheap": True, "Dear": False}

    async def test_update_and_delete(self, client: AsyncClient, admin_headers):
        reward = await create_reward(client, admin_headers)
        response = await client.patch(
            f"/api/v1/rewards/{reward['id']}", json={"approval_key_required": True}, headers=admin_headers
        )
        assert response.json()["approval_key_required"] is True
        assert (await client.delete(f"/api/v1/rewards/{reward['id']}", headers=admin_headers)).status_code == 204


class TestRedemption:
    async def test_insufficient_points_leaves_balance(
        self, client: AsyncClient, admin_headers, user_tokens, user_headers
    ):
        reward = await create_reward(client, admin_headers, point_cost=50)
        await grant_points(client, admin_headers, user_tokens["user"]["id"], 40)

        response = await client.post(f"/api/v1/rewards/{reward['id']}/redeem", headers=user_headers)
        assert response.status_code == 400
        assert await balance(client, user_headers) == 40

        redemptions = await client.get("/api/v1/users/me/redemptions", headers=user_headers)
        assert redemptions.json() == []

    async def test_successful_redemption(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        reward = await create_reward(client, admin_headers, point_cost=50)
        await grant_points(client, admin_headers, user_tokens["user"]["id"], 60)

        response = await client.post(f"/api/v1/rewards/{reward['id']}/redeem", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["new_balance"] == 10
        assert response.json()["reward_title"] == "Ice cream"
        assert await balance(client, user_headers) == 10

        history = await client.get("/api/v1/users/me/points/history", headers=user_headers)
        assert [e["points"] for e in history.json()] == [-50, 60]

    async def test_missing_keys_reported(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        user_id = user_tokens["user"]["id"]
        reward = await create_reward(
            client, admin_headers, point_cost=5, key_requirements=[{"key_type": "copper", "quantity": 4}]
        )
        await grant_points(client, admin_headers, user_id, 10)
        await gift_keys(client, admin_headers, user_id, "copper", 2)

        response = await client.post(f"/api/v1/rewards/{reward['id']}/redeem", headers=user_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["missing"] == {"copper": 2}
        assert await balance(client, user_headers) == 10

    async def test_keys_consumed_on_redemption(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        user_id = user_tokens["user"]["id"]
        reward = await create_reward(
            client, admin_headers, point_cost=5, key_requirements=[{"key_type": "copper", "quantity": 2}]
        )
        await grant_points(client, admin_headers, user_id, 10)
        await gift_keys(client, admin_headers, user_id, "copper", 3)

        response = await client.post(f"/api/v1/rewards/{reward['id']}/redeem", headers=user_headers)
        assert response.status_code == 200
        keys = await client.get("/api/v1/users/me/keys", headers=user_headers)
        assert keys.json()["keys"]["copper"] == 1

    async def test_approval_key_required(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        reward = await create_reward(client, admin_headers, point_cost=5, approval_key_required=True)
        await grant_points(client, admin_headers, user_tokens["user"]["id"], 10)

        missing = await client.post(f"/api/v1/rewards/{reward['id']}/redeem", json={}, headers=user_headers)
        assert missing.status_code == 400

        short = await client.post(
            f"/api/v1/rewards/{reward['id']}/redeem", json={"approval_key": "ab"}, headers=user_headers
        )
        assert short.status_code == 400

        ok = await client.post(
            f"/api/v1/rewards/{reward['id']}/redeem", json={"approval_key": "mum-said-yes"}, headers=user_headers
        )
        assert ok.status_code == 200
        assert await balance(client, user_headers) == 5

    async def test_unknown_reward(self, client: AsyncClient, user_headers):
        response = await client.post("/api/v1/rewards/999/redeem", headers=user_headers)
        assert response.status_code == 404

    async def test_concurrent_spend_is_conflict_and_rolls_back(
        self, client: AsyncClient, admin_headers, user_tokens, user_headers, monkeypatch
    ):
        user_id = user_tokens["user"]["id"]
        reward = await create_reward(
            client, admin_headers, point_cost=50, key_requirements=[{"key_type": "copper", "quantity": 1}]
        )
        await grant_points(client, admin_headers, user_id, 60)
        await gift_keys(client, admin_headers, user_id, "copper", 2)

        async def spent_elsewhere(db, uid):
            await db.execute(
                update(User).where(User.id == uid).values(points=10).execution_options(synchronize_session=False)
            )
            return await get_inventory(db, uid)

        monkeypatch.setattr("perfo.rewards.service.get_inventory", spent_elsewhere)
        response = await client.post(f"/api/v1/rewards/{reward['id']}/redeem", headers=user_headers)
        assert response.status_code == 409

        assert await balance(client, user_headers) == 60
        keys = await client.get("/api/v1/users/me/keys", headers=user_headers)
        assert keys.json()["keys"]["copper"] == 2
        redemptions = await client.get("/api/v1/users/me/redemptions", headers=user_headers)
        assert redemptions.json() == []
