"""Percentage meter endpoints."""

from httpx import AsyncClient


async def _create_meter(client: AsyncClient, headers: dict, user_id: int, **extra) -> dict:
    response = await client.post("/api/v1/meters", json={"user_ids": [user_id], **extra}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()[0]


async def _adjust(client: AsyncClient, headers: dict, user_id: int, change: int):
    return await client.post(
        f"/api/v1/users/{user_id}/meter/adjust",
        json={"percentage_change": change, "reason": "good week"},
        headers=headers,
    )


class TestMeters:
    async def test_no_meter_yet(self, client: AsyncClient, user_headers):
        response = await client.get("/api/v1/users/me/meter", headers=user_headers)
        assert response.status_code == 200
        assert response.json() is None

    async def test_create_and_view(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        meter = await _create_meter(client, admin_headers, user_tokens["user"]["id"], description="Lego set")
        assert meter["current_percentage"] == 0
        assert meter["status"] == "active"

        response = await client.get("/api/v1/users/me/meter", headers=user_headers)
        assert response.json()["id"] == meter["id"]

    async def test_new_meter_replaces_active_one(self, client: AsyncClient, admin_headers, user_tokens):
        user_id = user_tokens["user"]["id"]
        first = await _create_meter(client, admin_headers, user_id)
        second = await _create_meter(client, admin_headers, user_id)

        active = await client.get("/api/v1/meters", headers=admin_headers)
        assert [m["id"] for m in active.json()] == [second["id"]]
        everything = await client.get("/api/v1/meters?active_only=false", headers=admin_headers)
        assert {m["id"] for m in everything.json()} == {first["id"], second["id"]}

    async def test_adjust_clamps_and_unlocks_once(self, client: AsyncClient, admin_headers, user_tokens):
        user_id = user_tokens["user"]["id"]
        meter = await _create_meter(client, admin_headers, user_id)

        response = await _adjust(client, admin_headers, user_id, 60)
        assert response.json()["meter"]["current_percentage"] == 60

        response = await _adjust(client, admin_headers, user_id, 60)
        body = response.json()
        assert body["meter"]["current_percentage"] == 100
        assert body["meter"]["prize_unlocked"] is True
        assert body["meter"]["status"] == "completed"
        assert body["history"]["change_amount"] == 60

        assert (await _adjust(client, admin_headers, user_id, 10)).status_code == 400

        history = await client.get(f"/api/v1/meters/{meter['id']}/history", headers=admin_headers)
        assert [h["new_percentage"] for h in history.json()] == [100, 60]

    async def test_adjust_without_meter(self, client: AsyncClient, admin_headers, user_tokens):
        response = await _adjust(client, admin_headers, user_tokens["user"]["id"], 10)
        assert response.status_code == 404

    async def test_deactivated_meter_rejects_adjustments(self, client: AsyncClient, admin_headers, user_tokens):
        user_id = user_tokens["user"]["id"]
        meter = await _create_meter(client, admin_headers, user_id)
        response = await client.post(f"/api/v1/meters/{meter['id']}/deactivate", headers=admin_headers)
        assert response.json()["status"] == "deactivated"
        assert (await _adjust(client, admin_headers, user_id, 10)).status_code == 404

    async def test_history_visibility(self, client: AsyncClient, admin_tokens, admin_headers, user_headers):
        meter = await _create_meter(client, admin_headers, admin_tokens["user"]["id"])
        response = await client.get(f"/api/v1/meters/{meter['id']}/history", headers=user_headers)
        assert response.status_code == 403

    async def test_unknown_users_rejected(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/v1/meters", json={"user_ids": [999]}, headers=admin_headers)
        assert response.status_code == 404

    async def test_user_cannot_adjust(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        user_id = user_tokens["user"]["id"]
        await _create_meter(client, admin_headers, user_id)
        assert (await _adjust(client, user_headers, user_id, 50)).status_code == 403
