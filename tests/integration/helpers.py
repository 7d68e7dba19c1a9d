"""API helpers shared by the integration tests."""

from __future__ import annotations

from httpx import AsyncClient


async def create_task(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {"title": "Tidy room", "point_value": 10, "category": "chores"}
    payload.update(overrides)
    response = await client.post("/api/v1/tasks", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def create_reward(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {"title": "Ice cream", "point_cost": 50}
    payload.update(overrides)
    response = await client.post("/api/v1/rewards", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def grant_points(client: AsyncClient, headers: dict, user_id: int, points: int) -> dict:
    response = await client.post(
        f"/api/v1/users/{user_id}/points", json={"points": points, "reason": "test"}, headers=headers
    )
    assert response.status_code == 200, response.text
    return response.json()


async def gift_keys(client: AsyncClient, headers: dict, user_id: int, key_type: str, quantity: int) -> dict:
    response = await client.post(
        f"/api/v1/users/{user_id}/keys", json={"key_type": key_type, "quantity": quantity}, headers=headers
    )
    assert response.status_code == 200, response.text
    return response.json()


async def balance(client: AsyncClient, headers: dict) -> int:
    response = await client.get("/api/v1/users/me", headers=headers)
    return response.json()["points"]
