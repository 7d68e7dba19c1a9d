"""Streak, achievement and prayer endpoints."""

from httpx import AsyncClient

from tests.integration.helpers import create_task, grant_points


class TestStreakEndpoints:
    async def test_empty_streak(self, client: AsyncClient, user_headers):
        response = await client.get("/api/v1/users/me/streak", headers=user_headers)
        assert response.json() == {"current_streak": 0, "longest_streak": 0, "last_activity_date": None}

    async def test_check_in_is_idempotent_within_a_day(self, client: AsyncClient, user_headers):
        first = await client.post("/api/v1/users/me/streak/check", headers=user_headers)
        assert first.status_code == 200
        assert first.json()["current_streak"] == 1
        assert first.json()["changed"] is True

        second = await client.post("/api/v1/users/me/streak/check", headers=user_headers)
        assert second.json()["current_streak"] == 1
        assert second.json()["changed"] is False


class TestAchievementEndpoint:
    async def test_achievements_follow_counters(self, client: AsyncClient, admin_headers, user_tokens, user_headers):
        task = await create_task(client, admin_headers, point_value=10)
        req = await client.post("/api/v1/point-requests", json={"task_id": task["id"]}, headers=user_headers)
        await client.post(
            f"/api/v1/point-requests/{req.json()['id']}/review", json={"status": "approved"}, headers=admin_headers
        )
        await grant_points(client, admin_headers, user_tokens["user"]["id"], 45)

        response = await client.get("/api/v1/users/me/achievements", headers=user_headers)
        body = response.json()
        achieved = {a["id"] for a in body["achievements"] if a["achieved"]}
        assert body["completed_tasks"] == 1
        assert body["total_points"] == 55
        assert achieved == {"first_task", "point_collector", "point_hunter"}
        assert body["achieved_count"] == 3


class TestPrayerEndpoints:
    async def test_today_lists_five_windows(self, client: AsyncClient, user_headers):
        response = await client.get("/api/v1/prayers/today", headers=user_headers)
        body = response.json()
        assert [p["name"] for p in body["prayers"]] == ["Fajr", "Dhuhr", "Asr", "Maghrib", "Isha"]
        assert body["completed_count"] == 0
        assert body["timezone"] == "UTC"

    async def test_unknown_prayer(self, client: AsyncClient, user_headers):
        response = await client.post("/api/v1/prayers/tahajjud/complete", headers=user_headers)
        assert response.status_code == 404

    async def test_submit_without_completed_prayers(self, client: AsyncClient, user_headers):
        response = await client.post("/api/v1/prayers/submit", headers=user_headers)
        assert response.status_code == 400

    async def test_requires_authentication(self, client: AsyncClient):
        response = await client.get("/api/v1/prayers/today")
        assert response.status_code == 401
