"""Tests for progress tracking on custom lists."""

import uuid

from sqlalchemy import func, select

from checklist.db.models import CustomProgress


class TestToggle:
    async def test_first_toggle_creates_completed_row(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        body = {"list_id": built["list_id"], "topic_id": built["topics"]["strings"]}

        response = await client.post("/api/progress/toggle", json=body, headers=user["headers"])
        assert response.status_code == 201
        assert response.json()["completed"] is True
        assert response.json()["completed_at"] is not None

        response = await client.post("/api/progress/toggle", json=body, headers=user["headers"])
        assert response.status_code == 200
        assert response.json()["completed"] is False
        assert response.json()["completed_at"] is None

    async def test_topic_and_resource_rows_are_distinct(self, client, make_user, build_list, db_session):
        user = await make_user()
        built = await build_list(user["headers"])
        topic = {"list_id": built["list_id"], "topic_id": built["topics"]["arrays"]}
        resource = {**topic, "resource_id": built["resources"]["video"]}

        for body in (topic, resource, topic, resource):
            await client.post("/api/progress/toggle", json=body, headers=user["headers"])

        count = (
            await db_session.execute(select(func.count(CustomProgress.id)).where(CustomProgress.user_id == user["id"]))
        ).scalar_one()
        assert count == 2

    async def test_requires_target(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        response = await client.post(
            "/api/progress/toggle", json={"list_id": built["list_id"]}, headers=user["headers"]
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "list_id and either topic_id or resource_id are required"

    async def test_topic_from_another_list(self, client, make_user, build_list):
        user = await make_user()
        first = await build_list(user["headers"])
        second = await build_list(user["headers"], title="Other")
        response = await client.post(
            "/api/progress/toggle",
            json={"list_id": first["list_id"], "topic_id": second["topics"]["arrays"]},
            headers=user["headers"],
        )
        assert response.status_code == 404

    async def test_private_list_of_someone_else(self, client, make_user, build_list):
        owner = await make_user("owner")
        other = await make_user("other")
        built = await build_list(owner["headers"])
        response = await client.post(
            "/api/progress/toggle",
            json={"list_id": built["list_id"], "topic_id": built["topics"]["arrays"]},
            headers=other["headers"],
        )
        assert response.status_code == 404

    async def test_public_list_of_someone_else(self, client, make_user, build_list):
        owner = await make_user("owner")
        other = await make_user("other")
        built = await build_list(owner["headers"], is_public=True)
        response = await client.post(
            "/api/progress/toggle",
            json={"list_id": built["list_id"], "topic_id": built["topics"]["arrays"]},
            headers=other["headers"],
        )
        assert response.status_code == 201

        # Progress is per user
        mine = await client.get(f"/api/progress/list/{built['list_id']}", headers=owner["headers"])
        assert mine.json() == []


class TestCompleteTopic:
    async def test_marks_topic_and_resources(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])

        response = await client.post(
            "/api/progress/complete-topic",
            json={"list_id": built["list_id"], "topic_id": built["topics"]["arrays"]},
            headers=user["headers"],
        )
        assert response.status_code == 200
        assert response.json()["resources_completed"] == 2

        rows = (await client.get(f"/api/progress/list/{built['list_id']}", headers=user["headers"])).json()
        assert len(rows) == 3
        assert all(row["completed"] for row in rows)

    async def test_is_idempotent_and_overrides_unchecked(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        body = {"list_id": built["list_id"], "topic_id": built["topics"]["arrays"]}

        # Toggle twice leaves an uncompleted row behind
        for _ in range(2):
            await client.post("/api/progress/toggle", json=body, headers=user["headers"])
        await client.post("/api/progress/complete-topic", json=body, headers=user["headers"])
        await client.post("/api/progress/complete-topic", json=body, headers=user["headers"])

        rows = (await client.get(f"/api/progress/list/{built['list_id']}", headers=user["headers"])).json()
        assert len(rows) == 3
        assert all(row["completed"] for row in rows)

    async def test_without_resources(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        response = await client.post(
            "/api/progress/complete-topic",
            json={"list_id": built["list_id"], "topic_id": built["topics"]["arrays"], "include_resources": False},
            headers=user["headers"],
        )
        assert response.json()["resources_completed"] == 0


class TestStatsAndReset:
    async def test_stats(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        # 4 topics + 3 resources; complete Arrays with its 2 resources
        await client.post(
            "/api/progress/complete-topic",
            json={"list_id": built["list_id"], "topic_id": built["topics"]["arrays"]},
            headers=user["headers"],
        )

        response = await client.get(f"/api/progress/list/{built['list_id']}/stats", headers=user["headers"])
        assert response.status_code == 200
        assert response.json() == {
            "topics": {"total": 4, "completed": 1},
            "resources": {"total": 3, "completed": 2},
            "overall_progress": 43,
        }

    async def test_empty_list_stats(self, client, make_user):
        user = await make_user()
        created = await client.post("/api/custom-lists", json={"title": "Empty"}, headers=user["headers"])
        response = await client.get(f"/api/progress/list/{created.json()['id']}/stats", headers=user["headers"])
        assert response.json()["overall_progress"] == 0

    async def test_reset(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        await client.post(
            "/api/progress/complete-topic",
            json={"list_id": built["list_id"], "topic_id": built["topics"]["arrays"]},
            headers=user["headers"],
        )

        response = await client.delete(f"/api/progress/list/{built['list_id']}", headers=user["headers"])
        assert response.status_code == 200
        assert response.json()["deleted_count"] == 3
        rows = (await client.get(f"/api/progress/list/{built['list_id']}", headers=user["headers"])).json()
        assert rows == []

    async def test_unknown_list(self, client, make_user):
        user = await make_user()
        response = await client.get(f"/api/progress/list/{uuid.uuid4()}/stats", headers=user["headers"])
        assert response.status_code == 404
