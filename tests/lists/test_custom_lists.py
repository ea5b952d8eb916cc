"""Tests for custom lists, sections, topics and resources."""

import uuid

import pytest
from sqlalchemy import select

from checklist.db.models import CustomResource, CustomSection, CustomTopic


class TestLists:
    async def test_create_defaults(self, client, make_user):
        user = await make_user()
        response = await client.post("/api/custom-lists", json={"title": "  Graphs  "}, headers=user["headers"])
        assert response.status_code == 201
        data = response.json()
        assert data["title"] == "Graphs"
        assert data["is_public"] is False
        assert data["icon"] == "📚"
        assert data["rating_count"] == 0 and data["copy_count"] == 0

    async def test_blank_title_rejected(self, client, make_user):
        user = await make_user()
        response = await client.post("/api/custom-lists", json={"title": "   "}, headers=user["headers"])
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Title is required"

    async def test_requires_auth(self, client):
        response = await client.get("/api/custom-lists")
        assert response.status_code == 401

    async def test_lists_are_scoped_to_owner(self, client, make_user, build_list):
        alice = await make_user("alice")
        bob = await make_user("bob")
        built = await build_list(alice["headers"])

        mine = await client.get("/api/custom-lists", headers=alice["headers"])
        assert [row["id"] for row in mine.json()] == [built["list_id"]]
        assert mine.json()[0]["owner_username"] == "alice"

        theirs = await client.get("/api/custom-lists", headers=bob["headers"])
        assert theirs.json() == []

        # Someone else's list looks missing
        response = await client.get(f"/api/custom-lists/{built['list_id']}", headers=bob["headers"])
        assert response.status_code == 404
        response = await client.put(
            f"/api/custom-lists/{built['list_id']}", json={"title": "Mine now"}, headers=bob["headers"]
        )
        assert response.status_code == 404
        response = await client.post(
            "/api/sections", json={"list_id": built["list_id"], "title": "Sneaky"}, headers=bob["headers"]
        )
        assert response.status_code == 404

    async def test_update_keeps_omitted_fields(self, client, make_user):
        user = await make_user()
        created = await client.post(
            "/api/custom-lists",
            json={"title": "Trees", "description": "Binary trees", "icon": "🌲"},
            headers=user["headers"],
        )
        list_id = created.json()["id"]

        response = await client.put(
            f"/api/custom-lists/{list_id}", json={"is_public": True, "description": None}, headers=user["headers"]
        )
        assert response.status_code == 200
        data = response.json()
        assert data["is_public"] is True
        assert data["title"] == "Trees"
        assert data["description"] == "Binary trees"
        assert data["icon"] == "🌲"

    async def test_delete_cascades(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])

        response = await client.delete(f"/api/custom-lists/{built['list_id']}", headers=user["headers"])
        assert response.status_code == 200
        assert response.json()["list"]["id"] == built["list_id"]

        response = await client.put(
            f"/api/topics/{built['topics']['arrays']}", json={"title": "Gone"}, headers=user["headers"]
        )
        assert response.status_code == 404

    async def test_bad_uuid_is_400(self, client, make_user):
        user = await make_user()
        response = await client.get("/api/custom-lists/not-a-uuid", headers=user["headers"])
        assert response.status_code == 400


class TestTree:
    async def test_detail_nests_subtopics_and_resources(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])

        response = await client.get(f"/api/custom-lists/{built['list_id']}", headers=user["headers"])
        assert response.status_code == 200
        sections = response.json()["sections"]
        assert [s["title"] for s in sections] == ["Basics", "Advanced"]

        basics_topics = sections[0]["topics"]
        assert [t["title"] for t in basics_topics] == ["Arrays", "Strings"]
        arrays = basics_topics[0]
        assert [r["title"] for r in arrays["resources"]] == ["Arrays intro", "Two Sum"]
        assert [r["platform"] for r in arrays["resources"]] == ["YouTube", "LeetCode"]
        assert [t["title"] for t in arrays["subtopics"]] == ["Two pointers"]
        assert arrays["subtopics"][0]["resources"][0]["title"] == "Notes"
        assert sections[1]["topics"][0]["title"] == "Graphs"

    async def test_order_index_appends(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        response = await client.post(
            "/api/sections", json={"list_id": built["list_id"], "title": "Extra"}, headers=user["headers"]
        )
        assert response.json()["order_index"] == 2

    @pytest.mark.parametrize(
        ("path", "model", "group", "moved", "sibling", "sibling_index"),
        [
            ("sections", CustomSection, "sections", "basics", "advanced", 1),
            ("topics", CustomTopic, "topics", "arrays", "strings", 1),
            ("resources", CustomResource, "resources", "video", "practice", 1),
        ],
    )
    async def test_reorder_sets_exact_index_only(
        self, client, make_user, build_list, db_session, path, model, group, moved, sibling, sibling_index
    ):
        user = await make_user()
        built = await build_list(user["headers"])
        response = await client.put(
            f"/api/{path}/{built[group][moved]}/reorder",
            json={"new_order_index": 5},
            headers=user["headers"],
        )
        assert response.status_code == 200
        assert response.json()["order_index"] == 5

        moved_id, sibling_id = uuid.UUID(built[group][moved]), uuid.UUID(built[group][sibling])
        rows = await db_session.execute(
            select(model.id, model.order_index).where(model.id.in_([moved_id, sibling_id]))
        )
        indexes = dict(rows.all())
        assert indexes[moved_id] == 5
        assert indexes[sibling_id] == sibling_index

    async def test_reorder_changes_display_order(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        response = await client.put(
            f"/api/sections/{built['sections']['basics']}/reorder",
            json={"new_order_index": 5},
            headers=user["headers"],
        )
        assert response.status_code == 200

        detail = await client.get(f"/api/custom-lists/{built['list_id']}", headers=user["headers"])
        assert [s["title"] for s in detail.json()["sections"]] == ["Advanced", "Basics"]

    async def test_negative_order_rejected(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        response = await client.put(
            f"/api/topics/{built['topics']['arrays']}/reorder",
            json={"new_order_index": -1},
            headers=user["headers"],
        )
        assert response.status_code == 400


class TestTopics:
    async def test_subtopic_of_subtopic_rejected(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        response = await client.post(
            "/api/topics",
            json={
                "section_id": built["sections"]["basics"],
                "title": "Too deep",
                "parent_topic_id": built["topics"]["two_pointers"],
            },
            headers=user["headers"],
        )
        assert response.status_code == 400

    async def test_parent_in_other_section_rejected(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        response = await client.post(
            "/api/topics",
            json={
                "section_id": built["sections"]["advanced"],
                "title": "Misplaced",
                "parent_topic_id": built["topics"]["arrays"],
            },
            headers=user["headers"],
        )
        assert response.status_code == 400

    async def test_deleting_topic_removes_subtopics(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        response = await client.delete(f"/api/topics/{built['topics']['arrays']}", headers=user["headers"])
        assert response.status_code == 200

        detail = await client.get(f"/api/custom-lists/{built['list_id']}", headers=user["headers"])
        titles = [t["title"] for t in detail.json()["sections"][0]["topics"]]
        assert titles == ["Strings"]
        response = await client.delete(f"/api/topics/{built['topics']['two_pointers']}", headers=user["headers"])
        assert response.status_code == 404

    async def test_unknown_section(self, client, make_user):
        user = await make_user()
        response = await client.post(
            "/api/topics", json={"section_id": str(uuid.uuid4()), "title": "Orphan"}, headers=user["headers"]
        )
        assert response.status_code == 404


class TestResources:
    async def test_explicit_platform_kept(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        response = await client.post(
            "/api/resources",
            json={
                "topic_id": built["topics"]["strings"],
                "type": "link",
                "title": "Article",
                "url": "https://www.geeksforgeeks.org/strings",
                "platform": "Blog",
            },
            headers=user["headers"],
        )
        assert response.status_code == 201
        assert response.json()["platform"] == "Blog"

    async def test_invalid_type_rejected(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        response = await client.post(
            "/api/resources",
            json={"topic_id": built["topics"]["strings"], "type": "podcast", "title": "x", "url": "https://x.io"},
            headers=user["headers"],
        )
        assert response.status_code == 400

    async def test_update_and_delete(self, client, make_user, build_list):
        user = await make_user()
        built = await build_list(user["headers"])
        resource_id = built["resources"]["video"]

        response = await client.put(
            f"/api/resources/{resource_id}", json={"title": "Arrays deep dive"}, headers=user["headers"]
        )
        assert response.status_code == 200
        assert response.json()["title"] == "Arrays deep dive"
        assert response.json()["url"] == "https://www.youtube.com/watch?v=1"

        response = await client.delete(f"/api/resources/{resource_id}", headers=user["headers"])
        assert response.status_code == 200
        assert response.json()["resource"]["id"] == resource_id
