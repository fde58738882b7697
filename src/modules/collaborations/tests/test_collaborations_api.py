"""Tests for the collaborations HTTP API."""

import pytest
from bson import ObjectId
from httpx import AsyncClient

from src.modules.collaborations.repository import COLLABORATIONS_COLLECTION
from src.modules.memes.services import MEMES_COLLECTION

# We use the async_client, create_user and published_events fixtures
# from conftest.py


@pytest.fixture
async def owner(create_user):
    return await create_user("owner")


@pytest.fixture
async def bob(create_user):
    return await create_user("bob")


@pytest.fixture
async def carol(create_user):
    return await create_user("carol")


@pytest.fixture
async def meme_id(mongo_db):
    result = await mongo_db[MEMES_COLLECTION].insert_one(
        {"title": "Distracted boyfriend", "imageUrl": "/memes/db.png"}
    )
    return str(result.inserted_id)


async def create_collab(client: AsyncClient, headers: dict, **overrides) -> dict:
    payload = {"title": "Cats in suits", **overrides}
    response = await client.post("/collaborations", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestEnvelope:
    """Test the response envelope on success and failure."""

    @pytest.mark.asyncio
    async def test_health(self, async_client: AsyncClient):
        response = await async_client.get("/health")
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["data"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_not_found(self, async_client: AsyncClient):
        missing = str(ObjectId())
        response = await async_client.get(f"/collaborations/{missing}")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": f"Collaboration with id '{missing}' not found",
        }

    @pytest.mark.asyncio
    async def test_request_validation(self, async_client: AsyncClient, owner):
        _, headers = owner
        response = await async_client.post("/collaborations", json={}, headers=headers)
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["message"].startswith("title")

    @pytest.mark.asyncio
    async def test_domain_validation(self, async_client: AsyncClient, owner):
        _, headers = owner
        response = await async_client.post(
            "/collaborations", json={"title": "ab"}, headers=headers
        )
        assert response.status_code == 422
        assert response.json()["message"] == (
            "Title must be between 3 and 200 characters"
        )


class TestCollaborationCRUD:
    """Test creating, reading, listing and updating collaborations."""

    @pytest.mark.asyncio
    async def test_create(self, async_client: AsyncClient, owner, published_events):
        owner_id, headers = owner
        data = await create_collab(async_client, headers, tags=["Cats"])

        assert data["owner_id"] == owner_id
        assert data["user_role"] == "owner"
        assert data["revision"] == 0
        assert data["tags"] == ["cats"]
        assert data["settings"]["max_collaborators"] == 10
        assert published_events[-1]["type"] == "collaboration.created"
        assert published_events[-1]["collaboration_id"] == data["id"]

    @pytest.mark.asyncio
    async def test_create_remix(self, async_client: AsyncClient, owner, meme_id):
        _, headers = owner
        response = await async_client.post(
            "/collaborations",
            json={"title": "Remix time", "type": "remix"},
            headers=headers,
        )
        assert response.status_code == 422

        data = await create_collab(
            async_client, headers, type="remix", original_meme=meme_id
        )
        assert data["original_meme"] == meme_id

        remixes = await async_client.get(f"/collaborations/meme/{meme_id}/remixes")
        assert [c["id"] for c in remixes.json()["data"]] == [data["id"]]

    @pytest.mark.asyncio
    async def test_create_with_unknown_meme(self, async_client: AsyncClient, owner):
        _, headers = owner
        response = await async_client.post(
            "/collaborations",
            json={"title": "Remix time", "type": "remix", "original_meme": "nope"},
            headers=headers,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_get_counts_views(self, async_client: AsyncClient, owner):
        _, headers = owner
        collab = await create_collab(async_client, headers)

        await async_client.get(f"/collaborations/{collab['id']}")
        response = await async_client.get(f"/collaborations/{collab['id']}")

        data = response.json()["data"]
        assert data["stats"]["total_views"] == 2
        assert data["user_role"] is None

    @pytest.mark.asyncio
    async def test_private_collaboration(
        self, async_client: AsyncClient, owner, bob
    ):
        _, owner_headers = owner
        _, bob_headers = bob
        collab = await create_collab(
            async_client, owner_headers, settings={"is_public": False}
        )

        anonymous = await async_client.get(f"/collaborations/{collab['id']}")
        stranger = await async_client.get(
            f"/collaborations/{collab['id']}", headers=bob_headers
        )
        member = await async_client.get(
            f"/collaborations/{collab['id']}", headers=owner_headers
        )

        assert anonymous.status_code == 403
        assert stranger.json() == {
            "success": False,
            "message": "This collaboration is private",
        }
        assert member.status_code == 200

        listing = await async_client.get("/collaborations")
        assert listing.json()["data"]["total"] == 0

    @pytest.mark.asyncio
    async def test_admin_can_read_private(
        self, async_client: AsyncClient, owner, create_user
    ):
        _, owner_headers = owner
        _, admin_headers = await create_user("root", role="admin")
        collab = await create_collab(
            async_client, owner_headers, settings={"is_public": False}
        )
        response = await async_client.get(
            f"/collaborations/{collab['id']}", headers=admin_headers
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_list_search_and_pagination(self, async_client: AsyncClient, owner):
        _, headers = owner
        await create_collab(async_client, headers, title="Cats in suits")
        await create_collab(async_client, headers, title="Dogs in hats")
        await create_collab(async_client, headers, title="Cats on keyboards")

        search = await async_client.get("/collaborations", params={"search": "cats"})
        page = await async_client.get("/collaborations", params={"limit": 2})

        assert search.json()["data"]["total"] == 2
        data = page.json()["data"]
        assert len(data["items"]) == 2
        assert data["total"] == 3
        assert data["total_pages"] == 2
        assert "versions" not in data["items"][0]

    @pytest.mark.asyncio
    async def test_trending_and_user_lists(
        self, async_client: AsyncClient, owner, bob
    ):
        _, owner_headers = owner
        _, bob_headers = bob
        collab = await create_collab(async_client, owner_headers)
        await async_client.post(
            f"/collaborations/{collab['id']}/join", headers=bob_headers
        )

        trending = await async_client.get("/collaborations/trending")
        mine = await async_client.get(
            "/collaborations/user/collaborations", headers=bob_headers
        )

        assert [c["id"] for c in trending.json()["data"]] == [collab["id"]]
        assert [c["id"] for c in mine.json()["data"]] == [collab["id"]]

    @pytest.mark.asyncio
    async def test_update(self, async_client: AsyncClient, owner, bob):
        _, owner_headers = owner
        _, bob_headers = bob
        collab = await create_collab(async_client, owner_headers)

        denied = await async_client.put(
            f"/collaborations/{collab['id']}",
            json={"title": "Hijacked"},
            headers=bob_headers,
        )
        response = await async_client.put(
            f"/collaborations/{collab['id']}",
            json={"title": "Cats in tuxedos", "settings": {"allow_anonymous": True}},
            headers=owner_headers,
        )

        assert denied.status_code == 403
        data = response.json()["data"]
        assert data["title"] == "Cats in tuxedos"
        assert data["settings"]["allow_anonymous"] is True
        assert data["settings"]["is_public"] is True
        assert data["revision"] == 1

    @pytest.mark.asyncio
    async def test_stale_revision(self, async_client: AsyncClient, owner):
        _, headers = owner
        collab = await create_collab(async_client, headers)
        url = f"/collaborations/{collab['id']}"

        first = await async_client.put(
            url, json={"title": "First writer"}, headers={**headers, "If-Match": "0"}
        )
        second = await async_client.put(
            url, json={"title": "Second writer"}, headers={**headers, "If-Match": "0"}
        )

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["success"] is False
        current = await async_client.get(url)
        assert current.json()["data"]["title"] == "First writer"

    @pytest.mark.asyncio
    async def test_bad_if_match(self, async_client: AsyncClient, owner):
        _, headers = owner
        collab = await create_collab(async_client, headers)
        response = await async_client.put(
            f"/collaborations/{collab['id']}",
            json={"title": "Whatever"},
            headers={**headers, "If-Match": "abc"},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_concurrent_write_is_rejected(
        self, async_client: AsyncClient, owner, mongo_db
    ):
        _, headers = owner
        collab = await create_collab(async_client, headers)
        # Someone else saved in between: stored revision moved on
        await mongo_db[COLLABORATIONS_COLLECTION].update_one(
            {"_id": ObjectId(collab["id"])}, {"$set": {"revision": 5}}
        )
        response = await async_client.put(
            f"/collaborations/{collab['id']}",
            json={"title": "Late writer"},
            headers={**headers, "If-Match": "0"},
        )
        assert response.status_code == 409


class TestMembership:
    """Test invites, joins, roles and removal over HTTP."""

    @pytest.mark.asyncio
    async def test_invite_accept_flow(
        self, async_client: AsyncClient, owner, bob, published_events
    ):
        _, owner_headers = owner
        bob_id, bob_headers = bob
        collab = await create_collab(
            async_client, owner_headers, settings={"max_collaborators": 2}
        )
        cid = collab["id"]

        invite = await async_client.post(
            f"/collaborations/{cid}/invite",
            json={"username": "bob", "role": "editor", "message": "join us"},
            headers=owner_headers,
        )
        assert invite.status_code == 200
        assert invite.json()["data"]["pending_invites"][0]["user_id"] == bob_id

        invites = await async_client.get(
            "/collaborations/user/invites", headers=bob_headers
        )
        [pending] = invites.json()["data"]
        assert pending["collaboration_id"] == cid
        assert pending["role"] == "editor"
        assert pending["message"] == "join us"

        accepted = await async_client.post(
            f"/collaborations/{cid}/invites/accept", headers=bob_headers
        )
        data = accepted.json()["data"]
        assert data["user_role"] == "editor"
        assert [c["user_id"] for c in data["collaborators"]] == [bob_id]

        types = [e["type"] for e in published_events]
        assert "invite.created" in types
        assert "invite.accepted" in types

    @pytest.mark.asyncio
    async def test_invite_unknown_user(self, async_client: AsyncClient, owner):
        _, headers = owner
        collab = await create_collab(async_client, headers)
        response = await async_client.post(
            f"/collaborations/{collab['id']}/invite",
            json={"username": "ghost"},
            headers=headers,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invite_over_capacity(
        self, async_client: AsyncClient, owner, bob, carol
    ):
        _, owner_headers = owner
        bob_id, _ = bob
        carol_id, _ = carol
        collab = await create_collab(
            async_client, owner_headers, settings={"max_collaborators": 2}
        )
        url = f"/collaborations/{collab['id']}/invite"

        await async_client.post(url, json={"user_id": bob_id}, headers=owner_headers)
        response = await async_client.post(
            url, json={"user_id": carol_id}, headers=owner_headers
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Maximum collaborators reached (2)"

    @pytest.mark.asyncio
    async def test_decline_twice(self, async_client: AsyncClient, owner, bob):
        _, owner_headers = owner
        bob_id, bob_headers = bob
        collab = await create_collab(async_client, owner_headers)
        cid = collab["id"]
        await async_client.post(
            f"/collaborations/{cid}/invite",
            json={"user_id": bob_id},
            headers=owner_headers,
        )

        first = await async_client.post(
            f"/collaborations/{cid}/invites/decline", headers=bob_headers
        )
        second = await async_client.post(
            f"/collaborations/{cid}/invites/decline", headers=bob_headers
        )

        assert first.status_code == 200
        assert second.status_code == 404

    @pytest.mark.asyncio
    async def test_join_private_requires_invite(
        self, async_client: AsyncClient, owner, bob
    ):
        _, owner_headers = owner
        _, bob_headers = bob
        collab = await create_collab(
            async_client, owner_headers, settings={"is_public": False}
        )
        response = await async_client.post(
            f"/collaborations/{collab['id']}/join", headers=bob_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_join_request_flow(self, async_client: AsyncClient, owner, bob):
        _, owner_headers = owner
        bob_id, bob_headers = bob
        collab = await create_collab(
            async_client, owner_headers, settings={"require_approval": True}
        )
        cid = collab["id"]

        joined = await async_client.post(
            f"/collaborations/{cid}/join",
            json={"message": "let me in"},
            headers=bob_headers,
        )
        assert joined.json()["data"]["status"] == "requested"

        approved = await async_client.post(
            f"/collaborations/{cid}/requests/{bob_id}/approve",
            json={"role": "viewer"},
            headers=owner_headers,
        )
        data = approved.json()["data"]
        assert data["join_requests"] == []
        assert data["collaborators"][0]["role"] == "viewer"

    @pytest.mark.asyncio
    async def test_stale_request_after_direct_join(
        self, async_client: AsyncClient, owner, bob
    ):
        _, owner_headers = owner
        bob_id, bob_headers = bob
        collab = await create_collab(
            async_client, owner_headers, settings={"require_approval": True}
        )
        cid = collab["id"]
        await async_client.post(f"/collaborations/{cid}/join", headers=bob_headers)
        await async_client.put(
            f"/collaborations/{cid}",
            json={"settings": {"require_approval": False}},
            headers=owner_headers,
        )

        joined = await async_client.post(
            f"/collaborations/{cid}/join", headers=bob_headers
        )
        approved = await async_client.post(
            f"/collaborations/{cid}/requests/{bob_id}/approve",
            headers=owner_headers,
        )

        assert joined.json()["data"]["status"] == "joined"
        assert approved.status_code == 404
        response = await async_client.get(
            f"/collaborations/{cid}", headers=owner_headers
        )
        data = response.json()["data"]
        assert data["join_requests"] == []
        assert [c["user_id"] for c in data["collaborators"]] == [bob_id]

    @pytest.mark.asyncio
    async def test_reject_join_request(self, async_client: AsyncClient, owner, bob):
        _, owner_headers = owner
        bob_id, bob_headers = bob
        collab = await create_collab(
            async_client, owner_headers, settings={"require_approval": True}
        )
        cid = collab["id"]
        await async_client.post(f"/collaborations/{cid}/join", headers=bob_headers)

        rejected = await async_client.post(
            f"/collaborations/{cid}/requests/{bob_id}/reject", headers=owner_headers
        )
        assert rejected.status_code == 200
        assert rejected.json()["data"]["join_requests"] == []

    @pytest.mark.asyncio
    async def test_role_update_and_removal(
        self, async_client: AsyncClient, owner, bob
    ):
        _, owner_headers = owner
        bob_id, bob_headers = bob
        collab = await create_collab(async_client, owner_headers)
        cid = collab["id"]
        await async_client.post(f"/collaborations/{cid}/join", headers=bob_headers)
        role_url = f"/collaborations/{cid}/collaborators/{bob_id}/role"

        bad = await async_client.put(
            role_url, json={"role": "owner"}, headers=owner_headers
        )
        good = await async_client.put(
            role_url, json={"role": "editor"}, headers=owner_headers
        )
        removed = await async_client.delete(
            f"/collaborations/{cid}/collaborators/{bob_id}", headers=owner_headers
        )

        assert bad.status_code == 422
        assert good.json()["data"]["collaborators"][0]["role"] == "editor"
        assert removed.json()["data"]["collaborators"] == []

    @pytest.mark.asyncio
    async def test_leave(self, async_client: AsyncClient, owner, bob):
        _, owner_headers = owner
        _, bob_headers = bob
        collab = await create_collab(async_client, owner_headers)
        cid = collab["id"]
        await async_client.post(f"/collaborations/{cid}/join", headers=bob_headers)

        left = await async_client.post(
            f"/collaborations/{cid}/leave", headers=bob_headers
        )
        owner_leave = await async_client.post(
            f"/collaborations/{cid}/leave", headers=owner_headers
        )

        assert left.json()["data"]["user_role"] is None
        assert owner_leave.status_code == 422

    @pytest.mark.asyncio
    async def test_queues_hidden_from_non_managers(
        self, async_client: AsyncClient, owner, bob, carol
    ):
        _, owner_headers = owner
        bob_id, _ = bob
        collab = await create_collab(async_client, owner_headers)
        await async_client.post(
            f"/collaborations/{collab['id']}/invite",
            json={"user_id": bob_id},
            headers=owner_headers,
        )
        _, carol_headers = carol
        response = await async_client.get(
            f"/collaborations/{collab['id']}", headers=carol_headers
        )
        assert response.json()["data"]["pending_invites"] == []


class TestHistory:
    """Test versions, comments, forks and merges over HTTP."""

    @pytest.mark.asyncio
    async def test_versions(self, async_client: AsyncClient, owner, bob):
        _, owner_headers = owner
        bob_id, bob_headers = bob
        collab = await create_collab(
            async_client, owner_headers, settings={"require_approval": True}
        )
        cid = collab["id"]
        await async_client.post(
            f"/collaborations/{cid}/invite",
            json={"user_id": bob_id},
            headers=owner_headers,
        )
        await async_client.post(
            f"/collaborations/{cid}/invites/accept", headers=bob_headers
        )

        created = await async_client.post(
            f"/collaborations/{cid}/versions",
            json={
                "title": "Bigger font",
                "changes": [{"type": "text_edit", "description": "48px"}],
            },
            headers=bob_headers,
        )
        assert created.status_code == 201
        version = created.json()["data"]["version"]
        assert version["number"] == 1
        assert version["approved"] is False

        approved = await async_client.post(
            f"/collaborations/{cid}/versions/{version['id']}/approve",
            headers=owner_headers,
        )
        assert approved.json()["data"]["version"]["approved"] is True

    @pytest.mark.asyncio
    async def test_outsider_cannot_add_version(
        self, async_client: AsyncClient, owner, bob
    ):
        _, owner_headers = owner
        _, bob_headers = bob
        collab = await create_collab(async_client, owner_headers)
        response = await async_client.post(
            f"/collaborations/{collab['id']}/versions",
            json={"title": "Sneaky"},
            headers=bob_headers,
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_comments(self, async_client: AsyncClient, owner):
        _, headers = owner
        collab = await create_collab(async_client, headers)
        cid = collab["id"]

        member = await async_client.post(
            f"/collaborations/{cid}/comments",
            json={"content": "first!"},
            headers=headers,
        )
        guest = await async_client.post(
            f"/collaborations/{cid}/comments",
            json={"content": "me too", "author_name": "Guest"},
        )

        assert member.status_code == 201
        assert member.json()["data"]["comment"]["is_anonymous"] is False
        assert guest.status_code == 403

    @pytest.mark.asyncio
    async def test_anonymous_comment(self, async_client: AsyncClient, owner):
        _, headers = owner
        collab = await create_collab(
            async_client, headers, settings={"allow_anonymous": True}
        )
        response = await async_client.post(
            f"/collaborations/{collab['id']}/comments",
            json={"content": "love it", "author_name": "Guest"},
        )
        assert response.status_code == 201
        comment = response.json()["data"]["comment"]
        assert comment["author_id"] is None
        assert comment["author_name"] == "Guest"

    @pytest.mark.asyncio
    async def test_fork_and_merge(self, async_client: AsyncClient, owner, bob):
        owner_id, owner_headers = owner
        bob_id, bob_headers = bob
        collab = await create_collab(async_client, owner_headers)
        cid = collab["id"]
        await async_client.post(
            f"/collaborations/{cid}/versions",
            json={"title": "Original"},
            headers=owner_headers,
        )

        forked = await async_client.post(
            f"/collaborations/{cid}/fork", headers=bob_headers
        )
        assert forked.status_code == 201
        fork = forked.json()["data"]
        assert fork["parent_collaboration"] == cid
        assert fork["owner_id"] == bob_id != owner_id
        assert fork["title"] == "Cats in suits (Fork)"
        assert [v["title"] for v in fork["versions"]] == ["Original"]

        await async_client.post(
            f"/collaborations/{fork['id']}/versions",
            json={"title": "Fork idea"},
            headers=bob_headers,
        )

        denied = await async_client.post(
            f"/collaborations/{fork['id']}/merge-fork", headers=bob_headers
        )
        merged = await async_client.post(
            f"/collaborations/{fork['id']}/merge-fork", headers=owner_headers
        )

        assert denied.status_code == 403
        data = merged.json()["data"]
        assert [v["title"] for v in data["merged_versions"]] == ["Fork idea"]
        assert data["collaboration"]["stats"]["total_forks"] == 1
        assert [v["number"] for v in data["collaboration"]["versions"]] == [1, 2]

    @pytest.mark.asyncio
    async def test_merge_needs_access_to_fork(
        self, async_client: AsyncClient, owner, bob
    ):
        _, owner_headers = owner
        _, bob_headers = bob
        collab = await create_collab(async_client, owner_headers)
        forked = await async_client.post(
            f"/collaborations/{collab['id']}/fork", headers=bob_headers
        )
        fork_id = forked.json()["data"]["id"]
        await async_client.put(
            f"/collaborations/{fork_id}",
            json={"settings": {"is_public": False}},
            headers=bob_headers,
        )
        await async_client.post(
            f"/collaborations/{fork_id}/versions",
            json={"title": "Secret work"},
            headers=bob_headers,
        )

        response = await async_client.post(
            f"/collaborations/{fork_id}/merge-fork", headers=owner_headers
        )

        assert response.status_code == 403
        parent = await async_client.get(
            f"/collaborations/{collab['id']}", headers=owner_headers
        )
        assert parent.json()["data"]["versions"] == []

    @pytest.mark.asyncio
    async def test_fork_disabled(self, async_client: AsyncClient, owner, bob):
        _, owner_headers = owner
        _, bob_headers = bob
        collab = await create_collab(
            async_client, owner_headers, settings={"allow_forks": False}
        )
        response = await async_client.post(
            f"/collaborations/{collab['id']}/fork", headers=bob_headers
        )
        assert response.status_code == 403
        assert response.json()["message"] == (
            "Forking is not allowed for this collaboration"
        )


class TestDerivedViews:
    """Test stats, activity and insights endpoints."""

    @pytest.mark.asyncio
    async def test_stats_activity_insights(self, async_client: AsyncClient, owner):
        _, headers = owner
        collab = await create_collab(async_client, headers)
        cid = collab["id"]
        await async_client.post(
            f"/collaborations/{cid}/versions", json={"title": "v1"}, headers=headers
        )
        await async_client.post(
            f"/collaborations/{cid}/comments", json={"content": "ok"}, headers=headers
        )

        stats = await async_client.get(f"/collaborations/{cid}/stats")
        activity = await async_client.get(
            f"/collaborations/{cid}/activity", params={"limit": 1}
        )
        insights = await async_client.get(f"/collaborations/{cid}/insights")

        assert stats.json()["data"]["basic"]["version_count"] == 1
        assert stats.json()["data"]["basic"]["comment_count"] == 1
        assert activity.json()["data"]["total_count"] == 2
        assert len(activity.json()["data"]["activities"]) == 1
        assert insights.json()["data"]["quality"]["completion_score"] == 12

    @pytest.mark.asyncio
    async def test_activity_invites_for_managers_only(
        self, async_client: AsyncClient, owner, bob, carol
    ):
        _, owner_headers = owner
        bob_id, _ = bob
        _, carol_headers = carol
        collab = await create_collab(async_client, owner_headers)
        cid = collab["id"]
        await async_client.post(
            f"/collaborations/{cid}/invite",
            json={"user_id": bob_id},
            headers=owner_headers,
        )

        as_owner = await async_client.get(
            f"/collaborations/{cid}/activity", headers=owner_headers
        )
        as_carol = await async_client.get(
            f"/collaborations/{cid}/activity", headers=carol_headers
        )
        anonymous = await async_client.get(f"/collaborations/{cid}/activity")

        assert [a["type"] for a in as_owner.json()["data"]["activities"]] == [
            "invite"
        ]
        assert as_carol.json()["data"]["activities"] == []
        assert anonymous.json()["data"]["total_count"] == 0

    @pytest.mark.asyncio
    async def test_private_views(self, async_client: AsyncClient, owner):
        _, headers = owner
        collab = await create_collab(
            async_client, headers, settings={"is_public": False}
        )
        response = await async_client.get(f"/collaborations/{collab['id']}/insights")
        assert response.status_code == 403


class TestTemplates:
    """Test built-in templates."""

    @pytest.mark.asyncio
    async def test_list_templates(self, async_client: AsyncClient):
        response = await async_client.get("/collaborations/templates")
        ids = [t["id"] for t in response.json()["data"]]
        assert "template-workshop" in ids
        assert len(ids) == 5

        community = await async_client.get(
            "/collaborations/templates", params={"category": "community"}
        )
        assert {t["id"] for t in community.json()["data"]} == {
            "open-jam",
            "feedback-circle",
        }

    @pytest.mark.asyncio
    async def test_create_from_template(self, async_client: AsyncClient, owner):
        _, headers = owner
        response = await async_client.post(
            "/collaborations/from-template",
            json={
                "template_id": "template-workshop",
                "title": "Reusable reaction face",
                "settings": {"max_collaborators": 3},
            },
            headers=headers,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["type"] == "template_creation"
        assert data["template_id"] == "template-workshop"
        assert data["settings"]["is_public"] is False
        assert data["settings"]["max_collaborators"] == 3
        assert data["tags"] == ["template"]

    @pytest.mark.asyncio
    async def test_unknown_template(self, async_client: AsyncClient, owner):
        _, headers = owner
        response = await async_client.post(
            "/collaborations/from-template",
            json={"template_id": "nope", "title": "Whatever"},
            headers=headers,
        )
        assert response.status_code == 404
