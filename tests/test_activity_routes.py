"""
Tests for the activity HTTP endpoints.
"""
from activity_stream.activities import post_update
from activity_stream.comments import new_comment


class TestFeedEndpoints:
    """Test feed and status update endpoints."""

    def test_post_update(self, client, auth_headers, test_user):
        response = client.post(
            "/api/activity",
            headers=auth_headers,
            json={"content": "Hello from the API"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["activity"]["content"] == "Hello from the API"
        assert data["activity"]["user_id"] == test_user.id
        assert data["permalink"].endswith(f"/activity/p/{data['activity']['id']}/")

    def test_post_update_unauthenticated(self, client):
        response = client.post("/api/activity", json={"content": "anonymous"})
        assert response.status_code == 401
        assert response.json()["ok"] is False

    def test_post_blank_update(self, client, auth_headers):
        response = client.post("/api/activity", headers=auth_headers, json={"content": "   "})
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        assert response.json()["details"] == {"field": "content"}

    def test_feed_excludes_comments(self, client, store, test_user):
        root = post_update(store, test_user.id, "root")
        new_comment(store, "comment", test_user.id, root)

        response = client.get("/api/activity")
        assert response.status_code == 200
        data = response.json()
        assert [item["id"] for item in data["data"]] == [root]
        assert data["pagination"]["total"] == 1

        with_comments = client.get("/api/activity", params={"include_comments": True}).json()
        assert with_comments["pagination"]["total"] == 2

    def test_feed_search(self, client, store, test_user):
        post_update(store, test_user.id, "release day")
        post_update(store, test_user.id, "lunch")

        data = client.get("/api/activity", params={"search": "release"}).json()
        assert [item["content"] for item in data["data"]] == ["release day"]

    def test_get_activity(self, client, store, test_user):
        activity_id = post_update(store, test_user.id, "single")

        response = client.get(f"/api/activity/{activity_id}")
        assert response.status_code == 200
        assert response.json()["activity"]["content"] == "single"

    def test_get_missing_activity(self, client):
        response = client.get("/api/activity/9999")
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_delete_own_activity(self, client, store, auth_headers, test_user):
        activity_id = post_update(store, test_user.id, "bye")

        response = client.delete(f"/api/activity/{activity_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["deleted_ids"] == [activity_id]
        assert client.get(f"/api/activity/{activity_id}").status_code == 404

    def test_delete_someone_elses_activity(self, client, store, other_auth_headers, test_user):
        activity_id = post_update(store, test_user.id, "mine")

        response = client.delete(f"/api/activity/{activity_id}", headers=other_auth_headers)
        assert response.status_code == 403

    def test_list_actions(self, client):
        response = client.get("/api/activity/actions", params={"component": "activity"})
        assert response.status_code == 200
        assert {a["key"] for a in response.json()} == {"activity_update", "activity_comment"}


class TestCommentEndpoints:
    """Test threaded comment endpoints."""

    def test_comment_thread(self, client, store, auth_headers, other_auth_headers, test_user):
        root = post_update(store, test_user.id, "root")

        top = client.post(f"/api/activity/{root}/comments", headers=other_auth_headers, json={"content": "top"})
        assert top.status_code == 201
        top_id = top.json()["activity"]["id"]
        reply = client.post(
            f"/api/activity/{root}/comments",
            headers=auth_headers,
            json={"content": "reply", "parent_id": top_id},
        )
        assert reply.status_code == 201

        tree = client.get(f"/api/activity/{root}/comments").json()
        assert [c["item"]["content"] for c in tree] == ["top"]
        assert [c["item"]["content"] for c in tree[0]["children"]] == ["reply"]

    def test_comment_on_missing_activity(self, client, auth_headers):
        response = client.post("/api/activity/9999/comments", headers=auth_headers, json={"content": "hi"})
        assert response.status_code == 404

    def test_comment_with_invalid_parent(self, client, store, auth_headers, test_user):
        root = post_update(store, test_user.id, "root")

        response = client.post(
            f"/api/activity/{root}/comments",
            headers=auth_headers,
            json={"content": "hi", "parent_id": 9999},
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        assert response.json()["details"] == {"field": "parent_id"}

    def test_root_author_can_delete_comment(self, client, store, auth_headers, test_user, other_user):
        root = post_update(store, test_user.id, "root")
        comment = new_comment(store, "theirs", other_user.id, root)
        new_comment(store, "nested", other_user.id, root, comment)

        response = client.delete(f"/api/activity/{root}/comments/{comment}", headers=auth_headers)
        assert response.status_code == 200
        assert client.get(f"/api/activity/{root}/comments").json() == []

    def test_stranger_cannot_delete_comment(self, client, store, other_auth_headers, test_user, jane):
        root = post_update(store, test_user.id, "root")
        comment = new_comment(store, "from jane", jane.id, root)

        response = client.delete(f"/api/activity/{root}/comments/{comment}", headers=other_auth_headers)
        assert response.status_code == 403


class TestMentionAndFavoriteEndpoints:
    """Test mentions and favorites endpoints."""

    def test_mentions(self, client, store, other_auth_headers, test_user, other_user):
        activity_id = post_update(store, test_user.id, "ping @bob")

        data = client.get("/api/activity/mentions", headers=other_auth_headers).json()
        assert data == {"activity_ids": [activity_id], "count": 1}

        assert client.delete("/api/activity/mentions", headers=other_auth_headers).status_code == 200
        data = client.get("/api/activity/mentions", headers=other_auth_headers).json()
        assert data == {"activity_ids": [], "count": 0}

    def test_favorites(self, client, store, auth_headers, other_user):
        activity_id = post_update(store, other_user.id, "like me")

        response = client.post(f"/api/activity/{activity_id}/favorite", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["favorite_count"] == 1
        assert client.get("/api/activity/favorites", headers=auth_headers).json() == {
            "activity_ids": [activity_id],
            "total": 1,
        }

        response = client.delete(f"/api/activity/{activity_id}/favorite", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["favorite_count"] == 0

    def test_unfavorite_unknown(self, client, auth_headers):
        response = client.delete("/api/activity/9999/favorite", headers=auth_headers)
        assert response.status_code == 404


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/nowhere")
        assert response.status_code == 404
        assert response.json()["ok"] is False
        assert response.json()["error_code"] == "HTTP_404"

    def test_security_headers(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
