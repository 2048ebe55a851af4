"""
Tests for status updates, cascading deletes and per-user clean-up.
"""
from activity_stream.activities import (
    add_activity,
    delete_activity,
    get_permalink,
    hide_user_activity,
    member_link,
    post_update,
    remove_all_user_data,
)
from activity_stream.comments import get_comments, new_comment
from activity_stream.favorites import add_user_favorite, get_user_favorites
from activity_stream.schemas.activity import ActivityItem
from activity_stream.store import ActivityFilter
from activity_stream.users import LATEST_UPDATE


class TestPostUpdate:
    """Test posting status updates."""

    def test_post_update(self, store, test_user):
        activity_id = post_update(store, test_user.id, "Shipping the new feed today")

        item = store.get(activity_id)
        assert item.type == "activity_update"
        assert item.component == "activity"
        assert item.action == "Alice Smith posted an update"
        assert item.primary_link == "http://localhost:8000/members/alice/"

    def test_latest_update_is_recorded(self, store, test_user):
        activity_id = post_update(store, test_user.id, "<b>Bold</b> move")

        latest = store.user_meta.get(test_user.id, LATEST_UPDATE)
        assert latest == {"id": activity_id, "content": "Bold move"}

    def test_blank_content_rejected(self, store, test_user):
        assert post_update(store, test_user.id, "") is None
        assert post_update(store, test_user.id, "   ") is None
        assert post_update(store, test_user.id, None) is None
        assert store.count() == 0

    def test_unknown_user_rejected(self, store):
        assert post_update(store, 9999, "hello") is None

    def test_update_posted_hook(self, store, component, test_user):
        seen = []
        component.hooks.add_action("update_posted", lambda *args: seen.append(args))

        activity_id = post_update(store, test_user.id, "hi")

        assert seen == [("hi", test_user.id, activity_id)]


class TestAddActivity:
    """Test recording arbitrary items."""

    def test_content_filter(self, store, component, test_user):
        component.hooks.add_filter("activity_content", lambda content, item: content.upper())

        activity_id = add_activity(store, ActivityItem(
            user_id=test_user.id, component="activity", type="activity_update", content="quiet",
        ))

        assert store.get(activity_id).content == "QUIET"

    def test_overwrite_missing_item_fails(self, store, test_user):
        assert add_activity(store, ActivityItem(
            id=9999, user_id=test_user.id, component="activity", type="activity_update",
        )) is None


class TestDeleteActivity:
    """Test deleting items."""

    def test_delete_clears_latest_update(self, store, test_user):
        activity_id = post_update(store, test_user.id, "soon gone")

        assert delete_activity(store, ActivityFilter(id=activity_id)) == {activity_id}

        assert store.user_meta.get(test_user.id, LATEST_UPDATE) is None

    def test_older_update_keeps_latest(self, store, test_user):
        older = post_update(store, test_user.id, "first")
        newer = post_update(store, test_user.id, "second")

        delete_activity(store, ActivityFilter(id=older))

        assert store.user_meta.get(test_user.id, LATEST_UPDATE)["id"] == newer

    def test_root_delete_cascades_to_comments(self, store, test_user, other_user):
        root = post_update(store, test_user.id, "root")
        comment = new_comment(store, "reply", other_user.id, root)
        reply = new_comment(store, "reply to reply", test_user.id, root, comment)

        assert delete_activity(store, ActivityFilter(id=root)) == {root, comment, reply}

    def test_empty_filter(self, store, test_user):
        post_update(store, test_user.id, "stays")

        assert delete_activity(store, ActivityFilter()) == set()
        assert store.count() == 1

    def test_deleted_hook(self, store, component, test_user):
        seen = []
        component.hooks.add_action("activity_deleted", seen.append)
        first = post_update(store, test_user.id, "one")
        second = post_update(store, test_user.id, "two")

        delete_activity(store, ActivityFilter(user_id=test_user.id))

        assert [sorted(ids) for ids in seen] == [sorted([first, second])]

    def test_deleting_comment_removes_replies(self, store, test_user, other_user):
        root = post_update(store, test_user.id, "root")
        kept = new_comment(store, "kept", other_user.id, root)
        target = new_comment(store, "target", other_user.id, root)
        reply = new_comment(store, "reply", test_user.id, root, target)

        assert delete_activity(store, ActivityFilter(id=target)) == {target, reply}

        assert store.get(reply) is None
        assert [(n.item.id, n.depth) for n in get_comments(store, root)] == [(kept, 1)]
        assert (store.get(root).mptt_left, store.get(root).mptt_right) == (1, 4)


class TestUserClean:
    """Test hiding and removing a user's activity."""

    def test_hide_user_activity(self, store, test_user, other_user):
        post_update(store, test_user.id, "one")
        post_update(store, test_user.id, "two")
        theirs = post_update(store, other_user.id, "three")

        assert hide_user_activity(store, test_user.id) == 2

        assert [i.id for i in store.find()] == [theirs]
        assert store.count(ActivityFilter(user_id=test_user.id, show_hidden=True)) == 2

    def test_remove_all_user_data(self, store, test_user, other_user):
        mine = post_update(store, test_user.id, "mine")
        theirs = post_update(store, other_user.id, "theirs")
        add_user_favorite(store, theirs, test_user.id)

        assert remove_all_user_data(store, test_user.id) is True

        assert store.get(mine) is None
        assert store.get(theirs) is not None
        assert store.user_meta.get(test_user.id, LATEST_UPDATE) is None
        assert get_user_favorites(store, test_user.id) == []

    def test_remove_takes_replies_to_user_comments(self, store, test_user, other_user):
        root = post_update(store, other_user.id, "root")
        theirs = new_comment(store, "from alice", test_user.id, root)
        reply = new_comment(store, "reply", other_user.id, root, theirs)

        remove_all_user_data(store, test_user.id)

        assert store.get(reply) is None
        assert store.get(root) is not None
        assert get_comments(store, root) == []
        assert (store.get(root).mptt_left, store.get(root).mptt_right) == (1, 2)

    def test_remove_without_user(self, store):
        assert remove_all_user_data(store, None) is False


class TestPermalinks:
    """Test item permalinks."""

    def test_update_permalink(self, store, test_user):
        item = store.get(post_update(store, test_user.id, "hello"))

        assert get_permalink(item, store.settings) == f"http://localhost:8000/activity/p/{item.id}/"

    def test_comment_links_to_root(self, store, test_user):
        root = post_update(store, test_user.id, "hello")
        comment = store.get(new_comment(store, "hi", test_user.id, root))

        assert get_permalink(comment, store.settings) == f"http://localhost:8000/activity/p/{root}/"

    def test_external_item_uses_primary_link(self, store):
        item = ActivityItem(id=5, component="blogs", type="new_blog_post", primary_link="https://blog.example.com/post/")

        assert get_permalink(item, store.settings) == "https://blog.example.com/post/"

    def test_member_link(self, store):
        assert member_link(store.settings, "jane-doe") == "http://localhost:8000/members/jane-doe/"
