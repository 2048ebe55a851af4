"""
Activity operations built on the store: recording, posting status updates,
cascading deletes and per-user clean-up.
"""
from dataclasses import replace
from typing import List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError

from .component import COMMENT_TYPE, COMPONENT_ID, UPDATE_TYPE
from .config import Settings
from .errors import NotFound, StoreFailure
from .logging_config import activity_logger
from .mentions import ADD, DELETE, adjust_mentions, strip_markup
from .schemas.activity import ActivityItem
from .store import ActivityFilter, ActivityStore
from .threads import descendants_post_order, rebuild_comment_tree
from .users import FAVORITE_ACTIVITIES, LATEST_UPDATE, display_name, get_user

# Item types whose permalink is the external primary link
EXTERNAL_LINK_TYPES = ("new_blog_post", "new_blog_comment", "new_forum_topic", "new_forum_post")


def add_activity(store: ActivityStore, item: ActivityItem, commit: bool = True) -> Optional[int]:
    """Record (or fully overwrite) an activity item and count its mentions."""
    content = store.hooks.apply_filters("activity_content", item.content, item)
    item = item.model_copy(update={"content": content})

    try:
        activity_id = store.save(item)
        if item.type == COMMENT_TYPE and item.item_id:
            rebuild_comment_tree(store, item.item_id, commit=False)
        adjust_mentions(store, activity_id, ADD, commit=False)
        if commit:
            store.commit()
    except (NotFound, StoreFailure, SQLAlchemyError) as e:
        if not commit:
            raise
        store.rollback()
        activity_logger.error("Recording activity failed", error=e, type=item.type, user_id=item.user_id)
        return None

    store.hooks.do_action("activity_added", item.model_copy(update={"id": activity_id}))
    return activity_id


def post_update(store: ActivityStore, user_id: int, content: Optional[str]) -> Optional[int]:
    """Post a status update for ``user_id``. Blank content is rejected with None."""
    if not content or not content.strip():
        return None

    user = get_user(store.db, user_id)
    if user is None:
        return None

    settings = store.settings
    item = ActivityItem(
        user_id=user_id,
        component=COMPONENT_ID,
        type=UPDATE_TYPE,
        action=f"{display_name(store.db, user_id)} posted an update",
        content=content,
        primary_link=member_link(settings, user.user_nicename),
    )

    try:
        activity_id = add_activity(store, item, commit=False)
        store.user_meta.set(user_id, LATEST_UPDATE, {"id": activity_id, "content": strip_markup(content)})
        store.commit()
    except (StoreFailure, SQLAlchemyError) as e:
        store.rollback()
        activity_logger.error("Posting update failed", error=e, user_id=user_id)
        return None

    activity_logger.info("Update posted", activity_id=activity_id, user_id=user_id)
    store.hooks.do_action("update_posted", content, user_id, activity_id)
    return activity_id


def delete_activity(store: ActivityStore, flt: ActivityFilter, commit: bool = True) -> Set[int]:
    """
    Delete every item matching ``flt`` together with every comment beneath
    it: all comments of a deleted root, all replies of a deleted comment.
    Replies go before the comment they answer. Threads that lost comments
    but still have their root are renumbered once.

    Mention indexes are decremented and a user's latest update is forgotten
    when it is among the deleted ids.

    Returns the deleted ids; an empty set means nothing matched or the
    delete failed.
    """
    if flt.is_empty():
        return set()

    lookup = replace(flt, show_hidden=True, page=1, per_page=None, max=None)
    try:
        order: List[int] = []
        queued: Set[int] = set()
        threads: Set[int] = set()
        for target in store.find(lookup):
            is_comment = target.type == COMMENT_TYPE
            root_id = target.item_id if is_comment else target.id
            if is_comment and root_id:
                threads.add(root_id)
            below = descendants_post_order(store, root_id, target.id) if root_id else []
            for node_id in below + [target.id]:
                if node_id not in queued:
                    queued.add(node_id)
                    order.append(node_id)

        if not order:
            return set()

        items = store.find(ActivityFilter(ids=order, show_hidden=True))
        for node_id in order:
            adjust_mentions(store, node_id, DELETE, commit=False)

        deleted: Set[int] = set()
        for node_id in order:
            deleted |= store.delete(ActivityFilter(id=node_id))

        for user_id in {i.user_id for i in items if i.user_id}:
            latest = store.user_meta.get(user_id, LATEST_UPDATE)
            if latest and int(latest.get("id") or 0) in deleted:
                store.user_meta.delete(user_id, LATEST_UPDATE)

        for root_id in sorted(threads - deleted):
            if store.get(root_id) is not None:
                rebuild_comment_tree(store, root_id, commit=False)

        if commit:
            store.commit()
    except (StoreFailure, SQLAlchemyError) as e:
        if not commit:
            raise
        store.rollback()
        activity_logger.error("Deleting activity failed", error=e, criteria=flt.criteria())
        return set()

    if deleted:
        store.hooks.do_action("activity_deleted", [i for i in order if i in deleted])
    return deleted


def hide_user_activity(store: ActivityStore, user_id: int) -> int:
    """Hide all of a user's items from the sitewide feed."""
    try:
        hidden = store.hide_all_for_user(user_id)
        store.commit()
    except StoreFailure:
        store.rollback()
        return 0
    return hidden


def remove_all_user_data(store: ActivityStore, user_id: Optional[int]) -> bool:
    """Delete a user's activity and the activity-related attributes kept for them."""
    if not user_id:
        return False

    try:
        delete_activity(store, ActivityFilter(user_id=user_id), commit=False)
        store.user_meta.delete(user_id, LATEST_UPDATE)
        store.user_meta.delete(user_id, FAVORITE_ACTIVITIES)
        store.commit()
    except (StoreFailure, SQLAlchemyError) as e:
        store.rollback()
        activity_logger.error("Removing user activity data failed", error=e, user_id=user_id)
        return False

    store.hooks.do_action("user_data_removed", user_id)
    return True


def member_link(settings: Settings, nicename: str) -> str:
    return f"{settings.root_domain}/{settings.members_slug}/{nicename}/"


def get_permalink(item: ActivityItem, settings: Settings) -> str:
    if item.type in EXTERNAL_LINK_TYPES and item.primary_link:
        return item.primary_link

    target_id = item.item_id if item.type == COMMENT_TYPE else item.id
    return f"{settings.root_domain}/{settings.activity_slug}/p/{target_id}/"
