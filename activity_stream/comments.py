"""
Posting and deleting threaded activity comments.

The thread structure itself (nested-set rebuild, ordered reads) lives in
``threads``; its read functions are re-exported here for callers.
"""
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from .activities import add_activity, delete_activity
from .component import COMMENT_TYPE, COMPONENT_ID
from .errors import NotFound, StoreFailure
from .logging_config import activity_logger
from .schemas.activity import ActivityItem
from .store import ActivityFilter, ActivityStore
from .threads import get_child_comments, get_comment_tree, get_comments, rebuild_comment_tree
from .users import display_name

__all__ = [
    "new_comment",
    "delete_comment",
    "get_child_comments",
    "get_comment_tree",
    "get_comments",
    "rebuild_comment_tree",
]


def new_comment(
    store: ActivityStore,
    content: Optional[str],
    user_id: Optional[int],
    activity_id: Optional[int],
    parent_id: Optional[int] = None,
) -> Optional[int]:
    """
    Reply to ``activity_id``, optionally beneath the comment ``parent_id``.

    The comment inherits the root's sitewide visibility. Returns the new
    comment id, or None when content, author or root is missing or the
    parent is not a comment of the same root.
    """
    if not content or not content.strip() or not user_id or not activity_id:
        return None

    root = store.get(activity_id)
    if root is None or root.type == COMMENT_TYPE:
        return None

    if not parent_id:
        parent_id = activity_id
    elif parent_id != activity_id:
        parent = store.get(parent_id)
        if parent is None or parent.type != COMMENT_TYPE or parent.item_id != activity_id:
            return None

    item = ActivityItem(
        user_id=user_id,
        component=COMPONENT_ID,
        type=COMMENT_TYPE,
        action=f"{display_name(store.db, user_id)} posted a new activity comment",
        content=content,
        item_id=activity_id,
        secondary_item_id=parent_id,
        hide_sitewide=root.hide_sitewide,
    )
    comment_id = add_activity(store, item)
    if comment_id:
        store.hooks.do_action("comment_posted", comment_id, activity_id, parent_id)
    return comment_id


def delete_comment(store: ActivityStore, activity_id: int, comment_id: int) -> bool:
    """
    Delete a comment and everything beneath it, children first, then
    rebuild the thread once.

    Runs as one transaction: if any step fails nothing is deleted and
    False is returned. A ``delete_comment_pre`` filter returning a falsy
    value vetoes the delete.
    """
    log = activity_logger.bind(activity_id=activity_id, comment_id=comment_id)
    if not store.hooks.apply_filters("delete_comment_pre", True, activity_id, comment_id):
        log.info("Comment delete vetoed")
        return False

    try:
        removed = delete_activity(
            store,
            ActivityFilter(id=comment_id, type=COMMENT_TYPE, item_id=activity_id),
            commit=False,
        )
        if not removed:
            raise NotFound("Comment", comment_id)
        store.commit()
    except (NotFound, StoreFailure, SQLAlchemyError) as e:
        store.rollback()
        log.warning("Comment delete failed", reason=str(e))
        return False

    store.hooks.do_action("comment_deleted", activity_id, comment_id)
    return True
