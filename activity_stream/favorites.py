"""
Per-user favorite activity items and the per-item favorite counter.
"""
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from .errors import StoreFailure
from .logging_config import activity_logger
from .store import ActivityStore
from .users import FAVORITE_ACTIVITIES

FAVORITE_COUNT = "favorite_count"


def get_user_favorites(store: ActivityStore, user_id: int) -> List[int]:
    return [int(a) for a in store.user_meta.get(user_id, FAVORITE_ACTIVITIES, default=[])]


def total_favorites_for_user(store: ActivityStore, user_id: int) -> int:
    return len(get_user_favorites(store, user_id))


def add_user_favorite(store: ActivityStore, activity_id: int, user_id: int) -> bool:
    """Favorite an item; already favorited items are left as they are."""
    if not user_id or store.get(activity_id) is None:
        return False

    favorites = get_user_favorites(store, user_id)
    if activity_id in favorites:
        return True

    try:
        store.user_meta.set(user_id, FAVORITE_ACTIVITIES, favorites + [activity_id])
        count = int(store.get_meta(activity_id, FAVORITE_COUNT) or 0)
        store.update_meta(activity_id, FAVORITE_COUNT, count + 1)
        store.commit()
    except (StoreFailure, SQLAlchemyError) as e:
        store.rollback()
        activity_logger.error("Adding favorite failed", error=e, activity_id=activity_id, user_id=user_id)
        store.hooks.do_action("favorite_add_failed", activity_id, user_id)
        return False

    store.hooks.do_action("favorite_added", activity_id, user_id)
    return True


def remove_user_favorite(store: ActivityStore, activity_id: int, user_id: int) -> bool:
    favorites = get_user_favorites(store, user_id)
    if activity_id not in favorites:
        return False

    try:
        store.user_meta.set(user_id, FAVORITE_ACTIVITIES, [a for a in favorites if a != activity_id])
        count = int(store.get_meta(activity_id, FAVORITE_COUNT) or 0)
        if count:
            store.update_meta(activity_id, FAVORITE_COUNT, count - 1)
        store.commit()
    except (StoreFailure, SQLAlchemyError) as e:
        store.rollback()
        activity_logger.error("Removing favorite failed", error=e, activity_id=activity_id, user_id=user_id)
        return False

    store.hooks.do_action("favorite_removed", activity_id, user_id)
    return True
