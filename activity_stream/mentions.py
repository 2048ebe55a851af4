"""
@mention scanning and per-user "new mentions" indexes.

Each user's index is the list of activity ids that mention them, stored in
user meta together with its length. The count is always recomputed from
the list, never incremented in place.
"""
import re
from typing import List, Optional

import bleach
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import Settings
from .errors import StoreFailure
from .logging_config import activity_logger
from .store import ActivityStore
from .users import NEW_MENTIONS, NEW_MENTION_COUNT, resolve_user_id

MENTION_PATTERN = re.compile(r"@+([A-Za-z0-9_.\-]+)")

ADD = "add"
DELETE = "delete"


def strip_markup(content: Optional[str]) -> str:
    """Drop tags, keep their text."""
    return bleach.clean(content or "", tags=set(), attributes={}, strip=True)


def find_mentions(content: Optional[str]) -> List[str]:
    """Distinct @handles in order of first appearance."""
    if not content:
        return []
    return list(dict.fromkeys(MENTION_PATTERN.findall(content)))


def find_mentioned_user_ids(db: Session, content: Optional[str], settings: Settings) -> List[int]:
    user_ids = []
    for handle in find_mentions(strip_markup(content)):
        user_id = resolve_user_id(db, handle, settings.username_compatibility_mode)
        if user_id is None:
            continue
        if user_id not in user_ids:
            user_ids.append(user_id)
    return user_ids


def adjust_mentions(store: ActivityStore, activity_id: int, action: str = ADD, commit: bool = True) -> List[int]:
    """
    Add or remove ``activity_id`` from the index of every user it mentions.

    Returns the ids of the users whose index was written. A missing activity,
    or one whose type is not scanned for mentions, is a no-op.
    """
    if action not in (ADD, DELETE):
        raise ValueError(f"Unknown mention action: {action}")

    item = store.get(activity_id)
    if item is None or item.type not in store.settings.mention_types:
        return []

    user_ids = find_mentioned_user_ids(store.db, item.content, store.settings)
    if not user_ids:
        return []

    log = activity_logger.bind(activity_id=activity_id, action=action)
    try:
        for user_id in user_ids:
            mentions = [int(m) for m in store.user_meta.get(user_id, NEW_MENTIONS, default=[], lock=True)]
            if action == ADD:
                if activity_id not in mentions:
                    mentions.append(activity_id)
            else:
                mentions = [m for m in mentions if m != activity_id]

            store.user_meta.set(user_id, NEW_MENTIONS, mentions)
            store.user_meta.set(user_id, NEW_MENTION_COUNT, len(mentions))

        if commit:
            store.commit()
    except (SQLAlchemyError, StoreFailure) as e:
        if not commit:
            raise
        store.rollback()
        log.error("Mention index update failed", error=e)
        return []

    log.debug("Mention indexes adjusted", users=user_ids)
    return user_ids


def clear_mentions(store: ActivityStore, user_id: int, commit: bool = True) -> bool:
    """Reset a user's new mentions, e.g. once they have looked at them."""
    try:
        store.user_meta.delete(user_id, NEW_MENTION_COUNT)
        store.user_meta.delete(user_id, NEW_MENTIONS)
        if commit:
            store.commit()
    except (SQLAlchemyError, StoreFailure) as e:
        if not commit:
            raise
        store.rollback()
        activity_logger.error("Clearing mentions failed", error=e, user_id=user_id)
        return False
    return True


def get_new_mentions(store: ActivityStore, user_id: int) -> List[int]:
    return [int(m) for m in store.user_meta.get(user_id, NEW_MENTIONS, default=[])]


def get_new_mention_count(store: ActivityStore, user_id: int) -> int:
    return int(store.user_meta.get(user_id, NEW_MENTION_COUNT, default=0))
