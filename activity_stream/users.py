"""
Identity lookup and the per-user key/value attribute store.
"""
from typing import Any, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from .models.user import User, UserMeta

# Well-known user meta keys
NEW_MENTIONS = "new_mentions"
NEW_MENTION_COUNT = "new_mention_count"
FAVORITE_ACTIVITIES = "favorite_activities"
LATEST_UPDATE = "latest_update"


def get_user(db: Session, user_id: Optional[int]) -> Optional[User]:
    if not user_id:
        return None
    return db.get(User, user_id)


def resolve_user_id(db: Session, handle: str, compatibility_mode: bool = False) -> Optional[int]:
    """Map an @handle to a user id by nicename, or by login in compatibility mode."""
    if not handle:
        return None
    column = User.user_login if compatibility_mode else User.user_nicename
    row = db.query(User.id).filter(column == handle).first()
    return row[0] if row else None


def display_name(db: Session, user_id: Optional[int]) -> str:
    user = get_user(db, user_id)
    if not user:
        return ""
    return user.display_name or user.user_login


class UserAttributes:
    """get/set/delete of JSON values keyed by (user_id, meta_key)."""

    def __init__(self, db: Session):
        self.db = db

    def _row(self, user_id: int, key: str, lock: bool = False) -> Optional[UserMeta]:
        query = self.db.query(UserMeta).filter(UserMeta.user_id == user_id, UserMeta.meta_key == key)
        if lock:
            query = query.with_for_update()
        return query.first()

    def get(self, user_id: int, key: str, default: Any = None, lock: bool = False) -> Any:
        row = self._row(user_id, key, lock=lock)
        if row is None or row.meta_value is None:
            return default
        return row.meta_value

    def set(self, user_id: int, key: str, value: Any) -> None:
        row = self._row(user_id, key)
        if row is None:
            self.db.add(UserMeta(user_id=user_id, meta_key=key, meta_value=value))
        else:
            row.meta_value = value
            flag_modified(row, "meta_value")
        self.db.flush()

    def delete(self, user_id: int, key: str) -> bool:
        deleted = (
            self.db.query(UserMeta)
            .filter(UserMeta.user_id == user_id, UserMeta.meta_key == key)
            .delete(synchronize_session="fetch")
        )
        self.db.flush()
        return bool(deleted)
