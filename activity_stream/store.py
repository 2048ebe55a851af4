"""
Activity Store

Facade over the activities and activity_meta tables:
- get/find/save/delete of ActivityItem values
- activity metadata keyed by (activity_id, key)
- read-through cache of the first sitewide feed page, cleared on every write

Methods flush but never commit; the caller owns the transaction.
"""
import re
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from .component import ActivityComponent
from .errors import NotFound, StoreFailure
from .logging_config import db_logger
from .models.activity import Activity, ActivityMeta, utcnow
from .schemas.activity import ActivityItem
from .users import UserAttributes

# ActivityItem fields usable as equality criteria
FILTER_FIELDS = (
    "id",
    "user_id",
    "component",
    "type",
    "action",
    "content",
    "primary_link",
    "item_id",
    "secondary_item_id",
    "date_recorded",
    "hide_sitewide",
)


@dataclass
class ActivityFilter:
    """Conjunction of criteria over activity rows. ``None`` means "any"."""
    id: Optional[int] = None
    user_id: Optional[int] = None
    component: Optional[str] = None
    type: Optional[str] = None
    action: Optional[str] = None
    content: Optional[str] = None
    primary_link: Optional[str] = None
    item_id: Optional[int] = None
    secondary_item_id: Optional[int] = None
    date_recorded: Optional[datetime] = None
    hide_sitewide: Optional[bool] = None

    ids: Optional[Sequence[int]] = None
    exclude: Optional[Sequence[int]] = None
    exclude_types: Optional[Sequence[str]] = None
    search_terms: Optional[str] = None
    show_hidden: bool = False
    sort: str = "DESC"
    page: int = 1
    per_page: Optional[int] = None
    max: Optional[int] = None

    def criteria(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in FILTER_FIELDS if getattr(self, name) is not None}

    def is_empty(self) -> bool:
        return not self.criteria() and self.ids is None

    def is_sitewide_front(self) -> bool:
        return (
            self.page == 1
            and not self.max
            and not self.search_terms
            and not self.criteria()
            and self.ids is None
            and not self.exclude
            and not self.show_hidden
            and self.sort.upper() == "DESC"
        )

    def cache_key(self) -> Tuple:
        return (self.per_page, tuple(sorted(self.exclude_types or ())))


def sanitize_meta_key(key: str) -> str:
    return re.sub(r"[^a-z0-9_]", "", key or "", flags=re.IGNORECASE)


class ActivityStore:
    """Activity persistence for one session, sharing the component's feed cache."""

    def __init__(self, db: Session, component: ActivityComponent):
        self.db = db
        self.component = component
        self.settings = component.settings
        self.hooks = component.hooks
        self.feed_cache = component.feed_cache
        self.user_meta = UserAttributes(db)

    # ------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------

    @contextmanager
    def _guard(self, operation: str):
        try:
            yield
        except SQLAlchemyError as e:
            db_logger.error("Store operation failed", error=e, operation=operation)
            raise StoreFailure(f"{operation} failed: {e}") from e

    def commit(self) -> None:
        with self._guard("commit"):
            self.db.commit()
        # Another session may have cached the pre-commit rows since our flush
        self.feed_cache.clear()

    def rollback(self) -> None:
        self.db.rollback()
        # Cached rows may reflect writes that were just undone
        self.feed_cache.clear()

    # ------------------------------------------------------------
    # Activity rows
    # ------------------------------------------------------------

    def get(self, activity_id: Optional[int]) -> Optional[ActivityItem]:
        if not activity_id:
            return None
        with self._guard("get"):
            row = self.db.get(Activity, activity_id)
        return ActivityItem.model_validate(row) if row else None

    def get_or_raise(self, activity_id: int) -> ActivityItem:
        item = self.get(activity_id)
        if item is None:
            raise NotFound("Activity", activity_id)
        return item

    def find(self, flt: Optional[ActivityFilter] = None) -> List[ActivityItem]:
        flt = flt or ActivityFilter()
        cache_key = flt.cache_key() if flt.is_sitewide_front() else None
        if cache_key is not None:
            cached = self.feed_cache.get(cache_key)
            if cached is not None:
                return cached

        with self._guard("find"):
            query = self._query(flt, visibility=True)
            if flt.sort.upper() == "ASC":
                query = query.order_by(Activity.date_recorded.asc(), Activity.id.asc())
            else:
                query = query.order_by(Activity.date_recorded.desc(), Activity.id.desc())

            limit = flt.per_page
            if flt.max:
                limit = min(limit, flt.max) if limit else flt.max
            if flt.per_page:
                query = query.offset((max(flt.page, 1) - 1) * flt.per_page)
            if limit:
                query = query.limit(limit)

            items = [ActivityItem.model_validate(row) for row in query.all()]

        if cache_key is not None:
            self.feed_cache.set(cache_key, items)
        return items

    def count(self, flt: Optional[ActivityFilter] = None) -> int:
        with self._guard("count"):
            return self._query(flt or ActivityFilter(), visibility=True).count()

    def save(self, item: ActivityItem) -> int:
        """Insert when ``item.id`` is unset, otherwise overwrite every column."""
        with self._guard("save"):
            if item.id is None:
                row = Activity()
                self.db.add(row)
            else:
                row = self.db.get(Activity, item.id)
                if row is None:
                    raise NotFound("Activity", item.id)

            values = item.model_dump(exclude={"id"})
            if values["date_recorded"] is None:
                values["date_recorded"] = utcnow()
            for name, value in values.items():
                setattr(row, name, value)
            self.db.flush()

        self.feed_cache.clear()
        return row.id

    def delete(self, flt: ActivityFilter) -> Set[int]:
        """Delete matching rows and their meta; returns the deleted ids."""
        if flt.is_empty():
            return set()

        with self._guard("delete"):
            ids = {row_id for (row_id,) in self._query(flt, visibility=False).with_entities(Activity.id).all()}
            if ids:
                self.db.query(ActivityMeta).filter(
                    ActivityMeta.activity_id.in_(ids)
                ).delete(synchronize_session="fetch")
                self.db.query(Activity).filter(
                    Activity.id.in_(ids)
                ).delete(synchronize_session="fetch")
                self.db.flush()

        self.feed_cache.clear()
        return ids

    def hide_all_for_user(self, user_id: int) -> int:
        with self._guard("hide_all_for_user"):
            updated = self.db.query(Activity).filter(
                Activity.user_id == user_id
            ).update({Activity.hide_sitewide: True}, synchronize_session="fetch")
            self.db.flush()
        self.feed_cache.clear()
        return updated

    def set_tree_bounds(self, bounds: Dict[int, Tuple[int, int]]) -> None:
        if not bounds:
            return
        with self._guard("set_tree_bounds"):
            rows = self.db.query(Activity).filter(Activity.id.in_(list(bounds))).all()
            for row in rows:
                row.mptt_left, row.mptt_right = bounds[row.id]
            self.db.flush()
        self.feed_cache.clear()

    def get_activity_id(self, **criteria) -> Optional[int]:
        flt = ActivityFilter(show_hidden=True, **criteria)
        if flt.is_empty():
            return None
        with self._guard("get_activity_id"):
            row = self._query(flt, visibility=False).with_entities(Activity.id).first()
        return row[0] if row else None

    def exists_by_content(self, content: str) -> Optional[int]:
        return self.get_activity_id(content=content)

    def get_last_updated(self) -> Optional[datetime]:
        with self._guard("get_last_updated"):
            return self.db.query(func.max(Activity.date_recorded)).scalar()

    def _query(self, flt: ActivityFilter, visibility: bool):
        criteria = flt.criteria()
        query = self.db.query(Activity)
        for name, value in criteria.items():
            query = query.filter(getattr(Activity, name) == value)
        if flt.ids is not None:
            query = query.filter(Activity.id.in_(list(flt.ids)))
        if flt.exclude:
            query = query.filter(Activity.id.notin_(list(flt.exclude)))
        if flt.exclude_types:
            query = query.filter(Activity.type.notin_(list(flt.exclude_types)))
        if flt.search_terms:
            query = query.filter(Activity.content.contains(flt.search_terms))
        if visibility and not flt.show_hidden and "hide_sitewide" not in criteria:
            query = query.filter(Activity.hide_sitewide.is_(False))
        return query

    # ------------------------------------------------------------
    # Activity meta
    # ------------------------------------------------------------

    def get_meta(self, activity_id: Optional[int], key: Optional[str] = None) -> Any:
        """Value for ``key``, or a dict of every key when ``key`` is omitted."""
        if not activity_id:
            return None

        with self._guard("get_meta"):
            query = self.db.query(ActivityMeta).filter(ActivityMeta.activity_id == activity_id)
            if not key:
                return {row.meta_key: row.meta_value for row in query.order_by(ActivityMeta.id).all()}

            rows = query.filter(ActivityMeta.meta_key == sanitize_meta_key(key)).order_by(ActivityMeta.id).all()

        if not rows:
            return None
        if len(rows) == 1:
            return rows[0].meta_value
        return [row.meta_value for row in rows]

    def update_meta(self, activity_id: int, key: str, value: Any) -> bool:
        """Set a meta value. Empty values delete the key; unchanged values return False."""
        key = sanitize_meta_key(key)
        if not activity_id or not key:
            return False
        if isinstance(value, str):
            value = value.strip()
        if value is None or value == "" or value == [] or value == {} or value is False or value == 0:
            return self.delete_meta(activity_id, key)

        with self._guard("update_meta"):
            current = self.db.query(ActivityMeta).filter(
                ActivityMeta.activity_id == activity_id,
                ActivityMeta.meta_key == key,
            ).first()

            if current is None:
                self.db.add(ActivityMeta(activity_id=activity_id, meta_key=key, meta_value=value))
            elif current.meta_value != value:
                current.meta_value = value
                flag_modified(current, "meta_value")
            else:
                return False
            self.db.flush()
        return True

    def delete_meta(self, activity_id: int, key: Optional[str] = None, value: Any = None) -> bool:
        """Delete all meta, one key, or one key only where it holds ``value``."""
        if not isinstance(activity_id, int) or isinstance(activity_id, bool):
            return False

        with self._guard("delete_meta"):
            query = self.db.query(ActivityMeta).filter(ActivityMeta.activity_id == activity_id)
            if key:
                query = query.filter(ActivityMeta.meta_key == sanitize_meta_key(key))
            rows: Iterable[ActivityMeta] = query.all()
            if value is not None:
                rows = [row for row in rows if row.meta_value == value]
            for row in rows:
                self.db.delete(row)
            self.db.flush()
        return True
