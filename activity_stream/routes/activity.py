"""
Activity routes: sitewide feed, status updates, threaded comments,
mentions and favorites.
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional

from ..activities import delete_activity, get_permalink, post_update
from ..auth import get_required_user
from ..comments import delete_comment, get_comment_tree, new_comment
from ..component import COMMENT_TYPE, ActivityComponent
from ..config import get_settings
from ..database import get_db
from ..errors import ValidationFailure
from ..favorites import add_user_favorite, get_user_favorites, remove_user_favorite
from ..limiter import limiter
from ..mentions import clear_mentions, get_new_mention_count, get_new_mentions
from ..models.user import User
from ..responses import deleted, forbidden, not_found, paginated, server_error, success
from ..schemas.activity import (
    ActivityAction,
    ActivityItem,
    ActivityResponse,
    CommentCreate,
    FavoritesResponse,
    MentionsResponse,
    ThreadedComment,
    UpdateCreate,
)
from ..store import ActivityFilter, ActivityStore

settings = get_settings()

router = APIRouter(prefix="/api/activity", tags=["activity"])


def get_component(request: Request) -> ActivityComponent:
    return request.app.state.component


def get_store(
    db: Session = Depends(get_db),
    component: ActivityComponent = Depends(get_component),
) -> ActivityStore:
    return ActivityStore(db, component)


def activity_response(item: ActivityItem, store: ActivityStore) -> ActivityResponse:
    return ActivityResponse(activity=item, permalink=get_permalink(item, store.settings))


# ============================================================
# FEED AND UPDATES
# ============================================================

@router.get("")
def get_feed(
    page: int = Query(default=1, ge=1),
    per_page: Optional[int] = Query(default=None, ge=1, le=100),
    search: Optional[str] = None,
    user_id: Optional[int] = None,
    include_comments: bool = False,
    store: ActivityStore = Depends(get_store),
):
    """Sitewide feed, newest first. The unfiltered first page is served from cache."""
    per_page = per_page or store.settings.feed_page_size
    flt = ActivityFilter(
        user_id=user_id,
        search_terms=search,
        exclude_types=None if include_comments else [COMMENT_TYPE],
        page=page,
        per_page=per_page,
    )
    items = store.find(flt)
    return paginated([item.model_dump(mode="json") for item in items], store.count(flt), page, per_page)


@router.post("", status_code=201, response_model=ActivityResponse)
@limiter.limit(settings.post_rate_limit)
def create_update(
    request: Request,
    update: UpdateCreate,
    store: ActivityStore = Depends(get_store),
    current_user: User = Depends(get_required_user),
):
    """Post a status update as the current user."""
    if not update.content.strip():
        raise ValidationFailure("content is required", field="content")

    activity_id = post_update(store, current_user.id, update.content)
    if activity_id is None:
        server_error("Could not post update")
    return activity_response(store.get_or_raise(activity_id), store)


@router.get("/actions", response_model=List[ActivityAction])
def list_actions(
    component: Optional[str] = None,
    activity_component: ActivityComponent = Depends(get_component),
):
    """Registered activity actions, optionally for one component."""
    return activity_component.actions.all(component)


# ============================================================
# MENTIONS AND FAVORITES
# ============================================================

@router.get("/mentions", response_model=MentionsResponse)
def get_mentions(
    store: ActivityStore = Depends(get_store),
    current_user: User = Depends(get_required_user),
):
    """Activity ids that mention the current user since they last looked."""
    return MentionsResponse(
        activity_ids=get_new_mentions(store, current_user.id),
        count=get_new_mention_count(store, current_user.id),
    )


@router.delete("/mentions")
def reset_mentions(
    store: ActivityStore = Depends(get_store),
    current_user: User = Depends(get_required_user),
):
    """Mark the current user's mentions as seen."""
    if not clear_mentions(store, current_user.id):
        server_error("Could not clear mentions")
    return success(message="Mentions cleared")


@router.get("/favorites", response_model=FavoritesResponse)
def list_favorites(
    store: ActivityStore = Depends(get_store),
    current_user: User = Depends(get_required_user),
):
    favorites = get_user_favorites(store, current_user.id)
    return FavoritesResponse(activity_ids=favorites, total=len(favorites))


# ============================================================
# SINGLE ITEMS
# ============================================================

@router.get("/{activity_id}", response_model=ActivityResponse)
def get_activity(
    activity_id: int,
    store: ActivityStore = Depends(get_store),
):
    item = store.get(activity_id)
    if item is None:
        not_found("Activity", activity_id)
    return activity_response(item, store)


@router.delete("/{activity_id}")
def remove_activity(
    activity_id: int,
    store: ActivityStore = Depends(get_store),
    current_user: User = Depends(get_required_user),
):
    """Delete one of the current user's items. Comments take their replies with them."""
    item = store.get(activity_id)
    if item is None:
        not_found("Activity", activity_id)
    if item.user_id != current_user.id:
        forbidden("You can only delete your own activity")

    if item.type == COMMENT_TYPE:
        if not delete_comment(store, item.item_id, activity_id):
            server_error("Could not delete comment")
        return deleted()

    removed = delete_activity(store, ActivityFilter(id=activity_id))
    if not removed:
        server_error("Could not delete activity")
    return deleted({"deleted_ids": sorted(removed)})


@router.post("/{activity_id}/favorite")
def favorite_activity(
    activity_id: int,
    store: ActivityStore = Depends(get_store),
    current_user: User = Depends(get_required_user),
):
    if store.get(activity_id) is None:
        not_found("Activity", activity_id)
    if not add_user_favorite(store, activity_id, current_user.id):
        server_error("Could not save favorite")
    return success({"favorite_count": int(store.get_meta(activity_id, "favorite_count") or 0)})


@router.delete("/{activity_id}/favorite")
def unfavorite_activity(
    activity_id: int,
    store: ActivityStore = Depends(get_store),
    current_user: User = Depends(get_required_user),
):
    if not remove_user_favorite(store, activity_id, current_user.id):
        not_found("Favorite", activity_id)
    return success({"favorite_count": int(store.get_meta(activity_id, "favorite_count") or 0)})


# ============================================================
# COMMENTS
# ============================================================

@router.get("/{activity_id}/comments", response_model=List[ThreadedComment])
def list_comments(
    activity_id: int,
    store: ActivityStore = Depends(get_store),
):
    """Threaded replies to an item."""
    if store.get(activity_id) is None:
        not_found("Activity", activity_id)
    return get_comment_tree(store, activity_id)


@router.post("/{activity_id}/comments", status_code=201, response_model=ActivityResponse)
@limiter.limit(settings.post_rate_limit)
def create_comment(
    request: Request,
    activity_id: int,
    comment: CommentCreate,
    store: ActivityStore = Depends(get_store),
    current_user: User = Depends(get_required_user),
):
    """Reply to an item, or to one of its comments via ``parent_id``."""
    root = store.get(activity_id)
    if root is None or root.type == COMMENT_TYPE:
        not_found("Activity", activity_id)
    if not comment.content.strip():
        raise ValidationFailure("content is required", field="content")

    comment_id = new_comment(store, comment.content, current_user.id, activity_id, comment.parent_id)
    if comment_id is None:
        raise ValidationFailure("Invalid parent comment", field="parent_id")
    return activity_response(store.get_or_raise(comment_id), store)


@router.delete("/{activity_id}/comments/{comment_id}")
def remove_comment(
    activity_id: int,
    comment_id: int,
    store: ActivityStore = Depends(get_store),
    current_user: User = Depends(get_required_user),
):
    """Delete a comment and its replies. Allowed for the comment's author or the item's author."""
    root = store.get(activity_id)
    comment = store.get(comment_id)
    if root is None or comment is None or comment.type != COMMENT_TYPE or comment.item_id != activity_id:
        not_found("Comment", comment_id)
    if current_user.id not in (comment.user_id, root.user_id):
        forbidden("You can only delete your own comments")

    if not delete_comment(store, activity_id, comment_id):
        server_error("Could not delete comment")
    return deleted()
