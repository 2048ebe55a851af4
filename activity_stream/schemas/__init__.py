from .activity import (
    ActivityItem,
    CommentNode,
    ThreadedComment,
    ActivityAction,
    UpdateCreate,
    CommentCreate,
    ActivityResponse,
    MentionsResponse,
    FavoritesResponse,
)

__all__ = [
    "ActivityItem", "CommentNode", "ThreadedComment", "ActivityAction",
    "UpdateCreate", "CommentCreate",
    "ActivityResponse", "MentionsResponse", "FavoritesResponse",
]
