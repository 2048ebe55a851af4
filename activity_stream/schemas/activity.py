from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import datetime, timezone


class ActivityItem(BaseModel):
    id: Optional[int] = None
    user_id: Optional[int] = None
    component: str
    type: str
    action: str = ""
    content: str = ""
    primary_link: str = ""
    item_id: Optional[int] = None
    secondary_item_id: Optional[int] = None
    date_recorded: Optional[datetime] = None
    hide_sitewide: bool = False
    mptt_left: int = 0
    mptt_right: int = 0

    @field_validator("date_recorded")
    @classmethod
    def naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Stored as naive UTC
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    class Config:
        from_attributes = True


class CommentNode(BaseModel):
    item: ActivityItem
    depth: int


class ThreadedComment(BaseModel):
    item: ActivityItem
    children: List["ThreadedComment"] = []


ThreadedComment.model_rebuild()


class ActivityAction(BaseModel):
    component: str
    key: str
    value: str


class UpdateCreate(BaseModel):
    content: str


class CommentCreate(BaseModel):
    content: str
    parent_id: Optional[int] = None


class ActivityResponse(BaseModel):
    activity: ActivityItem
    permalink: str


class MentionsResponse(BaseModel):
    activity_ids: List[int]
    count: int


class FavoritesResponse(BaseModel):
    activity_ids: List[int]
    total: int
