"""
Activity stream item and activity metadata models.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=True, index=True)  # None for events not tied to a user
    component = Column(String(75), nullable=False, index=True)  # activity, groups, blogs
    type = Column(String(75), nullable=False, index=True)  # activity_update, activity_comment
    action = Column(Text, nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    primary_link = Column(String(255), nullable=False, default="")
    item_id = Column(Integer, nullable=True, index=True)  # root activity id for comments
    secondary_item_id = Column(Integer, nullable=True, index=True)  # parent comment id for comments
    date_recorded = Column(DateTime, nullable=False, default=utcnow, index=True)
    hide_sitewide = Column(Boolean, nullable=False, default=False)
    mptt_left = Column(Integer, nullable=False, default=0)
    mptt_right = Column(Integer, nullable=False, default=0)

    # Relationships
    meta = relationship("ActivityMeta", back_populates="activity")

    __table_args__ = (
        Index("idx_activity_comment_tree", "item_id", "type", "mptt_left"),
    )


class ActivityMeta(Base):
    __tablename__ = "activity_meta"

    id = Column(Integer, primary_key=True, index=True)
    activity_id = Column(Integer, ForeignKey("activities.id"), nullable=False, index=True)
    meta_key = Column(String(255), nullable=False, index=True)
    meta_value = Column(JSON, nullable=True)  # strings and structured values share one codec

    # Relationships
    activity = relationship("Activity", back_populates="meta")
