"""
User identity and per-user attribute models.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from ..database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    user_login = Column(String(60), unique=True, index=True, nullable=False)
    user_nicename = Column(String(50), unique=True, index=True, nullable=False)  # url-safe handle
    display_name = Column(String(250))
    email = Column(String(255), unique=True, index=True, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    meta = relationship("UserMeta", back_populates="user", cascade="all, delete-orphan")


class UserMeta(Base):
    __tablename__ = "user_meta"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    meta_key = Column(String(255), nullable=False)
    meta_value = Column(JSON, nullable=True)

    # Relationships
    user = relationship("User", back_populates="meta")

    __table_args__ = (
        UniqueConstraint("user_id", "meta_key", name="uq_user_meta_key"),
    )
