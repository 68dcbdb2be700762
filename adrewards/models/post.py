from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from adrewards.database import Base, utcnow


class PostStatus(str, Enum):
    pending = "pending"
    active = "active"
    inactive = "inactive"
    expired = "expired"


class PostType(str, Enum):
    ad = "ad"
    post = "post"
    announcement = "announcement"


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    publisher_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    post_type = Column(String(20), nullable=False, default=PostType.post.value)
    status = Column(String(20), nullable=False, default=PostStatus.pending.value, index=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    approved_by = Column(Integer, ForeignKey("members.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)

    publisher = relationship("Member", foreign_keys=[publisher_id])
    views = relationship("PostView", back_populates="post", cascade="all, delete-orphan")


class PostView(Base):
    __tablename__ = "post_views"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    viewed_at = Column(DateTime, default=utcnow, index=True)
    view_duration = Column(Integer, nullable=False, default=0)   # seconds
    points_earned = Column(Integer, nullable=False, default=0)

    post = relationship("Post", back_populates="views")
