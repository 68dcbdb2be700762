from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from adrewards.database import Base, utcnow


class XActionType(str, Enum):
    follow = "follow"
    like = "like"
    retweet = "retweet"


class XPost(Base):
    __tablename__ = "x_posts"

    id = Column(Integer, primary_key=True, index=True)
    post_url = Column(String(512), nullable=False)       # e.g. https://x.com/user/status/123
    title = Column(String(255), nullable=True)
    image_url = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, ForeignKey("members.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    actions = relationship("XPostAction", back_populates="post")


class XPostAction(Base):
    """One verified action per (member, post, action_type). Never updated."""

    __tablename__ = "x_post_actions"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("x_posts.id"), nullable=False)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    action_type = Column(String(20), nullable=False)
    points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)

    post = relationship("XPost", back_populates="actions")

    __table_args__ = (
        UniqueConstraint("member_id", "post_id", "action_type", name="_member_post_action_uc"),
    )
