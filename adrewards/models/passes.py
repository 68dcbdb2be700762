from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from adrewards.database import Base, utcnow

CLICK_PASS_TYPES = ("Basic", "Silver", "Golden")
PUBLISHER_PASS_TYPES = ("Basic", "Silver", "Gold")


class ClickPass(Base):
    __tablename__ = "click_passes"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    pass_type = Column(String(20), nullable=False)
    additional_points = Column(Integer, nullable=False, default=0)   # extra points per qualifying view
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime, nullable=True)                     # NULL = never
    created_at = Column(DateTime, default=utcnow)


class PublisherPass(Base):
    __tablename__ = "publisher_passes"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    pass_type = Column(String(20), nullable=False)
    duration_days = Column(Integer, nullable=False, default=7)       # lifetime of posts made with it
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
