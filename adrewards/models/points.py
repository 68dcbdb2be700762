from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from adrewards.database import Base, utcnow


class PointsReference(str, Enum):
    post_view = "post_view"
    social_action = "social_action"
    reward_claim = "reward_claim"
    claim_refund = "claim_refund"
    referral_bonus = "referral_bonus"
    admin_adjustment = "admin_adjustment"


class PointsHistory(Base):
    """Append-only ledger. SUM(points_change) per member equals members.points."""

    __tablename__ = "points_history"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    points_change = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=False)
    reference_type = Column(String(30), nullable=False)
    reference_id = Column(Integer, nullable=True)     # post view / claim / member id, per reference_type
    created_at = Column(DateTime, default=utcnow, index=True)
