from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from adrewards.database import Base, utcnow


class RewardType(str, Enum):
    nft = "nft"
    token = "token"


class ClaimStatus(str, Enum):
    pending = "pending"
    sent = "sent"
    cancelled = "cancelled"


class Reward(Base):
    __tablename__ = "rewards"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    reward_type = Column(String(10), nullable=False)
    points_cost = Column(Integer, nullable=False)
    quantity_available = Column(Integer, nullable=False, default=0)
    image_url = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)

    claims = relationship("RewardClaim", back_populates="reward")


class RewardClaim(Base):
    __tablename__ = "reward_claims"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    reward_id = Column(Integer, ForeignKey("rewards.id"), nullable=False, index=True)
    points_spent = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=ClaimStatus.pending.value, index=True)
    claimed_at = Column(DateTime, default=utcnow)
    processed_at = Column(DateTime, nullable=True)
    processed_by = Column(Integer, ForeignKey("members.id"), nullable=True)
    transaction_hash = Column(String(128), nullable=True)

    reward = relationship("Reward", back_populates="claims")
    member = relationship("Member", foreign_keys=[member_id])

    @property
    def reward_name(self):
        return self.reward.name if self.reward else None
