from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from adrewards.database import Base, utcnow


class WeeklyReward(Base):
    __tablename__ = "weekly_rewards"

    id = Column(Integer, primary_key=True, index=True)
    item_name = Column(String(255), nullable=False)
    item_quantity = Column(Integer, nullable=False, default=1)   # number of winners
    starts_at = Column(DateTime, default=utcnow)
    ends_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    winners_generated_at = Column(DateTime, nullable=True)

    winners = relationship("WeeklyWinner", back_populates="period", order_by="WeeklyWinner.rank")


class WeeklyWinner(Base):
    __tablename__ = "weekly_winners"

    id = Column(Integer, primary_key=True, index=True)
    weekly_reward_id = Column(Integer, ForeignKey("weekly_rewards.id"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False)
    rank = Column(Integer, nullable=False)
    points = Column(Integer, nullable=False)    # balance at snapshot time
    created_at = Column(DateTime, default=utcnow)

    period = relationship("WeeklyReward", back_populates="winners")
    member = relationship("Member")

    __table_args__ = (UniqueConstraint("weekly_reward_id", "rank", name="_period_rank_uc"),)

    @property
    def wallet_address(self):
        return self.member.wallet_address if self.member else None
