# models/member.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from adrewards.database import Base, utcnow

WALLET_TYPES = ("ronin", "metamask", "waypoint")


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, index=True)
    wallet_address = Column(String(42), unique=True, index=True, nullable=False)  # lower-cased 0x form
    wallet_type = Column(String(20), nullable=False)
    x_handle = Column(String(50), nullable=True)                                 # without "@"
    points = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    is_admin = Column(Boolean, nullable=False, default=False)

    referral_code = Column(String(16), unique=True, index=True, nullable=True)
    referred_by = Column(Integer, ForeignKey("members.id"), nullable=True)        # set once at creation
    referral_claim_bonus_paid = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=utcnow)
    last_login = Column(DateTime, default=utcnow)

    referrer = relationship("Member", remote_side=[id])
    sessions = relationship("MemberSession", back_populates="member", cascade="all, delete-orphan")


class MemberSession(Base):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    token = Column(String(512), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    last_activity = Column(DateTime, default=utcnow)
    created_at = Column(DateTime, default=utcnow)

    member = relationship("Member", back_populates="sessions")
