"""
Referral attribution: codes, the once-only referrer link, and bonus payouts.
"""
import logging
import secrets
import string
from typing import Optional

from sqlalchemy import distinct, func, update
from sqlalchemy.orm import Session

from adrewards.core.config import Settings
from adrewards.core.errors import InternalError
from adrewards.database import unit_of_work
from adrewards.models.member import Member
from adrewards.models.points import PointsReference
from adrewards.models.reward import RewardClaim
from adrewards.services import ledger

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_code(db: Session, settings: Settings) -> str:
    for _ in range(settings.REFERRAL_CODE_MAX_ATTEMPTS):
        code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(settings.REFERRAL_CODE_LENGTH))
        taken = db.query(Member.id).filter(Member.referral_code == code).first()
        if not taken:
            return code
    raise InternalError("Could not generate a unique referral code")


def resolve_referrer(db: Session, code: Optional[str]) -> Optional[int]:
    """Member id owning ``code``; unknown codes are ignored, not fatal."""
    if not code:
        return None
    code = code.strip().upper()
    referrer = db.query(Member).filter(Member.referral_code == code).first()
    if not referrer:
        logger.info("Ignoring unknown referral code %r", code)
        return None
    return referrer.id


def ensure_code(db: Session, member: Member, settings: Settings) -> str:
    if member.referral_code:
        return member.referral_code
    with unit_of_work(db):
        member.referral_code = generate_code(db, settings)
    return member.referral_code


def my_referrals(db: Session, member: Member) -> list[Member]:
    return (
        db.query(Member)
        .filter(Member.referred_by == member.id)
        .order_by(Member.created_at.desc())
        .all()
    )


def referral_stats(db: Session, member: Member) -> dict:
    total = db.query(func.count(Member.id)).filter(Member.referred_by == member.id).scalar() or 0
    with_claims = (
        db.query(func.count(distinct(RewardClaim.member_id)))
        .join(Member, Member.id == RewardClaim.member_id)
        .filter(Member.referred_by == member.id)
        .scalar()
        or 0
    )
    return {
        "total_referrals": total,
        "referrals_with_claims": with_claims,
        "referral_code": member.referral_code,
    }


def pay_referral_bonus(db: Session, referrer_id: int, amount: int, reason: str, referred_id: int) -> bool:
    """Best-effort secondary write in its own transaction.

    The primary operation has already committed; a failure here is logged
    and reported as False, never raised.
    """
    if amount <= 0:
        return False
    try:
        with unit_of_work(db):
            ledger.apply_points(db, referrer_id, amount, reason, PointsReference.referral_bonus, referred_id)
    except Exception:
        logger.exception("Referral bonus of %s to member %s (referred %s) failed", amount, referrer_id, referred_id)
        return False
    logger.info("Paid referral bonus %s to member %s for member %s", amount, referrer_id, referred_id)
    return True


def pay_first_claim_bonus(db: Session, member_id: int, settings: Settings) -> bool:
    """Pay the referrer once, the first time a referred member claims a reward.

    The ``referral_claim_bonus_paid`` flag is flipped with a conditional
    UPDATE in the same transaction as the payout; it pays at most once per
    referred member.
    """
    amount = settings.REFERRAL_CLAIM_BONUS
    if amount <= 0:
        return False
    try:
        with unit_of_work(db):
            member = db.get(Member, member_id)
            if not member or not member.referred_by:
                return False
            referrer_id = member.referred_by
            flipped = db.execute(
                update(Member)
                .where(Member.id == member_id, Member.referral_claim_bonus_paid.is_(False))
                .values(referral_claim_bonus_paid=True)
                .execution_options(synchronize_session=False)
            )
            if flipped.rowcount != 1:
                return False
            ledger.apply_points(db, referrer_id, amount, "Referral first claim bonus",
                                PointsReference.referral_bonus, member_id)
    except Exception:
        logger.exception("First-claim referral bonus for member %s failed", member_id)
        return False
    logger.info("Paid first-claim referral bonus %s to member %s for member %s", amount, referrer_id, member_id)
    return True
