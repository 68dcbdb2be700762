"""
Reward catalog and the claim / refund workflow.

A claim moves pending -> sent or pending -> cancelled exactly once.
Cancelling refunds the points through a new ledger row and puts the item
back into stock.
"""
import logging
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session, joinedload

from adrewards.core.config import Settings
from adrewards.core.errors import ConflictError, NotFoundError, ValidationError
from adrewards.database import unit_of_work, utcnow
from adrewards.models.member import Member
from adrewards.models.points import PointsReference
from adrewards.models.reward import ClaimStatus, Reward, RewardClaim, RewardType
from adrewards.services import ledger, referrals

logger = logging.getLogger(__name__)

REWARD_FIELDS = ("name", "description", "reward_type", "points_cost", "quantity_available", "image_url", "is_active")


# ---------- Catalog ----------

def list_rewards(db: Session, reward_type: Optional[str] = None) -> list[Reward]:
    query = db.query(Reward).filter(Reward.is_active.is_(True))
    if reward_type:
        if reward_type not in RewardType.__members__:
            raise ValidationError("Invalid reward type")
        query = query.filter(Reward.reward_type == reward_type)
    return query.order_by(Reward.points_cost.asc(), Reward.id.asc()).all()


def get_reward(db: Session, reward_id: int) -> tuple[Reward, int]:
    """The reward and its number of non-cancelled claims."""
    reward = db.get(Reward, reward_id)
    if not reward:
        raise NotFoundError("Reward not found")
    total_claims = (
        db.query(func.count(RewardClaim.id))
        .filter(RewardClaim.reward_id == reward_id, RewardClaim.status != ClaimStatus.cancelled.value)
        .scalar()
        or 0
    )
    return reward, total_claims


def _validate_reward(reward_type, points_cost, quantity) -> None:
    if reward_type is not None and reward_type not in RewardType.__members__:
        raise ValidationError("Invalid reward type")
    if points_cost is not None and points_cost <= 0:
        raise ValidationError("Points cost must be positive")
    if quantity is not None and quantity < 0:
        raise ValidationError("Quantity cannot be negative")


def create_reward(
    db: Session,
    name: str,
    reward_type: str,
    points_cost: int,
    quantity_available: int,
    description: Optional[str] = None,
    image_url: Optional[str] = None,
) -> Reward:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Missing required fields: name, type, points, quantity")
    _validate_reward(reward_type, points_cost, quantity_available)

    reward = Reward(
        name=name,
        description=description,
        reward_type=reward_type,
        points_cost=points_cost,
        quantity_available=quantity_available,
        image_url=image_url,
    )
    with unit_of_work(db):
        db.add(reward)
    db.refresh(reward)
    logger.info("Created reward %s (%s, %s points)", reward.id, reward.name, reward.points_cost)
    return reward


def update_reward(db: Session, reward_id: int, changes: dict) -> Reward:
    changes = {k: v for k, v in changes.items() if k in REWARD_FIELDS}
    if not changes:
        raise ValidationError("No fields to update")
    _validate_reward(changes.get("reward_type"), changes.get("points_cost"), changes.get("quantity_available"))

    with unit_of_work(db):
        reward = db.query(Reward).filter(Reward.id == reward_id).with_for_update().first()
        if not reward:
            raise NotFoundError("Reward not found")
        for field, value in changes.items():
            setattr(reward, field, value)
    db.refresh(reward)
    return reward


# ---------- Claims ----------

def claim(db: Session, member: Member, reward_id: int, settings: Settings) -> RewardClaim:
    """Spend points on a reward.

    Stock and balance are both taken with conditional UPDATEs under row
    locks: stock never drops below zero and the balance never goes negative.
    """
    member_id = member.id

    with unit_of_work(db):
        reward = (
            db.query(Reward)
            .filter(Reward.id == reward_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not reward or not reward.is_active:
            raise NotFoundError("Reward not found or not active")
        ledger.lock_member(db, member_id)

        cost = reward.points_cost
        name = reward.name

        taken = db.execute(
            update(Reward)
            .where(Reward.id == reward_id, Reward.quantity_available > 0)
            .values(quantity_available=Reward.quantity_available - 1)
            .execution_options(synchronize_session=False)
        )
        if taken.rowcount != 1:
            raise ConflictError("Reward out of stock")

        new_claim = RewardClaim(
            member_id=member_id,
            reward_id=reward_id,
            points_spent=cost,
            status=ClaimStatus.pending.value,
        )
        db.add(new_claim)
        db.flush()
        ledger.debit_points(db, member_id, cost, f"Claimed reward: {name}",
                            PointsReference.reward_claim, new_claim.id)

    logger.info("Member %s claimed reward %s for %s points (claim %s)", member_id, reward_id, cost, new_claim.id)

    referrals.pay_first_claim_bonus(db, member_id, settings)

    db.refresh(new_claim)
    return new_claim


def process_claim(
    db: Session,
    admin: Member,
    claim_id: int,
    status: str,
    transaction_hash: Optional[str] = None,
) -> RewardClaim:
    if status not in (ClaimStatus.sent.value, ClaimStatus.cancelled.value):
        raise ValidationError('Invalid status. Must be "sent" or "cancelled"')

    with unit_of_work(db):
        existing = db.get(RewardClaim, claim_id)
        if not existing:
            raise NotFoundError("Claim not found")

        cancelling = status == ClaimStatus.cancelled.value
        if cancelling:
            # Same order as claim(): reward row, then member row
            db.query(Reward).filter(Reward.id == existing.reward_id).with_for_update().first()
            ledger.lock_member(db, existing.member_id)

        now = utcnow()
        moved = db.execute(
            update(RewardClaim)
            .where(RewardClaim.id == claim_id, RewardClaim.status == ClaimStatus.pending.value)
            .values(
                status=status,
                processed_at=now,
                processed_by=admin.id,
                transaction_hash=None if cancelling else transaction_hash,
            )
            .execution_options(synchronize_session=False)
        )
        if moved.rowcount != 1:
            raise ConflictError("Claim already processed")

        if cancelling:
            ledger.apply_points(db, existing.member_id, existing.points_spent,
                                "Reward claim refunded (cancelled)", PointsReference.claim_refund, claim_id)
            db.execute(
                update(Reward)
                .where(Reward.id == existing.reward_id)
                .values(quantity_available=Reward.quantity_available + 1)
                .execution_options(synchronize_session=False)
            )

    db.refresh(existing)
    logger.info("Admin %s marked claim %s as %s", admin.id, claim_id, status)
    return existing


def my_claims(db: Session, member: Member) -> list[RewardClaim]:
    return (
        db.query(RewardClaim)
        .options(joinedload(RewardClaim.reward))
        .filter(RewardClaim.member_id == member.id)
        .order_by(RewardClaim.claimed_at.desc(), RewardClaim.id.desc())
        .all()
    )


def all_claims(db: Session, status: Optional[str] = None, page: int = 1, limit: int = 20) -> dict:
    page = max(page, 1)
    limit = max(min(limit, 100), 1)
    query = db.query(RewardClaim).options(joinedload(RewardClaim.reward), joinedload(RewardClaim.member))
    if status:
        if status not in ClaimStatus.__members__:
            raise ValidationError("Invalid claim status")
        query = query.filter(RewardClaim.status == status)

    total = query.count()
    claims = (
        query.order_by(RewardClaim.claimed_at.desc(), RewardClaim.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "claims": claims,
        "pagination": {"page": page, "limit": limit, "total": total, "totalPages": -(-total // limit)},
    }


def pending_claims(db: Session) -> list[RewardClaim]:
    return (
        db.query(RewardClaim)
        .options(joinedload(RewardClaim.reward), joinedload(RewardClaim.member))
        .filter(RewardClaim.status == ClaimStatus.pending.value)
        .order_by(RewardClaim.claimed_at.asc())
        .all()
    )
