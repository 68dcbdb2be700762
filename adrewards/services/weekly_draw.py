"""
Weekly prize draw: a single active period, winners ranked by balance.
"""
import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from adrewards.core.errors import ConflictError, NotFoundError, ValidationError
from adrewards.database import unit_of_work, utcnow
from adrewards.models.member import Member
from adrewards.models.weekly import WeeklyReward, WeeklyWinner

logger = logging.getLogger(__name__)


def current_period(db: Session) -> Optional[WeeklyReward]:
    return (
        db.query(WeeklyReward)
        .filter(WeeklyReward.is_active.is_(True))
        .order_by(WeeklyReward.starts_at.desc(), WeeklyReward.id.desc())
        .first()
    )


def list_winners(db: Session, period_id: int) -> list[WeeklyWinner]:
    if not db.get(WeeklyReward, period_id):
        raise NotFoundError("Weekly reward not found")
    return (
        db.query(WeeklyWinner)
        .filter(WeeklyWinner.weekly_reward_id == period_id)
        .order_by(WeeklyWinner.rank.asc())
        .all()
    )


def recent_winners(db: Session, limit: int = 10) -> list[WeeklyWinner]:
    return (
        db.query(WeeklyWinner)
        .join(WeeklyReward, WeeklyReward.id == WeeklyWinner.weekly_reward_id)
        .order_by(WeeklyReward.winners_generated_at.desc(), WeeklyWinner.rank.asc())
        .limit(limit)
        .all()
    )


def _draw(db: Session, period: WeeklyReward) -> list[WeeklyWinner]:
    """Snapshot the leaderboard into winner rows. Runs inside the caller's transaction."""
    now = utcnow()
    stamped = db.execute(
        update(WeeklyReward)
        .where(WeeklyReward.id == period.id, WeeklyReward.winners_generated_at.is_(None))
        .values(winners_generated_at=now)
        .execution_options(synchronize_session=False)
    )
    if stamped.rowcount != 1:
        raise ConflictError("Winners already generated for this period")

    leaders = (
        db.query(Member.id, Member.points)
        .filter(Member.is_active.is_(True), Member.points > 0)
        .order_by(Member.points.desc(), Member.id.asc())
        .limit(period.item_quantity)
        .all()
    )
    winners = [
        WeeklyWinner(weekly_reward_id=period.id, member_id=member_id, rank=rank, points=points)
        for rank, (member_id, points) in enumerate(leaders, start=1)
    ]
    db.add_all(winners)
    db.flush()
    logger.info("Generated %s winners for weekly period %s", len(winners), period.id)
    return winners


def generate_winners(db: Session, period_id: int) -> list[WeeklyWinner]:
    with unit_of_work(db):
        period = (
            db.query(WeeklyReward)
            .filter(WeeklyReward.id == period_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not period:
            raise NotFoundError("Weekly reward not found")
        _draw(db, period)
    return list_winners(db, period_id)


def rotate_period(db: Session, item_name: str, item_quantity: int) -> WeeklyReward:
    """Close the active period (drawing its winners if still due) and open a new one."""
    item_name = (item_name or "").strip()
    if not item_name:
        raise ValidationError("Missing required fields: itemName, itemQuantity")
    if item_quantity is None or item_quantity <= 0:
        raise ValidationError("Item quantity must be positive")

    with unit_of_work(db):
        now = utcnow()
        active = (
            db.query(WeeklyReward)
            .filter(WeeklyReward.is_active.is_(True))
            .with_for_update()
            .populate_existing()
            .all()
        )
        for period in active:
            if period.winners_generated_at is None:
                _draw(db, period)
            period.is_active = False
            period.ends_at = now

        new_period = WeeklyReward(item_name=item_name, item_quantity=item_quantity, starts_at=now, is_active=True)
        db.add(new_period)

    db.refresh(new_period)
    logger.info("Weekly period %s started (%s x%s)", new_period.id, item_name, item_quantity)
    return new_period
