"""
Member ledger.

Every balance change goes through here so that ``members.points`` and the
append-only ``points_history`` move together inside the caller's
transaction. Balance writes are single UPDATE statements (``points =
points + :delta``), never read-modify-write on the ORM object.
"""
import logging
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from adrewards.core.errors import ConflictError, NotFoundError, ValidationError
from adrewards.database import unit_of_work
from adrewards.models.member import Member
from adrewards.models.points import PointsHistory, PointsReference

logger = logging.getLogger(__name__)


def lock_member(db: Session, member_id: int) -> Member:
    """SELECT ... FOR UPDATE on the member row (no-op lock on SQLite)."""
    member = (
        db.query(Member)
        .filter(Member.id == member_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not member:
        raise NotFoundError("Member not found")
    return member


def _append(db: Session, member_id: int, delta: int, reason: str,
            reference_type: PointsReference, reference_id: Optional[int]) -> PointsHistory:
    entry = PointsHistory(
        member_id=member_id,
        points_change=delta,
        reason=reason,
        reference_type=reference_type.value,
        reference_id=reference_id,
    )
    db.add(entry)
    return entry


def apply_points(
    db: Session,
    member_id: int,
    delta: int,
    reason: str,
    reference_type: PointsReference,
    reference_id: Optional[int] = None,
) -> PointsHistory:
    """Credit (or unconditionally debit) a member and record the history row.

    Does not commit; the caller's unit of work owns the transaction.
    """
    result = db.execute(
        update(Member)
        .where(Member.id == member_id)
        .values(points=Member.points + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFoundError("Member not found")

    entry = _append(db, member_id, delta, reason, reference_type, reference_id)
    db.flush()
    logger.debug("Applied %+d points to member %s (%s)", delta, member_id, reason)
    return entry


def debit_points(
    db: Session,
    member_id: int,
    cost: int,
    reason: str,
    reference_type: PointsReference,
    reference_id: Optional[int] = None,
) -> PointsHistory:
    """Compare-and-swap debit: only succeeds while the balance covers ``cost``."""
    result = db.execute(
        update(Member)
        .where(Member.id == member_id, Member.points >= cost)
        .values(points=Member.points - cost)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError("Insufficient points")

    entry = _append(db, member_id, -cost, reason, reference_type, reference_id)
    db.flush()
    logger.debug("Debited %d points from member %s (%s)", cost, member_id, reason)
    return entry


def history_total(db: Session, member_id: int) -> int:
    total = (
        db.query(func.coalesce(func.sum(PointsHistory.points_change), 0))
        .filter(PointsHistory.member_id == member_id)
        .scalar()
    )
    return int(total or 0)


def reconcile(db: Session, member_id: int) -> dict:
    """Compare the cached balance against SUM(history)."""
    member = db.get(Member, member_id)
    if not member:
        raise NotFoundError("Member not found")
    db.refresh(member)
    total = history_total(db, member_id)
    drift = member.points - total
    if drift:
        logger.error("Ledger drift for member %s: cached=%s history=%s", member_id, member.points, total)
    return {"member_id": member_id, "cached": member.points, "history": total, "drift": drift}


def recent_history(db: Session, member_id: int, limit: int = 10) -> list[PointsHistory]:
    return (
        db.query(PointsHistory)
        .filter(PointsHistory.member_id == member_id)
        .order_by(PointsHistory.created_at.desc(), PointsHistory.id.desc())
        .limit(limit)
        .all()
    )


def adjust_points(db: Session, member_id: int, delta: int, reason: str, admin_id: int) -> dict:
    """Admin adjustment. May be negative and is not floor-checked."""
    if not reason or not reason.strip():
        raise ValidationError("Missing required fields: memberId, pointsChange, reason")

    with unit_of_work(db):
        member = lock_member(db, member_id)
        previous = member.points
        apply_points(db, member_id, delta, reason.strip(), PointsReference.admin_adjustment, admin_id)

    db.refresh(member)
    logger.info("Admin %s adjusted member %s by %+d", admin_id, member_id, delta)
    return {
        "memberId": member_id,
        "previousPoints": previous,
        "pointsChange": delta,
        "newPoints": member.points,
    }
