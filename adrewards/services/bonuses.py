"""
Pass & bonus resolver: Click/Publisher passes and NFT holding bonuses.
"""
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from adrewards.core.config import Settings
from adrewards.core.errors import NotFoundError, ValidationError
from adrewards.database import unit_of_work, utcnow
from adrewards.models.member import Member
from adrewards.models.nft import MemberNFT, NFTCollection
from adrewards.models.passes import CLICK_PASS_TYPES, PUBLISHER_PASS_TYPES, ClickPass, PublisherPass

logger = logging.getLogger(__name__)


def _active_pass(db: Session, model, member_id: int):
    now = utcnow()
    # Newest active pass wins
    return (
        db.query(model)
        .filter(
            model.member_id == member_id,
            model.is_active.is_(True),
            or_(model.expires_at.is_(None), model.expires_at > now),
        )
        .order_by(model.created_at.desc(), model.id.desc())
        .first()
    )


def active_click_pass(db: Session, member_id: int) -> Optional[ClickPass]:
    return _active_pass(db, ClickPass, member_id)


def active_publisher_pass(db: Session, member_id: int) -> Optional[PublisherPass]:
    return _active_pass(db, PublisherPass, member_id)


def member_holdings(db: Session, member_id: int) -> list[tuple[MemberNFT, NFTCollection]]:
    return (
        db.query(MemberNFT, NFTCollection)
        .join(NFTCollection, MemberNFT.collection_id == NFTCollection.id)
        .filter(MemberNFT.member_id == member_id, NFTCollection.is_active.is_(True))
        .order_by(NFTCollection.collection_name.asc())
        .all()
    )


def holding_bonus(holding: MemberNFT, collection: NFTCollection) -> tuple[int, int]:
    """(counted NFTs, bonus points) for a single collection."""
    counted = min(holding.nft_count, collection.max_nfts_counted)
    return counted, counted * collection.points_per_nft


def nft_bonus(db: Session, member_id: int) -> int:
    return sum(holding_bonus(h, c)[1] for h, c in member_holdings(db, member_id))


def view_points(db: Session, member_id: int, settings: Settings) -> int:
    points = settings.BASE_POINTS_PER_VIEW
    click_pass = active_click_pass(db, member_id)
    if click_pass:
        points += click_pass.additional_points
    points += nft_bonus(db, member_id)
    return points


def give_pass(
    db: Session,
    member_id: int,
    kind: str,
    pass_type: str,
    benefit: int,
    days: Optional[int] = None,
):
    """Admin grant of a click pass (benefit = extra points per view) or a
    publisher pass (benefit = post duration in days)."""
    member = db.get(Member, member_id)
    if not member:
        raise NotFoundError("Member not found")
    if benefit is None or benefit < 0:
        raise ValidationError("Invalid pass benefit")

    expires_at = utcnow() + timedelta(days=days) if days else None

    if kind == "click":
        if pass_type not in CLICK_PASS_TYPES:
            raise ValidationError("Invalid pass type")
        new_pass = ClickPass(member_id=member_id, pass_type=pass_type,
                             additional_points=benefit, expires_at=expires_at)
    elif kind == "publisher":
        if pass_type not in PUBLISHER_PASS_TYPES:
            raise ValidationError("Invalid pass type")
        if benefit <= 0:
            raise ValidationError("Invalid pass benefit")
        new_pass = PublisherPass(member_id=member_id, pass_type=pass_type,
                                 duration_days=benefit, expires_at=expires_at)
    else:
        raise ValidationError("Pass kind must be 'click' or 'publisher'")

    with unit_of_work(db):
        db.add(new_pass)
    db.refresh(new_pass)
    logger.info("Gave %s pass %s to member %s", kind, pass_type, member_id)
    return new_pass


def member_passes(db: Session, member_id: int) -> dict:
    return {
        "clickPasses": db.query(ClickPass).filter(ClickPass.member_id == member_id)
        .order_by(ClickPass.created_at.desc()).all(),
        "publisherPasses": db.query(PublisherPass).filter(PublisherPass.member_id == member_id)
        .order_by(PublisherPass.created_at.desc()).all(),
    }
