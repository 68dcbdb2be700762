"""
NFT collections, member holdings and featured-asset verification.

On-chain reads are out of scope: ``RecordedHoldingsReader`` answers balance
questions from the holdings members have reported, and can be swapped for
a real chain reader behind the same ``balance_of`` call.
"""
import logging
import re
from datetime import timedelta
from typing import Optional, Protocol

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from adrewards.core.config import Settings
from adrewards.core.errors import ConflictError, NotFoundError, ValidationError
from adrewards.database import unit_of_work, utcnow
from adrewards.models.member import Member
from adrewards.models.nft import FeaturedAsset, MemberAssetVerification, MemberNFT, NFTCollection
from adrewards.services.bonuses import holding_bonus, member_holdings

logger = logging.getLogger(__name__)

CONTRACT_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


class HoldingsReader(Protocol):
    def balance_of(self, db: Session, wallet_address: str, contract_address: str) -> int: ...


class RecordedHoldingsReader:
    def balance_of(self, db: Session, wallet_address: str, contract_address: str) -> int:
        count = (
            db.query(func.coalesce(func.sum(MemberNFT.nft_count), 0))
            .join(Member, Member.id == MemberNFT.member_id)
            .join(NFTCollection, NFTCollection.id == MemberNFT.collection_id)
            .filter(
                Member.wallet_address == wallet_address.lower(),
                NFTCollection.collection_address == contract_address.lower(),
            )
            .scalar()
        )
        return int(count or 0)


def get_holdings_reader() -> HoldingsReader:
    return RecordedHoldingsReader()


# ---------- Collections ----------

def list_collections(db: Session) -> list[NFTCollection]:
    return (
        db.query(NFTCollection)
        .filter(NFTCollection.is_active.is_(True))
        .order_by(NFTCollection.collection_name.asc())
        .all()
    )


def add_collection(db: Session, name: str, address: str, points_per_nft: int = 1, max_nfts: int = 3) -> NFTCollection:
    name = (name or "").strip()
    address = (address or "").strip()
    if not name or not address:
        raise ValidationError("Missing required fields: name, address")
    if not CONTRACT_RE.match(address):
        raise ValidationError("Invalid collection address format")
    if points_per_nft <= 0 or max_nfts <= 0:
        raise ValidationError("Invalid points or max NFTs value")

    address = address.lower()
    if db.query(NFTCollection).filter(NFTCollection.collection_address == address).first():
        raise ConflictError("Collection already exists")

    collection = NFTCollection(collection_name=name, collection_address=address,
                               points_per_nft=points_per_nft, max_nfts_counted=max_nfts)
    with unit_of_work(db):
        db.add(collection)
    db.refresh(collection)
    return collection


def update_collection(db: Session, collection_id: int, changes: dict) -> NFTCollection:
    collection = db.get(NFTCollection, collection_id)
    if not collection:
        raise NotFoundError("Collection not found")
    if not changes:
        raise ValidationError("No fields to update")

    with unit_of_work(db):
        if "name" in changes:
            collection.collection_name = changes["name"].strip()
        if "points_per_nft" in changes:
            collection.points_per_nft = int(changes["points_per_nft"])
        if "max_nfts" in changes:
            collection.max_nfts_counted = int(changes["max_nfts"])
        if "is_active" in changes:
            collection.is_active = bool(changes["is_active"])
    db.refresh(collection)
    return collection


def update_holdings(db: Session, member: Member, collection_id: int, nft_count: int) -> dict:
    if nft_count < 0:
        raise ValidationError("Invalid NFT count")
    collection = (
        db.query(NFTCollection)
        .filter(NFTCollection.id == collection_id, NFTCollection.is_active.is_(True))
        .first()
    )
    if not collection:
        raise NotFoundError("Collection not found or not active")

    with unit_of_work(db):
        holding = (
            db.query(MemberNFT)
            .filter(MemberNFT.member_id == member.id, MemberNFT.collection_id == collection_id)
            .first()
        )
        if holding:
            holding.nft_count = nft_count
            holding.last_verified = utcnow()
        else:
            holding = MemberNFT(member_id=member.id, collection_id=collection_id, nft_count=nft_count)
            db.add(holding)

    counted, bonus = holding_bonus(holding, collection)
    return {
        "collectionName": collection.collection_name,
        "nftCount": nft_count,
        "countedNfts": counted,
        "bonusPoints": bonus,
    }


def my_nfts(db: Session, member: Member) -> dict:
    nfts = []
    total = 0
    for holding, collection in member_holdings(db, member.id):
        counted, bonus = holding_bonus(holding, collection)
        total += bonus
        nfts.append({
            "collection_id": collection.id,
            "collection_name": collection.collection_name,
            "collection_address": collection.collection_address,
            "nft_count": holding.nft_count,
            "counted_nfts": counted,
            "points_per_nft": collection.points_per_nft,
            "bonus_points": bonus,
        })
    return {"nfts": nfts, "totalBonus": total}


# ---------- Featured assets ----------

def list_assets(db: Session) -> list[FeaturedAsset]:
    return db.query(FeaturedAsset).filter(FeaturedAsset.is_active.is_(True)).order_by(FeaturedAsset.id).all()


def create_asset(db: Session, name: str, asset_type: str, contract_address: str, min_amount: int = 1) -> FeaturedAsset:
    if asset_type not in ("nft", "token"):
        raise ValidationError("Invalid asset type")
    if not CONTRACT_RE.match((contract_address or "").strip()):
        raise ValidationError("Invalid contract address format")
    if min_amount <= 0:
        raise ValidationError("Minimum amount must be positive")

    asset = FeaturedAsset(name=name.strip(), asset_type=asset_type,
                          contract_address=contract_address.strip().lower(), min_amount=min_amount)
    with unit_of_work(db):
        db.add(asset)
    db.refresh(asset)
    return asset


def verify_asset(
    db: Session,
    member: Member,
    asset_id: int,
    settings: Settings,
    reader: Optional[HoldingsReader] = None,
) -> MemberAssetVerification:
    reader = reader or RecordedHoldingsReader()
    asset = db.query(FeaturedAsset).filter(FeaturedAsset.id == asset_id, FeaturedAsset.is_active.is_(True)).first()
    if not asset:
        raise NotFoundError("Featured asset not found")

    now = utcnow()
    existing = (
        db.query(MemberAssetVerification)
        .filter(MemberAssetVerification.member_id == member.id, MemberAssetVerification.asset_id == asset_id)
        .first()
    )
    if existing and existing.next_check_at > now:
        raise ConflictError("Verification cooldown active, try again later")

    amount = reader.balance_of(db, member.wallet_address, asset.contract_address)
    verified = amount >= asset.min_amount
    next_check = now + timedelta(hours=settings.ASSET_VERIFY_COOLDOWN_HOURS)

    with unit_of_work(db):
        if existing:
            existing.verified = verified
            existing.amount = amount
            existing.verified_at = now
            existing.next_check_at = next_check
            record = existing
        else:
            record = MemberAssetVerification(member_id=member.id, asset_id=asset_id, verified=verified,
                                             amount=amount, verified_at=now, next_check_at=next_check)
            db.add(record)
            try:
                db.flush()
            except IntegrityError:
                raise ConflictError("Verification already in progress")

    db.refresh(record)
    logger.info("Asset %s verification for member %s: amount=%s verified=%s", asset_id, member.id, amount, verified)
    return record


def has_active_verification(db: Session, member_id: int) -> bool:
    return (
        db.query(MemberAssetVerification.id)
        .join(FeaturedAsset, FeaturedAsset.id == MemberAssetVerification.asset_id)
        .filter(
            MemberAssetVerification.member_id == member_id,
            MemberAssetVerification.verified.is_(True),
            FeaturedAsset.is_active.is_(True),
        )
        .first()
        is not None
    )
