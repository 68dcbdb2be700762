from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from adrewards.database import Base, utcnow


class NFTCollection(Base):
    __tablename__ = "nft_collections"

    id = Column(Integer, primary_key=True, index=True)
    collection_name = Column(String(255), nullable=False)
    collection_address = Column(String(42), unique=True, nullable=False)
    points_per_nft = Column(Integer, nullable=False, default=1)
    max_nfts_counted = Column(Integer, nullable=False, default=3)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)


class MemberNFT(Base):
    __tablename__ = "member_nfts"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    collection_id = Column(Integer, ForeignKey("nft_collections.id"), nullable=False)
    nft_count = Column(Integer, nullable=False, default=0)
    last_verified = Column(DateTime, default=utcnow)

    collection = relationship("NFTCollection")

    __table_args__ = (UniqueConstraint("member_id", "collection_id", name="_member_collection_uc"),)


class FeaturedAsset(Base):
    __tablename__ = "featured_assets"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    asset_type = Column(String(10), nullable=False)        # nft | token
    contract_address = Column(String(42), nullable=False)
    min_amount = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)


class MemberAssetVerification(Base):
    __tablename__ = "member_asset_verifications"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    asset_id = Column(Integer, ForeignKey("featured_assets.id"), nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    amount = Column(Integer, nullable=False, default=0)
    verified_at = Column(DateTime, default=utcnow)
    next_check_at = Column(DateTime, nullable=False)      # re-verification blocked until then

    asset = relationship("FeaturedAsset")

    __table_args__ = (UniqueConstraint("member_id", "asset_id", name="_member_asset_uc"),)
