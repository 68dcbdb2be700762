from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CollectionCreate(BaseModel):
    name: str
    address: str = Field(..., description="0x contract address")
    points_per_nft: int = 1
    max_nfts: int = 3


class CollectionUpdate(BaseModel):
    name: Optional[str] = None
    points_per_nft: Optional[int] = None
    max_nfts: Optional[int] = None
    is_active: Optional[bool] = None


class HoldingsUpdate(BaseModel):
    collection_id: int
    nft_count: int


class CollectionOut(BaseModel):
    id: int
    collection_name: str
    collection_address: str
    points_per_nft: int
    max_nfts_counted: int
    is_active: bool

    class Config:
        from_attributes = True


class AssetCreate(BaseModel):
    name: str
    asset_type: str = Field(..., example="nft")
    contract_address: str
    min_amount: int = 1


class AssetOut(BaseModel):
    id: int
    name: str
    asset_type: str
    contract_address: str
    min_amount: int
    is_active: bool

    class Config:
        from_attributes = True


class AssetVerificationOut(BaseModel):
    asset_id: int
    verified: bool
    amount: int
    verified_at: Optional[datetime] = None
    next_check_at: datetime

    class Config:
        from_attributes = True
