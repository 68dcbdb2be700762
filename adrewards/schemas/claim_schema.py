from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from adrewards.models.reward import RewardClaim, RewardType


class RewardCreate(BaseModel):
    name: str = Field(..., example="Genesis Ape #12")
    description: Optional[str] = None
    reward_type: RewardType
    points_cost: int = Field(..., example=100)
    quantity_available: int = Field(..., example=5)
    image_url: Optional[str] = None


class RewardUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    reward_type: Optional[RewardType] = None
    points_cost: Optional[int] = None
    quantity_available: Optional[int] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None


class RewardOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    reward_type: str
    points_cost: int
    quantity_available: int
    image_url: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RewardDetail(RewardOut):
    total_claims: int = 0


class ProcessClaim(BaseModel):
    status: str = Field(..., example="sent")
    transaction_hash: Optional[str] = None


# === Claims, one shape per lifecycle state ===

class _ClaimBase(BaseModel):
    id: int
    member_id: int
    reward_id: int
    reward_name: Optional[str] = None
    points_spent: int
    claimed_at: datetime

    model_config = {"from_attributes": True}


class PendingClaim(_ClaimBase):
    status: Literal["pending"]


class SentClaim(_ClaimBase):
    status: Literal["sent"]
    processed_at: datetime
    processed_by: Optional[int] = None
    transaction_hash: Optional[str] = None


class CancelledClaim(_ClaimBase):
    status: Literal["cancelled"]
    processed_at: datetime
    processed_by: Optional[int] = None


CLAIM_MODELS = {"pending": PendingClaim, "sent": SentClaim, "cancelled": CancelledClaim}


def claim_out(claim: RewardClaim) -> BaseModel:
    return CLAIM_MODELS[claim.status].model_validate(claim)
