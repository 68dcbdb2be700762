from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RotatePeriod(BaseModel):
    item_name: str = Field(..., example="Mystery Box")
    item_quantity: int = Field(..., example=3)


class WeeklyRewardOut(BaseModel):
    id: int
    item_name: str
    item_quantity: int
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    is_active: bool
    winners_generated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class WeeklyWinnerOut(BaseModel):
    rank: int
    member_id: int
    wallet_address: Optional[str] = None
    points: int

    model_config = {"from_attributes": True}
