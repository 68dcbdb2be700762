from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    address: str = Field(..., description="0x... or ronin:... wallet address")
    wallet_type: str = Field(..., example="ronin")
    referral_code: Optional[str] = None


class XHandleUpdate(BaseModel):
    x_handle: str = Field(..., example="@glaria")


class MemberOut(BaseModel):
    id: int
    wallet_address: str
    wallet_type: str
    x_handle: Optional[str] = None
    points: int
    is_active: bool
    is_admin: bool
    referral_code: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LoginOut(BaseModel):
    token: str
    member: MemberOut


class PointsHistoryOut(BaseModel):
    id: int
    points_change: int
    reason: str
    reference_type: str
    reference_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ClickPassOut(BaseModel):
    id: int
    pass_type: str
    additional_points: int
    is_active: bool
    expires_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PublisherPassOut(BaseModel):
    id: int
    pass_type: str
    duration_days: int
    is_active: bool
    expires_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ReferralOut(BaseModel):
    id: int
    wallet_address: str
    points: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
