from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from adrewards.models.x_post import XActionType


class XPostCreate(BaseModel):
    post_url: str = Field(..., example="https://x.com/glaria/status/1790000000000000000")
    title: Optional[str] = None
    image_url: Optional[str] = None


class VerifyActionRequest(BaseModel):
    action_type: XActionType


class XPostOut(BaseModel):
    id: int
    post_url: str
    title: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class XActionOut(BaseModel):
    id: int
    post_id: int
    action_type: str
    points: int
    created_at: datetime

    class Config:
        from_attributes = True
