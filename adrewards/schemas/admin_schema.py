from typing import Optional

from pydantic import BaseModel, Field


class GivePass(BaseModel):
    kind: str = Field(..., example="click")   # click | publisher
    pass_type: str = Field(..., example="Silver")
    benefit: int = Field(..., description="Extra points per view, or post duration in days")
    days: Optional[int] = None


class AdjustPoints(BaseModel):
    points_change: int
    reason: str
