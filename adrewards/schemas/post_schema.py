from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from adrewards.models.post import PostType


class PostCreate(BaseModel):
    title: str = Field(..., description="Post title")
    content: str = Field(..., description="Post body")
    post_type: PostType = PostType.post


class PostUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class PostReview(BaseModel):
    approved: bool = True


class ViewRequest(BaseModel):
    duration: int = Field(..., ge=0, description="Seconds the post was on screen")


class PostOut(BaseModel):
    id: int
    publisher_id: int
    title: str
    content: str
    post_type: str
    status: str
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PostDetail(PostOut):
    view_count: int = 0
