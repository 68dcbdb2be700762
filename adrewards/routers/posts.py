# routers/posts.py
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from adrewards.auth.token import get_current_member, require_admin
from adrewards.core.config import Settings, get_settings
from adrewards.database import get_db
from adrewards.models.member import Member
from adrewards.schemas.post_schema import PostCreate, PostDetail, PostOut, PostReview, PostUpdate, ViewRequest
from adrewards.services import posts
from adrewards.utils.responses import ok

router = APIRouter(prefix="/api/posts", tags=["Posts"])


@router.get("")
def list_posts(
    page: int = 1,
    limit: Optional[int] = None,
    post_type: Optional[str] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    result = posts.list_active(db, page, limit or settings.DEFAULT_PAGE_LIMIT, post_type)
    return ok({
        "posts": [PostOut.model_validate(p) for p in result["posts"]],
        "pagination": result["pagination"],
    })


@router.get("/mine")
def my_posts(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    return ok([PostOut.model_validate(p) for p in posts.my_posts(db, member)])


@router.get("/{post_id}")
def get_post(post_id: int, db: Session = Depends(get_db)):
    post = posts.get_post(db, post_id)
    detail = PostDetail.model_validate(post)
    detail.view_count = posts.view_count(db, post_id)
    return ok(detail)


@router.get("/{post_id}/stats")
def post_stats(post_id: int, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    return ok(posts.post_stats(db, member, post_id))


@router.post("")
def create_post(
    body: PostCreate,
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
    settings: Settings = Depends(get_settings),
):
    post = posts.create_post(db, member, body.title, body.content, body.post_type.value, settings)
    message = "Post created successfully" if post.status == "active" else "Post submitted for review"
    return ok(PostOut.model_validate(post), message)


@router.put("/{post_id}")
def update_post(
    post_id: int,
    body: PostUpdate,
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
):
    post = posts.update_post(db, member, post_id, body.title, body.content)
    return ok(PostOut.model_validate(post), "Post updated successfully")


@router.delete("/{post_id}")
def delete_post(post_id: int, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    posts.delete_post(db, member, post_id)
    return ok(None, "Post deleted successfully")


@router.post("/{post_id}/review")
def review_post(
    post_id: int,
    body: PostReview,
    db: Session = Depends(get_db),
    admin: Member = Depends(require_admin),
):
    post = posts.review_post(db, admin, post_id, body.approved)
    return ok(PostOut.model_validate(post), "Post approved" if body.approved else "Post rejected")


@router.post("/{post_id}/view")
def record_view(
    post_id: int,
    body: ViewRequest,
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
    settings: Settings = Depends(get_settings),
):
    result = posts.record_view(db, member, post_id, body.duration, settings)
    if result["alreadyViewed"]:
        return ok(result, "You have already viewed this post recently")
    return ok(result, f"You earned {result['pointsEarned']} points")
