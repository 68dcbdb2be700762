"""
Post lifecycle and the view engine.

Status flow: pending -> active -> {inactive, expired}. Expiry is applied
lazily by ``expire_if_due`` whenever a post is read; there is no sweeper.
"""
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from adrewards.core.config import Settings
from adrewards.core.errors import ConflictError, NotFoundError, PermissionDenied, ValidationError
from adrewards.database import unit_of_work, utcnow
from adrewards.models.member import Member
from adrewards.models.points import PointsReference
from adrewards.models.post import Post, PostStatus, PostType, PostView
from adrewards.services import bonuses, ledger

logger = logging.getLogger(__name__)

OPEN_STATUSES = (PostStatus.pending.value, PostStatus.active.value)


def expire_if_due(db: Session, post: Post) -> Post:
    if (
        post.status == PostStatus.active.value
        and post.expires_at is not None
        and post.expires_at <= utcnow()
    ):
        with unit_of_work(db):
            post.status = PostStatus.expired.value
        logger.info("Post %s expired", post.id)
    return post


def view_count(db: Session, post_id: int) -> int:
    return db.query(func.count(PostView.id)).filter(PostView.post_id == post_id).scalar() or 0


def get_post(db: Session, post_id: int) -> Post:
    post = db.get(Post, post_id)
    if not post:
        raise NotFoundError("Post not found")
    return expire_if_due(db, post)


def list_active(db: Session, page: int = 1, limit: int = 20, post_type: Optional[str] = None) -> dict:
    page = max(page, 1)
    limit = max(min(limit, 100), 1)
    now = utcnow()

    query = db.query(Post).filter(
        Post.status == PostStatus.active.value,
        or_(Post.expires_at.is_(None), Post.expires_at > now),
    )
    if post_type:
        if post_type not in PostType.__members__:
            raise ValidationError("Invalid post type")
        query = query.filter(Post.post_type == post_type)

    total = query.count()
    posts = query.order_by(Post.created_at.desc(), Post.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return {
        "posts": posts,
        "pagination": {"page": page, "limit": limit, "total": total, "totalPages": -(-total // limit)},
    }


def my_posts(db: Session, member: Member) -> list[Post]:
    posts = db.query(Post).filter(Post.publisher_id == member.id).order_by(Post.created_at.desc()).all()
    return [expire_if_due(db, p) for p in posts]


def pending_posts(db: Session) -> list[Post]:
    return (
        db.query(Post)
        .filter(Post.status == PostStatus.pending.value)
        .order_by(Post.created_at.asc())
        .all()
    )


def create_post(db: Session, member: Member, title: str, content: str, post_type: str, settings: Settings) -> Post:
    title = (title or "").strip()
    content = (content or "").strip()
    if not title or not content:
        raise ValidationError("Missing required fields: title, content")
    if post_type not in PostType.__members__:
        raise ValidationError("Invalid post type")

    publisher_pass = bonuses.active_publisher_pass(db, member.id)
    if publisher_pass:
        duration_days = publisher_pass.duration_days
    elif member.is_admin:
        duration_days = settings.ADMIN_POST_DURATION_DAYS
    else:
        raise PermissionDenied("Active Publisher Pass required to create posts")

    with unit_of_work(db):
        ledger.lock_member(db, member.id)
        open_count = (
            db.query(func.count(Post.id))
            .filter(Post.publisher_id == member.id, Post.status.in_(OPEN_STATUSES))
            .scalar()
        )
        if open_count >= settings.MAX_POSTS_PER_PUBLISHER:
            raise ConflictError(f"Maximum {settings.MAX_POSTS_PER_PUBLISHER} active posts allowed")

        now = utcnow()
        post = Post(
            publisher_id=member.id,
            title=title,
            content=content,
            post_type=post_type,
            status=PostStatus.pending.value,
            expires_at=now + timedelta(days=duration_days),
        )
        # Admin posts skip review
        if member.is_admin:
            post.status = PostStatus.active.value
            post.approved_by = member.id
            post.approved_at = now
        db.add(post)

    db.refresh(post)
    logger.info("Member %s created post %s (%s)", member.id, post.id, post.status)
    return post


def update_post(db: Session, member: Member, post_id: int, title: Optional[str], content: Optional[str]) -> Post:
    post = get_post(db, post_id)
    if post.publisher_id != member.id:
        raise PermissionDenied("Not authorized to update this post")

    new_title = title.strip() if title is not None else post.title
    new_content = content.strip() if content is not None else post.content
    if not new_title or not new_content:
        raise ValidationError("Title and content cannot be empty")

    with unit_of_work(db):
        changed = new_title != post.title or new_content != post.content
        post.title = new_title
        post.content = new_content
        # Content changes go back through review unless the post is already retired
        if changed and post.status != PostStatus.inactive.value:
            post.status = PostStatus.pending.value
            post.approved_by = None
            post.approved_at = None

    db.refresh(post)
    return post


def delete_post(db: Session, member: Member, post_id: int) -> None:
    post = get_post(db, post_id)
    if post.publisher_id != member.id and not member.is_admin:
        raise PermissionDenied("Not authorized to delete this post")
    with unit_of_work(db):
        post.status = PostStatus.inactive.value
    logger.info("Post %s deactivated by member %s", post_id, member.id)


def review_post(db: Session, admin: Member, post_id: int, approved: bool = True) -> Post:
    post = get_post(db, post_id)
    with unit_of_work(db):
        post.status = PostStatus.active.value if approved else PostStatus.inactive.value
        post.approved_by = admin.id
        post.approved_at = utcnow()
    db.refresh(post)
    logger.info("Post %s %s by admin %s", post_id, "approved" if approved else "rejected", admin.id)
    return post


def post_stats(db: Session, member: Member, post_id: int) -> dict:
    post = get_post(db, post_id)
    if post.publisher_id != member.id and not member.is_admin:
        raise PermissionDenied("Not authorized to view post statistics")

    total_views, total_points, avg_duration = (
        db.query(
            func.count(PostView.id),
            func.coalesce(func.sum(PostView.points_earned), 0),
            func.coalesce(func.avg(PostView.view_duration), 0),
        )
        .filter(PostView.post_id == post_id)
        .one()
    )
    day = func.date(PostView.viewed_at)
    by_date = (
        db.query(day.label("date"), func.count(PostView.id).label("views"))
        .filter(PostView.post_id == post_id)
        .group_by(day)
        .order_by(day.desc())
        .limit(30)
        .all()
    )
    return {
        "stats": {
            "total_views": total_views,
            "total_points_distributed": int(total_points),
            "avg_duration": float(avg_duration),
        },
        "viewsByDate": [{"date": str(d), "views": v} for d, v in by_date],
    }


def record_view(db: Session, member: Member, post_id: int, duration: int, settings: Settings) -> dict:
    """Award points for a qualifying view, at most once per cooldown window.

    A repeat inside the window is not an error: it reports zero points so
    retried client calls stay harmless.
    """
    post = db.get(Post, post_id)
    if post:
        expire_if_due(db, post)
    if not post or post.status != PostStatus.active.value:
        raise NotFoundError("Post not found or not active")

    if duration is None or duration < 0:
        raise ValidationError("Missing required fields: postId, duration")

    cutoff = utcnow() - timedelta(hours=settings.VIEW_COOLDOWN_HOURS)

    with unit_of_work(db):
        # Serialises concurrent views by the same member
        ledger.lock_member(db, member.id)

        recent = (
            db.query(PostView.id)
            .filter(PostView.post_id == post_id, PostView.member_id == member.id, PostView.viewed_at > cutoff)
            .first()
        )
        if recent:
            return {"pointsEarned": 0, "alreadyViewed": True, "duration": duration}

        if duration < settings.VIEW_DURATION_REQUIRED:
            raise ValidationError(f"View must last at least {settings.VIEW_DURATION_REQUIRED} seconds")

        points = bonuses.view_points(db, member.id, settings)
        view = PostView(post_id=post_id, member_id=member.id, view_duration=duration, points_earned=points)
        db.add(view)
        db.flush()
        ledger.apply_points(db, member.id, points, f"Viewed post #{post_id}", PointsReference.post_view, view.id)

    logger.info("Member %s earned %s points viewing post %s", member.id, points, post_id)
    return {"pointsEarned": points, "alreadyViewed": False, "duration": duration}
