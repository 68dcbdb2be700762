"""
Admin aggregates and member management.
"""
import logging
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from adrewards.core.errors import NotFoundError, ValidationError
from adrewards.database import unit_of_work
from adrewards.models.member import Member
from adrewards.models.post import Post, PostStatus, PostView
from adrewards.models.reward import ClaimStatus, Reward, RewardClaim

logger = logging.getLogger(__name__)


def dashboard(db: Session) -> dict:
    def count(query):
        return query.scalar() or 0

    stats = {
        "totalMembers": count(db.query(func.count(Member.id)).filter(Member.is_active.is_(True))),
        "activePosts": count(db.query(func.count(Post.id)).filter(Post.status == PostStatus.active.value)),
        "pendingPosts": count(db.query(func.count(Post.id)).filter(Post.status == PostStatus.pending.value)),
        "activeRewards": count(db.query(func.count(Reward.id)).filter(Reward.is_active.is_(True))),
        "pendingClaims": count(
            db.query(func.count(RewardClaim.id)).filter(RewardClaim.status == ClaimStatus.pending.value)
        ),
        "pointsDistributed": int(count(db.query(func.coalesce(func.sum(PostView.points_earned), 0)))),
        "pointsClaimed": int(count(
            db.query(func.coalesce(func.sum(RewardClaim.points_spent), 0))
            .filter(RewardClaim.status != ClaimStatus.cancelled.value)
        )),
    }

    views = (
        db.query(PostView.viewed_at, Member.wallet_address, Post.title, PostView.points_earned)
        .join(Member, Member.id == PostView.member_id)
        .join(Post, Post.id == PostView.post_id)
        .order_by(PostView.viewed_at.desc())
        .limit(20)
        .all()
    )
    claims = (
        db.query(RewardClaim.claimed_at, Member.wallet_address, Reward.name, RewardClaim.points_spent)
        .join(Member, Member.id == RewardClaim.member_id)
        .join(Reward, Reward.id == RewardClaim.reward_id)
        .order_by(RewardClaim.claimed_at.desc())
        .limit(20)
        .all()
    )
    activity = [
        {"type": "view", "timestamp": ts, "wallet_address": wallet, "details": title, "points": pts}
        for ts, wallet, title, pts in views
    ] + [
        {"type": "claim", "timestamp": ts, "wallet_address": wallet, "details": name, "points": -pts}
        for ts, wallet, name, pts in claims
    ]
    activity.sort(key=lambda a: a["timestamp"], reverse=True)

    stats["recentActivity"] = activity[:20]
    return stats


def list_members(db: Session, page: int = 1, limit: int = 20, search: Optional[str] = None) -> dict:
    page = max(page, 1)
    limit = max(min(limit, 100), 1)

    views = db.query(func.count(PostView.id)).filter(PostView.member_id == Member.id).correlate(Member).scalar_subquery()
    posts = db.query(func.count(Post.id)).filter(Post.publisher_id == Member.id).correlate(Member).scalar_subquery()
    claims = (
        db.query(func.count(RewardClaim.id)).filter(RewardClaim.member_id == Member.id).correlate(Member).scalar_subquery()
    )

    query = db.query(Member)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(or_(Member.wallet_address.like(pattern), Member.x_handle.ilike(pattern)))

    total = query.count()
    rows = (
        query.add_columns(views.label("total_views"), posts.label("total_posts"), claims.label("total_claims"))
        .order_by(Member.created_at.desc(), Member.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    members = [
        {
            "id": m.id,
            "wallet_address": m.wallet_address,
            "wallet_type": m.wallet_type,
            "x_handle": m.x_handle,
            "points": m.points,
            "is_active": m.is_active,
            "is_admin": m.is_admin,
            "created_at": m.created_at,
            "last_login": m.last_login,
            "total_views": total_views,
            "total_posts": total_posts,
            "total_claims": total_claims,
        }
        for m, total_views, total_posts, total_claims in rows
    ]
    return {
        "members": members,
        "pagination": {"page": page, "limit": limit, "total": total, "totalPages": -(-total // limit)},
    }


def _get_member(db: Session, member_id: int) -> Member:
    member = db.get(Member, member_id)
    if not member:
        raise NotFoundError("Member not found")
    return member


def toggle_member(db: Session, admin: Member, member_id: int) -> Member:
    if member_id == admin.id:
        raise ValidationError("Cannot disable your own account")
    member = _get_member(db, member_id)
    with unit_of_work(db):
        member.is_active = not member.is_active
    db.refresh(member)
    logger.info("Admin %s set member %s active=%s", admin.id, member_id, member.is_active)
    return member


def set_admin(db: Session, admin: Member, member_id: int, is_admin: bool) -> Member:
    if member_id == admin.id and not is_admin:
        raise ValidationError("Cannot remove your own admin status")
    member = _get_member(db, member_id)
    with unit_of_work(db):
        member.is_admin = is_admin
    db.refresh(member)
    logger.info("Admin %s set member %s admin=%s", admin.id, member_id, is_admin)
    return member


def member_stats(db: Session, member: Member) -> dict:
    total_views, view_points = (
        db.query(func.count(PostView.id), func.coalesce(func.sum(PostView.points_earned), 0))
        .filter(PostView.member_id == member.id)
        .one()
    )
    total_claims = (
        db.query(func.count(RewardClaim.id))
        .filter(RewardClaim.member_id == member.id, RewardClaim.status != ClaimStatus.cancelled.value)
        .scalar()
        or 0
    )
    total_posts = db.query(func.count(Post.id)).filter(Post.publisher_id == member.id).scalar() or 0
    return {
        "points": member.points,
        "totalViews": total_views,
        "pointsFromViews": int(view_points),
        "totalClaims": total_claims,
        "totalPosts": total_posts,
    }
