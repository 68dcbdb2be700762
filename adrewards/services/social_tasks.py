"""
Social-task verification: one-time point awards for follow / like / retweet
actions on X posts.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from adrewards.core.config import Settings
from adrewards.core.errors import ConflictError, ExternalCapabilityError, NotFoundError, ValidationError
from adrewards.database import unit_of_work
from adrewards.models.member import Member
from adrewards.models.points import PointsReference
from adrewards.models.x_post import XActionType, XPost, XPostAction
from adrewards.services import assets, ledger, referrals
from adrewards.services.x_api import XApiClient, extract_tweet_id, extract_username

logger = logging.getLogger(__name__)


def list_x_posts(db: Session) -> list[XPost]:
    return db.query(XPost).filter(XPost.is_active.is_(True)).order_by(XPost.created_at.desc()).all()


def create_x_post(db: Session, admin: Member, post_url: str, title: str | None = None,
                  image_url: str | None = None) -> XPost:
    post_url = (post_url or "").strip()
    if not extract_username(post_url) or not extract_tweet_id(post_url):
        raise ValidationError("Post URL must be a valid X.com post URL")
    post = XPost(post_url=post_url, title=title, image_url=image_url, created_by=admin.id)
    with unit_of_work(db):
        db.add(post)
    db.refresh(post)
    return post


def my_actions(db: Session, member: Member) -> list[XPostAction]:
    return (
        db.query(XPostAction)
        .filter(XPostAction.member_id == member.id)
        .order_by(XPostAction.created_at.desc())
        .all()
    )


def set_x_handle(db: Session, member: Member, handle: str) -> Member:
    handle = (handle or "").strip().lstrip("@")
    if not handle or len(handle) > 50:
        raise ValidationError("Invalid X.com handle")
    with unit_of_work(db):
        member.x_handle = handle
    db.refresh(member)
    return member


def _existing_action(db: Session, member_id: int, post_id: int, action_type: str):
    return (
        db.query(XPostAction)
        .filter(
            XPostAction.member_id == member_id,
            XPostAction.post_id == post_id,
            XPostAction.action_type == action_type,
        )
        .first()
    )


async def verify_action(
    db: Session,
    member: Member,
    post_id: int,
    action_type: str,
    client: XApiClient,
    settings: Settings,
) -> dict:
    if action_type not in XActionType.__members__:
        raise ValidationError("Invalid action type")
    if not member.x_handle:
        raise ValidationError("Please set your X.com handle first")

    post = db.query(XPost).filter(XPost.id == post_id, XPost.is_active.is_(True)).first()
    if not post:
        raise NotFoundError("X post not found")

    if _existing_action(db, member.id, post_id, action_type):
        raise ConflictError("You have already completed this action")

    handle = member.x_handle
    member_id = member.id
    referred_by = member.referred_by
    post_url = post.post_url
    # End the read transaction before waiting on the network
    db.rollback()

    fail_open = False
    try:
        completed = await client.verify(handle, post_url, action_type)
    except ExternalCapabilityError as e:
        if not settings.X_VERIFY_FAIL_OPEN:
            logger.warning("X verification unavailable for member %s (%s); failing closed", member_id, e.message)
            raise
        logger.warning(
            "X verification unavailable for member %s post %s %s (%s); failing open",
            member_id, post_id, action_type, e.message,
        )
        completed = True
        fail_open = True

    if not completed:
        raise ValidationError(f"Please complete the {action_type} action on X.com first")

    points = settings.SOCIAL_ACTION_POINTS
    if assets.has_active_verification(db, member_id):
        points += settings.SOCIAL_ACTION_BONUS_POINTS

    with unit_of_work(db):
        ledger.lock_member(db, member_id)
        if _existing_action(db, member_id, post_id, action_type):
            raise ConflictError("You have already completed this action")
        action = XPostAction(post_id=post_id, member_id=member_id, action_type=action_type, points=points)
        db.add(action)
        try:
            db.flush()
        except IntegrityError:
            raise ConflictError("You have already completed this action")
        ledger.apply_points(db, member_id, points, f"X {action_type} on post #{post_id}",
                            PointsReference.social_action, action.id)

    logger.info("Member %s verified %s on X post %s for %s points", member_id, action_type, post_id, points)

    referral_paid = False
    if action_type == settings.REFERRAL_QUALIFYING_ACTION and referred_by:
        referral_paid = referrals.pay_referral_bonus(
            db, referred_by, settings.REFERRAL_ACTION_BONUS, "Referral retweet bonus", member_id
        )

    return {
        "verified": True,
        "points_earned": points,
        "action_id": action.id,
        "unverified_fallback": fail_open,
        "referral_bonus_paid": referral_paid,
    }
