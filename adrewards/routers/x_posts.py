# routers/x_posts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from adrewards.auth.token import get_current_member, require_admin
from adrewards.core.config import Settings, get_settings
from adrewards.database import get_db
from adrewards.models.member import Member
from adrewards.schemas.x_post_schema import VerifyActionRequest, XActionOut, XPostCreate, XPostOut
from adrewards.services import social_tasks
from adrewards.services.x_api import XApiClient, get_x_client
from adrewards.utils.responses import ok

router = APIRouter(prefix="/api/x-posts", tags=["X Posts"])


@router.get("")
def list_x_posts(db: Session = Depends(get_db)):
    return ok([XPostOut.model_validate(p) for p in social_tasks.list_x_posts(db)])


@router.post("")
def create_x_post(body: XPostCreate, db: Session = Depends(get_db), admin: Member = Depends(require_admin)):
    post = social_tasks.create_x_post(db, admin, body.post_url, body.title, body.image_url)
    return ok(XPostOut.model_validate(post), "X post created")


@router.get("/my-actions")
def my_actions(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    return ok([XActionOut.model_validate(a) for a in social_tasks.my_actions(db, member)])


@router.post("/{post_id}/verify")
async def verify_action(
    post_id: int,
    body: VerifyActionRequest,
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
    settings: Settings = Depends(get_settings),
    client: XApiClient = Depends(get_x_client),
):
    result = await social_tasks.verify_action(db, member, post_id, body.action_type.value, client, settings)
    return ok(result, f"Action verified! You earned {result['points_earned']} points")
