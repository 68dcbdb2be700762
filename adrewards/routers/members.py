# routers/members.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from adrewards.auth.token import get_current_member
from adrewards.database import get_db
from adrewards.models.member import Member
from adrewards.schemas.member_schema import (
    ClickPassOut,
    MemberOut,
    PointsHistoryOut,
    PublisherPassOut,
    XHandleUpdate,
)
from adrewards.services import admin, bonuses, ledger, social_tasks
from adrewards.utils.responses import ok

router = APIRouter(prefix="/api/members", tags=["Members"])


@router.get("/profile")
def profile(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    history = ledger.recent_history(db, member.id, limit=10)
    return ok({
        "member": MemberOut.model_validate(member),
        "recentActivity": [PointsHistoryOut.model_validate(h) for h in history],
    })


@router.get("/stats")
def stats(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    data = admin.member_stats(db, member)
    data["nftBonus"] = bonuses.nft_bonus(db, member.id)
    click_pass = bonuses.active_click_pass(db, member.id)
    data["clickPassBonus"] = click_pass.additional_points if click_pass else 0
    return ok(data)


@router.get("/passes")
def passes(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    found = bonuses.member_passes(db, member.id)
    click_pass = bonuses.active_click_pass(db, member.id)
    publisher_pass = bonuses.active_publisher_pass(db, member.id)
    return ok({
        "clickPasses": [ClickPassOut.model_validate(p) for p in found["clickPasses"]],
        "publisherPasses": [PublisherPassOut.model_validate(p) for p in found["publisherPasses"]],
        "activeClickPass": ClickPassOut.model_validate(click_pass) if click_pass else None,
        "activePublisherPass": PublisherPassOut.model_validate(publisher_pass) if publisher_pass else None,
    })


@router.put("/x-handle")
def update_x_handle(
    body: XHandleUpdate,
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
):
    member = social_tasks.set_x_handle(db, member, body.x_handle)
    return ok(MemberOut.model_validate(member), "X.com handle updated")
