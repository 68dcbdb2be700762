# routers/admin.py
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from adrewards.auth.token import require_admin
from adrewards.core.config import Settings, get_settings
from adrewards.database import get_db
from adrewards.models.member import Member
from adrewards.schemas.admin_schema import AdjustPoints, GivePass
from adrewards.schemas.claim_schema import claim_out
from adrewards.schemas.member_schema import ClickPassOut, MemberOut, PublisherPassOut
from adrewards.schemas.post_schema import PostOut
from adrewards.services import admin as admin_service
from adrewards.services import bonuses, claims, ledger, posts
from adrewards.utils.responses import ok

# Every route here requires an admin session
router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db)):
    return ok(admin_service.dashboard(db))


@router.get("/pending-posts")
def pending_posts(db: Session = Depends(get_db)):
    return ok([PostOut.model_validate(p) for p in posts.pending_posts(db)])


@router.get("/pending-claims")
def pending_claims(db: Session = Depends(get_db)):
    return ok([claim_out(c) for c in claims.pending_claims(db)])


@router.get("/members")
def list_members(
    page: int = 1,
    limit: Optional[int] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return ok(admin_service.list_members(db, page, limit or settings.DEFAULT_PAGE_LIMIT, search))


@router.post("/members/{member_id}/toggle")
def toggle_member(member_id: int, db: Session = Depends(get_db), admin: Member = Depends(require_admin)):
    member = admin_service.toggle_member(db, admin, member_id)
    state = "activated" if member.is_active else "deactivated"
    return ok(MemberOut.model_validate(member), f"Member {state}")


@router.post("/members/{member_id}/admin")
def grant_admin(member_id: int, db: Session = Depends(get_db), admin: Member = Depends(require_admin)):
    member = admin_service.set_admin(db, admin, member_id, True)
    return ok(MemberOut.model_validate(member), "Admin status granted")


@router.delete("/members/{member_id}/admin")
def revoke_admin(member_id: int, db: Session = Depends(get_db), admin: Member = Depends(require_admin)):
    member = admin_service.set_admin(db, admin, member_id, False)
    return ok(MemberOut.model_validate(member), "Admin status removed")


@router.post("/members/{member_id}/passes")
def give_pass(member_id: int, body: GivePass, db: Session = Depends(get_db)):
    new_pass = bonuses.give_pass(db, member_id, body.kind, body.pass_type, body.benefit, body.days)
    schema = ClickPassOut if body.kind == "click" else PublisherPassOut
    return ok(schema.model_validate(new_pass), f"{body.pass_type} {body.kind} pass given")


@router.post("/members/{member_id}/points")
def adjust_points(
    member_id: int,
    body: AdjustPoints,
    db: Session = Depends(get_db),
    admin: Member = Depends(require_admin),
):
    result = ledger.adjust_points(db, member_id, body.points_change, body.reason, admin.id)
    return ok(result, "Points adjusted successfully")
