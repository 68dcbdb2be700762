# routers/referrals.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from adrewards.auth.token import get_current_member
from adrewards.core.config import Settings, get_settings
from adrewards.database import get_db
from adrewards.models.member import Member
from adrewards.schemas.member_schema import ReferralOut
from adrewards.services import referrals
from adrewards.utils.responses import ok

router = APIRouter(prefix="/api/referrals", tags=["Referrals"])


@router.get("")
def my_referrals(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    return ok([ReferralOut.model_validate(m) for m in referrals.my_referrals(db, member)])


@router.get("/stats")
def referral_stats(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    return ok(referrals.referral_stats(db, member))


@router.post("/code")
def referral_code(
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
    settings: Settings = Depends(get_settings),
):
    return ok({"referral_code": referrals.ensure_code(db, member, settings)})
