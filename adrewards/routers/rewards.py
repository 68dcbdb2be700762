# routers/rewards.py
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from adrewards.auth.token import get_current_member, require_admin
from adrewards.core.config import Settings, get_settings
from adrewards.database import get_db
from adrewards.models.member import Member
from adrewards.schemas.claim_schema import (
    ProcessClaim,
    RewardCreate,
    RewardDetail,
    RewardOut,
    RewardUpdate,
    claim_out,
)
from adrewards.services import claims
from adrewards.utils.responses import ok

router = APIRouter(prefix="/api/rewards", tags=["Rewards"])


@router.get("")
def list_rewards(reward_type: Optional[str] = None, db: Session = Depends(get_db)):
    return ok([RewardOut.model_validate(r) for r in claims.list_rewards(db, reward_type)])


@router.get("/claims/mine")
def my_claims(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    return ok([claim_out(c) for c in claims.my_claims(db, member)])


@router.get("/claims")
def all_claims(
    status: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
    admin: Member = Depends(require_admin),
    settings: Settings = Depends(get_settings),
):
    result = claims.all_claims(db, status, page, limit or settings.DEFAULT_PAGE_LIMIT)
    return ok({
        "claims": [claim_out(c) for c in result["claims"]],
        "pagination": result["pagination"],
    })


@router.post("/claims/{claim_id}/process")
def process_claim(
    claim_id: int,
    body: ProcessClaim,
    db: Session = Depends(get_db),
    admin: Member = Depends(require_admin),
):
    processed = claims.process_claim(db, admin, claim_id, body.status, body.transaction_hash)
    return ok(claim_out(processed), f"Claim marked as {processed.status}")


@router.get("/{reward_id}")
def get_reward(reward_id: int, db: Session = Depends(get_db)):
    reward, total_claims = claims.get_reward(db, reward_id)
    detail = RewardDetail.model_validate(reward)
    detail.total_claims = total_claims
    return ok(detail)


@router.post("")
def create_reward(body: RewardCreate, db: Session = Depends(get_db), admin: Member = Depends(require_admin)):
    reward = claims.create_reward(
        db,
        name=body.name,
        reward_type=body.reward_type.value,
        points_cost=body.points_cost,
        quantity_available=body.quantity_available,
        description=body.description,
        image_url=body.image_url,
    )
    return ok(RewardOut.model_validate(reward), "Reward created successfully")


@router.put("/{reward_id}")
def update_reward(
    reward_id: int,
    body: RewardUpdate,
    db: Session = Depends(get_db),
    admin: Member = Depends(require_admin),
):
    changes = body.model_dump(exclude_unset=True)
    if changes.get("reward_type") is not None:
        changes["reward_type"] = changes["reward_type"].value
    reward = claims.update_reward(db, reward_id, changes)
    return ok(RewardOut.model_validate(reward), "Reward updated successfully")


@router.post("/{reward_id}/claim")
def claim_reward(
    reward_id: int,
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
    settings: Settings = Depends(get_settings),
):
    new_claim = claims.claim(db, member, reward_id, settings)
    return ok(claim_out(new_claim), "Reward claimed successfully! Admin will process your request.")
