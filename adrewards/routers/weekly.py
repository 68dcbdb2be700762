# routers/weekly.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from adrewards.auth.token import require_admin
from adrewards.database import get_db
from adrewards.models.member import Member
from adrewards.schemas.weekly_schema import RotatePeriod, WeeklyRewardOut, WeeklyWinnerOut
from adrewards.services import weekly_draw
from adrewards.utils.responses import ok

router = APIRouter(prefix="/api/weekly", tags=["Weekly"])


@router.get("/current")
def current_period(db: Session = Depends(get_db)):
    period = weekly_draw.current_period(db)
    recent = [WeeklyWinnerOut.model_validate(w) for w in weekly_draw.recent_winners(db)]
    return ok({
        "period": WeeklyRewardOut.model_validate(period) if period else None,
        "recentWinners": recent,
    })


@router.get("/{period_id}/winners")
def list_winners(period_id: int, db: Session = Depends(get_db)):
    return ok([WeeklyWinnerOut.model_validate(w) for w in weekly_draw.list_winners(db, period_id)])


@router.post("/{period_id}/generate")
def generate_winners(period_id: int, db: Session = Depends(get_db), admin: Member = Depends(require_admin)):
    winners = weekly_draw.generate_winners(db, period_id)
    return ok([WeeklyWinnerOut.model_validate(w) for w in winners], f"{len(winners)} winners generated")


@router.post("/rotate")
def rotate_period(body: RotatePeriod, db: Session = Depends(get_db), admin: Member = Depends(require_admin)):
    period = weekly_draw.rotate_period(db, body.item_name, body.item_quantity)
    return ok(WeeklyRewardOut.model_validate(period), "New weekly period started")
