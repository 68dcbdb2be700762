# routers/assets.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from adrewards.auth.token import get_current_member, require_admin
from adrewards.core.config import Settings, get_settings
from adrewards.database import get_db
from adrewards.models.member import Member
from adrewards.schemas.nft_schema import AssetCreate, AssetOut, AssetVerificationOut
from adrewards.services import assets
from adrewards.services.assets import HoldingsReader, get_holdings_reader
from adrewards.utils.responses import ok

router = APIRouter(prefix="/api/assets", tags=["Featured Assets"])


@router.get("")
def list_assets(db: Session = Depends(get_db)):
    return ok([AssetOut.model_validate(a) for a in assets.list_assets(db)])


@router.post("")
def create_asset(body: AssetCreate, db: Session = Depends(get_db), admin: Member = Depends(require_admin)):
    asset = assets.create_asset(db, body.name, body.asset_type, body.contract_address, body.min_amount)
    return ok(AssetOut.model_validate(asset), "Featured asset created")


@router.post("/{asset_id}/verify")
def verify_asset(
    asset_id: int,
    db: Session = Depends(get_db),
    member: Member = Depends(get_current_member),
    settings: Settings = Depends(get_settings),
    reader: HoldingsReader = Depends(get_holdings_reader),
):
    record = assets.verify_asset(db, member, asset_id, settings, reader)
    message = "Asset verified" if record.verified else "Holding below the required minimum"
    return ok(AssetVerificationOut.model_validate(record), message)
