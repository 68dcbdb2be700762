# routers/nfts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from adrewards.auth.token import get_current_member, require_admin
from adrewards.database import get_db
from adrewards.models.member import Member
from adrewards.schemas.nft_schema import CollectionCreate, CollectionOut, CollectionUpdate, HoldingsUpdate
from adrewards.services import assets
from adrewards.utils.responses import ok

router = APIRouter(prefix="/api/nfts", tags=["NFTs"])


@router.get("/collections")
def list_collections(db: Session = Depends(get_db)):
    return ok([CollectionOut.model_validate(c) for c in assets.list_collections(db)])


@router.post("/collections")
def add_collection(body: CollectionCreate, db: Session = Depends(get_db), admin: Member = Depends(require_admin)):
    collection = assets.add_collection(db, body.name, body.address, body.points_per_nft, body.max_nfts)
    return ok(CollectionOut.model_validate(collection), "Collection added successfully")


@router.put("/collections/{collection_id}")
def update_collection(
    collection_id: int,
    body: CollectionUpdate,
    db: Session = Depends(get_db),
    admin: Member = Depends(require_admin),
):
    collection = assets.update_collection(db, collection_id, body.model_dump(exclude_unset=True))
    return ok(CollectionOut.model_validate(collection), "Collection updated successfully")


@router.get("/mine")
def my_nfts(db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    return ok(assets.my_nfts(db, member))


@router.post("/holdings")
def update_holdings(body: HoldingsUpdate, db: Session = Depends(get_db), member: Member = Depends(get_current_member)):
    return ok(assets.update_holdings(db, member, body.collection_id, body.nft_count), "NFT holdings updated")
