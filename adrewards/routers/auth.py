# routers/auth.py
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from adrewards.auth.token import extract_token, get_optional_member, security
from adrewards.core.config import Settings, get_settings
from adrewards.database import get_db
from adrewards.schemas.member_schema import LoginOut, LoginRequest, MemberOut
from adrewards.services import sessions
from adrewards.utils.responses import ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/login")
def login(
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    member, token = sessions.login(db, body.address, body.wallet_type, settings, body.referral_code)

    # Cookie for browser clients; API clients use the returned token as Bearer
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.ENV == "production",
        samesite="lax",
        max_age=settings.SESSION_TTL_MINUTES * 60,
    )
    logger.info("Member %s logged in", member.id)
    return ok(LoginOut(token=token, member=MemberOut.model_validate(member)), "Login successful")


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    credentials: HTTPAuthorizationCredentials = Depends(security),
):
    sessions.destroy_session(db, extract_token(request, credentials, settings))
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return ok(None, "Logged out successfully")


@router.get("/check-session")
def check_session(member=Depends(get_optional_member)):
    if not member:
        return ok({"authenticated": False})
    return ok({"authenticated": True, "member": MemberOut.model_validate(member)})
