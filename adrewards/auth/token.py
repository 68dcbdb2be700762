# adrewards/auth/token.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from adrewards.core.config import Settings, get_settings
from adrewards.core.errors import AuthError, PermissionDenied
from adrewards.database import get_db
from adrewards.models.member import Member
from adrewards.services.sessions import resolve_session

security = HTTPBearer(auto_error=False)  # don't auto-fail if no header


def extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    settings: Settings,
) -> Optional[str]:
    """
    Session token from:
      1) Authorization: Bearer <token>
      2) Cookie: settings.SESSION_COOKIE_NAME
    """
    if credentials:
        return credentials.credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def get_optional_member(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Optional[Member]:
    token = extract_token(request, credentials, settings)
    return resolve_session(db, token, settings)


def get_current_member(member: Optional[Member] = Depends(get_optional_member)) -> Member:
    if not member:
        raise AuthError("Authentication required")
    return member


def require_admin(member: Member = Depends(get_current_member)) -> Member:
    if not member.is_admin:
        raise PermissionDenied("Admin access required")
    return member
