"""
Identity & session store.

Tokens are signed JWTs carrying the member id and a random session id,
backed by a ``sessions`` row that holds the absolute expiry and the idle
clock. A token is only valid while its row exists.
"""
import logging
import re
import secrets
from datetime import timedelta
from typing import Optional

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from adrewards.core.config import Settings
from adrewards.core.errors import PermissionDenied, ValidationError
from adrewards.database import unit_of_work, utcnow
from adrewards.models.member import WALLET_TYPES, Member, MemberSession
from adrewards.services import referrals

logger = logging.getLogger(__name__)

ETH_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
RONIN_ADDRESS_RE = re.compile(r"^ronin:[a-fA-F0-9]{40}$")


def normalize_wallet_address(address: str) -> str:
    """Return the lower-cased ``0x`` form, accepting the ``ronin:`` prefix."""
    address = (address or "").strip()
    if RONIN_ADDRESS_RE.match(address):
        address = "0x" + address[len("ronin:"):]
    elif not ETH_ADDRESS_RE.match(address):
        raise ValidationError("Invalid wallet address format")
    return address.lower()


def create_session(db: Session, member_id: int, settings: Settings) -> str:
    now = utcnow()
    expires_at = now + timedelta(minutes=settings.SESSION_TTL_MINUTES)
    token = jwt.encode(
        {"sub": str(member_id), "sid": secrets.token_urlsafe(32), "exp": expires_at},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALG,
    )
    db.add(MemberSession(member_id=member_id, token=token, expires_at=expires_at,
                         last_activity=now, created_at=now))
    db.flush()
    return token


def resolve_session(db: Session, token: Optional[str], settings: Settings) -> Optional[Member]:
    """Member owning ``token``, or None when unauthenticated.

    Expired or idle sessions are deleted on sight. The last-activity bump is
    a plain last-write-wins update.
    """
    if not token:
        return None

    try:
        # Expiry is decided by the sessions row below
        jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG], options={"verify_exp": False})
    except JWTError:
        return None

    session = db.query(MemberSession).filter(MemberSession.token == token).first()
    if not session:
        return None

    now = utcnow()
    idle_limit = timedelta(minutes=settings.SESSION_IDLE_TIMEOUT_MINUTES)
    if session.expires_at <= now or (session.last_activity and now - session.last_activity > idle_limit):
        logger.info("Session %s for member %s expired", session.id, session.member_id)
        with unit_of_work(db):
            db.delete(session)
        return None

    with unit_of_work(db):
        session.last_activity = now

    member = db.get(Member, session.member_id)
    if not member or not member.is_active:
        return None
    return member


def destroy_session(db: Session, token: Optional[str]) -> None:
    if not token:
        return
    with unit_of_work(db):
        db.query(MemberSession).filter(MemberSession.token == token).delete()


def login(
    db: Session,
    wallet_address: str,
    wallet_type: str,
    settings: Settings,
    referral_code: Optional[str] = None,
) -> tuple[Member, str]:
    if not wallet_address or not wallet_type:
        raise ValidationError("Missing required fields: address, walletType")

    address = normalize_wallet_address(wallet_address)
    wallet_type = wallet_type.strip().lower()
    if wallet_type not in WALLET_TYPES:
        raise ValidationError("Invalid wallet type")

    is_admin_wallet = address in settings.admin_wallets()

    with unit_of_work(db):
        member = db.query(Member).filter(Member.wallet_address == address).first()

        if not member:
            member = Member(
                wallet_address=address,
                wallet_type=wallet_type,
                points=0,
                is_active=True,
                is_admin=is_admin_wallet,
                referral_code=referrals.generate_code(db, settings),
                referred_by=referrals.resolve_referrer(db, referral_code),
            )
            db.add(member)
            db.flush()
            logger.info("Created member %s for wallet %s", member.id, address)
        else:
            member.last_login = utcnow()
            if is_admin_wallet and not member.is_admin:
                member.is_admin = True

        if not member.is_active:
            raise PermissionDenied("Account is inactive")

        token = create_session(db, member.id, settings)

    db.refresh(member)
    return member, token
