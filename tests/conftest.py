"""
Shared fixtures: an in-memory SQLite database per test, settings built in
code, and a mocked X client. The FastAPI app gets all three through
dependency overrides.
"""
import os
from unittest.mock import AsyncMock, MagicMock

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from adrewards.core.config import Settings, get_settings
from adrewards.database import Base, get_db
from adrewards.main import app
from adrewards.models.member import Member
from adrewards.models.points import PointsReference
from adrewards.services import ledger, sessions
from adrewards.services.x_api import XApiClient, get_x_client

ADMIN_WALLET = "0x" + "ad" * 20


def wallet(n: int) -> str:
    return f"0x{n:040x}"


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    return Settings(
        ENV="test",
        DATABASE_URL="sqlite://",
        JWT_SECRET="test-secret",
        ADMIN_WALLETS=ADMIN_WALLET,
        X_API_BEARER_TOKEN="test-bearer",
        X_VERIFY_FAIL_OPEN=True,
    )


@pytest.fixture
def x_client():
    """XApiClient stand-in whose verdict each test sets on ``verify``."""
    client = MagicMock(spec=XApiClient)
    client.verify = AsyncMock(return_value=True)
    return client


@pytest.fixture
def client(db, settings, x_client):
    def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_x_client] = lambda: x_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_member(db, settings):
    """Create a member, optionally with an opening balance recorded in the ledger."""
    counter = {"n": 0}

    def _make(points: int = 0, is_admin: bool = False, x_handle=None, referred_by=None, address=None) -> Member:
        counter["n"] += 1
        member = Member(
            wallet_address=address or wallet(1000 + counter["n"]),
            wallet_type="metamask",
            is_admin=is_admin,
            x_handle=x_handle,
            referred_by=referred_by,
            referral_code=f"CODE{counter['n']:04d}",
        )
        db.add(member)
        db.commit()
        if points:
            ledger.apply_points(db, member.id, points, "Opening balance", PointsReference.admin_adjustment)
            db.commit()
        db.refresh(member)
        return member

    return _make


@pytest.fixture
def auth_headers(db, settings):
    """Bearer headers for a fresh session owned by ``member``."""
    def _headers(member: Member) -> dict:
        token = sessions.create_session(db, member.id, settings)
        db.commit()
        return {"Authorization": f"Bearer {token}"}

    return _headers


def assert_ledger_consistent(db, member_id: int) -> None:
    result = ledger.reconcile(db, member_id)
    assert result["drift"] == 0, result
