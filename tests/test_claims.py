"""
Reward catalog, claims and refunds.
"""
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from adrewards.core.errors import ConflictError, NotFoundError, ValidationError
from adrewards.database import Base
from adrewards.models.member import Member
from adrewards.models.points import PointsHistory, PointsReference
from adrewards.models.reward import ClaimStatus, Reward, RewardClaim
from adrewards.schemas.claim_schema import CancelledClaim, PendingClaim, SentClaim, claim_out
from adrewards.services import claims, ledger
from conftest import assert_ledger_consistent, wallet


@pytest.fixture
def reward(db):
    return claims.create_reward(db, "Genesis Ape", "nft", points_cost=50, quantity_available=2)


@pytest.fixture
def admin(make_member):
    return make_member(is_admin=True)


class TestCatalog:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"reward_type": "badge", "points_cost": 10, "quantity_available": 1},
            {"reward_type": "nft", "points_cost": 0, "quantity_available": 1},
            {"reward_type": "token", "points_cost": 10, "quantity_available": -1},
        ],
    )
    def test_create_validation(self, db, kwargs):
        with pytest.raises(ValidationError):
            claims.create_reward(db, "Thing", **kwargs)

    def test_list_filters_inactive_and_type(self, db, reward):
        claims.create_reward(db, "RON", "token", points_cost=5, quantity_available=10)
        claims.update_reward(db, reward.id, {"is_active": False})
        assert [r.name for r in claims.list_rewards(db)] == ["RON"]
        assert claims.list_rewards(db, "nft") == []

    def test_update_requires_fields(self, db, reward):
        with pytest.raises(ValidationError):
            claims.update_reward(db, reward.id, {"bogus": 1})


class TestClaim:
    def test_claim_debits_points_and_stock(self, db, settings, make_member, reward):
        member = make_member(points=120)
        new_claim = claims.claim(db, member, reward.id, settings)

        assert new_claim.status == ClaimStatus.pending.value
        assert new_claim.points_spent == 50
        db.refresh(member)
        db.refresh(reward)
        assert member.points == 70
        assert reward.quantity_available == 1
        last = db.query(PointsHistory).order_by(PointsHistory.id.desc()).first()
        assert last.reason == "Claimed reward: Genesis Ape"
        assert last.points_change == -50
        assert_ledger_consistent(db, member.id)

    def test_insufficient_points_changes_nothing(self, db, settings, make_member, reward):
        member = make_member(points=49)
        with pytest.raises(ConflictError, match="Insufficient points"):
            claims.claim(db, member, reward.id, settings)
        db.refresh(member)
        db.refresh(reward)
        assert member.points == 49
        assert reward.quantity_available == 2
        assert db.query(RewardClaim).count() == 0
        assert_ledger_consistent(db, member.id)

    def test_out_of_stock(self, db, settings, make_member):
        empty = claims.create_reward(db, "Sold out", "nft", points_cost=1, quantity_available=0)
        member = make_member(points=10)
        with pytest.raises(ConflictError, match="Reward out of stock"):
            claims.claim(db, member, empty.id, settings)
        db.refresh(member)
        assert member.points == 10

    def test_stock_never_oversold(self, db, settings, make_member, reward):
        members = [make_member(points=100) for _ in range(3)]
        claims.claim(db, members[0], reward.id, settings)
        claims.claim(db, members[1], reward.id, settings)
        with pytest.raises(ConflictError):
            claims.claim(db, members[2], reward.id, settings)
        db.refresh(reward)
        assert reward.quantity_available == 0

    def test_inactive_reward(self, db, settings, make_member, reward):
        claims.update_reward(db, reward.id, {"is_active": False})
        with pytest.raises(NotFoundError):
            claims.claim(db, make_member(points=100), reward.id, settings)


class TestProcessClaim:
    def test_sent_stamps_only(self, db, settings, make_member, admin, reward):
        member = make_member(points=50)
        pending = claims.claim(db, member, reward.id, settings)

        sent = claims.process_claim(db, admin, pending.id, "sent", "0xabc")
        assert sent.status == ClaimStatus.sent.value
        assert sent.processed_by == admin.id
        assert sent.transaction_hash == "0xabc"
        db.refresh(member)
        assert member.points == 0

    def test_cancel_drops_transaction_hash(self, db, settings, make_member, admin, reward):
        pending = claims.claim(db, make_member(points=50), reward.id, settings)
        cancelled = claims.process_claim(db, admin, pending.id, "cancelled", "0xabc")
        assert cancelled.status == ClaimStatus.cancelled.value
        assert cancelled.transaction_hash is None

    def test_cancel_restores_balance_and_stock_exactly(self, db, settings, make_member, admin, reward):
        member = make_member(points=80)
        pending = claims.claim(db, member, reward.id, settings)

        claims.process_claim(db, admin, pending.id, "cancelled")
        db.refresh(member)
        db.refresh(reward)
        assert member.points == 80
        assert reward.quantity_available == 2
        refund = db.query(PointsHistory).order_by(PointsHistory.id.desc()).first()
        assert refund.reason == "Reward claim refunded (cancelled)"
        assert refund.points_change == 50
        assert_ledger_consistent(db, member.id)

    @pytest.mark.parametrize("first", ["sent", "cancelled"])
    @pytest.mark.parametrize("second", ["sent", "cancelled"])
    def test_processed_claim_cannot_move_again(self, db, settings, make_member, admin, reward, first, second):
        member = make_member(points=50)
        pending = claims.claim(db, member, reward.id, settings)
        claims.process_claim(db, admin, pending.id, first)

        with pytest.raises(ConflictError, match="Claim already processed"):
            claims.process_claim(db, admin, pending.id, second)
        assert_ledger_consistent(db, member.id)

    def test_invalid_status(self, db, settings, make_member, admin, reward):
        pending = claims.claim(db, make_member(points=50), reward.id, settings)
        with pytest.raises(ValidationError):
            claims.process_claim(db, admin, pending.id, "pending")

    def test_missing_claim(self, db, admin):
        with pytest.raises(NotFoundError):
            claims.process_claim(db, admin, 404, "sent")


class TestClaimShapes:
    def test_union_follows_status(self, db, settings, make_member, admin, reward):
        member = make_member(points=100)
        first = claims.claim(db, member, reward.id, settings)
        second = claims.claim(db, member, reward.id, settings)
        assert isinstance(claim_out(first), PendingClaim)

        claims.process_claim(db, admin, first.id, "sent")
        claims.process_claim(db, admin, second.id, "cancelled")
        db.refresh(first)
        db.refresh(second)
        assert isinstance(claim_out(first), SentClaim)
        cancelled = claim_out(second)
        assert isinstance(cancelled, CancelledClaim)
        assert cancelled.reward_name == "Genesis Ape"


class TestFirstClaimReferralBonus:
    def test_paid_once_to_referrer(self, db, settings, make_member):
        cheap = claims.create_reward(db, "Sticker", "nft", points_cost=1, quantity_available=5)
        referrer = make_member()
        member = make_member(points=10, referred_by=referrer.id)

        claims.claim(db, member, cheap.id, settings)
        claims.claim(db, member, cheap.id, settings)

        db.refresh(referrer)
        db.refresh(member)
        assert referrer.points == settings.REFERRAL_CLAIM_BONUS
        assert member.referral_claim_bonus_paid is True
        assert_ledger_consistent(db, referrer.id)

    def test_no_referrer_no_bonus(self, db, settings, make_member, reward):
        member = make_member(points=50)
        claims.claim(db, member, reward.id, settings)
        db.refresh(member)
        assert member.referral_claim_bonus_paid is False


class TestClaimEndpoints:
    def test_claim_and_process_over_http(self, client, db, make_member, auth_headers, reward):
        member = make_member(points=60)
        admin_headers = auth_headers(make_member(is_admin=True))

        claimed = client.post(f"/api/rewards/{reward.id}/claim", headers=auth_headers(member))
        assert claimed.status_code == 200
        data = claimed.json()["data"]
        assert data["status"] == "pending"

        pending = client.get("/api/admin/pending-claims", headers=admin_headers).json()["data"]
        assert [c["id"] for c in pending] == [data["id"]]

        processed = client.post(
            f"/api/rewards/claims/{data['id']}/process",
            json={"status": "cancelled"},
            headers=admin_headers,
        )
        assert processed.json()["data"]["status"] == "cancelled"

        again = client.post(
            f"/api/rewards/claims/{data['id']}/process",
            json={"status": "sent"},
            headers=admin_headers,
        )
        assert again.status_code == 400
        assert again.json() == {"success": False, "error": "Claim already processed"}

    def test_reward_detail_counts_claims(self, client, db, settings, make_member, reward):
        claims.claim(db, make_member(points=50), reward.id, settings)
        detail = client.get(f"/api/rewards/{reward.id}").json()["data"]
        assert detail["total_claims"] == 1
        assert detail["quantity_available"] == 1

    def test_my_claims(self, client, db, settings, make_member, auth_headers, reward):
        member = make_member(points=50)
        claims.claim(db, member, reward.id, settings)
        mine = client.get("/api/rewards/claims/mine", headers=auth_headers(member)).json()["data"]
        assert len(mine) == 1
        assert mine[0]["reward_name"] == "Genesis Ape"


def _lock_order(statements):
    """Position of the first reward and member row reads in ``statements``."""
    reward_read = next(i for i, s in enumerate(statements) if s.startswith("SELECT") and "FROM rewards" in s)
    member_read = next(i for i, s in enumerate(statements) if s.startswith("SELECT") and "FROM members" in s)
    return reward_read, member_read


@pytest.fixture
def statements(engine):
    seen = []

    def record(conn, cursor, statement, parameters, context, executemany):
        seen.append(" ".join(statement.split()))

    event.listen(engine, "before_cursor_execute", record)
    yield seen
    event.remove(engine, "before_cursor_execute", record)


class TestLockOrder:
    def test_claim_locks_reward_before_member(self, db, settings, make_member, reward, statements):
        member = make_member(points=50)
        statements.clear()
        claims.claim(db, member, reward.id, settings)
        reward_read, member_read = _lock_order(statements)
        assert reward_read < member_read

    def test_cancel_locks_reward_before_member_and_claim(self, db, settings, make_member, admin, reward, statements):
        pending = claims.claim(db, make_member(points=50), reward.id, settings)
        statements.clear()
        claims.process_claim(db, admin, pending.id, "cancelled")
        reward_read, member_read = _lock_order(statements)
        claim_update = next(i for i, s in enumerate(statements) if s.startswith("UPDATE reward_claims"))
        assert reward_read < member_read < claim_update


class TestConcurrentClaims:
    """Two sessions load their rows first, then claim one after the other."""

    @pytest.fixture
    def two_sessions(self, tmp_path):
        file_engine = create_engine(f"sqlite:///{tmp_path / 'claims.db'}")
        Base.metadata.create_all(bind=file_engine)
        factory = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
        first, second = factory(), factory()
        yield first, second
        first.close()
        second.close()
        file_engine.dispose()

    @staticmethod
    def _member(db, address, points):
        member = Member(wallet_address=address, wallet_type="metamask", referral_code=address[-8:].upper())
        db.add(member)
        db.commit()
        ledger.apply_points(db, member.id, points, "Opening balance", PointsReference.admin_adjustment)
        db.commit()
        return member.id

    def test_one_balance_two_rewards(self, two_sessions, settings):
        first, second = two_sessions
        member_id = self._member(first, wallet(1), 500)
        left = claims.create_reward(first, "Left", "nft", points_cost=500, quantity_available=1)
        right = claims.create_reward(first, "Right", "nft", points_cost=500, quantity_available=1)

        stale = [s.get(Member, member_id) for s in two_sessions]
        assert [m.points for m in stale] == [500, 500]

        claims.claim(first, stale[0], left.id, settings)
        with pytest.raises(ConflictError, match="Insufficient points"):
            claims.claim(second, stale[1], right.id, settings)

        first.expire_all()
        assert first.get(Member, member_id).points == 0
        assert first.get(Reward, right.id).quantity_available == 1
        assert first.query(RewardClaim).count() == 1
        assert_ledger_consistent(first, member_id)

    def test_two_members_last_item(self, two_sessions, settings):
        first, second = two_sessions
        alice = self._member(first, wallet(2), 100)
        bob = self._member(first, wallet(3), 100)
        reward_id = claims.create_reward(first, "Last one", "nft", points_cost=100, quantity_available=1).id

        stale = [s.get(Reward, reward_id) for s in two_sessions]
        assert [r.quantity_available for r in stale] == [1, 1]

        claims.claim(first, first.get(Member, alice), reward_id, settings)
        with pytest.raises(ConflictError, match="Reward out of stock"):
            claims.claim(second, second.get(Member, bob), reward_id, settings)

        first.expire_all()
        assert first.get(Reward, reward_id).quantity_available == 0
        assert first.query(RewardClaim).count() == 1
        assert first.get(Member, bob).points == 100
        assert_ledger_consistent(first, alice)
        assert_ledger_consistent(first, bob)
