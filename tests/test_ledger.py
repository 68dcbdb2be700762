"""
Balance changes and the history-sum invariant.
"""
import pytest

from adrewards.core.errors import ConflictError, NotFoundError, ValidationError
from adrewards.models.points import PointsHistory, PointsReference
from adrewards.services import ledger
from conftest import assert_ledger_consistent


class TestApplyAndDebit:
    def test_credit_moves_balance_and_history_together(self, db, make_member):
        member = make_member()
        ledger.apply_points(db, member.id, 7, "Viewed post #1", PointsReference.post_view, 1)
        db.commit()
        db.refresh(member)
        assert member.points == 7
        assert db.query(PointsHistory).filter_by(member_id=member.id).count() == 1
        assert_ledger_consistent(db, member.id)

    def test_debit_within_balance(self, db, make_member):
        member = make_member(points=10)
        ledger.debit_points(db, member.id, 10, "Claimed reward: Hat", PointsReference.reward_claim, 1)
        db.commit()
        db.refresh(member)
        assert member.points == 0
        assert_ledger_consistent(db, member.id)

    def test_debit_beyond_balance_is_refused(self, db, make_member):
        member = make_member(points=5)
        with pytest.raises(ConflictError, match="Insufficient points"):
            ledger.debit_points(db, member.id, 6, "Claimed reward: Hat", PointsReference.reward_claim)
        db.rollback()
        db.refresh(member)
        assert member.points == 5
        assert_ledger_consistent(db, member.id)

    def test_unknown_member(self, db):
        with pytest.raises(NotFoundError):
            ledger.apply_points(db, 999, 1, "x", PointsReference.admin_adjustment)


class TestAdjustPoints:
    def test_negative_adjustment_may_go_below_zero(self, db, make_member):
        admin = make_member(is_admin=True)
        member = make_member(points=3)
        result = ledger.adjust_points(db, member.id, -5, "Abuse penalty", admin.id)
        assert result == {"memberId": member.id, "previousPoints": 3, "pointsChange": -5, "newPoints": -2}
        assert_ledger_consistent(db, member.id)

    def test_reason_required(self, db, make_member):
        member = make_member()
        with pytest.raises(ValidationError):
            ledger.adjust_points(db, member.id, 5, "  ", 1)

    def test_endpoint(self, client, db, make_member, auth_headers):
        admin = make_member(is_admin=True)
        member = make_member()
        response = client.post(
            f"/api/admin/members/{member.id}/points",
            json={"points_change": 25, "reason": "Contest prize"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["data"]["newPoints"] == 25
        entry = ledger.recent_history(db, member.id)[0]
        assert entry.reference_type == PointsReference.admin_adjustment.value
        assert entry.reference_id == admin.id


class TestReconcile:
    def test_detects_drift(self, db, make_member):
        member = make_member(points=4)
        member.points = 40
        db.commit()
        assert ledger.reconcile(db, member.id)["drift"] == 36
