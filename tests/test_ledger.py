"""
Tests for the point ledger: awards, admin adjustments and the
consistency check.
"""
import logging
from decimal import Decimal

import pytest
from sqlalchemy import update

from greenloop.core.errors import (
    ConsistencyError,
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from greenloop.models import AdminActivity, PointTransaction, TransactionType, User
from greenloop.services import ledger
from greenloop.services.persistence import unit_of_work


def _corrupt_points(db, user_id, points):
    with db.get_bind().begin() as conn:
        conn.execute(update(User.__table__).where(User.__table__.c.id == user_id).values(points=points))


class TestAwardPoints:
    def test_award_updates_ledger_and_cache_together(self, db, user):
        with unit_of_work(db, "award points"):
            ledger.award_points(
                db, user.id, 30, Decimal("1.250"),
                reference_type="action", reference_id=1, description="Completed: Compost",
            )
        db.refresh(user)
        assert user.points == 30
        assert user.total_co2_saved == Decimal("1.250")
        assert ledger.ledger_total(db, user.id) == 30

    def test_award_for_missing_user_rolls_back(self, db):
        with pytest.raises(ConsistencyError):
            with unit_of_work(db, "award points"):
                ledger.award_points(
                    db, 999_999, 10, Decimal("0"),
                    reference_type="action", reference_id=None, description="orphan",
                )
        assert db.query(PointTransaction).count() == 0


class TestAdjustPoints:
    def test_positive_adjustment(self, db, user, admin):
        tx = ledger.adjust_points(db, user.id, 25, "Workshop attendance", admin.id)

        assert tx.transaction_type == TransactionType.adjusted
        assert tx.points == 25
        assert tx.reference_type == "adjustment"
        assert tx.description == "Workshop attendance"
        db.refresh(user)
        assert user.points == 25
        assert ledger.verify_ledger(db, user.id).consistent

        audit = db.query(AdminActivity).filter(AdminActivity.action == "points_adjusted").one()
        assert audit.resource_id == user.id

    def test_negative_adjustment(self, db, user, admin):
        ledger.adjust_points(db, user.id, 100, "bonus", admin.id)
        ledger.adjust_points(db, user.id, -40, "double-logged action", admin.id)
        db.refresh(user)
        assert user.points == 60
        assert ledger.ledger_total(db, user.id) == 60

    def test_cannot_go_negative(self, db, user, admin):
        ledger.adjust_points(db, user.id, 10, "bonus", admin.id)
        with pytest.raises(ValidationError):
            ledger.adjust_points(db, user.id, -11, "too much", admin.id)
        db.refresh(user)
        assert user.points == 10

    @pytest.mark.parametrize("delta,reason", [(0, "nothing"), (5, ""), (5, "   ")])
    def test_invalid_input(self, db, user, admin, delta, reason):
        with pytest.raises(ValidationError):
            ledger.adjust_points(db, user.id, delta, reason, admin.id)

    def test_requires_admin(self, db, user, make_user):
        other = make_user()
        with pytest.raises(ForbiddenError):
            ledger.adjust_points(db, user.id, 5, "bonus", other.id)

    def test_unknown_user(self, db, admin):
        with pytest.raises(NotFoundError):
            ledger.adjust_points(db, 999_999, 5, "bonus", admin.id)


class TestVerifyLedger:
    def test_new_user_is_consistent(self, db, user):
        check = ledger.verify_ledger(db, user.id)
        assert check.consistent
        assert check.cached_points == 0
        assert check.ledger_points == 0

    def test_divergence_is_reported_not_repaired(self, db, user, admin, caplog):
        ledger.adjust_points(db, user.id, 50, "bonus", admin.id)
        _corrupt_points(db, user.id, 80)

        with caplog.at_level(logging.ERROR, logger="greenloop"):
            check = ledger.verify_ledger(db, user.id)

        assert not check.consistent
        assert check.cached_points == 80
        assert check.ledger_points == 50
        assert "Ledger divergence" in caplog.text
        db.refresh(user)
        assert user.points == 80

    def test_assert_raises(self, db, user):
        _corrupt_points(db, user.id, 7)
        with pytest.raises(ConsistencyError) as exc:
            ledger.assert_ledger_consistent(db, user.id)
        assert exc.value.code == "LEDGER_INCONSISTENT"
        assert exc.value.details["cached_points"] == 7

    def test_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            ledger.verify_ledger(db, 999_999)


class TestListTransactions:
    def test_newest_first_and_paginated(self, db, user, admin):
        for delta in (10, 20, 30):
            ledger.adjust_points(db, user.id, delta, f"bonus {delta}", admin.id)

        total, items = ledger.list_transactions(db, user.id, limit=2)
        assert total == 3
        assert [t.points for t in items] == [30, 20]


class TestUnitOfWork:
    def test_store_error_becomes_persistence_error(self, db, user):
        duplicate = User(email=user.email, first_name="Copy")
        with pytest.raises(PersistenceError) as exc:
            with unit_of_work(db, "create user", email=user.email):
                db.add(duplicate)
                db.flush()
        assert exc.value.details == {"operation": "create user"}
        assert db.query(User).count() == 1
