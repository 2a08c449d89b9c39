"""Tests for the charge and refund ledger."""

from datetime import date, datetime, UTC
from decimal import Decimal

import pytest

from backoffice.domain.errors import StoreError
from backoffice.domain.ledger import LedgerService, estimate_fee, refund_id
from conftest import FakeGateway


def _ts(*args):
    return int(datetime(*args, tzinfo=UTC).timestamp())


def _charge(charge_id="ch_1", amount=1000, **extra):
    charge = {
        "id": charge_id,
        "object": "charge",
        "amount": amount,
        "status": "succeeded",
        "customer": "cus_1",
        "created": _ts(2026, 5, 3, 9, 0),
    }
    charge.update(extra)
    return charge


def test_estimate_fee():
    assert estimate_fee(Decimal("10")) == Decimal("0.59")


def test_refund_id():
    assert refund_id("ch_1") == "ch_1_refund"


class TestChargeFee:
    def test_application_fee_first(self):
        charge = _charge(application_fee_amount=50, balance_transaction={"fee": 88})
        assert LedgerService(None).charge_fee(charge) == Decimal("0.50")

    def test_expanded_balance_transaction(self):
        charge = _charge(balance_transaction={"id": "txn_1", "fee": 88})
        assert LedgerService(None).charge_fee(charge) == Decimal("0.88")

    def test_balance_transaction_lookup(self):
        gateway = FakeGateway(fees={"txn_1": Decimal("0.61")})
        assert LedgerService(None, gateway).charge_fee(_charge(balance_transaction="txn_1")) == Decimal("0.61")

    def test_failed_lookup_falls_back_to_estimate(self):
        charge = _charge(balance_transaction="txn_missing")
        assert LedgerService(None, FakeGateway()).charge_fee(charge) == Decimal("0.59")


class TestRecordCharge:
    def test_charge_row(self, temp_db):
        LedgerService(temp_db).record_charge(_charge(balance_transaction={"fee": 59}))

        row = temp_db.get_stripe_transaction("ch_1")
        assert row.type == "charge"
        assert row.gross == Decimal("10.00")
        assert row.fee == Decimal("0.59")
        assert row.net == Decimal("9.41")
        assert row.date == date(2026, 5, 3)
        assert row.description == "Stripe charge"
        assert row.stripe_customer_id == "cus_1"
        assert row.status == "succeeded"

    def test_duplicate_charge_leaves_one_row(self, temp_db):
        ledger = LedgerService(temp_db)
        ledger.record_charge(_charge(description="Pro plan"))
        ledger.record_charge(_charge(description="Pro plan"))

        rows = temp_db.list_stripe_transactions()
        assert len(rows) == 1
        assert rows[0].description == "Pro plan"

    def test_store_failure_raises(self, temp_db, monkeypatch):
        monkeypatch.setattr(temp_db, "upsert_stripe_transaction", lambda **kwargs: False)
        with pytest.raises(StoreError):
            LedgerService(temp_db).record_charge(_charge())


class TestRecordRefund:
    def test_refund_row(self, temp_db):
        charge = _charge(
            amount_refunded=500,
            description="Pro plan",
            refunds={"data": [{"created": _ts(2026, 5, 4)}, {"created": _ts(2026, 5, 6)}]},
        )

        LedgerService(temp_db).record_refund(charge)

        row = temp_db.get_stripe_transaction("ch_1_refund")
        assert row.type == "refund"
        assert row.gross == Decimal("-5.00")
        assert row.net == Decimal("-5.00")
        assert row.fee == Decimal("0.00")
        assert row.status == "refunded"
        assert row.date == date(2026, 5, 6)

    def test_refund_without_refund_objects_uses_today(self, temp_db):
        LedgerService(temp_db).record_refund(_charge(amount_refunded=1000), today=date(2026, 6, 1))
        assert temp_db.get_stripe_transaction("ch_1_refund").date == date(2026, 6, 1)

    def test_refund_replay_keeps_one_row(self, temp_db):
        ledger = LedgerService(temp_db)
        charge = _charge(amount_refunded=1000)
        ledger.record_charge(charge)
        ledger.record_refund(charge)
        ledger.record_refund(charge)

        assert {r.id for r in temp_db.list_stripe_transactions()} == {"ch_1", "ch_1_refund"}
