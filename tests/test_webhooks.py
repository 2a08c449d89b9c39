"""Tests for webhook event processing."""

from decimal import Decimal

import pytest

from backoffice.domain.errors import StoreError, ValidationError
from backoffice.domain.webhooks import StripeEventProcessor
from conftest import FakeGateway, fail_next_query, make_subscription


def _event(event_id, event_type, obj):
    return {"id": event_id, "type": event_type, "data": {"object": obj}}


@pytest.fixture
def processor(temp_db, fake_gateway):
    return StripeEventProcessor(temp_db, fake_gateway)


def test_handled_event_types(processor):
    assert set(processor.handled_event_types) == {
        "customer.subscription.created",
        "customer.subscription.updated",
        "customer.subscription.deleted",
        "invoice.payment_succeeded",
        "charge.succeeded",
        "charge.refunded",
    }


def test_subscription_created(temp_db, processor):
    result = processor.process(_event("evt_1", "customer.subscription.created", make_subscription("sub_1")))

    assert result == {"received": True, "duplicate": False}
    source = temp_db.get_subscription_source_by_app_name("Tide Tables")
    assert source.subscribers == 1
    assert temp_db.webhook_event_processed("evt_1") is True


def test_duplicate_event_not_reapplied(temp_db, processor):
    processor.process(_event("evt_1", "customer.subscription.created", make_subscription("sub_1")))
    # Same event ID, different payload: nothing may change
    result = processor.process(_event("evt_1", "customer.subscription.created", make_subscription("sub_2")))

    assert result == {"received": True, "duplicate": True}
    source = temp_db.get_subscription_source_by_app_name("Tide Tables")
    assert source.subscribers == 1
    assert source.active_subscription_ids == ["sub_1"]


def test_replayed_subscription_under_new_event_id(temp_db, processor):
    processor.process(_event("evt_1", "customer.subscription.updated", make_subscription("sub_1")))
    processor.process(_event("evt_2", "customer.subscription.updated", make_subscription("sub_1")))

    source = temp_db.get_subscription_source_by_app_name("Tide Tables")
    assert source.subscribers == 1
    assert source.mrr == Decimal("10.00")


def test_subscription_deleted(temp_db, processor):
    processor.process(_event("evt_1", "customer.subscription.created", make_subscription("sub_1")))
    processor.process(
        _event("evt_2", "customer.subscription.deleted", make_subscription("sub_1", status="canceled"))
    )

    source = temp_db.get_subscription_source_by_app_name("Tide Tables")
    assert source.subscribers == 0
    assert source.mrr == Decimal("0.00")


def test_charge_events(temp_db, processor):
    charge = {"id": "ch_1", "amount": 2000, "status": "succeeded", "created": 1780000000, "application_fee_amount": 90}
    processor.process(_event("evt_1", "charge.succeeded", charge))
    processor.process(_event("evt_2", "charge.refunded", {**charge, "amount_refunded": 2000}))

    assert temp_db.get_stripe_transaction("ch_1").fee == Decimal("0.90")
    assert temp_db.get_stripe_transaction("ch_1_refund").gross == Decimal("-20.00")


def test_invoice_payment_updates_fees(temp_db):
    subscription = make_subscription("sub_1")
    gateway = FakeGateway(subscriptions=[subscription])
    processor = StripeEventProcessor(temp_db, gateway)
    processor.process(_event("evt_1", "customer.subscription.created", subscription))

    invoice = {"id": "in_1", "application_fee_amount": 125, "parent": {"subscription_details": {"subscription": "sub_1"}}}
    processor.process(_event("evt_2", "invoice.payment_succeeded", invoice))

    assert temp_db.get_subscription_source_by_app_name("Tide Tables").fees_jan == Decimal("1.25")


def test_invoice_payment_without_resolvable_subscription(temp_db, processor):
    result = processor.process(_event("evt_1", "invoice.payment_succeeded", {"id": "in_1", "subscription": "sub_x"}))

    assert result["received"] is True
    assert temp_db.list_subscription_sources() == []


def test_unhandled_event_acknowledged(temp_db, processor):
    result = processor.process(_event("evt_1", "customer.created", {"id": "cus_1"}))

    assert result == {"received": True, "duplicate": False}
    assert temp_db.webhook_event_processed("evt_1") is True


def test_event_without_id_rejected(processor):
    with pytest.raises(ValidationError):
        processor.process({"type": "charge.succeeded", "data": {"object": {}}})


def test_failed_handler_leaves_event_unrecorded(temp_db, processor, monkeypatch):
    monkeypatch.setattr(temp_db, "create_subscription_source", lambda **kwargs: None)

    with pytest.raises(StoreError):
        processor.process(_event("evt_1", "customer.subscription.created", make_subscription("sub_1")))

    assert temp_db.webhook_event_processed("evt_1") is False


def test_deletion_with_failed_lookup_is_redelivered(temp_db, processor, monkeypatch):
    processor.process(_event("evt_1", "customer.subscription.created", make_subscription("sub_1")))
    deleted = _event("evt_2", "customer.subscription.deleted", make_subscription("sub_1", status="canceled"))

    fail_next_query(monkeypatch, temp_db)
    with pytest.raises(StoreError):
        processor.process(deleted)
    assert temp_db.webhook_event_processed("evt_2") is False

    result = processor.process(deleted)

    assert result == {"received": True, "duplicate": False}
    source = temp_db.get_subscription_source_by_app_name("Tide Tables")
    assert source.subscribers == 0
    assert source.active_subscription_ids == []
