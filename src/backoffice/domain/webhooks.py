"""Processing of verified payment processor webhook events."""

import logging
from typing import Any, Callable

from backoffice.database.base import Database
from backoffice.domain.errors import ValidationError
from backoffice.domain.ledger import LedgerService
from backoffice.domain.subscriptions import (
    SubscriptionAggregator,
    extract_subscription_info,
    stripe_object_id,
)
from backoffice.utils.money import ZERO, cents_to_money

log = logging.getLogger(__name__)


def _invoice_subscription_id(invoice: dict[str, Any]):
    subscription = invoice.get("subscription")
    if not subscription:
        # Newer API versions nest it under the invoice parent
        details = (invoice.get("parent") or {}).get("subscription_details") or {}
        subscription = details.get("subscription")
    return stripe_object_id(subscription)


class StripeEventProcessor:
    """Applies webhook events once per event ID."""

    def __init__(self, db: Database, gateway=None):
        """Initialize event processor.

        Args:
            db: Database instance
            gateway: Optional StripeGateway for product, subscription and fee lookups
        """
        self.db = db
        self.gateway = gateway
        self.aggregator = SubscriptionAggregator(db)
        self.ledger = LedgerService(db, gateway)
        self._handlers: dict[str, Callable[[dict[str, Any]], None]] = {
            "customer.subscription.created": self._subscription_updated,
            "customer.subscription.updated": self._subscription_updated,
            "customer.subscription.deleted": self._subscription_deleted,
            "invoice.payment_succeeded": self._invoice_payment_succeeded,
            "charge.succeeded": self.ledger.record_charge,
            "charge.refunded": self.ledger.record_refund,
        }

    @property
    def handled_event_types(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def process(self, event: dict[str, Any]) -> dict[str, Any]:
        """Process an event envelope ``{id, type, data: {object}}``.

        Already-processed event IDs are acknowledged without re-applying
        anything. The event ID is recorded only once its handler succeeded.

        Returns:
            ``{"received": True, "duplicate": bool}``

        Raises:
            ValidationError: If the envelope has no ID
            DomainError: If a handler failed; the event stays unrecorded
        """
        event_id = event.get("id")
        event_type = event.get("type", "")
        if not event_id:
            raise ValidationError("Event has no id")

        log.info("Received event: %s %s", event_type, event_id)
        if self.db.webhook_event_processed(event_id):
            log.info("Event already processed: %s", event_id)
            return {"received": True, "duplicate": True}

        handler = self._handlers.get(event_type)
        if handler is None:
            log.info("Unhandled event type: %s", event_type)
        else:
            handler((event.get("data") or {}).get("object") or {})

        if not self.db.record_webhook_event(event_id, event_type):
            log.warning("Failed to record processed event %s", event_id)
        return {"received": True, "duplicate": False}

    def _subscription_updated(self, subscription: dict[str, Any]) -> None:
        log.info("Processing subscription update: %s", subscription.get("id"))
        self.aggregator.apply(extract_subscription_info(subscription, self.gateway))

    def _subscription_deleted(self, subscription: dict[str, Any]) -> None:
        log.info("Processing subscription deletion: %s", subscription.get("id"))
        self.aggregator.remove(extract_subscription_info(subscription, self.gateway))

    def _invoice_payment_succeeded(self, invoice: dict[str, Any]) -> None:
        subscription_id = _invoice_subscription_id(invoice)
        if not subscription_id:
            return

        subscription = None
        if self.gateway is not None:
            subscription = self.gateway.retrieve_subscription(subscription_id)
        if subscription is None:
            log.warning("Could not resolve subscription %s for invoice %s", subscription_id, invoice.get("id"))
            return

        info = extract_subscription_info(subscription, self.gateway)
        fee = invoice.get("application_fee_amount")
        fees = cents_to_money(fee) if fee else ZERO
        if not self.aggregator.update_fees(info.app_name, fees):
            log.warning("Failed to update fees for '%s' from invoice %s", info.app_name, invoice.get("id"))
