"""Thin wrapper over the ``stripe`` SDK.

Objects are handed to the domain layer as plain dicts so the aggregation code
never depends on SDK types.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Optional, Union

import stripe

from backoffice.domain.errors import GatewayError, SignatureError, ValidationError
from backoffice.utils.money import cents_to_money

log = logging.getLogger(__name__)


def _to_dict(obj: Any) -> dict[str, Any]:
    # StripeObject renders itself as JSON
    return json.loads(str(obj))


class StripeGateway:
    """Payment processor operations used by the webhook and the sync job."""

    def __init__(self, api_key: str = "", webhook_secret: str = "", tolerance: int = 300):
        """Initialize gateway.

        Args:
            api_key: Secret API key used for lookups
            webhook_secret: Endpoint signing secret
            tolerance: Maximum age of a signed payload in seconds
        """
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance

    def verify_event(self, payload: Union[bytes, str], signature: str) -> dict[str, Any]:
        """Verify a webhook signature and decode the event envelope.

        Raises:
            SignatureError: If the signature header doesn't verify
            ValidationError: If the payload is not a JSON object
        """
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        try:
            stripe.WebhookSignature.verify_header(payload, signature, self.webhook_secret, self.tolerance)
        except stripe.SignatureVerificationError as e:
            raise SignatureError(f"Invalid signature: {e}") from e

        try:
            event = json.loads(payload)
        except ValueError as e:
            raise ValidationError(f"Invalid payload: {e}") from e
        if not isinstance(event, dict):
            raise ValidationError("Invalid payload: expected an event object")
        return event

    def product_name(self, product_id: Optional[str]) -> Optional[str]:
        """Return a product's name, or None if it can't be retrieved."""
        if not product_id:
            return None
        try:
            product = stripe.Product.retrieve(product_id, api_key=self.api_key)
        except stripe.StripeError as e:
            log.warning("Failed to retrieve product %s: %s", product_id, e)
            return None
        return product["name"]

    def balance_transaction_fee(self, balance_transaction_id: str) -> Optional[Decimal]:
        """Return the fee of a balance transaction, or None if it can't be retrieved."""
        try:
            balance_transaction = stripe.BalanceTransaction.retrieve(balance_transaction_id, api_key=self.api_key)
        except stripe.StripeError as e:
            log.warning("Failed to retrieve balance transaction %s: %s", balance_transaction_id, e)
            return None
        return cents_to_money(balance_transaction["fee"])

    def retrieve_subscription(self, subscription_id: str) -> Optional[dict[str, Any]]:
        """Return a subscription as a dict, or None if it can't be retrieved."""
        try:
            subscription = stripe.Subscription.retrieve(subscription_id, api_key=self.api_key)
        except stripe.StripeError as e:
            log.warning("Failed to retrieve subscription %s: %s", subscription_id, e)
            return None
        return _to_dict(subscription)

    def list_subscriptions(self) -> list[dict[str, Any]]:
        """List every subscription regardless of status.

        Raises:
            GatewayError: If the listing failed
        """
        try:
            pages = stripe.Subscription.list(limit=100, status="all", api_key=self.api_key)
            return [_to_dict(s) for s in pages.auto_paging_iter()]
        except stripe.StripeError as e:
            raise GatewayError(f"Failed to list subscriptions: {e}") from e

    def list_charges(self, created_gte: int) -> list[dict[str, Any]]:
        """List charges created at or after a Unix timestamp.

        Raises:
            GatewayError: If the listing failed
        """
        try:
            pages = stripe.Charge.list(limit=100, created={"gte": created_gte}, api_key=self.api_key)
            return [_to_dict(c) for c in pages.auto_paging_iter()]
        except stripe.StripeError as e:
            raise GatewayError(f"Failed to list charges: {e}") from e
