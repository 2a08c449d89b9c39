"""Subscription aggregation: one revenue row per application name.

Processor subscriptions are folded into a single ``SubscriptionSource`` per
normalized application name. Membership lives in the row's
``metadata["activeSubscriptionIds"]``; subscriber count, MRR and the GST split
are derived from it on every write.
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from backoffice.database.base import Database
from backoffice.domain.entities import SubscriptionSource
from backoffice.domain.errors import ConflictError, StoreError, store_write_failed
from backoffice.utils.money import ONE, ZERO, cents_to_money, round2, to_money

log = logging.getLogger(__name__)

STRIPE_PLATFORM = "Stripe"
LEGACY_APP_NAME = "myMECA Premium"
UNKNOWN_APP_NAME = "Unknown App"
NZ_GST_RATE = Decimal("0.15")
MAX_ATTEMPTS = 3

# Early billing created one product per customer, named after a hex ID or email
_LEGACY_PRODUCT = re.compile(r"^[a-f0-9]{16,}")


def normalize_app_name(name: str) -> str:
    """Collapse per-customer legacy product names to their canonical app name."""
    if "@" in name or _LEGACY_PRODUCT.match(name):
        return LEGACY_APP_NAME
    return name


def gst_rate_for(currency: Optional[str]) -> Decimal:
    return NZ_GST_RATE if (currency or "").upper() == "NZD" else ZERO


def split_gst(gross: Any, currency: Optional[str]) -> tuple[Decimal, Decimal]:
    """Split a GST-inclusive gross amount.

    Returns:
        Tuple of (gst, net) at full precision
    """
    gross = to_money(gross)
    rate = gst_rate_for(currency)
    gst = gross * rate / (ONE + rate)
    return gst, gross - gst


def stripe_object_id(value: Any) -> Optional[str]:
    """Return the ID of an expandable Stripe field (ID string or object)."""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return value.get("id")
    return None


@dataclass(frozen=True)
class SubscriptionInfo:
    """What aggregation needs to know about one processor subscription."""

    subscription_id: str
    app_name: str
    mrr: Decimal
    currency: str
    status: Optional[str]
    customer_id: Optional[str] = None
    created: Optional[int] = None

    @property
    def active(self) -> bool:
        return self.status == "active"


def extract_subscription_info(subscription: dict[str, Any], gateway=None) -> SubscriptionInfo:
    """Extract app name, MRR and currency from a subscription payload.

    The app name comes from ``metadata.app_name`` and falls back to the name of
    the first item's product, looked up through ``gateway`` when the product
    isn't expanded.

    Args:
        subscription: Subscription object as a plain dict
        gateway: Optional StripeGateway for product lookups

    Returns:
        SubscriptionInfo with a normalized app name
    """
    items = (subscription.get("items") or {}).get("data") or []
    price = (items[0].get("price") if items else None) or {}
    unit_amount = price.get("unit_amount")
    mrr = cents_to_money(unit_amount) if unit_amount else ZERO
    currency = (price.get("currency") or "NZD").upper()

    app_name = (subscription.get("metadata") or {}).get("app_name")
    product = price.get("product")
    if not app_name and product:
        if isinstance(product, dict) and product.get("name"):
            app_name = product["name"]
        elif gateway is not None:
            app_name = gateway.product_name(stripe_object_id(product))

    return SubscriptionInfo(
        subscription_id=subscription.get("id", ""),
        app_name=normalize_app_name(app_name or UNKNOWN_APP_NAME),
        mrr=mrr,
        currency=currency,
        status=subscription.get("status"),
        customer_id=stripe_object_id(subscription.get("customer")),
        created=subscription.get("created"),
    )


def derived_totals(mrr: Decimal, currency: Optional[str]) -> dict[str, Decimal]:
    """Columns recomputed from an MRR total on every aggregate write."""
    gst, net = split_gst(mrr, currency)
    return {
        "mrr": round2(mrr),
        "gross_jan": round2(mrr),
        "gst_jan": round2(gst),
        "net_jan": round2(net),
    }


class SubscriptionAggregator:
    """Folds subscription lifecycle events into per-app SubscriptionSource rows."""

    def __init__(self, db: Database):
        """Initialize subscription aggregator.

        Args:
            db: Database instance
        """
        self.db = db

    def apply(self, info: SubscriptionInfo) -> None:
        """Apply a created/updated subscription.

        Active subscriptions join their app's set, anything else leaves it.
        A missing row is created.

        Raises:
            StoreError: If the row could not be read or created
            ConflictError: If concurrent writers kept winning the row
        """
        for attempt in range(1, MAX_ATTEMPTS + 1):
            existing = self.db.get_subscription_source_by_app_name(info.app_name)
            if existing is None:
                self._create(info)
                return
            if self._merge(existing, info, add=info.active):
                return
            log.warning("Subscription source '%s' changed underneath us (attempt %d)", info.app_name, attempt)
        raise ConflictError(f"Could not update subscription source '{info.app_name}' after {MAX_ATTEMPTS} attempts")

    def remove(self, info: SubscriptionInfo) -> None:
        """Apply a deleted subscription. A missing row is left alone.

        Raises:
            StoreError: If the row could not be read
            ConflictError: If concurrent writers kept winning the row
        """
        for attempt in range(1, MAX_ATTEMPTS + 1):
            existing = self.db.get_subscription_source_by_app_name(info.app_name)
            if existing is None:
                log.info("No source found for '%s', nothing to update", info.app_name)
                return
            if self._merge(existing, info, add=False):
                return
            log.warning("Subscription source '%s' changed underneath us (attempt %d)", info.app_name, attempt)
        raise ConflictError(f"Could not update subscription source '{info.app_name}' after {MAX_ATTEMPTS} attempts")

    def update_fees(self, app_name: str, fees: Any) -> bool:
        return self.db.update_subscription_fees(app_name, round2(fees))

    def _create(self, info: SubscriptionInfo) -> None:
        mrr = info.mrr if info.active else ZERO
        source_id = self.db.create_subscription_source(
            app_name=info.app_name,
            platform=STRIPE_PLATFORM,
            subscribers=1 if info.active else 0,
            fees_jan=ZERO,
            status=info.status,
            metadata={"activeSubscriptionIds": [info.subscription_id] if info.active else []},
            **derived_totals(mrr, info.currency),
        )
        if source_id is None:
            raise StoreError(store_write_failed(f"create subscription source '{info.app_name}'"))
        log.info("Created new source '%s': %s MRR", info.app_name, round2(mrr))

    def _merge(self, existing: SubscriptionSource, info: SubscriptionInfo, add: bool) -> bool:
        ids = existing.active_subscription_ids
        was_tracked = info.subscription_id in ids
        mrr = to_money(existing.mrr)

        if add:
            if not was_tracked:
                ids.append(info.subscription_id)
                mrr += info.mrr
        elif was_tracked:
            ids.remove(info.subscription_id)
            mrr -= info.mrr
        mrr = max(ZERO, mrr)

        fields: dict[str, Any] = {
            "subscribers": len(ids),
            "metadata": {**existing.metadata, "activeSubscriptionIds": ids},
            **derived_totals(mrr, info.currency),
        }
        if add:
            fields["status"] = "active"

        if not self.db.update_subscription_source(existing.id, existing.version, **fields):
            return False
        log.info(
            "%s '%s': %d subs, %s MRR",
            "Merged into" if add else "Removed from",
            info.app_name,
            len(ids),
            round2(mrr),
        )
        return True
