"""Charge and refund ledger kept in ``stripe_transactions``."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from backoffice.database.base import Database
from backoffice.domain.errors import StoreError, store_write_failed
from backoffice.domain.subscriptions import stripe_object_id
from backoffice.utils.date_parser import from_unix_timestamp
from backoffice.utils.money import cents_to_money, round2, to_money

log = logging.getLogger(__name__)

PERCENT_FEE = Decimal("0.029")
FIXED_FEE = Decimal("0.30")


def estimate_fee(amount: Any) -> Decimal:
    """Estimate a card processing fee (2.9% + 30c)."""
    return to_money(amount) * PERCENT_FEE + FIXED_FEE


def refund_id(charge_id: str) -> str:
    return f"{charge_id}_refund"


class LedgerService:
    """Service recording processor charges and refunds."""

    def __init__(self, db: Database, gateway=None):
        """Initialize ledger service.

        Args:
            db: Database instance
            gateway: Optional StripeGateway for balance transaction lookups
        """
        self.db = db
        self.gateway = gateway

    def charge_fee(self, charge: dict[str, Any]) -> Decimal:
        """Return the processing fee of a charge.

        Uses the application fee, then the balance transaction's fee (expanded
        or looked up), and finally falls back to :func:`estimate_fee`.
        """
        if charge.get("application_fee_amount"):
            return cents_to_money(charge["application_fee_amount"])

        balance_transaction = charge.get("balance_transaction")
        if isinstance(balance_transaction, dict) and balance_transaction.get("fee") is not None:
            return cents_to_money(balance_transaction["fee"])
        if isinstance(balance_transaction, str) and self.gateway is not None:
            fee = self.gateway.balance_transaction_fee(balance_transaction)
            if fee is not None:
                return fee

        return estimate_fee(cents_to_money(charge.get("amount")))

    def record_charge(self, charge: dict[str, Any], fee: Optional[Decimal] = None) -> str:
        """Upsert a succeeded charge keyed by its ID.

        Args:
            charge: Charge object as a plain dict
            fee: Fee already resolved by the caller; looked up when omitted

        Returns:
            The ledger row ID

        Raises:
            StoreError: If the upsert failed
        """
        charge_id = charge["id"]
        amount = cents_to_money(charge.get("amount"))
        if fee is None:
            fee = self.charge_fee(charge)
        created = charge.get("created")

        ok = self.db.upsert_stripe_transaction(
            transaction_id=charge_id,
            type="charge",
            gross=round2(amount),
            fee=round2(fee),
            net=round2(amount - fee),
            date=from_unix_timestamp(created) if created else None,
            description=charge.get("description") or "Stripe charge",
            stripe_customer_id=stripe_object_id(charge.get("customer")),
            status=charge.get("status"),
        )
        if not ok:
            raise StoreError(store_write_failed(f"charge {charge_id}"))
        log.info("Charge recorded: %s (gross %s, fee %s)", charge_id, round2(amount), round2(fee))
        return charge_id

    def record_refund(self, charge: dict[str, Any], today: Optional[date] = None) -> str:
        """Upsert the refund row ``<charge id>_refund`` for a refunded charge.

        The refund is dated from the latest refund object on the charge, or
        ``today`` when the payload doesn't carry them.

        Raises:
            StoreError: If the upsert failed
        """
        row_id = refund_id(charge["id"])
        refunded = cents_to_money(charge.get("amount_refunded"))

        refunds = (charge.get("refunds") or {}).get("data") or []
        timestamps = [r["created"] for r in refunds if r.get("created")]
        refund_date = from_unix_timestamp(max(timestamps)) if timestamps else (today or date.today())

        ok = self.db.upsert_stripe_transaction(
            transaction_id=row_id,
            type="refund",
            gross=-round2(refunded),
            fee=Decimal("0"),
            net=-round2(refunded),
            date=refund_date,
            description=f"Refund for {charge.get('description') or 'charge'}",
            stripe_customer_id=stripe_object_id(charge.get("customer")),
            status="refunded",
        )
        if not ok:
            raise StoreError(store_write_failed(f"refund {row_id}"))
        log.info("Refund recorded: %s (%s)", row_id, round2(refunded))
        return row_id
