"""Backfill of aggregated Stripe subscription sources and the charge ledger."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, UTC
from decimal import Decimal
from typing import Any, Iterable, Optional

from dateutil.relativedelta import relativedelta

from backoffice.database.base import Database
from backoffice.domain.budget import fiscal_year_for, fiscal_year_start
from backoffice.domain.errors import StoreError
from backoffice.domain.ledger import LedgerService
from backoffice.domain.subscriptions import (
    STRIPE_PLATFORM,
    SubscriptionInfo,
    extract_subscription_info,
    split_gst,
)
from backoffice.utils.money import ONE, ZERO, cents_to_money, round2

log = logging.getLogger(__name__)

MAX_TREND_POINTS = 7
DAYS_PER_MONTH = 30


def build_trend(created: Iterable[Optional[int]], current_count: int, now: datetime) -> list[int]:
    """Estimate historical subscriber counts from subscription creation times.

    Spreads up to seven points between the oldest creation time and ``now``
    and counts the subscriptions that existed at each point. The last point
    is always ``current_count``.

    Args:
        created: Unix creation timestamps of the active subscriptions
        current_count: Current subscriber count
        now: Reference time (timezone-aware)

    Returns:
        Subscriber counts, oldest first; empty when there are no subscriptions
    """
    stamps = sorted(datetime.fromtimestamp(int(ts), tz=UTC) for ts in created if ts)
    if current_count == 0:
        return []
    if not stamps:
        return [current_count]

    oldest = stamps[0]
    months_diff = max(0, (now - oldest).days // DAYS_PER_MONTH)
    size = min(MAX_TREND_POINTS, months_diff + 1)
    if size == 1:
        return [current_count]

    interval = months_diff / (size - 1)
    trend = []
    for i in range(size):
        target = oldest + relativedelta(months=int(i * interval))
        trend.append(sum(1 for s in stamps if s <= target))
    trend[-1] = current_count
    return trend


@dataclass
class AppGroup:
    """Active subscriptions of one application."""

    app_name: str
    active: list[SubscriptionInfo] = field(default_factory=list)

    @property
    def mrr(self) -> Decimal:
        return sum((s.mrr for s in self.active), ZERO)

    @property
    def gst(self) -> Decimal:
        return sum((split_gst(s.mrr, s.currency)[0] for s in self.active), ZERO)


class StripeSyncService:
    """Rebuilds the Stripe subscription sources and the year's charge ledger."""

    def __init__(self, db: Database, gateway):
        """Initialize sync service.

        Args:
            db: Database instance
            gateway: StripeGateway used for listings and lookups
        """
        self.db = db
        self.gateway = gateway
        self.ledger = LedgerService(db, gateway)

    def group_subscriptions(self, subscriptions: Iterable[dict[str, Any]]) -> dict[str, AppGroup]:
        """Group subscriptions by normalized app name, skipping test ones (MRR below 1)."""
        groups: dict[str, AppGroup] = {}
        for subscription in subscriptions:
            info = extract_subscription_info(subscription, self.gateway)
            if info.mrr < ONE:
                log.info("Skipping test subscription: %s (%s)", info.app_name, info.mrr)
                continue
            group = groups.setdefault(info.app_name, AppGroup(info.app_name))
            if info.active:
                group.active.append(info)
        return groups

    def sync_charges(self, since: date, tally: dict[str, Any]) -> tuple[Decimal, Decimal]:
        """Upsert every succeeded charge created on or after ``since``.

        Returns:
            Tuple of (gross, fees) totals at full precision
        """
        created_gte = int(datetime.combine(since, time(), tzinfo=UTC).timestamp())
        gross_total = ZERO
        fee_total = ZERO
        for charge in self.gateway.list_charges(created_gte):
            if charge.get("status") != "succeeded":
                continue
            gross = cents_to_money(charge.get("amount"))
            fee = self.ledger.charge_fee(charge)
            gross_total += gross
            fee_total += fee
            try:
                self.ledger.record_charge(charge, fee=fee)
                tally["charges"] += 1
            except StoreError as e:
                tally["errors"].append(str(e))
        return gross_total, fee_total

    def sync_aggregated(self, today: Optional[date] = None) -> dict[str, Any]:
        """Replace the Stripe subscription sources with one fresh row per app.

        Non-Stripe sources are left untouched. Individual failures are
        collected in the tally and the run carries on.

        Args:
            today: Reference date for the fiscal year and trends

        Returns:
            Dict with ``synced`` and ``failed`` source counts, ``charges``
            upserted and an ``errors`` list

        Raises:
            GatewayError: If Stripe listings fail
        """
        today = today or date.today()
        now = datetime.combine(today, time(23, 59, 59), tzinfo=UTC)
        tally: dict[str, Any] = {"synced": 0, "failed": 0, "charges": 0, "errors": []}

        subscriptions = self.gateway.list_subscriptions()
        log.info("Found %d subscriptions", len(subscriptions))
        groups = self.group_subscriptions(subscriptions)

        ytd_gross, ytd_fees = self.sync_charges(fiscal_year_start(fiscal_year_for(today)), tally)
        ytd_net = ytd_gross - ytd_fees
        log.info("YTD totals: gross %s, fees %s, net %s", round2(ytd_gross), round2(ytd_fees), round2(ytd_net))

        if self.db.delete_subscription_sources(STRIPE_PLATFORM) is None:
            log.error("Failed to clear old Stripe sources")
            tally["errors"].append("Failed to clear old Stripe sources")

        for app_name, group in groups.items():
            subscribers = len(group.active)
            mrr = group.mrr
            trend = build_trend((s.created for s in group.active), subscribers, now)
            # JSON column, so floats
            mrr_trend = [float(round2(Decimal(count) / subscribers * mrr)) for count in trend] if subscribers else []

            source_id = self.db.create_subscription_source(
                app_name=app_name,
                platform=STRIPE_PLATFORM,
                subscribers=subscribers,
                mrr=round2(mrr),
                gross_jan=round2(ytd_gross),
                fees_jan=round2(ytd_fees),
                net_jan=round2(ytd_net),
                gst_jan=round2(group.gst),
                status="active" if subscribers else "canceled",
                metadata={
                    "trend": mrr_trend,
                    "subscriberTrend": trend,
                    "activeSubscriptionIds": [s.subscription_id for s in group.active],
                },
            )
            if source_id is None:
                tally["failed"] += 1
                tally["errors"].append(f"{app_name}: failed to write subscription source")
            else:
                tally["synced"] += 1
                log.info("Synced '%s': %d subscribers, %s MRR", app_name, subscribers, round2(mrr))
        return tally
