"""Import of one-off donation exports (e.g. Buy Me A Coffee) as manual payments."""

import csv
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_DOWN
from pathlib import Path
from typing import Any, Optional

from backoffice.database.base import Database
from backoffice.domain.errors import StoreError, ValidationError, store_write_failed
from backoffice.utils.date_parser import coerce_date
from backoffice.utils.money import CENT, ZERO, round2, to_money

log = logging.getLogger(__name__)

DEFAULT_PLATFORM = "Buy Me A Coffee"
DEFAULT_PRICE = Decimal("5.00")


@dataclass(frozen=True)
class Supporter:
    """One row of a supporters export."""

    email: str
    name: str
    count: int
    price: Decimal
    currency: str
    date: Optional[date]


def _cell(row: list[str], index: int) -> str:
    return row[index].strip() if index < len(row) else ""


def read_supporters(csv_path: Path) -> list[Supporter]:
    """Read a supporters export: email, name, count, price, currency, date."""
    supporters = []
    with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.reader(f)
        next(reader, None)  # header
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            try:
                count = int(_cell(row, 2))
            except ValueError:
                count = 1
            price = to_money(_cell(row, 3)) or DEFAULT_PRICE
            supporters.append(
                Supporter(
                    email=_cell(row, 0),
                    name=_cell(row, 1),
                    count=count,
                    price=price,
                    currency=_cell(row, 4) or "USD",
                    date=coerce_date(_cell(row, 5)),
                )
            )
    return supporters


def split_evenly(total: Decimal, parts: int) -> list[Decimal]:
    """Split a total into cent shares; the last share takes the remainder."""
    if parts <= 0:
        return []
    share = (total / parts).quantize(CENT, rounding=ROUND_DOWN)
    shares = [share] * (parts - 1)
    shares.append(round2(total - share * (parts - 1)))
    return shares


class DonationImportService:
    """Service importing donation exports under a per-platform source."""

    def __init__(self, db: Database):
        """Initialize donation import service.

        Args:
            db: Database instance
        """
        self.db = db

    def _source_id(self, platform: str, supporters: int, gross: Decimal, net: Decimal) -> int:
        existing = self.db.get_subscription_source_by_platform(platform)
        if existing is not None:
            log.info("%s source already exists (id: %s)", platform, existing.id)
            return existing.id

        source_id = self.db.create_subscription_source(
            app_name=platform,
            platform=platform,
            subscribers=supporters,
            mrr=ZERO,
            gross_jan=gross,
            fees_jan=round2(gross - net),
            net_jan=net,
            gst_jan=ZERO,
            status="active",
            metadata={"currency": "NZD", "note": "One-time donations imported from CSV"},
        )
        if source_id is None:
            raise StoreError(store_write_failed(f"create {platform} source"))
        log.info("Created %s source (id: %s)", platform, source_id)
        return source_id

    def import_csv(
        self,
        csv_file_path: str,
        platform: str = DEFAULT_PLATFORM,
        total_gross: Any = None,
        total_net: Any = None,
    ) -> dict[str, Any]:
        """Import supporters as manual payments.

        The payout totals (in the books' currency) are split evenly across the
        rows. Without totals the gross is the sum of ``count * price`` and the
        net equals the gross.

        Args:
            csv_file_path: Path to the export
            platform: Platform name of the source
            total_gross: Payout gross total
            total_net: Payout net total

        Returns:
            Dict with ``imported``, ``skipped`` (already imported), ``failed``
            counts, the ``source_id`` and an ``errors`` list

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValidationError: If the file has no supporters
            StoreError: If the source row could not be read or created
        """
        csv_path = Path(csv_file_path)
        if not csv_path.exists():
            raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

        supporters = read_supporters(csv_path)
        if not supporters:
            raise ValidationError("CSV file has no supporters")

        gross = round2(total_gross) if total_gross is not None else round2(
            sum((s.price * s.count for s in supporters), ZERO)
        )
        net = round2(total_net) if total_net is not None else gross
        if net > gross:
            raise ValidationError(f"Net total {net} exceeds gross total {gross}")
        fees = gross - net

        source_id = self._source_id(platform, len(supporters), gross, net)
        existing = {(p.date, p.payer) for p in self.db.list_manual_payments(source_id=source_id)}

        result: dict[str, Any] = {"imported": 0, "skipped": 0, "failed": 0, "source_id": source_id, "errors": []}
        rows = zip(supporters, split_evenly(gross, len(supporters)), split_evenly(fees, len(supporters)))
        for row_num, (supporter, gross_share, fee_share) in enumerate(rows, start=2):
            payer = supporter.name or "Anonymous"
            if (supporter.date, payer) in existing:
                result["skipped"] += 1
                continue
            payment_id = self.db.create_manual_payment(
                source_id=source_id,
                date=supporter.date,
                gross=gross_share,
                fee=fee_share,
                payer=payer,
                notes=f"{platform} donation ({supporter.currency})",
            )
            if payment_id is None:
                result["failed"] += 1
                result["errors"].append(f"Row {row_num}: failed to import {payer}")
            else:
                result["imported"] += 1
        return result
