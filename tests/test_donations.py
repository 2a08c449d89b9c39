"""Tests for donation export imports."""

from datetime import date
from decimal import Decimal

import pytest

from backoffice.domain.donations import DEFAULT_PLATFORM, DonationImportService, read_supporters, split_evenly
from backoffice.domain.errors import StoreError, ValidationError
from conftest import fail_next_query


def test_split_evenly_gives_remainder_to_last_share():
    assert split_evenly(Decimal("10"), 3) == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]
    assert sum(split_evenly(Decimal("94.50"), 4)) == Decimal("94.50")
    assert split_evenly(Decimal("1"), 0) == []


def test_read_supporters_skips_blank_rows(fixtures_dir):
    supporters = read_supporters(fixtures_dir / "supporters.csv")

    assert [s.name for s in supporters] == ["Ana", "Ben", "Cat"]
    assert supporters[1].count == 3
    assert supporters[1].price == Decimal("5")
    assert supporters[2].date == date(2026, 3, 1)


def test_import_with_payout_totals(temp_db, fixtures_dir):
    service = DonationImportService(temp_db)

    result = service.import_csv(
        str(fixtures_dir / "supporters.csv"), total_gross=Decimal("94.50"), total_net=Decimal("86.10")
    )

    assert result["imported"] == 3
    assert result["skipped"] == 0
    assert result["failed"] == 0
    payments = temp_db.list_manual_payments(source_id=result["source_id"])
    assert [p.gross for p in payments] == [Decimal("31.50")] * 3
    assert [p.fee for p in payments] == [Decimal("2.80")] * 3
    assert payments[0].payer == "Ana"

    source = temp_db.get_subscription_source(result["source_id"])
    assert source.platform == DEFAULT_PLATFORM
    assert source.gross_jan == Decimal("94.50")
    assert source.fees_jan == Decimal("8.40")


def test_import_without_totals_uses_prices(temp_db, fixtures_dir):
    result = DonationImportService(temp_db).import_csv(str(fixtures_dir / "supporters.csv"))

    payments = temp_db.list_manual_payments(source_id=result["source_id"])
    assert sum(p.gross for p in payments) == Decimal("30.00")
    assert all(p.fee == 0 for p in payments)


def test_reimport_skips_existing(temp_db, fixtures_dir):
    service = DonationImportService(temp_db)
    first = service.import_csv(str(fixtures_dir / "supporters.csv"))
    second = service.import_csv(str(fixtures_dir / "supporters.csv"))

    assert second["source_id"] == first["source_id"]
    assert second["imported"] == 0
    assert second["skipped"] == 3
    assert len(temp_db.list_manual_payments()) == 3


def test_failed_source_lookup_creates_nothing(temp_db, fixtures_dir, monkeypatch):
    service = DonationImportService(temp_db)

    fail_next_query(monkeypatch, temp_db)
    with pytest.raises(StoreError):
        service.import_csv(str(fixtures_dir / "supporters.csv"))

    assert temp_db.list_subscription_sources() == []
    assert temp_db.list_manual_payments() == []


def test_net_above_gross_rejected(temp_db, fixtures_dir):
    with pytest.raises(ValidationError):
        DonationImportService(temp_db).import_csv(
            str(fixtures_dir / "supporters.csv"), total_gross=Decimal("10"), total_net=Decimal("11")
        )


def test_missing_file(temp_db, tmp_path):
    with pytest.raises(FileNotFoundError):
        DonationImportService(temp_db).import_csv(str(tmp_path / "nope.csv"))


def test_header_only_file_rejected(temp_db, tmp_path):
    csv_path = tmp_path / "empty.csv"
    csv_path.write_text("Supporter Email,Supporter Name,Count,Price,Currency,Date\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        DonationImportService(temp_db).import_csv(str(csv_path))
