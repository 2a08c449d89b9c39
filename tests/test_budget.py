"""Tests for budget items and fiscal-year actuals."""

from datetime import date
from decimal import Decimal

import pytest

from backoffice.domain.budget import (
    EXPENSE_CATEGORIES,
    BudgetService,
    fiscal_months,
    fiscal_year_for,
    fiscal_year_start,
)
from backoffice.domain.errors import NotFoundError, ValidationError
from backoffice.domain.subscriptions import STRIPE_PLATFORM

MONTHS = ["Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec", "Jan", "Feb", "Mar"]


@pytest.fixture
def budget_service(temp_db):
    return BudgetService(temp_db)


def _values(actuals, category):
    return {mv.month: mv.value for mv in actuals[category]}


def test_fiscal_year_boundaries():
    assert fiscal_year_for(date(2026, 3, 31)) == 2025
    assert fiscal_year_for(date(2026, 4, 1)) == 2026
    assert fiscal_year_start(2026) == date(2026, 4, 1)


def test_fiscal_months_span_two_calendar_years():
    months = fiscal_months(2026)
    assert [label for label, _, _ in months] == MONTHS
    assert months[0] == ("Apr", 2026, 4)
    assert months[-1] == ("Mar", 2027, 3)


class TestActuals:
    def test_every_category_has_twelve_months(self, budget_service):
        actuals = budget_service.actuals(2026)

        expected = {"Invoicing", "Subscriptions", "Vehicle", "Home Office", "Processing", *EXPENSE_CATEGORIES}
        assert set(actuals) == expected
        for values in actuals.values():
            assert [mv.month for mv in values] == MONTHS
            assert all(mv.value == 0 for mv in values)

    def test_paid_invoices_net_of_gst(self, temp_db, budget_service):
        temp_db.create_invoice(
            invoice_id="A", amount=Decimal("1150"), gst=Decimal("150"), status="Paid", date=date(2026, 6, 3)
        )
        temp_db.create_invoice(
            invoice_id="B", amount=Decimal("500"), gst=Decimal("0"), status="Sent", date=date(2026, 6, 4)
        )
        temp_db.create_invoice(
            invoice_id="C", amount=Decimal("230"), gst=Decimal("30"), status="Paid", date=date(2027, 1, 9)
        )
        temp_db.create_invoice(
            invoice_id="D", amount=Decimal("999"), gst=Decimal("0"), status="Paid", date=date(2026, 3, 31)
        )

        invoicing = _values(budget_service.actuals(2026), "Invoicing")

        assert invoicing["Jun"] == Decimal("1000")
        assert invoicing["Jan"] == Decimal("200")
        assert sum(invoicing.values()) == Decimal("1200")

    def test_expenses_by_category(self, expense_service, budget_service):
        expense_service.create_expense(date(2026, 5, 2), "Timber", amount="57.50", category="Materials")
        expense_service.create_expense(date(2026, 5, 9), "Coffee", amount="4.50", category="Meals")
        expense_service.create_expense(date(2026, 5, 9), "Misc", amount="10")
        expense_service.create_expense(None, "Undated", amount="99", category="Tools")

        actuals = budget_service.actuals(2026)

        assert _values(actuals, "Materials")["May"] == Decimal("57.50")
        assert _values(actuals, "Other")["May"] == Decimal("14.50")
        assert sum(_values(actuals, "Tools").values()) == 0

    def test_vehicle_home_office_and_processing(self, temp_db, expense_service, budget_service):
        expense_service.add_trip(date(2026, 7, 1), km="100")
        expense_service.add_home_office_expense("Aug 2026", "Power", full_amount="200", business_percent="25")
        temp_db.upsert_stripe_transaction(
            transaction_id="ch_1", type="charge", gross=Decimal("10"), fee=Decimal("0.59"),
            net=Decimal("9.41"), date=date(2026, 9, 5),
        )
        temp_db.upsert_stripe_transaction(
            transaction_id="ch_1_refund", type="refund", gross=Decimal("-10"), fee=Decimal("0"),
            net=Decimal("-10"), date=date(2026, 9, 6),
        )

        actuals = budget_service.actuals(2026)

        assert _values(actuals, "Vehicle")["Jul"] == Decimal("117.00")
        assert _values(actuals, "Home Office")["Aug"] == Decimal("50.00")
        assert _values(actuals, "Processing")["Sep"] == Decimal("0.59")

    def test_vehicle_rate_override(self, expense_service, temp_db):
        expense_service.add_trip(date(2026, 7, 1), km="10")
        actuals = BudgetService(temp_db, vehicle_rate=Decimal("0.99")).actuals(2026)
        assert _values(actuals, "Vehicle")["Jul"] == Decimal("9.90")

    def test_subscriptions_flat_current_mrr(self, temp_db, budget_service):
        temp_db.create_subscription_source(app_name="Tide Tables", platform=STRIPE_PLATFORM, mrr=Decimal("42.50"))
        temp_db.create_subscription_source(app_name="Surf Log", platform=STRIPE_PLATFORM, mrr=Decimal("7.50"))

        subscriptions = _values(budget_service.actuals(2026), "Subscriptions")

        assert set(subscriptions.values()) == {Decimal("50.00")}


class TestBudgetItems:
    def test_create_and_compare(self, budget_service, expense_service):
        budget_service.create_item(2026, "Software", "expense", annual_amount="1200", monthly_amounts={"Dec": 200})
        expense_service.create_expense(date(2026, 12, 1), "Licence", amount="300", category="Software")

        lines = budget_service.compare(2026)

        assert len(lines) == 1
        assert lines[0].planned == Decimal("1300.00")
        assert lines[0].actual == Decimal("300.00")
        assert lines[0].variance == Decimal("-1000.00")

    def test_monthly_amounts_stored(self, budget_service):
        item_id = budget_service.create_item(2026, "Invoicing", "income", monthly_amounts={"Apr": "100.50"})
        assert budget_service.get_item(item_id).monthly_amounts == {"Apr": 100.5}

    def test_invalid_type(self, budget_service):
        with pytest.raises(ValidationError):
            budget_service.create_item(2026, "Software", "asset")

    def test_invalid_month(self, budget_service):
        with pytest.raises(ValidationError):
            budget_service.create_item(2026, "Software", "expense", monthly_amounts={"April": 1})

    def test_list_by_year_and_delete(self, budget_service):
        first = budget_service.create_item(2026, "Software", "expense")
        budget_service.create_item(2027, "Software", "expense")

        assert [i.id for i in budget_service.list_items(2026)] == [first]
        assert budget_service.delete_item(first) is True
        with pytest.raises(NotFoundError):
            budget_service.get_item(first)

    def test_update_item(self, budget_service):
        item_id = budget_service.create_item(
            2026, "Software", "expense", annual_amount="1200", monthly_amounts={"Apr": 50}
        )

        assert budget_service.update_item(
            item_id, annual_amount="1500.456", monthly_amounts={"Apr": 50, "Dec": "0"}, notes="Renewal"
        ) is True

        item = budget_service.get_item(item_id)
        assert item.annual_amount == Decimal("1500.46")
        assert item.monthly_amounts == {"Apr": 50.0, "Dec": 0.0}
        assert item.notes == "Renewal"

    def test_update_rejects_bad_values(self, budget_service):
        item_id = budget_service.create_item(2026, "Software", "expense")

        with pytest.raises(ValidationError):
            budget_service.update_item(item_id, type="asset")
        with pytest.raises(ValidationError):
            budget_service.update_item(item_id, monthly_amounts={"April": 1})
        with pytest.raises(NotFoundError):
            budget_service.update_item(999, notes="Missing")
