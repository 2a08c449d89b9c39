"""Tests for expenses, trips and home office costs."""

from datetime import date
from decimal import Decimal

import pytest

from backoffice.domain.errors import NotFoundError, ValidationError


def test_apportioned_expense(expense_service):
    expense_id = expense_service.create_expense(
        date(2026, 5, 1), "Phone plan", full_amount="80", business_percent="40", category="Software"
    )

    expense = expense_service.get_expense(expense_id)
    assert expense.amount == Decimal("32.00")
    assert expense.full_amount == Decimal("80.00")
    assert expense.apportioned is True


def test_plain_expense(expense_service):
    expense = expense_service.get_expense(
        expense_service.create_expense(date(2026, 5, 1), "Screws", amount="12.40", gst="1.62")
    )
    assert expense.amount == Decimal("12.40")
    assert expense.gst == Decimal("1.62")
    assert expense.apportioned is False
    assert expense.paid is False


def test_amount_required(expense_service):
    with pytest.raises(ValidationError):
        expense_service.create_expense(date(2026, 5, 1), "Nothing")


@pytest.mark.parametrize("percent", ["-1", "101"])
def test_percent_range(expense_service, percent):
    with pytest.raises(ValidationError):
        expense_service.create_expense(date(2026, 5, 1), "Phone", full_amount="80", business_percent=percent)


def test_expense_for_unknown_job(expense_service):
    with pytest.raises(NotFoundError):
        expense_service.create_expense(date(2026, 5, 1), "Timber", amount="10", job_title="No such job")


def test_unpaid_filter(temp_db, expense_service, sample_expense):
    temp_db.update_expense(sample_expense.id, paid=True)
    other = expense_service.create_expense(date(2026, 5, 1), "Screws", amount="12.40")

    assert [e.id for e in expense_service.list_expenses(unpaid_only=True)] == [other]


def test_trip_requires_positive_distance(expense_service):
    with pytest.raises(ValidationError):
        expense_service.add_trip(date(2026, 5, 1), km="0")


def test_home_office_month_parsed(expense_service):
    cost_id = expense_service.add_home_office_expense("may 2026", "Internet", full_amount="90", business_percent="30")

    (cost,) = expense_service.list_home_office_expenses()
    assert cost.id == cost_id
    assert cost.month == "May 2026"
    assert (cost.period_year, cost.period_month) == (2026, 5)
    assert cost.deductible == Decimal("27.00")


def test_home_office_bad_month(expense_service):
    with pytest.raises(ValidationError):
        expense_service.add_home_office_expense("2026-05", "Internet", full_amount="90", business_percent="30")
