"""Expenses, vehicle trips and home office costs."""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from backoffice.database.base import Database
from backoffice.domain.clients import ClientService
from backoffice.domain.entities import Expense, HomeOfficeExpense, Trip
from backoffice.domain.errors import NotFoundError, ValidationError, not_found
from backoffice.utils.date_parser import format_month_label, parse_month_label
from backoffice.utils.money import ZERO, round2, to_money

HUNDRED = Decimal("100")


def apportion(full_amount: Any, business_percent: Any) -> Decimal:
    """Business share of an amount."""
    return to_money(full_amount) * to_money(business_percent) / HUNDRED


def _check_percent(value: Any) -> Decimal:
    percent = to_money(value)
    if percent < ZERO or percent > HUNDRED:
        raise ValidationError(f"Business percent must be between 0 and 100, got {value}")
    return percent


class ExpenseService:
    """Service for managing expenses, trips and home office costs."""

    def __init__(self, db: Database):
        """Initialize expense service.

        Args:
            db: Database instance
        """
        self.db = db
        self.clients = ClientService(db)

    def create_expense(
        self,
        expense_date: Optional[date],
        description: Optional[str],
        amount: Any = None,
        gst: Any = ZERO,
        category: Optional[str] = None,
        supplier: Optional[str] = None,
        job_title: Optional[str] = None,
        has_receipt: bool = False,
        auto_imported: bool = False,
        full_amount: Any = None,
        business_percent: Any = HUNDRED,
    ) -> Optional[int]:
        """Create an expense.

        An expense given as a full amount with a business percent below 100 is
        apportioned: its amount is the business share of the full amount.

        Returns:
            Expense ID, or None if the write failed

        Raises:
            ValidationError: If neither amount nor full amount is given, or
                the percent is out of range
            NotFoundError: If the named job doesn't exist
        """
        percent = _check_percent(business_percent)
        if full_amount is None and amount is None:
            raise ValidationError("Expense amount is required")

        full = to_money(full_amount) if full_amount is not None else to_money(amount)
        apportioned = percent < HUNDRED
        if amount is None or apportioned:
            amount = apportion(full, percent)

        return self.db.create_expense(
            date=expense_date,
            description=description,
            amount=round2(amount),
            gst=round2(gst),
            category=category,
            job_id=self.clients.resolve_job_id(job_title),
            supplier=supplier,
            has_receipt=has_receipt,
            auto_imported=auto_imported,
            apportioned=apportioned,
            full_amount=round2(full),
            business_percent=percent,
        )

    def get_expense(self, expense_id: int) -> Optional[Expense]:
        return self.db.get_expense(expense_id)

    def list_expenses(self, unpaid_only: bool = False) -> list[Expense]:
        return self.db.list_expenses(unpaid_only=unpaid_only)

    def update_expense(self, expense_id: int, **fields: Any) -> bool:
        if self.db.get_expense(expense_id) is None:
            raise NotFoundError(not_found("Expense", expense_id))
        if "job_title" in fields:
            fields["job_id"] = self.clients.resolve_job_id(fields.pop("job_title"))
        for key in ("amount", "gst", "full_amount"):
            if key in fields and fields[key] is not None:
                fields[key] = round2(fields[key])
        return self.db.update_expense(expense_id, **fields)

    def delete_expense(self, expense_id: int) -> bool:
        if self.db.get_expense(expense_id) is None:
            raise NotFoundError(not_found("Expense", expense_id))
        return self.db.delete_expense(expense_id)

    # Trips
    def add_trip(
        self,
        trip_date: Optional[date],
        km: Any,
        from_location: Optional[str] = None,
        to_location: Optional[str] = None,
        purpose: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Optional[int]:
        distance = to_money(km)
        if distance <= ZERO:
            raise ValidationError(f"Trip distance must be positive, got {km}")
        return self.db.create_trip(
            date=trip_date,
            km=distance,
            from_location=from_location,
            to_location=to_location,
            purpose=purpose,
            category=category,
        )

    def list_trips(self) -> list[Trip]:
        return self.db.list_trips()

    def delete_trip(self, trip_id: int) -> bool:
        return self.db.delete_trip(trip_id)

    # Home office
    def add_home_office_expense(
        self,
        month: str,
        type: Optional[str],
        full_amount: Any,
        business_percent: Any,
    ) -> Optional[int]:
        """Record a home office cost for a month such as "Jan 2026".

        The label is parsed once here into a (year, month) pair; the stored
        label is re-formatted from that pair.

        Raises:
            ValidationError: If the month label can't be parsed or the percent
                is out of range
        """
        period = parse_month_label(month)
        if period is None:
            raise ValidationError(f"Invalid month '{month}'. Use a label like 'Jan 2026'")
        percent = _check_percent(business_percent)
        full = to_money(full_amount)
        year, month_number = period
        return self.db.create_home_office_expense(
            month=format_month_label(year, month_number),
            type=type,
            full_amount=round2(full),
            business_percent=percent,
            deductible=round2(apportion(full, percent)),
            period_year=year,
            period_month=month_number,
        )

    def list_home_office_expenses(self) -> list[HomeOfficeExpense]:
        return self.db.list_home_office_expenses()

    def delete_home_office_expense(self, expense_id: int) -> bool:
        return self.db.delete_home_office_expense(expense_id)
