"""Budget items and fiscal-year actuals."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, TypeVar

from backoffice.database.base import Database
from backoffice.domain.entities import (
    BudgetItem,
    BudgetLine,
    Expense,
    HomeOfficeExpense,
    Invoice,
    MonthValue,
    StripeTransaction,
    SubscriptionSource,
    Trip,
)
from backoffice.domain.errors import NotFoundError, ValidationError, not_found
from backoffice.utils.date_parser import MONTH_ABBREVIATIONS, coerce_date, parse_month_label
from backoffice.utils.money import ZERO, round2, to_money

log = logging.getLogger(__name__)

T = TypeVar("T")

FISCAL_YEAR_START_MONTH = 4
DEFAULT_VEHICLE_RATE = Decimal("1.17")
EXPENSE_CATEGORIES = ("Materials", "Tools", "Software", "Marketing", "Other")
BUDGET_TYPES = ("income", "expense")


def fiscal_year_for(day: date) -> int:
    """Return the year the April-to-March fiscal year containing ``day`` starts in."""
    return day.year if day.month >= FISCAL_YEAR_START_MONTH else day.year - 1


def fiscal_year_start(tax_year: int) -> date:
    return date(tax_year, FISCAL_YEAR_START_MONTH, 1)


def fiscal_months(tax_year: int) -> list[tuple[str, int, int]]:
    """Return ``(label, year, month)`` for Apr of ``tax_year`` through Mar of the next year."""
    months = []
    for offset in range(12):
        month = (FISCAL_YEAR_START_MONTH - 1 + offset) % 12 + 1
        year = tax_year if month >= FISCAL_YEAR_START_MONTH else tax_year + 1
        months.append((MONTH_ABBREVIATIONS[month - 1], year, month))
    return months


def _monthly_series(
    records: Iterable[T],
    months: list[tuple[str, int, int]],
    period: Callable[[T], Optional[tuple[int, int]]],
    value: Callable[[T], Decimal],
) -> list[MonthValue]:
    totals = {(year, month): ZERO for _, year, month in months}
    for record in records:
        key = period(record)
        if key in totals:
            totals[key] += value(record)
    return [MonthValue(label, totals[(year, month)]) for label, year, month in months]


def _date_period(value: Any) -> Optional[tuple[int, int]]:
    day = coerce_date(value)
    return (day.year, day.month) if day is not None else None


def _home_office_period(expense: HomeOfficeExpense) -> Optional[tuple[int, int]]:
    if expense.period_year and expense.period_month:
        return expense.period_year, expense.period_month
    return parse_month_label(expense.month)


def expense_category(expense: Expense) -> str:
    """Budget category of an expense. Unknown or missing categories count as Other."""
    return expense.category if expense.category in EXPENSE_CATEGORIES else "Other"


def vehicle_rate_from(deductions: Optional[dict[str, Any]]) -> Decimal:
    tier1 = ((deductions or {}).get("vehicle") or {}).get("tier1")
    return to_money(tier1) if tier1 else DEFAULT_VEHICLE_RATE


def compute_budget_actuals(
    invoices: Iterable[Invoice],
    expenses: Iterable[Expense],
    subscriptions: Iterable[SubscriptionSource],
    trips: Iterable[Trip],
    home_office: Iterable[HomeOfficeExpense],
    stripe_transactions: Iterable[StripeTransaction],
    deductions: Optional[dict[str, Any]],
    tax_year: int,
) -> dict[str, list[MonthValue]]:
    """Compute monthly actuals per budget category for a fiscal year.

    Every category gets twelve values labelled Apr..Mar. Records without a
    usable date fall outside every month.

    Args:
        invoices: Invoices; only Paid ones count, net of GST
        expenses: Expenses, bucketed by category
        subscriptions: Subscription sources; today's total MRR is used for every month
        trips: Trips; kilometres are multiplied by the vehicle rate
        home_office: Home office expenses; deductible amounts count
        stripe_transactions: Ledger rows; fees of charges count as Processing
        deductions: Rate table, ``{"vehicle": {"tier1": rate}}``
        tax_year: Year the fiscal year starts in

    Returns:
        Mapping of category name to twelve MonthValue entries
    """
    months = fiscal_months(tax_year)
    expenses = list(expenses)
    actuals: dict[str, list[MonthValue]] = {}

    actuals["Invoicing"] = _monthly_series(
        (inv for inv in invoices if inv.status == "Paid"),
        months,
        lambda inv: _date_period(inv.date),
        lambda inv: to_money(inv.amount) - to_money(inv.gst),
    )

    mrr = sum((to_money(s.mrr) for s in subscriptions), ZERO)
    actuals["Subscriptions"] = [MonthValue(label, mrr) for label, _, _ in months]

    for category in EXPENSE_CATEGORIES:
        actuals[category] = _monthly_series(
            (e for e in expenses if expense_category(e) == category),
            months,
            lambda e: _date_period(e.date),
            lambda e: to_money(e.amount),
        )

    rate = vehicle_rate_from(deductions)
    kilometres = _monthly_series(trips, months, lambda t: _date_period(t.date), lambda t: to_money(t.km))
    actuals["Vehicle"] = [MonthValue(mv.month, mv.value * rate) for mv in kilometres]

    actuals["Home Office"] = _monthly_series(
        home_office, months, _home_office_period, lambda h: to_money(h.deductible)
    )

    actuals["Processing"] = _monthly_series(
        (t for t in stripe_transactions if t.type == "charge"),
        months,
        lambda t: _date_period(t.date),
        lambda t: to_money(t.fee),
    )
    return actuals


def planned_amount(item: BudgetItem, month_label: str) -> Decimal:
    """Planned amount of a budget item for one month."""
    if month_label in item.monthly_amounts:
        return to_money(item.monthly_amounts[month_label])
    return to_money(item.annual_amount) / 12


class BudgetService:
    """Service for managing budget items and comparing them to actuals."""

    def __init__(self, db: Database, vehicle_rate: Decimal = DEFAULT_VEHICLE_RATE):
        """Initialize budget service.

        Args:
            db: Database instance
            vehicle_rate: Per-km rate used for the Vehicle category
        """
        self.db = db
        self.vehicle_rate = vehicle_rate

    def create_item(
        self,
        tax_year: int,
        category: str,
        type: str,
        annual_amount: Any = ZERO,
        monthly_amounts: Optional[dict[str, Any]] = None,
        notes: Optional[str] = None,
    ) -> Optional[int]:
        """Create a budget item.

        Raises:
            ValidationError: If the type or a month key is invalid
        """
        if type not in BUDGET_TYPES:
            raise ValidationError(f"Invalid budget type '{type}'. Must be one of: {', '.join(BUDGET_TYPES)}")
        monthly = self._validate_monthly(monthly_amounts)
        return self.db.create_budget_item(
            tax_year=tax_year,
            category=category,
            type=type,
            annual_amount=round2(annual_amount),
            monthly_amounts=monthly,
            notes=notes,
        )

    @staticmethod
    def _validate_monthly(monthly_amounts: Optional[dict[str, Any]]) -> dict[str, float]:
        monthly = {}
        for label, amount in (monthly_amounts or {}).items():
            if label not in MONTH_ABBREVIATIONS:
                raise ValidationError(f"Invalid month '{label}'. Use Jan..Dec")
            # JSON column, so no Decimals
            monthly[label] = float(round2(amount))
        return monthly

    def get_item(self, item_id: int) -> BudgetItem:
        item = self.db.get_budget_item(item_id)
        if item is None:
            raise NotFoundError(not_found("Budget item", item_id))
        return item

    def list_items(self, tax_year: Optional[int] = None) -> list[BudgetItem]:
        return self.db.list_budget_items(tax_year=tax_year)

    def update_item(self, item_id: int, **fields: Any) -> bool:
        """Update a budget item. Monthly amounts replace the stored overrides."""
        self.get_item(item_id)
        if "type" in fields and fields["type"] not in BUDGET_TYPES:
            raise ValidationError(f"Invalid budget type '{fields['type']}'")
        if "monthly_amounts" in fields:
            fields["monthly_amounts"] = self._validate_monthly(fields["monthly_amounts"])
        if "annual_amount" in fields:
            fields["annual_amount"] = round2(fields["annual_amount"])
        return self.db.update_budget_item(item_id, **fields)

    def delete_item(self, item_id: int) -> bool:
        self.get_item(item_id)
        return self.db.delete_budget_item(item_id)

    def actuals(self, tax_year: int, vehicle_rate: Optional[Decimal] = None) -> dict[str, list[MonthValue]]:
        """Load every input from the store and compute the year's actuals."""
        rate = vehicle_rate if vehicle_rate is not None else self.vehicle_rate
        return compute_budget_actuals(
            invoices=self.db.list_invoices(),
            expenses=self.db.list_expenses(),
            subscriptions=self.db.list_subscription_sources(),
            trips=self.db.list_trips(),
            home_office=self.db.list_home_office_expenses(),
            stripe_transactions=self.db.list_stripe_transactions(),
            deductions={"vehicle": {"tier1": rate}},
            tax_year=tax_year,
        )

    def compare(self, tax_year: int, vehicle_rate: Optional[Decimal] = None) -> list[BudgetLine]:
        """Planned vs. actual totals for each budget item of a fiscal year."""
        actuals = self.actuals(tax_year, vehicle_rate)
        labels = [label for label, _, _ in fiscal_months(tax_year)]
        lines = []
        for item in self.list_items(tax_year):
            planned = sum((planned_amount(item, label) for label in labels), ZERO)
            actual = sum((mv.value for mv in actuals.get(item.category, [])), ZERO)
            lines.append(BudgetLine(item.category, item.type, round2(planned), round2(actual)))
        return lines
