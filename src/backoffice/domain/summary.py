"""Dashboard summaries over invoices, expenses and subscription revenue."""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from backoffice.domain.budget import fiscal_year_for, fiscal_year_start
from backoffice.domain.entities import (
    CategoryTotal,
    Expense,
    Invoice,
    PnlMonth,
    RevenueMonth,
    SubscriptionSource,
)
from backoffice.utils.date_parser import MONTH_ABBREVIATIONS, coerce_date
from backoffice.utils.money import ZERO, to_money


def total_mrr(subscriptions: Iterable[SubscriptionSource]) -> Decimal:
    return sum((to_money(s.mrr) for s in subscriptions), ZERO)


def _sum_in_month(records, year: int, month: int) -> Decimal:
    total = ZERO
    for record in records:
        day = coerce_date(record.date)
        if day is not None and day.year == year and day.month == month:
            total += to_money(record.amount)
    return total


def compute_revenue(
    invoices: Iterable[Invoice],
    subscriptions: Iterable[SubscriptionSource],
    today: Optional[date] = None,
) -> list[RevenueMonth]:
    """Paid invoice totals for the last six months, alongside current MRR."""
    today = today or date.today()
    paid = [inv for inv in invoices if inv.status == "Paid"]
    mrr = total_mrr(subscriptions)

    months = []
    for back in range(5, -1, -1):
        first = today.replace(day=1) - relativedelta(months=back)
        months.append(
            RevenueMonth(
                month=MONTH_ABBREVIATIONS[first.month - 1],
                invoiced=_sum_in_month(paid, first.year, first.month),
                subscriptions=mrr,
            )
        )
    return months


def compute_expense_categories(expenses: Iterable[Expense]) -> list[CategoryTotal]:
    """Expense totals per category, in order of first appearance."""
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        category = expense.category or "Other"
        totals[category] = totals.get(category, ZERO) + to_money(expense.amount)
    return [CategoryTotal(category, total) for category, total in totals.items()]


def compute_pnl(
    invoices: Iterable[Invoice],
    expenses: Iterable[Expense],
    subscriptions: Iterable[SubscriptionSource],
    today: Optional[date] = None,
) -> list[PnlMonth]:
    """Income vs. expenses per month, from April through the current month.

    Income is paid invoicing plus current MRR.
    """
    today = today or date.today()
    paid = [inv for inv in invoices if inv.status == "Paid"]
    expenses = list(expenses)
    mrr = total_mrr(subscriptions)

    months = []
    current = fiscal_year_start(fiscal_year_for(today))
    while current <= today:
        months.append(
            PnlMonth(
                month=MONTH_ABBREVIATIONS[current.month - 1],
                income=_sum_in_month(paid, current.year, current.month) + mrr,
                expenses=_sum_in_month(expenses, current.year, current.month),
            )
        )
        current += relativedelta(months=1)
    return months
