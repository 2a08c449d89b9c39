"""Domain model entities for backoffice.

These are pure data classes representing business records, independent of the
database schema. Repositories return them; services and the compute functions
consume them.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from typing import Any, Optional

INVOICE_STATUSES = ("Draft", "Sent", "Overdue", "Paid")
MATCH_TYPES = ("invoice", "expense")


@dataclass(frozen=True)
class Client:
    """Client domain entity."""

    id: int
    name: str
    email: Optional[str]
    phone: Optional[str]
    address: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class Job:
    """Job domain entity."""

    id: int
    title: str
    client_id: Optional[int]
    type: Optional[str]
    status: Optional[str]
    priority: Optional[str]
    value: Decimal
    due_date: Optional[date]
    internal_note: Optional[str]


@dataclass(frozen=True)
class Contact:
    """Contact domain entity."""

    id: int
    name: str
    company: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    type: Optional[str]
    tags: tuple[str, ...]
    notes: Optional[str]


@dataclass(frozen=True)
class Quote:
    """Quote domain entity."""

    id: str
    client_id: Optional[int]
    job_id: Optional[int]
    amount: Decimal
    gst: Decimal
    status: Optional[str]
    date: Optional[date]
    expiry_date: Optional[date]
    version: int
    external_note: Optional[str]
    internal_note: Optional[str]
    client_name: str = ""


@dataclass(frozen=True)
class Invoice:
    """Invoice domain entity. ``amount`` includes GST."""

    id: str
    client_id: Optional[int]
    amount: Decimal
    gst: Decimal
    status: Optional[str]
    date: Optional[date]
    due_date: Optional[date]
    recurring_template_id: Optional[int]
    linked_quote_id: Optional[str]
    external_note: Optional[str]
    internal_note: Optional[str]
    client_name: str = ""


@dataclass(frozen=True)
class LineItem:
    """Quote or invoice line item."""

    description: str
    type: Optional[str]
    quantity: Decimal
    unit_price: Decimal
    total: Decimal


@dataclass(frozen=True)
class Expense:
    """Expense domain entity."""

    id: int
    date: Optional[date]
    description: Optional[str]
    amount: Decimal
    gst: Decimal
    category: Optional[str]
    job_id: Optional[int]
    supplier: Optional[str]
    has_receipt: bool
    auto_imported: bool
    apportioned: bool
    full_amount: Decimal
    business_percent: Decimal
    paid: bool
    payment_date: Optional[date]


@dataclass(frozen=True)
class Trip:
    """Vehicle trip domain entity."""

    id: int
    date: Optional[date]
    from_location: Optional[str]
    to_location: Optional[str]
    km: Decimal
    purpose: Optional[str]
    category: Optional[str]


@dataclass(frozen=True)
class HomeOfficeExpense:
    """Home office cost for one month.

    ``month`` is the label as entered ("Jan 2026"); ``period_year`` and
    ``period_month`` hold the parsed pair when the label was understood.
    """

    id: int
    month: Optional[str]
    type: Optional[str]
    full_amount: Decimal
    business_percent: Decimal
    deductible: Decimal
    period_year: Optional[int] = None
    period_month: Optional[int] = None


@dataclass(frozen=True)
class RecurringTemplate:
    """Recurring invoice template domain entity."""

    id: int
    client_id: Optional[int]
    description: Optional[str]
    amount: Decimal
    gst: Decimal
    frequency: Optional[str]
    next_date: Optional[date]
    status: str
    generated_count: int


@dataclass(frozen=True)
class SubscriptionSource:
    """One aggregated revenue row per application."""

    id: int
    app_name: str
    platform: str
    subscribers: int
    mrr: Decimal
    gross_jan: Decimal
    fees_jan: Decimal
    net_jan: Decimal
    gst_jan: Decimal
    status: Optional[str]
    metadata: dict[str, Any]
    stripe_subscription_id: Optional[str]
    stripe_customer_id: Optional[str]
    version: int = 1

    @property
    def active_subscription_ids(self) -> list[str]:
        return list(self.metadata.get("activeSubscriptionIds") or [])


@dataclass(frozen=True)
class ManualPayment:
    """One-off payment attached to a subscription source."""

    id: int
    source_id: int
    date: Optional[date]
    gross: Decimal
    fee: Decimal
    payer: Optional[str]
    notes: Optional[str]


@dataclass(frozen=True)
class StripeTransaction:
    """Charge or refund ledger row keyed by the processor's ID."""

    id: str
    type: str
    gross: Decimal
    fee: Decimal
    net: Decimal
    date: Optional[date]
    description: Optional[str]
    stripe_customer_id: Optional[str]
    status: Optional[str]


@dataclass(frozen=True)
class BankTransaction:
    """Imported bank statement line. Negative amounts are money out."""

    id: int
    date: Optional[date]
    description: str
    amount: Decimal
    bank_name: Optional[str]
    import_batch: Optional[str]
    reconciled: bool


@dataclass(frozen=True)
class BankMatch:
    """Link between a bank transaction and exactly one invoice or expense."""

    id: int
    bank_transaction_id: int
    match_type: str
    invoice_id: Optional[str]
    expense_id: Optional[int]
    amount: Decimal


@dataclass(frozen=True)
class BudgetItem:
    """Planned amount for a (tax year, category, type) tuple."""

    id: int
    tax_year: int
    category: str
    type: str
    annual_amount: Decimal
    monthly_amounts: dict[str, Any] = field(default_factory=dict)
    notes: Optional[str] = None


@dataclass(frozen=True)
class MatchCandidate:
    """A proposed reconciliation target with its additive score."""

    match_type: str
    target_id: Any
    score: int
    amount: Decimal
    label: str


@dataclass(frozen=True)
class MonthValue:
    """One cell of a fiscal-year month series."""

    month: str
    value: Decimal


@dataclass(frozen=True)
class BudgetLine:
    """Planned vs. actual for one budget item."""

    category: str
    type: str
    planned: Decimal
    actual: Decimal

    @property
    def variance(self) -> Decimal:
        return self.actual - self.planned


@dataclass(frozen=True)
class RevenueMonth:
    """Paid invoicing and subscription revenue for one calendar month."""

    month: str
    invoiced: Decimal
    subscriptions: Decimal


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    total: Decimal


@dataclass(frozen=True)
class PnlMonth:
    """Income vs. expenses for one month of the fiscal year to date."""

    month: str
    income: Decimal
    expenses: Decimal

    @property
    def profit(self) -> Decimal:
        return self.income - self.expenses


@dataclass(frozen=True)
class ClientSummary:
    """A client with its job count and paid invoice revenue."""

    client: Client
    job_count: int
    paid_revenue: Decimal
