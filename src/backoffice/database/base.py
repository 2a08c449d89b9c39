"""Abstract database interface.

Every implementation is fail-soft: a store failure is logged and reported
through the method's sentinel (``None``, ``False`` or an empty list) rather
than raised. Callers treat a sentinel as "the operation did not happen".
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Any, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from backoffice.domain.entities import (
    Client,
    Job,
    Contact,
    Quote,
    Invoice,
    LineItem,
    Expense,
    Trip,
    HomeOfficeExpense,
    RecurringTemplate,
    SubscriptionSource,
    ManualPayment,
    StripeTransaction,
    BankTransaction,
    BankMatch,
    BudgetItem,
)


class Database(ABC):
    """Abstract database interface for backoffice."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Client operations
    @abstractmethod
    def create_client(
        self,
        name: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Optional[int]:
        """Create a client. Returns client ID."""
        pass

    @abstractmethod
    def get_client(self, client_id: int) -> Optional[Client]:
        """Get client by ID."""
        pass

    @abstractmethod
    def get_client_by_name(self, name: str) -> Optional[Client]:
        """Get client by exact name."""
        pass

    @abstractmethod
    def list_clients(self) -> list[Client]:
        """List all clients ordered by name."""
        pass

    @abstractmethod
    def update_client(self, client_id: int, **fields: Any) -> bool:
        """Update client columns. Returns False if nothing was updated."""
        pass

    @abstractmethod
    def delete_client(self, client_id: int) -> bool:
        """Delete a client."""
        pass

    # Job operations
    @abstractmethod
    def create_job(
        self,
        title: str,
        client_id: Optional[int] = None,
        type: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        value: Decimal = Decimal("0"),
        due_date: Optional[date] = None,
        internal_note: Optional[str] = None,
    ) -> Optional[int]:
        """Create a job. Returns job ID."""
        pass

    @abstractmethod
    def get_job(self, job_id: int) -> Optional[Job]:
        """Get job by ID."""
        pass

    @abstractmethod
    def get_job_by_title(self, title: str) -> Optional[Job]:
        """Get job by exact title."""
        pass

    @abstractmethod
    def list_jobs(self, client_id: Optional[int] = None) -> list[Job]:
        """List jobs, optionally for one client."""
        pass

    @abstractmethod
    def update_job(self, job_id: int, **fields: Any) -> bool:
        """Update job columns."""
        pass

    @abstractmethod
    def delete_job(self, job_id: int) -> bool:
        """Delete a job."""
        pass

    # Contact operations
    @abstractmethod
    def create_contact(
        self,
        name: str,
        company: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        type: Optional[str] = None,
        tags: Optional[list[str]] = None,
        notes: Optional[str] = None,
    ) -> Optional[int]:
        """Create a contact. Returns contact ID."""
        pass

    @abstractmethod
    def get_contact(self, contact_id: int) -> Optional[Contact]:
        """Get contact by ID."""
        pass

    @abstractmethod
    def list_contacts(self) -> list[Contact]:
        """List all contacts."""
        pass

    @abstractmethod
    def update_contact(self, contact_id: int, **fields: Any) -> bool:
        """Update contact columns."""
        pass

    @abstractmethod
    def delete_contact(self, contact_id: int) -> bool:
        """Delete a contact."""
        pass

    # Quote operations
    @abstractmethod
    def create_quote(
        self,
        quote_id: str,
        client_id: Optional[int] = None,
        job_id: Optional[int] = None,
        amount: Decimal = Decimal("0"),
        gst: Decimal = Decimal("0"),
        status: Optional[str] = None,
        date: Optional[date] = None,
        expiry_date: Optional[date] = None,
        version: int = 1,
        external_note: Optional[str] = None,
        internal_note: Optional[str] = None,
    ) -> Optional[str]:
        """Create a quote. Returns quote ID."""
        pass

    @abstractmethod
    def get_quote(self, quote_id: str) -> Optional[Quote]:
        """Get quote by ID."""
        pass

    @abstractmethod
    def list_quotes(self) -> list[Quote]:
        """List all quotes."""
        pass

    @abstractmethod
    def update_quote(self, quote_id: str, **fields: Any) -> bool:
        """Update quote columns."""
        pass

    @abstractmethod
    def delete_quote(self, quote_id: str) -> bool:
        """Delete a quote."""
        pass

    # Invoice operations
    @abstractmethod
    def create_invoice(
        self,
        invoice_id: str,
        client_id: Optional[int] = None,
        amount: Decimal = Decimal("0"),
        gst: Decimal = Decimal("0"),
        status: Optional[str] = None,
        date: Optional[date] = None,
        due_date: Optional[date] = None,
        recurring_template_id: Optional[int] = None,
        linked_quote_id: Optional[str] = None,
        external_note: Optional[str] = None,
        internal_note: Optional[str] = None,
    ) -> Optional[str]:
        """Create an invoice. Returns invoice ID."""
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        """Get invoice by ID."""
        pass

    @abstractmethod
    def list_invoices(self, status: Optional[str] = None) -> list[Invoice]:
        """List invoices, optionally filtered by status."""
        pass

    @abstractmethod
    def update_invoice(self, invoice_id: str, **fields: Any) -> bool:
        """Update invoice columns."""
        pass

    @abstractmethod
    def delete_invoice(self, invoice_id: str) -> bool:
        """Delete an invoice."""
        pass

    # Line item operations
    @abstractmethod
    def get_line_items(self, kind: str, parent_id: str) -> list[LineItem]:
        """Get line items of a quote (kind='quote') or invoice (kind='invoice')."""
        pass

    @abstractmethod
    def replace_line_items(self, kind: str, parent_id: str, items: list[LineItem]) -> bool:
        """Replace all line items of a quote or invoice."""
        pass

    @abstractmethod
    def next_document_number(self, name: str, default_prefix: str) -> Optional[str]:
        """Reserve the next number of a named sequence, formatted as PREFIX-0001."""
        pass

    # Expense operations
    @abstractmethod
    def create_expense(
        self,
        date: Optional[date],
        description: Optional[str],
        amount: Decimal,
        gst: Decimal = Decimal("0"),
        category: Optional[str] = None,
        job_id: Optional[int] = None,
        supplier: Optional[str] = None,
        has_receipt: bool = False,
        auto_imported: bool = False,
        apportioned: bool = False,
        full_amount: Optional[Decimal] = None,
        business_percent: Decimal = Decimal("100"),
    ) -> Optional[int]:
        """Create an expense. Returns expense ID."""
        pass

    @abstractmethod
    def get_expense(self, expense_id: int) -> Optional[Expense]:
        """Get expense by ID."""
        pass

    @abstractmethod
    def list_expenses(self, unpaid_only: bool = False) -> list[Expense]:
        """List expenses, optionally only those not yet paid."""
        pass

    @abstractmethod
    def update_expense(self, expense_id: int, **fields: Any) -> bool:
        """Update expense columns."""
        pass

    @abstractmethod
    def delete_expense(self, expense_id: int) -> bool:
        """Delete an expense."""
        pass

    # Trip operations
    @abstractmethod
    def create_trip(
        self,
        date: Optional[date],
        km: Decimal,
        from_location: Optional[str] = None,
        to_location: Optional[str] = None,
        purpose: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Optional[int]:
        """Create a trip. Returns trip ID."""
        pass

    @abstractmethod
    def list_trips(self) -> list[Trip]:
        """List all trips."""
        pass

    @abstractmethod
    def delete_trip(self, trip_id: int) -> bool:
        """Delete a trip."""
        pass

    # Home office operations
    @abstractmethod
    def create_home_office_expense(
        self,
        month: Optional[str],
        type: Optional[str],
        full_amount: Decimal,
        business_percent: Decimal,
        deductible: Decimal,
        period_year: Optional[int] = None,
        period_month: Optional[int] = None,
    ) -> Optional[int]:
        """Create a home office expense. Returns its ID."""
        pass

    @abstractmethod
    def list_home_office_expenses(self) -> list[HomeOfficeExpense]:
        """List all home office expenses."""
        pass

    @abstractmethod
    def delete_home_office_expense(self, expense_id: int) -> bool:
        """Delete a home office expense."""
        pass

    # Recurring template operations
    @abstractmethod
    def create_recurring_template(
        self,
        description: Optional[str],
        amount: Decimal,
        client_id: Optional[int] = None,
        gst: Decimal = Decimal("0"),
        frequency: Optional[str] = None,
        next_date: Optional[date] = None,
        status: str = "active",
    ) -> Optional[int]:
        """Create a recurring template. Returns template ID."""
        pass

    @abstractmethod
    def get_recurring_template(self, template_id: int) -> Optional[RecurringTemplate]:
        """Get recurring template by ID."""
        pass

    @abstractmethod
    def list_recurring_templates(self) -> list[RecurringTemplate]:
        """List all recurring templates."""
        pass

    @abstractmethod
    def update_recurring_template(self, template_id: int, **fields: Any) -> bool:
        """Update recurring template columns."""
        pass

    # Subscription source operations
    @abstractmethod
    def create_subscription_source(
        self,
        app_name: str,
        platform: str,
        subscribers: int = 0,
        mrr: Decimal = Decimal("0"),
        gross_jan: Decimal = Decimal("0"),
        fees_jan: Decimal = Decimal("0"),
        net_jan: Decimal = Decimal("0"),
        gst_jan: Decimal = Decimal("0"),
        status: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        stripe_subscription_id: Optional[str] = None,
        stripe_customer_id: Optional[str] = None,
    ) -> Optional[int]:
        """Create a subscription source. Returns source ID."""
        pass

    @abstractmethod
    def get_subscription_source(self, source_id: int) -> Optional[SubscriptionSource]:
        """Get subscription source by ID."""
        pass

    @abstractmethod
    def get_subscription_source_by_app_name(self, app_name: str) -> Optional[SubscriptionSource]:
        """Get the subscription source for an application name.

        Raises:
            StoreError: If the store could not be read
        """
        pass

    @abstractmethod
    def get_subscription_source_by_platform(self, platform: str) -> Optional[SubscriptionSource]:
        """Get the (first) subscription source for a platform.

        Raises:
            StoreError: If the store could not be read
        """
        pass

    @abstractmethod
    def list_subscription_sources(self, platform: Optional[str] = None) -> list[SubscriptionSource]:
        """List subscription sources, optionally for one platform."""
        pass

    @abstractmethod
    def update_subscription_source(self, source_id: int, expected_version: int, **fields: Any) -> bool:
        """Compare-and-swap update.

        Applies ``fields`` only if the row's version still equals
        ``expected_version``, bumping the version. Returns False when the row
        is missing, has moved on, or the write failed.
        """
        pass

    @abstractmethod
    def update_subscription_fees(self, app_name: str, fees: Decimal) -> bool:
        """Set ``fees_jan`` on the sources of an application."""
        pass

    @abstractmethod
    def delete_subscription_sources(self, platform: str) -> Optional[int]:
        """Delete every source of a platform. Returns number deleted."""
        pass

    # Manual payment operations
    @abstractmethod
    def create_manual_payment(
        self,
        source_id: int,
        date: Optional[date],
        gross: Decimal,
        fee: Decimal = Decimal("0"),
        payer: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Optional[int]:
        """Create a manual payment. Returns payment ID."""
        pass

    @abstractmethod
    def list_manual_payments(self, source_id: Optional[int] = None) -> list[ManualPayment]:
        """List manual payments, optionally for one source."""
        pass

    # Stripe ledger operations
    @abstractmethod
    def upsert_stripe_transaction(
        self,
        transaction_id: str,
        type: str,
        gross: Decimal,
        fee: Decimal,
        net: Decimal,
        date: Optional[date],
        description: Optional[str] = None,
        stripe_customer_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> bool:
        """Insert or replace a ledger row keyed by ID."""
        pass

    @abstractmethod
    def get_stripe_transaction(self, transaction_id: str) -> Optional[StripeTransaction]:
        """Get ledger row by ID."""
        pass

    @abstractmethod
    def list_stripe_transactions(self, type: Optional[str] = None) -> list[StripeTransaction]:
        """List ledger rows, optionally of one type."""
        pass

    @abstractmethod
    def webhook_event_processed(self, event_id: str) -> bool:
        """Check whether a webhook event ID was already processed."""
        pass

    @abstractmethod
    def record_webhook_event(self, event_id: str, event_type: str) -> bool:
        """Record a processed webhook event ID."""
        pass

    # Bank reconciliation operations
    @abstractmethod
    def create_bank_transaction(
        self,
        date: Optional[date],
        description: str,
        amount: Decimal,
        bank_name: Optional[str] = None,
        import_batch: Optional[str] = None,
    ) -> Optional[int]:
        """Create a bank transaction. Returns its ID."""
        pass

    @abstractmethod
    def get_bank_transaction(self, transaction_id: int) -> Optional[BankTransaction]:
        """Get bank transaction by ID."""
        pass

    @abstractmethod
    def list_bank_transactions(self, reconciled: Optional[bool] = None) -> list[BankTransaction]:
        """List bank transactions, optionally by reconciled flag."""
        pass

    @abstractmethod
    def get_bank_match(self, match_id: int) -> Optional[BankMatch]:
        """Get bank match by ID."""
        pass

    @abstractmethod
    def list_bank_matches(self, bank_transaction_id: Optional[int] = None) -> list[BankMatch]:
        """List bank matches, optionally for one bank transaction."""
        pass

    @abstractmethod
    def commit_bank_match(
        self,
        bank_transaction_id: int,
        match_type: str,
        target_id: Any,
        amount: Decimal,
        payment_date: Optional[date],
    ) -> Optional[BankMatch]:
        """Insert a match and update reconciliation flags in one transaction.

        Sets the bank transaction's ``reconciled`` flag and, for expense
        matches, the expense's ``paid`` flag and ``payment_date``. Nothing is
        written if any step fails.
        """
        pass

    @abstractmethod
    def remove_bank_match(self, match_id: int) -> bool:
        """Delete a match and clear flags it no longer justifies, in one transaction."""
        pass

    # Budget operations
    @abstractmethod
    def create_budget_item(
        self,
        tax_year: int,
        category: str,
        type: str,
        annual_amount: Decimal = Decimal("0"),
        monthly_amounts: Optional[dict[str, Any]] = None,
        notes: Optional[str] = None,
    ) -> Optional[int]:
        """Create a budget item. Returns its ID."""
        pass

    @abstractmethod
    def get_budget_item(self, item_id: int) -> Optional[BudgetItem]:
        """Get budget item by ID."""
        pass

    @abstractmethod
    def list_budget_items(self, tax_year: Optional[int] = None) -> list[BudgetItem]:
        """List budget items ordered by type then category."""
        pass

    @abstractmethod
    def update_budget_item(self, item_id: int, **fields: Any) -> bool:
        """Update budget item columns."""
        pass

    @abstractmethod
    def delete_budget_item(self, item_id: int) -> bool:
        """Delete a budget item."""
        pass
