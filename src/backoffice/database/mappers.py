"""Mapper functions to convert SQLAlchemy rows into domain entities.

This layer isolates the conversion logic so that the compute functions never
see ORM objects, lazy relationships or session state.
"""

from decimal import Decimal

from backoffice.domain import entities as domain
from backoffice.database import models as orm


def _money(value) -> Decimal:
    return Decimal(value) if value is not None else Decimal("0")


def client_to_domain(row: orm.Client) -> domain.Client:
    """Convert SQLAlchemy Client model to domain Client entity."""
    return domain.Client(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        address=row.address,
        created_at=row.created_at,
    )


def job_to_domain(row: orm.Job) -> domain.Job:
    """Convert SQLAlchemy Job model to domain Job entity."""
    return domain.Job(
        id=row.id,
        title=row.title,
        client_id=row.client_id,
        type=row.type,
        status=row.status,
        priority=row.priority,
        value=_money(row.value),
        due_date=row.due_date,
        internal_note=row.internal_note,
    )


def contact_to_domain(row: orm.Contact) -> domain.Contact:
    """Convert SQLAlchemy Contact model to domain Contact entity."""
    return domain.Contact(
        id=row.id,
        name=row.name,
        company=row.company,
        email=row.email,
        phone=row.phone,
        type=row.type,
        tags=tuple(row.tags or ()),
        notes=row.notes,
    )


def quote_to_domain(row: orm.Quote) -> domain.Quote:
    """Convert SQLAlchemy Quote model to domain Quote entity."""
    return domain.Quote(
        id=row.id,
        client_id=row.client_id,
        job_id=row.job_id,
        amount=_money(row.amount),
        gst=_money(row.gst),
        status=row.status,
        date=row.date,
        expiry_date=row.expiry_date,
        version=row.version,
        external_note=row.external_note,
        internal_note=row.internal_note,
        client_name=row.client.name if row.client is not None else "",
    )


def invoice_to_domain(row: orm.Invoice) -> domain.Invoice:
    """Convert SQLAlchemy Invoice model to domain Invoice entity."""
    return domain.Invoice(
        id=row.id,
        client_id=row.client_id,
        amount=_money(row.amount),
        gst=_money(row.gst),
        status=row.status,
        date=row.date,
        due_date=row.due_date,
        recurring_template_id=row.recurring_template_id,
        linked_quote_id=row.linked_quote_id,
        external_note=row.external_note,
        internal_note=row.internal_note,
        client_name=row.client.name if row.client is not None else "",
    )


def line_item_to_domain(row: orm.QuoteLineItem | orm.InvoiceLineItem) -> domain.LineItem:
    """Convert either line item model to a domain LineItem."""
    return domain.LineItem(
        description=row.description,
        type=row.type,
        quantity=_money(row.quantity),
        unit_price=_money(row.unit_price),
        total=_money(row.total),
    )


def expense_to_domain(row: orm.Expense) -> domain.Expense:
    """Convert SQLAlchemy Expense model to domain Expense entity."""
    return domain.Expense(
        id=row.id,
        date=row.date,
        description=row.description,
        amount=_money(row.amount),
        gst=_money(row.gst),
        category=row.category,
        job_id=row.job_id,
        supplier=row.supplier,
        has_receipt=bool(row.has_receipt),
        auto_imported=bool(row.auto_imported),
        apportioned=bool(row.apportioned),
        full_amount=_money(row.full_amount if row.full_amount is not None else row.amount),
        business_percent=_money(row.business_percent),
        paid=bool(row.paid),
        payment_date=row.payment_date,
    )


def trip_to_domain(row: orm.Trip) -> domain.Trip:
    """Convert SQLAlchemy Trip model to domain Trip entity."""
    return domain.Trip(
        id=row.id,
        date=row.date,
        from_location=row.from_location,
        to_location=row.to_location,
        km=_money(row.km),
        purpose=row.purpose,
        category=row.category,
    )


def home_office_to_domain(row: orm.HomeOfficeExpense) -> domain.HomeOfficeExpense:
    """Convert SQLAlchemy HomeOfficeExpense model to domain entity."""
    return domain.HomeOfficeExpense(
        id=row.id,
        month=row.month,
        type=row.type,
        full_amount=_money(row.full_amount),
        business_percent=_money(row.business_percent),
        deductible=_money(row.deductible),
        period_year=row.period_year,
        period_month=row.period_month,
    )


def recurring_template_to_domain(row: orm.RecurringTemplate) -> domain.RecurringTemplate:
    """Convert SQLAlchemy RecurringTemplate model to domain entity."""
    return domain.RecurringTemplate(
        id=row.id,
        client_id=row.client_id,
        description=row.description,
        amount=_money(row.amount),
        gst=_money(row.gst),
        frequency=row.frequency,
        next_date=row.next_date,
        status=row.status,
        generated_count=row.generated_count,
    )


def subscription_source_to_domain(row: orm.SubscriptionSource) -> domain.SubscriptionSource:
    """Convert SQLAlchemy SubscriptionSource model to domain entity."""
    return domain.SubscriptionSource(
        id=row.id,
        app_name=row.app_name,
        platform=row.platform,
        subscribers=row.subscribers,
        mrr=_money(row.mrr),
        gross_jan=_money(row.gross_jan),
        fees_jan=_money(row.fees_jan),
        net_jan=_money(row.net_jan),
        gst_jan=_money(row.gst_jan),
        status=row.status,
        metadata=dict(row.meta or {}),
        stripe_subscription_id=row.stripe_subscription_id,
        stripe_customer_id=row.stripe_customer_id,
        version=row.version,
    )


def manual_payment_to_domain(row: orm.ManualPayment) -> domain.ManualPayment:
    """Convert SQLAlchemy ManualPayment model to domain entity."""
    return domain.ManualPayment(
        id=row.id,
        source_id=row.source_id,
        date=row.date,
        gross=_money(row.gross),
        fee=_money(row.fee),
        payer=row.payer,
        notes=row.notes,
    )


def stripe_transaction_to_domain(row: orm.StripeTransaction) -> domain.StripeTransaction:
    """Convert SQLAlchemy StripeTransaction model to domain entity."""
    return domain.StripeTransaction(
        id=row.id,
        type=row.type,
        gross=_money(row.gross),
        fee=_money(row.fee),
        net=_money(row.net),
        date=row.date,
        description=row.description,
        stripe_customer_id=row.stripe_customer_id,
        status=row.status,
    )


def bank_transaction_to_domain(row: orm.BankTransaction) -> domain.BankTransaction:
    """Convert SQLAlchemy BankTransaction model to domain entity."""
    return domain.BankTransaction(
        id=row.id,
        date=row.date,
        description=row.description or "",
        amount=_money(row.amount),
        bank_name=row.bank_name,
        import_batch=row.import_batch,
        reconciled=bool(row.reconciled),
    )


def bank_match_to_domain(row: orm.BankMatch) -> domain.BankMatch:
    """Convert SQLAlchemy BankMatch model to domain entity."""
    return domain.BankMatch(
        id=row.id,
        bank_transaction_id=row.bank_transaction_id,
        match_type=row.match_type,
        invoice_id=row.invoice_id,
        expense_id=row.expense_id,
        amount=_money(row.amount),
    )


def budget_item_to_domain(row: orm.BudgetItem) -> domain.BudgetItem:
    """Convert SQLAlchemy BudgetItem model to domain entity."""
    return domain.BudgetItem(
        id=row.id,
        tax_year=row.tax_year,
        category=row.category,
        type=row.type,
        annual_amount=_money(row.annual_amount),
        monthly_amounts=dict(row.monthly_amounts or {}),
        notes=row.notes,
    )
