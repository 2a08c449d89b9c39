"""SQLAlchemy models for the backoffice database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    Enum,
    JSON,
    CheckConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

Money = Numeric(12, 2)


def _now() -> datetime:
    return datetime.now(UTC)


class Client(Base):
    """Client model."""

    __tablename__ = "clients"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    # Relationships
    jobs = relationship("Job", back_populates="client")
    invoices = relationship("Invoice", back_populates="client")
    quotes = relationship("Quote", back_populates="client")


class Job(Base):
    """Job model."""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    type = Column(String, nullable=True)
    status = Column(String, nullable=True)
    priority = Column(String, nullable=True)
    value = Column(Money, default=0, nullable=False)
    due_date = Column(Date, nullable=True)
    internal_note = Column(Text, nullable=True)

    client = relationship("Client", back_populates="jobs")


class Contact(Base):
    """Contact model."""

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    company = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    type = Column(String, nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    notes = Column(Text, nullable=True)


class Quote(Base):
    """Quote model. IDs are human-facing numbers such as ``Q-0001``."""

    __tablename__ = "quotes"

    id = Column(String, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Money, default=0, nullable=False)
    gst = Column(Money, default=0, nullable=False)
    status = Column(String, nullable=True)
    date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True)
    version = Column(Integer, default=1, nullable=False)
    external_note = Column(Text, nullable=True)
    internal_note = Column(Text, nullable=True)

    client = relationship("Client", back_populates="quotes")
    line_items = relationship("QuoteLineItem", cascade="all, delete-orphan")


class Invoice(Base):
    """Invoice model. IDs are human-facing numbers such as ``SHMAKE-0001``."""

    __tablename__ = "invoices"

    id = Column(String, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Money, default=0, nullable=False)
    gst = Column(Money, default=0, nullable=False)
    status = Column(String, nullable=True)
    date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    recurring_template_id = Column(Integer, ForeignKey("recurring_templates.id"), nullable=True)
    linked_quote_id = Column(String, ForeignKey("quotes.id"), nullable=True)
    external_note = Column(Text, nullable=True)
    internal_note = Column(Text, nullable=True)

    client = relationship("Client", back_populates="invoices")
    line_items = relationship("InvoiceLineItem", cascade="all, delete-orphan")


class QuoteLineItem(Base):
    """Quote line item model."""

    __tablename__ = "quote_line_items"

    id = Column(Integer, primary_key=True)
    quote_id = Column(String, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False)
    description = Column(String, nullable=False)
    type = Column(String, nullable=True)
    quantity = Column(Numeric(12, 3), default=1, nullable=False)
    unit_price = Column(Money, default=0, nullable=False)
    total = Column(Money, default=0, nullable=False)


class InvoiceLineItem(Base):
    """Invoice line item model."""

    __tablename__ = "invoice_line_items"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(String, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    description = Column(String, nullable=False)
    type = Column(String, nullable=True)
    quantity = Column(Numeric(12, 3), default=1, nullable=False)
    unit_price = Column(Money, default=0, nullable=False)
    total = Column(Money, default=0, nullable=False)


class Expense(Base):
    """Expense model."""

    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=True)
    description = Column(String, nullable=True)
    amount = Column(Money, nullable=False)
    gst = Column(Money, default=0, nullable=False)
    category = Column(String, nullable=True)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    supplier = Column(String, nullable=True)
    has_receipt = Column(Boolean, default=False, nullable=False)
    auto_imported = Column(Boolean, default=False, nullable=False)
    apportioned = Column(Boolean, default=False, nullable=False)
    full_amount = Column(Money, nullable=True)
    business_percent = Column(Numeric(5, 2), default=100, nullable=False)
    paid = Column(Boolean, default=False, nullable=False)
    payment_date = Column(Date, nullable=True)


class Trip(Base):
    """Vehicle trip model."""

    __tablename__ = "trips"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=True)
    from_location = Column(String, nullable=True)
    to_location = Column(String, nullable=True)
    km = Column(Numeric(10, 1), default=0, nullable=False)
    purpose = Column(String, nullable=True)
    category = Column(String, nullable=True)


class HomeOfficeExpense(Base):
    """Home office cost model."""

    __tablename__ = "home_office_expenses"

    id = Column(Integer, primary_key=True)
    month = Column(String, nullable=True)
    period_year = Column(Integer, nullable=True)
    period_month = Column(Integer, nullable=True)
    type = Column(String, nullable=True)
    full_amount = Column(Money, default=0, nullable=False)
    business_percent = Column(Numeric(5, 2), default=0, nullable=False)
    deductible = Column(Money, default=0, nullable=False)


class RecurringTemplate(Base):
    """Recurring invoice template model."""

    __tablename__ = "recurring_templates"

    id = Column(Integer, primary_key=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    description = Column(String, nullable=True)
    amount = Column(Money, default=0, nullable=False)
    gst = Column(Money, default=0, nullable=False)
    frequency = Column(String, nullable=True)
    next_date = Column(Date, nullable=True)
    status = Column(String, default="active", nullable=False)
    generated_count = Column(Integer, default=0, nullable=False)


class SubscriptionSource(Base):
    """Aggregated revenue row, one per application."""

    __tablename__ = "subscription_sources"

    id = Column(Integer, primary_key=True)
    app_name = Column(String, nullable=False, unique=True, index=True)
    platform = Column(String, nullable=False)
    subscribers = Column(Integer, default=0, nullable=False)
    mrr = Column(Money, default=0, nullable=False)
    gross_jan = Column(Money, default=0, nullable=False)
    fees_jan = Column(Money, default=0, nullable=False)
    net_jan = Column(Money, default=0, nullable=False)
    gst_jan = Column(Money, default=0, nullable=False)
    status = Column(String, nullable=True)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, default=dict, nullable=False)
    stripe_subscription_id = Column(String, nullable=True)
    stripe_customer_id = Column(String, nullable=True)
    version = Column(Integer, default=1, nullable=False)

    manual_payments = relationship("ManualPayment", back_populates="source", cascade="all, delete-orphan")


class ManualPayment(Base):
    """One-off payment attached to a subscription source."""

    __tablename__ = "manual_payments"

    id = Column(Integer, primary_key=True)
    source_id = Column(Integer, ForeignKey("subscription_sources.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=True)
    gross = Column(Money, default=0, nullable=False)
    fee = Column(Money, default=0, nullable=False)
    payer = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    source = relationship("SubscriptionSource", back_populates="manual_payments")


class StripeTransaction(Base):
    """Charge/refund ledger row. Primary key is the charge ID or ``<id>_refund``."""

    __tablename__ = "stripe_transactions"

    id = Column(String, primary_key=True)
    type = Column(String, nullable=False)
    gross = Column(Money, default=0, nullable=False)
    fee = Column(Money, default=0, nullable=False)
    net = Column(Money, default=0, nullable=False)
    date = Column(Date, nullable=True)
    description = Column(String, nullable=True)
    stripe_customer_id = Column(String, nullable=True)
    status = Column(String, nullable=True)


class StripeWebhookEvent(Base):
    """Processed webhook event IDs, used to drop redeliveries."""

    __tablename__ = "stripe_webhook_events"

    event_id = Column(String, primary_key=True)
    event_type = Column(String, nullable=False)
    processed_at = Column(DateTime, default=_now, nullable=False)


class BankTransaction(Base):
    """Imported bank statement line."""

    __tablename__ = "bank_transactions"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=True)
    description = Column(String, nullable=False, default="")
    amount = Column(Money, nullable=False)
    bank_name = Column(String, nullable=True)
    import_batch = Column(String, nullable=True)
    reconciled = Column(Boolean, default=False, nullable=False)

    matches = relationship("BankMatch", back_populates="bank_transaction", cascade="all, delete-orphan")


class BankMatch(Base):
    """Link from a bank transaction to one invoice or one expense."""

    __tablename__ = "bank_matches"

    id = Column(Integer, primary_key=True)
    bank_transaction_id = Column(
        Integer, ForeignKey("bank_transactions.id", ondelete="CASCADE"), nullable=False
    )
    match_type = Column(Enum("invoice", "expense", name="bank_match_type"), nullable=False)
    invoice_id = Column(String, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=True)
    expense_id = Column(Integer, ForeignKey("expenses.id", ondelete="CASCADE"), nullable=True)
    amount = Column(Money, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(match_type = 'invoice' AND invoice_id IS NOT NULL AND expense_id IS NULL) OR "
            "(match_type = 'expense' AND expense_id IS NOT NULL AND invoice_id IS NULL)",
            name="ck_bank_match_single_target",
        ),
    )

    bank_transaction = relationship("BankTransaction", back_populates="matches")


class BudgetItem(Base):
    """Planned amount for a (tax year, category, type) tuple."""

    __tablename__ = "budget_items"

    id = Column(Integer, primary_key=True)
    tax_year = Column(Integer, nullable=False, index=True)
    category = Column(String, nullable=False)
    type = Column(String, nullable=False)
    annual_amount = Column(Money, default=0, nullable=False)
    monthly_amounts = Column(JSON, default=dict, nullable=False)
    notes = Column(Text, nullable=True)


class DocumentSequence(Base):
    """Named counter for invoice and quote numbers."""

    __tablename__ = "document_sequences"

    name = Column(String, primary_key=True)
    prefix = Column(String, nullable=False)
    next_number = Column(Integer, default=1, nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory, creating missing tables."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # The webhook app serves requests from a thread pool
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
