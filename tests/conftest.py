"""Shared pytest fixtures for backoffice tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
import pytest
from sqlalchemy.exc import OperationalError

from backoffice.database.factories import create_sqlite_database
from backoffice.domain.clients import ClientService
from backoffice.domain.expenses import ExpenseService
from backoffice.domain.invoicing import InvoicingService
from backoffice.domain.reconciliation import ReconciliationService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def client_service(temp_db):
    """Create a ClientService with a temporary database."""
    return ClientService(temp_db)


@pytest.fixture
def invoicing_service(temp_db):
    """Create an InvoicingService with a temporary database."""
    return InvoicingService(temp_db)


@pytest.fixture
def expense_service(temp_db):
    """Create an ExpenseService with a temporary database."""
    return ExpenseService(temp_db)


@pytest.fixture
def reconciliation_service(temp_db):
    """Create a ReconciliationService with a temporary database."""
    return ReconciliationService(temp_db)


@pytest.fixture
def sample_client(client_service):
    """Create a sample client for testing."""
    client_id = client_service.create_client(name="Acme Ltd", email="accounts@acme.test")
    return client_service.get_client(client_id)


@pytest.fixture
def sample_invoice(invoicing_service, sample_client):
    """Create a sent invoice for Acme Ltd."""
    invoice_id = invoicing_service.create_invoice(
        client_name=sample_client.name,
        amount=Decimal("1150.00"),
        gst=Decimal("150.00"),
        status="Sent",
        invoice_date=date(2026, 5, 1),
        due_date=date(2026, 5, 20),
    )
    return invoicing_service.get_invoice(invoice_id)


@pytest.fixture
def sample_expense(expense_service):
    """Create an unpaid software expense."""
    expense_id = expense_service.create_expense(
        expense_date=date(2026, 5, 10),
        description="Adobe Creative Cloud subscription",
        amount=Decimal("89.99"),
        category="Software",
        supplier="Adobe",
    )
    return expense_service.get_expense(expense_id)


class FakeGateway:
    """In-memory stand-in for StripeGateway."""

    def __init__(self, subscriptions=None, charges=None, products=None, fees=None):
        self.subscriptions = {s["id"]: s for s in (subscriptions or [])}
        self.charges = list(charges or [])
        self.products = dict(products or {})
        self.fees = dict(fees or {})
        self.charge_queries = []

    def product_name(self, product_id):
        return self.products.get(product_id)

    def balance_transaction_fee(self, balance_transaction_id):
        return self.fees.get(balance_transaction_id)

    def retrieve_subscription(self, subscription_id):
        return self.subscriptions.get(subscription_id)

    def list_subscriptions(self):
        return list(self.subscriptions.values())

    def list_charges(self, created_gte):
        self.charge_queries.append(created_gte)
        return [c for c in self.charges if c.get("created", 0) >= created_gte]


def make_subscription(
    subscription_id,
    app_name="Tide Tables",
    unit_amount=1000,
    currency="nzd",
    status="active",
    created=None,
    product="prod_1",
):
    """Build a subscription payload the way Stripe sends it."""
    metadata = {"app_name": app_name} if app_name else {}
    return {
        "id": subscription_id,
        "object": "subscription",
        "status": status,
        "customer": f"cus_{subscription_id}",
        "created": created,
        "metadata": metadata,
        "items": {"data": [{"price": {"unit_amount": unit_amount, "currency": currency, "product": product}}]},
    }


def fail_next_query(monkeypatch, db):
    """Make the next ORM query on ``db`` raise as if the connection dropped."""
    session = db._get_session()
    real_query = session.query
    state = {"failed": False}

    def query(*args, **kwargs):
        if not state["failed"]:
            state["failed"] = True
            raise OperationalError("SELECT", {}, Exception("connection reset"))
        return real_query(*args, **kwargs)

    monkeypatch.setattr(session, "query", query)


@pytest.fixture
def fake_gateway():
    """Create an empty FakeGateway."""
    return FakeGateway()


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
