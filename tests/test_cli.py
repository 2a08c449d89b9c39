"""End-to-end tests for the command line interface."""

from decimal import Decimal

import pytest

from backoffice.cli.main import cli


@pytest.fixture
def run(cli_runner, temp_db):
    """Invoke the CLI against the temporary database."""

    def invoke(*args):
        result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])
        # The CLI writes through its own engine; drop cached rows
        temp_db.disconnect()
        return result

    return invoke


def test_help_does_not_need_database(cli_runner):
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "reconcile" in result.output


def test_client_add_and_list(run):
    result = run("client", "add", "Acme Ltd", "--email", "accounts@acme.test")
    assert result.exit_code == 0
    assert "Created client 'Acme Ltd'" in result.output

    result = run("client", "list")
    assert result.exit_code == 0
    assert "Acme Ltd" in result.output


def test_duplicate_client_fails(run):
    run("client", "add", "Acme Ltd")
    result = run("client", "add", "Acme Ltd")
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_invoice_with_line_items(run, temp_db):
    run("client", "add", "Acme Ltd")
    result = run(
        "invoice", "create", "--client", "Acme Ltd", "--item", "Labour:3:85", "--item", "Materials:1:120.50"
    )
    assert result.exit_code == 0
    assert "Created invoice SHMAKE-0001" in result.output
    assert temp_db.get_invoice("SHMAKE-0001").amount == Decimal("375.50")


def test_invalid_amount_reported(run):
    result = run("expense", "add", "--date", "2026-05-01", "--amount", "twelve")
    assert result.exit_code == 1
    assert "Invalid amount" in result.output


def test_home_office_bad_month(run):
    result = run("home-office", "add", "2026-05", "--type", "Power", "--amount", "200", "--percent", "25")
    assert result.exit_code == 1
    assert "Invalid month" in result.output


def test_bank_import_and_reconcile(run, temp_db, fixtures_dir):
    result = run("import", "bank", str(fixtures_dir / "bank_statement.csv"), "--bank", "Kiwibank")
    assert result.exit_code == 0
    assert "Imported 3 bank transaction(s)" in result.output

    result = run(
        "expense", "add", "--date", "2026-05-10", "--amount", "89.99",
        "--category", "Software", "--supplier", "Adobe", "--description", "Adobe Creative Cloud",
    )
    assert result.exit_code == 0

    adobe = next(t for t in temp_db.list_bank_transactions() if "ADOBE" in t.description)
    expense = temp_db.list_expenses()[0]

    result = run("reconcile", "suggest", str(adobe.id))
    assert result.exit_code == 0
    assert "Adobe Creative Cloud" in result.output

    result = run("reconcile", "match", str(adobe.id), "expense", str(expense.id))
    assert result.exit_code == 0
    assert temp_db.get_expense(expense.id).paid is True

    result = run("reconcile", "match", str(adobe.id), "invoice", "SHMAKE-0001")
    assert result.exit_code == 1
    assert "Cannot match outgoing" in result.output

    match = temp_db.list_bank_matches(adobe.id)[0]
    result = run("reconcile", "unmatch", str(match.id), "--transaction", str(adobe.id))
    assert result.exit_code == 0
    assert temp_db.get_expense(expense.id).paid is False


def test_import_donations(run, temp_db, fixtures_dir):
    result = run("import", "donations", str(fixtures_dir / "supporters.csv"), "--gross", "30", "--net", "27")
    assert result.exit_code == 0
    assert "Imported 3 payment(s)" in result.output
    assert len(temp_db.list_manual_payments()) == 3

    result = run("sources")
    assert "Buy Me A Coffee" in result.output


def test_budget_add_and_compare(run):
    result = run("budget", "add", "2026", "Software", "--type", "expense", "--annual", "1200", "--month", "dec=200")
    assert result.exit_code == 0

    result = run("budget", "compare", "2026")
    assert result.exit_code == 0
    assert "Software" in result.output
    assert "1300.00" in result.output

    result = run("budget", "actuals", "2026")
    assert result.exit_code == 0
    assert "Home Office" in result.output


def test_budget_month_needs_amount(run):
    result = run("budget", "add", "2026", "Software", "--type", "expense", "--month", "Dec")
    assert result.exit_code == 1
    assert "MON=AMOUNT" in result.output


def test_sync_requires_secret_key(run, monkeypatch):
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    result = run("sync", "stripe")
    assert result.exit_code == 1
    assert "STRIPE_SECRET_KEY" in result.output


def test_dashboard_commands(run):
    for command in ("revenue", "categories", "pnl"):
        result = run("dashboard", command)
        assert result.exit_code == 0


def test_budget_update_merges_month_overrides(run, temp_db):
    run("budget", "add", "2026", "Software", "--type", "expense", "--annual", "1200", "--month", "Apr=50")
    item = temp_db.list_budget_items()[0]

    result = run("budget", "update", str(item.id), "--annual", "1500", "--month", "dec=0")
    assert result.exit_code == 0
    assert f"Updated budget item {item.id}" in result.output

    item = temp_db.get_budget_item(item.id)
    assert item.annual_amount == Decimal("1500.00")
    assert item.monthly_amounts == {"Apr": 50.0, "Dec": 0.0}

    result = run("budget", "update", str(item.id))
    assert result.exit_code == 1
    assert "Nothing to update" in result.output

    result = run("budget", "update", "999", "--notes", "Missing")
    assert result.exit_code == 1
    assert "not found" in result.output
