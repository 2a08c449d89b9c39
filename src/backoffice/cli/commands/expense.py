"""Expense, trip and home office commands."""

import click

from backoffice.cli.error_handling import handle_domain_error
from backoffice.cli.input_parsing import parse_amount_or_exit, parse_date_or_exit
from backoffice.domain.budget import EXPENSE_CATEGORIES
from backoffice.domain.errors import DomainError
from backoffice.domain.expenses import ExpenseService


@click.group()
def expense_group():
    """Manage expenses."""
    pass


@expense_group.command("add")
@click.option("--date", "expense_date", required=True, help="Expense date")
@click.option("--amount", help="Amount including GST")
@click.option("--full-amount", help="Full amount before apportioning")
@click.option("--percent", "business_percent", default="100", show_default=True, help="Business use percent")
@click.option("--gst", help="GST component")
@click.option("--category", type=click.Choice(EXPENSE_CATEGORIES), help="Expense category")
@click.option("--supplier", help="Supplier name")
@click.option("--description", help="Description")
@click.option("--job", "job_title", help="Job title")
@click.option("--receipt/--no-receipt", default=False, help="Whether a receipt is held")
@click.pass_context
def add_expense(
    ctx,
    expense_date: str,
    amount: str | None,
    full_amount: str | None,
    business_percent: str,
    gst: str | None,
    category: str | None,
    supplier: str | None,
    description: str | None,
    job_title: str | None,
    receipt: bool,
):
    """Add an expense.

    Examples:
        backoffice expense add --date 2026-05-02 --amount 57.50 --category Materials --supplier "Bunnings"
        backoffice expense add --date 2026-05-02 --full-amount 120 --percent 40 --category Software
    """
    service = ExpenseService(ctx.obj["db"])
    gst_amount = parse_amount_or_exit(ctx, gst, "GST")
    try:
        expense_id = service.create_expense(
            expense_date=parse_date_or_exit(ctx, expense_date),
            description=description,
            amount=parse_amount_or_exit(ctx, amount),
            gst=gst_amount if gst_amount is not None else 0,
            category=category,
            supplier=supplier,
            job_title=job_title,
            has_receipt=receipt,
            full_amount=parse_amount_or_exit(ctx, full_amount, "full amount"),
            business_percent=parse_amount_or_exit(ctx, business_percent, "percent"),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    if expense_id is None:
        click.echo("Error: Failed to save expense", err=True)
        ctx.exit(1)
    click.echo(f"Created expense (ID: {expense_id})")


@expense_group.command("list")
@click.option("--unpaid", is_flag=True, help="Only expenses not yet matched to a payment")
@click.pass_context
def list_expenses(ctx, unpaid: bool):
    """List expenses."""
    expenses = ExpenseService(ctx.obj["db"]).list_expenses(unpaid_only=unpaid)
    if not expenses:
        click.echo("No expenses found.")
        return

    click.echo("\nExpenses:")
    click.echo("-" * 80)
    for e in expenses:
        day = e.date.isoformat() if e.date else "-"
        paid = "paid" if e.paid else ""
        click.echo(
            f"ID: {e.id:3d} | {day:10s} | {e.category or 'Other':10s} | {e.amount:>9.2f} | "
            f"{e.description or e.supplier or '-':30s} {paid}"
        )


@click.group()
def trip_group():
    """Manage vehicle trips."""
    pass


@trip_group.command("add")
@click.option("--date", "trip_date", required=True, help="Trip date")
@click.option("--km", required=True, help="Distance in kilometres")
@click.option("--from", "from_location", help="Start location")
@click.option("--to", "to_location", help="Destination")
@click.option("--purpose", help="Business purpose")
@click.pass_context
def add_trip(ctx, trip_date: str, km: str, from_location: str | None, to_location: str | None, purpose: str | None):
    """Log a business trip."""
    try:
        trip_id = ExpenseService(ctx.obj["db"]).add_trip(
            trip_date=parse_date_or_exit(ctx, trip_date),
            km=parse_amount_or_exit(ctx, km, "distance"),
            from_location=from_location,
            to_location=to_location,
            purpose=purpose,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Logged trip (ID: {trip_id})")


@trip_group.command("list")
@click.pass_context
def list_trips(ctx):
    """List trips."""
    trips = ExpenseService(ctx.obj["db"]).list_trips()
    if not trips:
        click.echo("No trips found.")
        return
    for t in trips:
        day = t.date.isoformat() if t.date else "-"
        route = f"{t.from_location or '?'} -> {t.to_location or '?'}"
        click.echo(f"ID: {t.id:3d} | {day:10s} | {t.km:>7.1f} km | {route:30s} | {t.purpose or ''}")


@click.group()
def home_office_group():
    """Manage home office costs."""
    pass


@home_office_group.command("add")
@click.argument("month")
@click.option("--type", "cost_type", required=True, help="Cost type (e.g. Power, Internet, Rent)")
@click.option("--amount", required=True, help="Full amount")
@click.option("--percent", "business_percent", required=True, help="Business use percent")
@click.pass_context
def add_home_office(ctx, month: str, cost_type: str, amount: str, business_percent: str):
    """Record a home office cost for MONTH (e.g. "Jan 2026")."""
    try:
        cost_id = ExpenseService(ctx.obj["db"]).add_home_office_expense(
            month=month,
            type=cost_type,
            full_amount=parse_amount_or_exit(ctx, amount),
            business_percent=parse_amount_or_exit(ctx, business_percent, "percent"),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Recorded home office cost (ID: {cost_id})")


@home_office_group.command("list")
@click.pass_context
def list_home_office(ctx):
    """List home office costs."""
    costs = ExpenseService(ctx.obj["db"]).list_home_office_expenses()
    if not costs:
        click.echo("No home office costs found.")
        return
    for h in costs:
        click.echo(
            f"ID: {h.id:3d} | {h.month or '-':8s} | {h.type or '-':12s} | "
            f"{h.full_amount:>9.2f} x {h.business_percent}% = {h.deductible:>9.2f}"
        )


def register_commands(cli):
    """Register expense, trip and home office commands with main CLI."""
    cli.add_command(expense_group, name="expense")
    cli.add_command(trip_group, name="trip")
    cli.add_command(home_office_group, name="home-office")
