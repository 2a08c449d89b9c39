"""Budget commands."""

from datetime import date

import click

from backoffice.cli.error_handling import handle_domain_error
from backoffice.cli.input_parsing import parse_amount_or_exit
from backoffice.domain.budget import BUDGET_TYPES, BudgetService, fiscal_year_for
from backoffice.domain.errors import DomainError
from backoffice.utils.money import ZERO


def _service(ctx) -> BudgetService:
    return BudgetService(ctx.obj["db"], ctx.obj["settings"].vehicle_rate)


def _parse_months(ctx, values: tuple[str, ...]) -> dict[str, object]:
    monthly = {}
    for value in values:
        label, sep, amount = value.partition("=")
        if not sep:
            click.echo(f"Error: Invalid month amount '{value}'. Use MON=AMOUNT (e.g. Apr=100)", err=True)
            ctx.exit(1)
        monthly[label.strip().capitalize()] = parse_amount_or_exit(ctx, amount, f"amount for {label}")
    return monthly


@click.group()
def budget_group():
    """Plan budgets and compare them with actuals."""
    pass


@budget_group.command("actuals")
@click.argument("tax_year", type=int, required=False)
@click.pass_context
def actuals(ctx, tax_year: int | None):
    """Show monthly actuals per category for a fiscal year (April to March)."""
    tax_year = tax_year or fiscal_year_for(date.today())
    result = _service(ctx).actuals(tax_year)

    labels = [mv.month for mv in next(iter(result.values()))]
    click.echo(f"\nActuals for {tax_year}/{(tax_year + 1) % 100:02d}")
    click.echo(f"{'Category':14s}" + "".join(f"{label:>9s}" for label in labels) + f"{'Total':>11s}")
    click.echo("-" * (14 + 9 * len(labels) + 11))
    for category, values in result.items():
        total = sum((mv.value for mv in values), ZERO)
        cells = "".join(f"{mv.value:>9.2f}" for mv in values)
        click.echo(f"{category:14s}{cells}{total:>11.2f}")


@budget_group.command("compare")
@click.argument("tax_year", type=int, required=False)
@click.pass_context
def compare(ctx, tax_year: int | None):
    """Compare planned and actual totals per budget item."""
    tax_year = tax_year or fiscal_year_for(date.today())
    lines = _service(ctx).compare(tax_year)
    if not lines:
        click.echo(f"No budget items for {tax_year}.")
        return

    click.echo(f"\n{'Category':16s} {'Type':8s} {'Planned':>11s} {'Actual':>11s} {'Variance':>11s}")
    click.echo("-" * 61)
    for line in lines:
        click.echo(
            f"{line.category:16s} {line.type:8s} {line.planned:>11.2f} {line.actual:>11.2f} {line.variance:>11.2f}"
        )


@budget_group.command("add")
@click.argument("tax_year", type=int)
@click.argument("category")
@click.option("--type", "item_type", type=click.Choice(BUDGET_TYPES), required=True, help="Budget type")
@click.option("--annual", default="0", help="Annual amount, spread evenly over months without an override")
@click.option("--month", "months", multiple=True, help="Monthly override as MON=AMOUNT (repeatable)")
@click.option("--notes", help="Notes")
@click.pass_context
def add_item(ctx, tax_year: int, category: str, item_type: str, annual: str, months: tuple[str, ...], notes: str | None):
    """Add a budget item.

    Examples:
        backoffice budget add 2026 Software --type expense --annual 1200
        backoffice budget add 2026 Invoicing --type income --annual 60000 --month Dec=2000
    """
    service = _service(ctx)
    try:
        item_id = service.create_item(
            tax_year=tax_year,
            category=category,
            type=item_type,
            annual_amount=parse_amount_or_exit(ctx, annual, "annual amount"),
            monthly_amounts=_parse_months(ctx, months),
            notes=notes,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    if item_id is None:
        click.echo("Error: Failed to save budget item", err=True)
        ctx.exit(1)
    click.echo(f"Created budget item '{category}' for {tax_year} (ID: {item_id})")


@budget_group.command("list")
@click.argument("tax_year", type=int, required=False)
@click.pass_context
def list_items(ctx, tax_year: int | None):
    """List budget items."""
    items = _service(ctx).list_items(tax_year)
    if not items:
        click.echo("No budget items found.")
        return
    for item in items:
        overrides = ", ".join(f"{k}={v}" for k, v in item.monthly_amounts.items())
        click.echo(
            f"ID: {item.id:3d} | {item.tax_year} | {item.category:16s} | {item.type:7s} | "
            f"{item.annual_amount:>10.2f}" + (f" | {overrides}" if overrides else "")
        )


@budget_group.command("update")
@click.argument("item_id", type=int)
@click.option("--category", help="New category")
@click.option("--type", "item_type", type=click.Choice(BUDGET_TYPES), help="New budget type")
@click.option("--annual", help="New annual amount")
@click.option("--month", "months", multiple=True, help="Monthly override as MON=AMOUNT, merged with existing ones")
@click.option("--notes", help="New notes")
@click.pass_context
def update_item(
    ctx,
    item_id: int,
    category: str | None,
    item_type: str | None,
    annual: str | None,
    months: tuple[str, ...],
    notes: str | None,
):
    """Update a budget item.

    Examples:
        backoffice budget update 3 --annual 1500
        backoffice budget update 3 --month Jan=0 --notes "No January spend"
    """
    service = _service(ctx)
    fields: dict[str, object] = {}
    if category is not None:
        fields["category"] = category
    if item_type is not None:
        fields["type"] = item_type
    if annual is not None:
        fields["annual_amount"] = parse_amount_or_exit(ctx, annual, "annual amount")
    if notes is not None:
        fields["notes"] = notes
    try:
        if months:
            current = service.get_item(item_id).monthly_amounts
            fields["monthly_amounts"] = {**current, **_parse_months(ctx, months)}
        if not fields:
            click.echo("Error: Nothing to update", err=True)
            ctx.exit(1)
        updated = service.update_item(item_id, **fields)
    except DomainError as e:
        handle_domain_error(ctx, e)
    if not updated:
        click.echo("Error: Failed to save budget item", err=True)
        ctx.exit(1)
    click.echo(f"Updated budget item {item_id}")


@budget_group.command("delete")
@click.argument("item_id", type=int)
@click.pass_context
def delete_item(ctx, item_id: int):
    """Delete a budget item."""
    try:
        _service(ctx).delete_item(item_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted budget item {item_id}")


def register_commands(cli):
    """Register budget commands with main CLI."""
    cli.add_command(budget_group, name="budget")
