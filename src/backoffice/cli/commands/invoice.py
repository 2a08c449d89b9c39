"""Quote, invoice and recurring template commands."""

import click

from backoffice.cli.error_handling import handle_domain_error
from backoffice.cli.input_parsing import parse_amount_or_exit, parse_date_or_exit
from backoffice.domain.entities import INVOICE_STATUSES
from backoffice.domain.errors import DomainError
from backoffice.domain.invoicing import FREQUENCIES, InvoicingService


def _parse_items(ctx, items: tuple[str, ...]) -> list[dict]:
    """Parse ``DESCRIPTION:QUANTITY:UNIT_PRICE`` line item options."""
    parsed = []
    for raw in items:
        parts = raw.rsplit(":", 2)
        if len(parts) != 3:
            click.echo(f"Error: Invalid line item '{raw}'. Use DESCRIPTION:QUANTITY:UNIT_PRICE", err=True)
            ctx.exit(1)
        description, quantity, unit_price = parts
        parsed.append(
            {
                "description": description,
                "quantity": parse_amount_or_exit(ctx, quantity, "quantity"),
                "unit_price": parse_amount_or_exit(ctx, unit_price, "unit price"),
            }
        )
    return parsed


@click.group()
def invoice_group():
    """Manage invoices."""
    pass


@invoice_group.command("create")
@click.option("--client", "client_name", help="Client name")
@click.option("--amount", help="Total including GST (defaults to the sum of the line items)")
@click.option("--gst", help="GST component")
@click.option("--status", type=click.Choice(INVOICE_STATUSES), default="Draft", show_default=True)
@click.option("--date", "invoice_date", help="Invoice date (defaults to today)")
@click.option("--due", help="Due date")
@click.option("--item", "items", multiple=True, help="Line item DESCRIPTION:QUANTITY:UNIT_PRICE")
@click.option("--id", "invoice_id", help="Explicit invoice number")
@click.pass_context
def create_invoice(
    ctx,
    client_name: str | None,
    amount: str | None,
    gst: str | None,
    status: str,
    invoice_date: str | None,
    due: str | None,
    items: tuple[str, ...],
    invoice_id: str | None,
):
    """Create an invoice.

    Examples:
        backoffice invoice create --client "Acme Ltd" --amount 1150 --gst 150 --due 2026-05-20
        backoffice invoice create --client "Acme Ltd" --item "Site visit:2:85"
    """
    service = InvoicingService(ctx.obj["db"])
    total = parse_amount_or_exit(ctx, amount)
    gst_amount = parse_amount_or_exit(ctx, gst, "GST")
    try:
        created = service.create_invoice(
            client_name=client_name,
            amount=total,
            gst=gst_amount if gst_amount is not None else 0,
            status=status,
            invoice_date=parse_date_or_exit(ctx, invoice_date),
            due_date=parse_date_or_exit(ctx, due, "due date"),
            line_items=_parse_items(ctx, items),
            invoice_id=invoice_id,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    if created is None:
        click.echo("Error: Failed to save invoice", err=True)
        ctx.exit(1)
    click.echo(f"Created invoice {created}")


@invoice_group.command("list")
@click.option("--status", type=click.Choice(INVOICE_STATUSES), help="Only invoices with this status")
@click.pass_context
def list_invoices(ctx, status: str | None):
    """List invoices."""
    invoices = InvoicingService(ctx.obj["db"]).list_invoices(status=status)
    if not invoices:
        click.echo("No invoices found.")
        return

    click.echo("\nInvoices:")
    click.echo("-" * 80)
    for inv in invoices:
        due = inv.due_date.isoformat() if inv.due_date else "-"
        click.echo(
            f"{inv.id:14s} | {inv.client_name or '-':20s} | {inv.amount:>10.2f} | {inv.status or '-':8s} | Due: {due}"
        )


@invoice_group.command("status")
@click.argument("invoice_id")
@click.argument("status", type=click.Choice(INVOICE_STATUSES))
@click.pass_context
def set_status(ctx, invoice_id: str, status: str):
    """Set an invoice's status."""
    try:
        InvoicingService(ctx.obj["db"]).set_invoice_status(invoice_id, status)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Invoice {invoice_id} marked {status}")


@invoice_group.command("recurring")
@click.argument("description")
@click.option("--amount", required=True, help="Amount including GST")
@click.option("--gst", help="GST component")
@click.option("--client", "client_name", help="Client name")
@click.option("--frequency", type=click.Choice(list(FREQUENCIES)), default="monthly", show_default=True)
@click.option("--next", "next_date", required=True, help="Date of the first invoice")
@click.pass_context
def add_recurring(
    ctx, description: str, amount: str, gst: str | None, client_name: str | None, frequency: str, next_date: str
):
    """Add a recurring invoice template."""
    service = InvoicingService(ctx.obj["db"])
    gst_amount = parse_amount_or_exit(ctx, gst, "GST")
    try:
        template_id = service.create_template(
            description=description,
            amount=parse_amount_or_exit(ctx, amount),
            client_name=client_name,
            gst=gst_amount if gst_amount is not None else 0,
            frequency=frequency,
            next_date=parse_date_or_exit(ctx, next_date, "next date"),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created recurring template (ID: {template_id})")


@invoice_group.command("generate")
@click.option("--today", help="Reference date (defaults to today)")
@click.pass_context
def generate_recurring(ctx, today: str | None):
    """Create draft invoices for recurring templates that are due."""
    service = InvoicingService(ctx.obj["db"])
    created = service.generate_due_invoices(parse_date_or_exit(ctx, today))
    if not created:
        click.echo("No recurring invoices due.")
        return
    for invoice_id in created:
        click.echo(f"Generated invoice {invoice_id}")


@click.group()
def quote_group():
    """Manage quotes."""
    pass


@quote_group.command("create")
@click.option("--client", "client_name", help="Client name")
@click.option("--job", "job_title", help="Job title")
@click.option("--amount", help="Total including GST (defaults to the sum of the line items)")
@click.option("--gst", help="GST component")
@click.option("--expires", help="Expiry date")
@click.option("--item", "items", multiple=True, help="Line item DESCRIPTION:QUANTITY:UNIT_PRICE")
@click.pass_context
def create_quote(
    ctx,
    client_name: str | None,
    job_title: str | None,
    amount: str | None,
    gst: str | None,
    expires: str | None,
    items: tuple[str, ...],
):
    """Create a quote."""
    service = InvoicingService(ctx.obj["db"])
    gst_amount = parse_amount_or_exit(ctx, gst, "GST")
    try:
        created = service.create_quote(
            client_name=client_name,
            job_title=job_title,
            amount=parse_amount_or_exit(ctx, amount),
            gst=gst_amount if gst_amount is not None else 0,
            expiry_date=parse_date_or_exit(ctx, expires, "expiry date"),
            line_items=_parse_items(ctx, items),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    if created is None:
        click.echo("Error: Failed to save quote", err=True)
        ctx.exit(1)
    click.echo(f"Created quote {created}")


@quote_group.command("list")
@click.pass_context
def list_quotes(ctx):
    """List quotes."""
    quotes = InvoicingService(ctx.obj["db"]).list_quotes()
    if not quotes:
        click.echo("No quotes found.")
        return
    for q in quotes:
        click.echo(f"{q.id:8s} | {q.client_name or '-':20s} | {q.amount:>10.2f} | {q.status or '-':8s} | v{q.version}")


@quote_group.command("convert")
@click.argument("quote_id")
@click.option("--due", help="Due date of the invoice")
@click.pass_context
def convert_quote(ctx, quote_id: str, due: str | None):
    """Turn a quote into a draft invoice."""
    try:
        invoice_id = InvoicingService(ctx.obj["db"]).convert_quote(quote_id, parse_date_or_exit(ctx, due, "due date"))
    except DomainError as e:
        handle_domain_error(ctx, e)
    if invoice_id is None:
        click.echo("Error: Failed to save invoice", err=True)
        ctx.exit(1)
    click.echo(f"Created invoice {invoice_id} from quote {quote_id}")


def register_commands(cli):
    """Register invoice and quote commands with main CLI."""
    cli.add_command(invoice_group, name="invoice")
    cli.add_command(quote_group, name="quote")
