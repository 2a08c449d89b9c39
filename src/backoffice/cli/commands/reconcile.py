"""Bank reconciliation commands."""

import click

from backoffice.cli.error_handling import handle_domain_error
from backoffice.cli.input_parsing import parse_amount_or_exit, parse_date_or_exit
from backoffice.domain.entities import MATCH_TYPES
from backoffice.domain.errors import DomainError
from backoffice.domain.reconciliation import ReconciliationService


@click.group()
def reconcile_group():
    """Reconcile bank transactions against invoices and expenses."""
    pass


@reconcile_group.command("list")
@click.option("--unreconciled", is_flag=True, help="Only transactions without a match")
@click.pass_context
def list_transactions(ctx, unreconciled: bool):
    """List bank transactions and their matches."""
    service = ReconciliationService(ctx.obj["db"])
    transactions = service.list_transactions(reconciled=False if unreconciled else None)
    if not transactions:
        click.echo("No bank transactions found.")
        return

    click.echo("\nBank transactions:")
    click.echo("-" * 80)
    for txn in transactions:
        day = txn.date.isoformat() if txn.date else "-"
        mark = "x" if txn.reconciled else " "
        click.echo(f"[{mark}] ID: {txn.id:4d} | {day:10s} | {txn.amount:>10.2f} | {txn.description}")
        if txn.reconciled:
            for match in service.list_matches(txn.id):
                target = match.invoice_id if match.match_type == "invoice" else match.expense_id
                click.echo(f"      match {match.id}: {match.match_type} {target} ({match.amount:.2f})")


@reconcile_group.command("suggest")
@click.argument("bank_transaction_id", type=int)
@click.pass_context
def suggest(ctx, bank_transaction_id: int):
    """Suggest invoices or expenses a bank transaction may settle."""
    service = ReconciliationService(ctx.obj["db"])
    try:
        candidates = service.suggest_for(bank_transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not candidates:
        click.echo("No suggestions.")
        return
    for c in candidates:
        click.echo(f"{c.score:3d} | {c.match_type:7s} | {str(c.target_id):14s} | {c.amount:>10.2f} | {c.label}")


@reconcile_group.command("match")
@click.argument("bank_transaction_id", type=int)
@click.argument("match_type", type=click.Choice(MATCH_TYPES))
@click.argument("target_id")
@click.option("--amount", help="Matched amount (defaults to the bank amount)")
@click.option("--payment-date", help="Expense payment date (defaults to the bank date)")
@click.pass_context
def match(ctx, bank_transaction_id: int, match_type: str, target_id: str, amount: str | None, payment_date: str | None):
    """Match a bank transaction to an invoice or expense.

    Examples:
        backoffice reconcile match 12 invoice SHMAKE-0042
        backoffice reconcile match 13 expense 7
    """
    service = ReconciliationService(ctx.obj["db"])
    try:
        created = service.create_bank_match(
            bank_transaction_id=bank_transaction_id,
            match_type=match_type,
            target_id=target_id,
            amount=parse_amount_or_exit(ctx, amount),
            payment_date=parse_date_or_exit(ctx, payment_date, "payment date"),
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    if created is None:
        click.echo("Error: Failed to save bank match", err=True)
        ctx.exit(1)
    click.echo(f"Matched bank transaction {bank_transaction_id} to {match_type} {target_id} (match {created.id})")


@reconcile_group.command("unmatch")
@click.argument("match_id", type=int)
@click.option("--transaction", "bank_transaction_id", type=int, required=True, help="Bank transaction ID")
@click.pass_context
def unmatch(ctx, match_id: int, bank_transaction_id: int):
    """Remove a bank match."""
    service = ReconciliationService(ctx.obj["db"])
    if not service.delete_bank_match(match_id, bank_transaction_id):
        click.echo(f"Error: Bank match {match_id} not found on transaction {bank_transaction_id}", err=True)
        ctx.exit(1)
    click.echo(f"Removed bank match {match_id}")


def register_commands(cli):
    """Register reconcile commands with main CLI."""
    cli.add_command(reconcile_group, name="reconcile")
