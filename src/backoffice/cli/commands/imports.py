"""CSV import commands."""

import click

from backoffice.cli.error_handling import handle_domain_error
from backoffice.cli.input_parsing import parse_amount_or_exit
from backoffice.domain.bank_import import BankStatementImportService
from backoffice.domain.donations import DEFAULT_PLATFORM, DonationImportService
from backoffice.domain.errors import DomainError


def _echo_errors(errors: list[str]) -> None:
    if errors:
        click.echo(f"\nErrors ({len(errors)}):", err=True)
        for error in errors[:10]:
            click.echo(f"  {error}", err=True)
        if len(errors) > 10:
            click.echo(f"  ... and {len(errors) - 10} more errors", err=True)


@click.group()
def import_group():
    """Import records from CSV exports."""
    pass


@import_group.command("donations")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option("--platform", default=DEFAULT_PLATFORM, show_default=True, help="Platform name")
@click.option("--gross", help="Payout gross total in NZD")
@click.option("--net", help="Payout net total in NZD")
@click.pass_context
def import_donations(ctx, csv_file: str, platform: str, gross: str | None, net: str | None):
    """Import one-time supporters from a donation platform export.

    The payout totals are split evenly across the supporters.

    Examples:
        backoffice import donations supporters.csv --gross 94.50 --net 86.10
    """
    service = DonationImportService(ctx.obj["db"])
    total_gross = parse_amount_or_exit(ctx, gross, "gross")
    total_net = parse_amount_or_exit(ctx, net, "net")
    try:
        result = service.import_csv(csv_file, platform=platform, total_gross=total_gross, total_net=total_net)
    except (DomainError, OSError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"Imported {result['imported']} payment(s) into source {result['source_id']}")
    if result["skipped"]:
        click.echo(f"Skipped {result['skipped']} already imported payment(s)")
    _echo_errors(result["errors"])
    if result["failed"]:
        ctx.exit(1)


@import_group.command("bank")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option("--bank", "bank_name", help="Bank name")
@click.option("--batch", "import_batch", help="Import batch label (defaults to the file name)")
@click.pass_context
def import_bank(ctx, csv_file: str, bank_name: str | None, import_batch: str | None):
    """Import a bank statement to reconcile.

    The CSV needs date, description and amount columns.
    """
    service = BankStatementImportService(ctx.obj["db"])
    try:
        result = service.import_csv(csv_file, bank_name=bank_name, import_batch=import_batch)
    except (ValueError, OSError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"Imported {result['imported']} bank transaction(s)")
    if result["skipped"]:
        click.echo(f"Skipped {result['skipped']} duplicate(s)")
    _echo_errors(result["errors"])


def register_commands(cli):
    """Register import commands with main CLI."""
    cli.add_command(import_group, name="import")
