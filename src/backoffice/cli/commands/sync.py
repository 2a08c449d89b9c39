"""Payment processor sync commands."""

import click

from backoffice.cli.error_handling import handle_domain_error
from backoffice.cli.input_parsing import parse_date_or_exit
from backoffice.domain.errors import DomainError
from backoffice.domain.stripe_sync import StripeSyncService
from backoffice.integrations.stripe_gateway import StripeGateway


@click.group()
def sync_group():
    """Sync revenue from payment processors."""
    pass


@sync_group.command("stripe")
@click.option("--today", help="Reference date for the fiscal year (defaults to today)")
@click.pass_context
def sync_stripe(ctx, today: str | None):
    """Rebuild the Stripe subscription sources and this year's charge ledger."""
    settings = ctx.obj["settings"]
    if not settings.stripe_secret_key:
        click.echo("Error: STRIPE_SECRET_KEY is not set", err=True)
        ctx.exit(1)

    gateway = StripeGateway(api_key=settings.stripe_secret_key)
    service = StripeSyncService(ctx.obj["db"], gateway)
    try:
        tally = service.sync_aggregated(parse_date_or_exit(ctx, today))
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Synced {tally['synced']} app(s), {tally['charges']} charge(s)")
    if tally["errors"]:
        click.echo(f"\nErrors ({len(tally['errors'])}):", err=True)
        for error in tally["errors"]:
            click.echo(f"  {error}", err=True)
    if tally["failed"]:
        ctx.exit(1)


def register_commands(cli):
    """Register sync commands with main CLI."""
    cli.add_command(sync_group, name="sync")
