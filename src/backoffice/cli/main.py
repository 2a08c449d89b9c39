"""Main CLI entry point."""

import click

from backoffice.config import configure_logging, load_settings
from backoffice.database.factories import create_database

# Import and register all commands at module level
from backoffice.cli.commands import (
    budget,
    client,
    dashboard,
    expense,
    imports,
    invoice,
    reconcile,
    serve,
    sources,
    sync,
)


@click.group()
@click.option(
    "--database-url",
    help="SQLAlchemy database URL (overrides BACKOFFICE_DATABASE_URL / DATABASE_URL)",
)
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to a SQLite database file (shortcut for sqlite:///PATH)",
)
@click.pass_context
def cli(ctx, database_url: str | None, db_path: str | None):
    """Backoffice - invoicing, reconciliation and revenue ledger.

    Reconcile bank statements against invoices and expenses, aggregate Stripe
    subscription revenue per app, and compare budgets with actuals.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        if db_path:
            database_url = f"sqlite:///{db_path}"
        settings = load_settings(database_url=database_url)
        ctx.obj["settings"] = settings
        db = create_database(settings.database_url)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
client.register_commands(cli)
invoice.register_commands(cli)
expense.register_commands(cli)
reconcile.register_commands(cli)
imports.register_commands(cli)
sync.register_commands(cli)
sources.register_commands(cli)
budget.register_commands(cli)
dashboard.register_commands(cli)
serve.register_commands(cli)


def main():
    """Main entry point for CLI."""
    configure_logging(load_settings().log_level)
    cli()


if __name__ == "__main__":
    main()
