"""Dashboard summary commands."""

import click

from backoffice.domain.summary import compute_expense_categories, compute_pnl, compute_revenue


@click.group()
def dashboard_group():
    """Summaries of revenue, spending and profit."""
    pass


@dashboard_group.command("revenue")
@click.pass_context
def revenue(ctx):
    """Paid invoicing for the last six months alongside current MRR."""
    db = ctx.obj["db"]
    months = compute_revenue(db.list_invoices(), db.list_subscription_sources())
    click.echo(f"\n{'Month':6s} {'Invoiced':>11s} {'MRR':>11s}")
    click.echo("-" * 30)
    for m in months:
        click.echo(f"{m.month:6s} {m.invoiced:>11.2f} {m.subscriptions:>11.2f}")


@dashboard_group.command("categories")
@click.pass_context
def categories(ctx):
    """Expense totals per category."""
    totals = compute_expense_categories(ctx.obj["db"].list_expenses())
    if not totals:
        click.echo("No expenses found.")
        return
    for t in totals:
        click.echo(f"{t.category:16s} {t.total:>11.2f}")


@dashboard_group.command("pnl")
@click.pass_context
def pnl(ctx):
    """Income, expenses and profit per month of the fiscal year to date."""
    db = ctx.obj["db"]
    months = compute_pnl(db.list_invoices(), db.list_expenses(), db.list_subscription_sources())
    click.echo(f"\n{'Month':6s} {'Income':>11s} {'Expenses':>11s} {'Profit':>11s}")
    click.echo("-" * 42)
    for m in months:
        click.echo(f"{m.month:6s} {m.income:>11.2f} {m.expenses:>11.2f} {m.profit:>11.2f}")


def register_commands(cli):
    """Register dashboard commands with main CLI."""
    cli.add_command(dashboard_group, name="dashboard")
