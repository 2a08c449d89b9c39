"""Revenue source listing command."""

import click

from backoffice.domain.summary import total_mrr


@click.command("sources")
@click.option("--platform", help="Only sources of this platform")
@click.pass_context
def sources(ctx, platform: str | None):
    """List revenue sources with subscribers and MRR."""
    rows = ctx.obj["db"].list_subscription_sources(platform=platform)
    if not rows:
        click.echo("No revenue sources found.")
        return

    click.echo(f"\n{'App':30s} {'Platform':16s} {'Subs':>5s} {'MRR':>10s} {'Gross':>10s} {'Fees':>9s}")
    click.echo("-" * 85)
    for s in rows:
        click.echo(
            f"{s.app_name[:30]:30s} {s.platform[:16]:16s} {s.subscribers:5d} "
            f"{s.mrr:>10.2f} {s.gross_jan:>10.2f} {s.fees_jan:>9.2f}"
        )
    click.echo("-" * 85)
    click.echo(f"Total MRR: {total_mrr(rows):.2f}")


def register_commands(cli):
    """Register sources command with main CLI."""
    cli.add_command(sources)
