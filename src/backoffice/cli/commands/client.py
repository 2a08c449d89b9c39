"""Client, job and contact commands."""

import click

from backoffice.cli.error_handling import handle_domain_error
from backoffice.cli.input_parsing import parse_amount_or_exit, parse_date_or_exit
from backoffice.domain.clients import ClientService
from backoffice.domain.errors import DomainError


@click.group()
def client_group():
    """Manage clients."""
    pass


@client_group.command("add")
@click.argument("name")
@click.option("--email", help="Email address")
@click.option("--phone", help="Phone number")
@click.option("--address", help="Postal address")
@click.pass_context
def add_client(ctx, name: str, email: str | None, phone: str | None, address: str | None):
    """Add a client.

    Examples:
        backoffice client add "Acme Ltd" --email accounts@acme.test
    """
    service = ClientService(ctx.obj["db"])
    try:
        client_id = service.create_client(name=name, email=email, phone=phone, address=address)
    except DomainError as e:
        handle_domain_error(ctx, e)
    if client_id is None:
        click.echo("Error: Failed to save client", err=True)
        ctx.exit(1)
    click.echo(f"Created client '{name}' (ID: {client_id})")


@client_group.command("list")
@click.pass_context
def list_clients(ctx):
    """List clients with their job counts and paid revenue."""
    service = ClientService(ctx.obj["db"])
    summaries = service.summarize_clients()
    if not summaries:
        click.echo("No clients found.")
        return

    click.echo("\nClients:")
    click.echo("-" * 70)
    for s in summaries:
        click.echo(
            f"ID: {s.client.id:3d} | {s.client.name:25s} | Jobs: {s.job_count:3d} | Paid: {s.paid_revenue:>10.2f}"
        )


@click.group()
def job_group():
    """Manage jobs."""
    pass


@job_group.command("add")
@click.argument("title")
@click.option("--client", "client_name", help="Client name")
@click.option("--type", "job_type", help="Job type")
@click.option("--status", help="Job status")
@click.option("--priority", help="Priority")
@click.option("--value", help="Job value")
@click.option("--due", help="Due date")
@click.pass_context
def add_job(
    ctx,
    title: str,
    client_name: str | None,
    job_type: str | None,
    status: str | None,
    priority: str | None,
    value: str | None,
    due: str | None,
):
    """Add a job, optionally for a client."""
    service = ClientService(ctx.obj["db"])
    job_value = parse_amount_or_exit(ctx, value, "value")
    due_date = parse_date_or_exit(ctx, due, "due date")
    try:
        job_id = service.create_job(
            title=title,
            client_name=client_name,
            type=job_type,
            status=status,
            priority=priority,
            value=job_value if job_value is not None else 0,
            due_date=due_date,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    if job_id is None:
        click.echo("Error: Failed to save job", err=True)
        ctx.exit(1)
    click.echo(f"Created job '{title}' (ID: {job_id})")


@job_group.command("list")
@click.option("--client", "client_name", help="Only jobs of this client")
@click.pass_context
def list_jobs(ctx, client_name: str | None):
    """List jobs."""
    service = ClientService(ctx.obj["db"])
    try:
        jobs = service.list_jobs(client_name=client_name)
    except DomainError as e:
        handle_domain_error(ctx, e)
    if not jobs:
        click.echo("No jobs found.")
        return
    for job in jobs:
        due = job.due_date.isoformat() if job.due_date else "-"
        click.echo(f"ID: {job.id:3d} | {job.title:30s} | {job.status or '-':10s} | Due: {due}")


@click.group()
def contact_group():
    """Manage contacts."""
    pass


@contact_group.command("add")
@click.argument("name")
@click.option("--company", help="Company")
@click.option("--email", help="Email address")
@click.option("--phone", help="Phone number")
@click.option("--type", "contact_type", help="Contact type (e.g. supplier, lead)")
@click.option("--tags", help="Comma-separated tags")
@click.option("--notes", help="Notes")
@click.pass_context
def add_contact(
    ctx,
    name: str,
    company: str | None,
    email: str | None,
    phone: str | None,
    contact_type: str | None,
    tags: str | None,
    notes: str | None,
):
    """Add a contact."""
    service = ClientService(ctx.obj["db"])
    try:
        contact_id = service.create_contact(
            name=name, company=company, email=email, phone=phone, type=contact_type, tags=tags, notes=notes
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    if contact_id is None:
        click.echo("Error: Failed to save contact", err=True)
        ctx.exit(1)
    click.echo(f"Created contact '{name}' (ID: {contact_id})")


@contact_group.command("list")
@click.option("--tag", help="Only contacts with this tag")
@click.pass_context
def list_contacts(ctx, tag: str | None):
    """List contacts."""
    service = ClientService(ctx.obj["db"])
    contacts = service.list_contacts(tag=tag)
    if not contacts:
        click.echo("No contacts found.")
        return
    for c in contacts:
        tags = ", ".join(c.tags)
        click.echo(f"ID: {c.id:3d} | {c.name:25s} | {c.company or '-':20s} | {tags}")


def register_commands(cli):
    """Register client, job and contact commands with main CLI."""
    cli.add_command(client_group, name="client")
    cli.add_command(job_group, name="job")
    cli.add_command(contact_group, name="contact")
