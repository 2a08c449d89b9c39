"""Client, contact and job domain service."""

from datetime import date
from typing import Any, Optional, Union

from backoffice.database.base import Database
from backoffice.domain.entities import Client, ClientSummary, Contact, Job
from backoffice.domain.errors import NotFoundError, ValidationError, not_found
from backoffice.utils.money import ZERO, round2, to_money


def parse_tags(tags: Union[str, list[str], tuple[str, ...], None]) -> list[str]:
    """Accept tags as a comma-separated string or a sequence."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    return [t.strip() for t in tags if t and t.strip()]


class ClientService:
    """Service for managing clients, their jobs and contacts."""

    def __init__(self, db: Database):
        """Initialize client service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_client(
        self,
        name: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Optional[int]:
        """Create a new client.

        Returns:
            Client ID, or None if the write failed

        Raises:
            ValidationError: If the name is empty or already taken
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Client name is required")
        if self.db.get_client_by_name(name) is not None:
            raise ValidationError(f"Client with name '{name}' already exists")
        return self.db.create_client(name=name, email=email, phone=phone, address=address)

    def get_client(self, client_id: int) -> Optional[Client]:
        return self.db.get_client(client_id)

    def list_clients(self) -> list[Client]:
        return self.db.list_clients()

    def resolve_client_id(self, name: Optional[str]) -> Optional[int]:
        """Return the ID of the named client, or None for an empty name.

        Raises:
            NotFoundError: If no client has that name
        """
        if not name:
            return None
        client = self.db.get_client_by_name(name)
        if client is None:
            raise NotFoundError(not_found("Client", f"'{name}'"))
        return client.id

    def summarize_clients(self) -> list[ClientSummary]:
        """Every client with its job count and total of paid invoices."""
        jobs = self.db.list_jobs()
        paid = self.db.list_invoices(status="Paid")
        summaries = []
        for client in self.db.list_clients():
            job_count = sum(1 for j in jobs if j.client_id == client.id)
            revenue = sum((to_money(inv.amount) for inv in paid if inv.client_id == client.id), ZERO)
            summaries.append(ClientSummary(client, job_count, revenue))
        return summaries

    def update_client(self, client_id: int, **fields: Any) -> bool:
        """Update client fields.

        Raises:
            NotFoundError: If client not found
            ValidationError: If the new name is taken by another client
        """
        if self.db.get_client(client_id) is None:
            raise NotFoundError(not_found("Client", client_id))
        if "name" in fields:
            other = self.db.get_client_by_name(fields["name"])
            if other is not None and other.id != client_id:
                raise ValidationError(f"Client with name '{fields['name']}' already exists")
        return self.db.update_client(client_id, **fields)

    def delete_client(self, client_id: int) -> bool:
        if self.db.get_client(client_id) is None:
            raise NotFoundError(not_found("Client", client_id))
        return self.db.delete_client(client_id)

    # Jobs
    def create_job(
        self,
        title: str,
        client_name: Optional[str] = None,
        type: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        value: Any = ZERO,
        due_date: Optional[date] = None,
        internal_note: Optional[str] = None,
    ) -> Optional[int]:
        """Create a job, resolving its client by name.

        Raises:
            ValidationError: If the title is empty
            NotFoundError: If the named client doesn't exist
        """
        if not (title or "").strip():
            raise ValidationError("Job title is required")
        return self.db.create_job(
            title=title.strip(),
            client_id=self.resolve_client_id(client_name),
            type=type,
            status=status,
            priority=priority,
            value=round2(value),
            due_date=due_date,
            internal_note=internal_note,
        )

    def resolve_job_id(self, title: Optional[str]) -> Optional[int]:
        if not title:
            return None
        job = self.db.get_job_by_title(title)
        if job is None:
            raise NotFoundError(not_found("Job", f"'{title}'"))
        return job.id

    def list_jobs(self, client_name: Optional[str] = None) -> list[Job]:
        return self.db.list_jobs(client_id=self.resolve_client_id(client_name))

    def update_job(self, job_id: int, **fields: Any) -> bool:
        if self.db.get_job(job_id) is None:
            raise NotFoundError(not_found("Job", job_id))
        if "client_name" in fields:
            fields["client_id"] = self.resolve_client_id(fields.pop("client_name"))
        if "value" in fields:
            fields["value"] = round2(fields["value"])
        return self.db.update_job(job_id, **fields)

    def delete_job(self, job_id: int) -> bool:
        if self.db.get_job(job_id) is None:
            raise NotFoundError(not_found("Job", job_id))
        return self.db.delete_job(job_id)

    # Contacts
    def create_contact(
        self,
        name: str,
        company: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        type: Optional[str] = None,
        tags: Union[str, list[str], None] = None,
        notes: Optional[str] = None,
    ) -> Optional[int]:
        if not (name or "").strip():
            raise ValidationError("Contact name is required")
        return self.db.create_contact(
            name=name.strip(),
            company=company,
            email=email,
            phone=phone,
            type=type,
            tags=parse_tags(tags),
            notes=notes,
        )

    def list_contacts(self, tag: Optional[str] = None) -> list[Contact]:
        """List contacts, optionally only those carrying a tag."""
        contacts = self.db.list_contacts()
        if tag is None:
            return contacts
        return [c for c in contacts if tag in c.tags]

    def update_contact(self, contact_id: int, **fields: Any) -> bool:
        if self.db.get_contact(contact_id) is None:
            raise NotFoundError(not_found("Contact", contact_id))
        if "tags" in fields:
            fields["tags"] = parse_tags(fields["tags"])
        return self.db.update_contact(contact_id, **fields)

    def delete_contact(self, contact_id: int) -> bool:
        if self.db.get_contact(contact_id) is None:
            raise NotFoundError(not_found("Contact", contact_id))
        return self.db.delete_contact(contact_id)
