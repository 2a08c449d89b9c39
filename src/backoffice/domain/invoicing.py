"""Quotes, invoices, line items and recurring invoice templates."""

import logging
from datetime import date
from typing import Any, Iterable, Optional

from dateutil.relativedelta import relativedelta

from backoffice.database.base import Database
from backoffice.domain.clients import ClientService
from backoffice.domain.entities import (
    INVOICE_STATUSES,
    Invoice,
    LineItem,
    Quote,
    RecurringTemplate,
)
from backoffice.domain.errors import NotFoundError, StoreError, ValidationError, not_found, store_write_failed
from backoffice.utils.money import ZERO, round2, to_money

log = logging.getLogger(__name__)

INVOICE_SEQUENCE = ("invoice", "SHMAKE")
QUOTE_SEQUENCE = ("quote", "Q")
LINE_ITEM_KINDS = ("quote", "invoice")
FREQUENCIES = {
    "weekly": relativedelta(weeks=1),
    "fortnightly": relativedelta(weeks=2),
    "monthly": relativedelta(months=1),
    "quarterly": relativedelta(months=3),
    "yearly": relativedelta(years=1),
}


def build_line_items(items: Iterable[dict[str, Any]]) -> list[LineItem]:
    """Build line items from dicts, computing ``total = quantity * unit_price``."""
    result = []
    for item in items:
        description = (item.get("description") or "").strip()
        if not description:
            raise ValidationError("Line item description is required")
        quantity = to_money(item.get("quantity", 1))
        unit_price = to_money(item.get("unit_price"))
        result.append(
            LineItem(
                description=description,
                type=item.get("type"),
                quantity=quantity,
                unit_price=round2(unit_price),
                total=round2(quantity * unit_price),
            )
        )
    return result


class InvoicingService:
    """Service for quotes, invoices and recurring templates."""

    def __init__(self, db: Database):
        """Initialize invoicing service.

        Args:
            db: Database instance
        """
        self.db = db
        self.clients = ClientService(db)

    def _next_id(self, sequence: tuple[str, str]) -> str:
        number = self.db.next_document_number(*sequence)
        if number is None:
            raise StoreError(store_write_failed(f"reserve {sequence[0]} number"))
        return number

    # Quotes
    def create_quote(
        self,
        client_name: Optional[str] = None,
        job_title: Optional[str] = None,
        amount: Any = None,
        gst: Any = ZERO,
        status: Optional[str] = "Draft",
        quote_date: Optional[date] = None,
        expiry_date: Optional[date] = None,
        line_items: Optional[list[dict[str, Any]]] = None,
        quote_id: Optional[str] = None,
        external_note: Optional[str] = None,
        internal_note: Optional[str] = None,
    ) -> Optional[str]:
        """Create a quote. Without an explicit ID the next ``Q-NNNN`` number is used.

        When ``amount`` is omitted it is the sum of the line item totals.

        Returns:
            Quote ID, or None if the write failed
        """
        items = build_line_items(line_items or [])
        client_id = self.clients.resolve_client_id(client_name)
        job_id = self.clients.resolve_job_id(job_title)
        if amount is None:
            amount = sum((i.total for i in items), ZERO)

        quote_id = quote_id or self._next_id(QUOTE_SEQUENCE)
        created = self.db.create_quote(
            quote_id=quote_id,
            client_id=client_id,
            job_id=job_id,
            amount=round2(amount),
            gst=round2(gst),
            status=status,
            date=quote_date or date.today(),
            expiry_date=expiry_date,
            external_note=external_note,
            internal_note=internal_note,
        )
        if created is not None and items:
            self.db.replace_line_items("quote", created, items)
        return created

    def get_quote(self, quote_id: str) -> Optional[Quote]:
        return self.db.get_quote(quote_id)

    def list_quotes(self) -> list[Quote]:
        return self.db.list_quotes()

    def revise_quote(self, quote_id: str, **fields: Any) -> bool:
        """Update a quote and bump its version."""
        quote = self.db.get_quote(quote_id)
        if quote is None:
            raise NotFoundError(not_found("Quote", quote_id))
        for key in ("amount", "gst"):
            if key in fields:
                fields[key] = round2(fields[key])
        return self.db.update_quote(quote_id, version=quote.version + 1, **fields)

    def delete_quote(self, quote_id: str) -> bool:
        if self.db.get_quote(quote_id) is None:
            raise NotFoundError(not_found("Quote", quote_id))
        return self.db.delete_quote(quote_id)

    def convert_quote(self, quote_id: str, due_date: Optional[date] = None) -> Optional[str]:
        """Create a draft invoice from a quote, copying its line items."""
        quote = self.db.get_quote(quote_id)
        if quote is None:
            raise NotFoundError(not_found("Quote", quote_id))
        invoice_id = self._create_invoice(
            client_id=quote.client_id,
            amount=quote.amount,
            gst=quote.gst,
            status="Draft",
            invoice_date=date.today(),
            due_date=due_date,
            linked_quote_id=quote.id,
            external_note=quote.external_note,
        )
        if invoice_id is not None:
            items = self.db.get_line_items("quote", quote_id)
            if items:
                self.db.replace_line_items("invoice", invoice_id, items)
            self.db.update_quote(quote_id, status="Accepted")
        return invoice_id

    # Invoices
    def _create_invoice(self, invoice_id: Optional[str] = None, **fields: Any) -> Optional[str]:
        status = fields.get("status")
        if status is not None and status not in INVOICE_STATUSES:
            raise ValidationError(
                f"Invalid invoice status '{status}'. Must be one of: {', '.join(INVOICE_STATUSES)}"
            )
        invoice_date = fields.pop("invoice_date", None)
        return self.db.create_invoice(
            invoice_id=invoice_id or self._next_id(INVOICE_SEQUENCE),
            date=invoice_date or date.today(),
            **fields,
        )

    def create_invoice(
        self,
        client_name: Optional[str] = None,
        amount: Any = None,
        gst: Any = ZERO,
        status: str = "Draft",
        invoice_date: Optional[date] = None,
        due_date: Optional[date] = None,
        line_items: Optional[list[dict[str, Any]]] = None,
        invoice_id: Optional[str] = None,
        external_note: Optional[str] = None,
        internal_note: Optional[str] = None,
    ) -> Optional[str]:
        """Create an invoice. Without an explicit ID the next ``SHMAKE-NNNN`` number is used.

        Returns:
            Invoice ID, or None if the write failed

        Raises:
            ValidationError: If the status is invalid
            NotFoundError: If the named client doesn't exist
        """
        items = build_line_items(line_items or [])
        if amount is None:
            amount = sum((i.total for i in items), ZERO)
        created = self._create_invoice(
            invoice_id=invoice_id,
            client_id=self.clients.resolve_client_id(client_name),
            amount=round2(amount),
            gst=round2(gst),
            status=status,
            invoice_date=invoice_date,
            due_date=due_date,
            external_note=external_note,
            internal_note=internal_note,
        )
        if created is not None and items:
            self.db.replace_line_items("invoice", created, items)
        return created

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        return self.db.get_invoice(invoice_id)

    def list_invoices(self, status: Optional[str] = None) -> list[Invoice]:
        return self.db.list_invoices(status=status)

    def set_invoice_status(self, invoice_id: str, status: str) -> bool:
        if status not in INVOICE_STATUSES:
            raise ValidationError(
                f"Invalid invoice status '{status}'. Must be one of: {', '.join(INVOICE_STATUSES)}"
            )
        if self.db.get_invoice(invoice_id) is None:
            raise NotFoundError(not_found("Invoice", invoice_id))
        return self.db.update_invoice(invoice_id, status=status)

    def delete_invoice(self, invoice_id: str) -> bool:
        if self.db.get_invoice(invoice_id) is None:
            raise NotFoundError(not_found("Invoice", invoice_id))
        return self.db.delete_invoice(invoice_id)

    # Line items
    def get_line_items(self, kind: str, parent_id: str) -> list[LineItem]:
        if kind not in LINE_ITEM_KINDS:
            raise ValidationError(f"Invalid line item kind '{kind}'")
        return self.db.get_line_items(kind, parent_id)

    def save_line_items(self, kind: str, parent_id: str, items: list[dict[str, Any]]) -> bool:
        if kind not in LINE_ITEM_KINDS:
            raise ValidationError(f"Invalid line item kind '{kind}'")
        return self.db.replace_line_items(kind, parent_id, build_line_items(items))

    # Recurring templates
    def create_template(
        self,
        description: str,
        amount: Any,
        client_name: Optional[str] = None,
        gst: Any = ZERO,
        frequency: str = "monthly",
        next_date: Optional[date] = None,
    ) -> Optional[int]:
        if frequency not in FREQUENCIES:
            raise ValidationError(
                f"Invalid frequency '{frequency}'. Must be one of: {', '.join(FREQUENCIES)}"
            )
        return self.db.create_recurring_template(
            description=description,
            amount=round2(amount),
            client_id=self.clients.resolve_client_id(client_name),
            gst=round2(gst),
            frequency=frequency,
            next_date=next_date,
        )

    def list_templates(self) -> list[RecurringTemplate]:
        return self.db.list_recurring_templates()

    def generate_due_invoices(self, today: Optional[date] = None) -> list[str]:
        """Create draft invoices for active templates whose next date has arrived.

        Each generated invoice advances the template's next date by its
        frequency and increments its generated count.

        Returns:
            IDs of the invoices created
        """
        today = today or date.today()
        created = []
        for template in self.db.list_recurring_templates():
            if template.status != "active" or template.next_date is None or template.next_date > today:
                continue
            step = FREQUENCIES.get(template.frequency or "")
            if step is None:
                log.warning("Recurring template %s has unknown frequency '%s'", template.id, template.frequency)
                continue
            invoice_id = self._create_invoice(
                client_id=template.client_id,
                amount=template.amount,
                gst=template.gst,
                status="Draft",
                invoice_date=template.next_date,
                recurring_template_id=template.id,
                external_note=template.description,
            )
            if invoice_id is None:
                log.error("Failed to generate invoice for recurring template %s", template.id)
                continue
            self.db.update_recurring_template(
                template.id,
                next_date=template.next_date + step,
                generated_count=template.generated_count + 1,
            )
            created.append(invoice_id)
        return created
