"""Bank reconciliation: match scoring and match commit/removal."""

import logging
import re
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from backoffice.database.base import Database
from backoffice.domain.entities import (
    MATCH_TYPES,
    BankMatch,
    BankTransaction,
    Expense,
    Invoice,
    MatchCandidate,
)
from backoffice.domain.errors import (
    NotFoundError,
    ValidationError,
    cross_partition_match,
    not_found,
)
from backoffice.utils.money import CENT, ZERO, round2, to_money

log = logging.getLogger(__name__)

MIN_SCORE = 30
MAX_SUGGESTIONS = 5
SETTLED_INVOICE_STATUSES = ("Paid", "Draft")

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def _tokens(text: Optional[str]) -> set[str]:
    return {t for t in _TOKEN_SPLIT.split((text or "").lower()) if len(t) > 2}


def _within_days(first: Optional[date], second: Optional[date], days: int) -> bool:
    if first is None or second is None:
        return False
    return abs((first - second).days) <= days


def score_invoice(bank_row: BankTransaction, invoice: Invoice) -> int:
    """Additive score of an invoice against an incoming bank row."""
    score = 0
    bank_amount = to_money(bank_row.amount)
    invoice_amount = to_money(invoice.amount)
    description = (bank_row.description or "").lower()

    diff = abs(bank_amount - invoice_amount)
    if diff < CENT:
        score += 50
    elif invoice_amount != ZERO and diff <= abs(invoice_amount) * Decimal("0.05"):
        score += 20

    if invoice.id and invoice.id.lower() in description:
        score += 40
    if invoice.client_name and invoice.client_name.lower() in description:
        score += 20
    if _within_days(bank_row.date, invoice.due_date, 7):
        score += 10
    return score


def score_expense(bank_row: BankTransaction, expense: Expense) -> int:
    """Additive score of an expense against an outgoing bank row."""
    score = 0
    if abs(abs(to_money(bank_row.amount)) - to_money(expense.amount)) < CENT:
        score += 50

    description = (bank_row.description or "").lower()
    if expense.supplier and expense.supplier.lower() in description:
        score += 25

    shared = _tokens(bank_row.description) & _tokens(expense.description)
    score += 10 * len(shared)

    if _within_days(bank_row.date, expense.date, 3):
        score += 15
    return score


def _invoice_label(invoice: Invoice) -> str:
    return f"{invoice.id} {invoice.client_name}".strip()


def _expense_label(expense: Expense) -> str:
    return expense.description or expense.supplier or f"Expense {expense.id}"


def suggest_matches(
    bank_row: BankTransaction,
    invoices: Iterable[Invoice],
    expenses: Iterable[Expense],
) -> list[MatchCandidate]:
    """Rank the invoices or expenses a bank row most likely settles.

    Money in is only scored against invoices and money out only against
    expenses; a zero-amount row has no candidates. Paid or draft invoices and
    paid expenses are never proposed.

    Args:
        bank_row: Bank statement line
        invoices: Invoices to consider
        expenses: Expenses to consider

    Returns:
        Up to five candidates scoring at least 30, highest first. Equal scores
        keep their input order.
    """
    amount = to_money(bank_row.amount)
    candidates: list[MatchCandidate] = []

    if amount > ZERO:
        for invoice in invoices:
            if invoice.status in SETTLED_INVOICE_STATUSES:
                continue
            score = score_invoice(bank_row, invoice)
            if score >= MIN_SCORE:
                candidates.append(
                    MatchCandidate("invoice", invoice.id, score, invoice.amount, _invoice_label(invoice))
                )
    elif amount < ZERO:
        for expense in expenses:
            if expense.paid:
                continue
            score = score_expense(bank_row, expense)
            if score >= MIN_SCORE:
                candidates.append(
                    MatchCandidate("expense", expense.id, score, expense.amount, _expense_label(expense))
                )

    candidates.sort(key=lambda c: c.score, reverse=True)
    return candidates[:MAX_SUGGESTIONS]


class ReconciliationService:
    """Service for linking bank statement lines to invoices and expenses."""

    def __init__(self, db: Database):
        """Initialize reconciliation service.

        Args:
            db: Database instance
        """
        self.db = db

    def add_bank_transaction(
        self,
        txn_date: Optional[date],
        description: str,
        amount: Any,
        bank_name: Optional[str] = None,
        import_batch: Optional[str] = None,
    ) -> Optional[int]:
        """Record a bank statement line. Returns its ID, or None if the write failed."""
        return self.db.create_bank_transaction(
            date=txn_date,
            description=description or "",
            amount=round2(amount),
            bank_name=bank_name,
            import_batch=import_batch,
        )

    def list_transactions(self, reconciled: Optional[bool] = None) -> list[BankTransaction]:
        return self.db.list_bank_transactions(reconciled=reconciled)

    def list_matches(self, bank_transaction_id: Optional[int] = None) -> list[BankMatch]:
        return self.db.list_bank_matches(bank_transaction_id=bank_transaction_id)

    def _require_transaction(self, bank_transaction_id: int) -> BankTransaction:
        txn = self.db.get_bank_transaction(bank_transaction_id)
        if txn is None:
            raise NotFoundError(not_found("Bank transaction", bank_transaction_id))
        return txn

    def suggest_for(self, bank_transaction_id: int) -> list[MatchCandidate]:
        """Suggest matches for a stored bank transaction.

        Raises:
            NotFoundError: If the bank transaction doesn't exist
        """
        txn = self._require_transaction(bank_transaction_id)
        invoices: Sequence[Invoice] = ()
        expenses: Sequence[Expense] = ()
        if txn.amount > ZERO:
            invoices = self.db.list_invoices()
        elif txn.amount < ZERO:
            expenses = self.db.list_expenses(unpaid_only=True)
        return suggest_matches(txn, invoices, expenses)

    def create_bank_match(
        self,
        bank_transaction_id: int,
        match_type: str,
        target_id: Any,
        amount: Any = None,
        payment_date: Optional[date] = None,
    ) -> Optional[BankMatch]:
        """Link a bank transaction to an invoice or expense.

        The match row, the transaction's reconciled flag and (for expenses)
        the expense's paid flag and payment date are written together.

        Args:
            bank_transaction_id: Bank transaction ID
            match_type: 'invoice' or 'expense'
            target_id: Invoice ID or expense ID
            amount: Matched amount (defaults to the absolute bank amount)
            payment_date: Expense payment date (defaults to the bank date)

        Returns:
            The created BankMatch, or None if the store write failed

        Raises:
            ValidationError: If the match type is unknown or the bank amount's
                sign doesn't fit the target kind
            NotFoundError: If the bank transaction or target doesn't exist
        """
        if match_type not in MATCH_TYPES:
            raise ValidationError(
                f"Invalid match type '{match_type}'. Must be one of: {', '.join(MATCH_TYPES)}"
            )
        txn = self._require_transaction(bank_transaction_id)

        if match_type == "invoice":
            if txn.amount <= ZERO:
                raise ValidationError(cross_partition_match(match_type, txn.amount))
            target_id = str(target_id)
            if self.db.get_invoice(target_id) is None:
                raise NotFoundError(not_found("Invoice", target_id))
        else:
            if txn.amount >= ZERO:
                raise ValidationError(cross_partition_match(match_type, txn.amount))
            try:
                target_id = int(target_id)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid expense ID: {target_id}")
            if self.db.get_expense(target_id) is None:
                raise NotFoundError(not_found("Expense", target_id))

        matched = round2(amount) if amount is not None else abs(txn.amount)
        match = self.db.commit_bank_match(
            bank_transaction_id=bank_transaction_id,
            match_type=match_type,
            target_id=target_id,
            amount=matched,
            payment_date=payment_date or txn.date,
        )
        if match is None:
            log.error("Failed to match bank transaction %s to %s %s", bank_transaction_id, match_type, target_id)
        else:
            log.info("Matched bank transaction %s to %s %s", bank_transaction_id, match_type, target_id)
        return match

    def delete_bank_match(self, match_id: int, bank_transaction_id: int) -> bool:
        """Remove a match and clear the flags it justified.

        Returns:
            True if the match was removed, False if it doesn't belong to the
            bank transaction or the store write failed
        """
        match = self.db.get_bank_match(match_id)
        if match is None or match.bank_transaction_id != bank_transaction_id:
            log.warning("Bank match %s not found on bank transaction %s", match_id, bank_transaction_id)
            return False
        removed = self.db.remove_bank_match(match_id)
        if removed:
            log.info("Removed bank match %s from bank transaction %s", match_id, bank_transaction_id)
        return removed
