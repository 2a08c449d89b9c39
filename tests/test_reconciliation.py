"""Tests for bank reconciliation scoring and matching."""

import random
from datetime import date, timedelta
from decimal import Decimal

import pytest

from backoffice.domain.entities import BankTransaction, Expense, Invoice
from backoffice.domain.errors import NotFoundError, ValidationError
from backoffice.domain.reconciliation import score_expense, score_invoice, suggest_matches


def _bank(amount, description="", day=date(2026, 5, 18)):
    return BankTransaction(
        id=1,
        date=day,
        description=description,
        amount=Decimal(amount),
        bank_name="Kiwibank",
        import_batch=None,
        reconciled=False,
    )


def _invoice(invoice_id, amount, client_name="", status="Sent", due_date=None):
    return Invoice(
        id=invoice_id,
        client_id=None,
        amount=Decimal(amount),
        gst=Decimal("0"),
        status=status,
        date=date(2026, 5, 1),
        due_date=due_date,
        recurring_template_id=None,
        linked_quote_id=None,
        external_note=None,
        internal_note=None,
        client_name=client_name,
    )


def _expense(expense_id, amount, description=None, supplier=None, day=None, paid=False):
    return Expense(
        id=expense_id,
        date=day,
        description=description,
        amount=Decimal(amount),
        gst=Decimal("0"),
        category="Other",
        job_id=None,
        supplier=supplier,
        has_receipt=False,
        auto_imported=False,
        apportioned=False,
        full_amount=Decimal(amount),
        business_percent=Decimal("100"),
        paid=paid,
        payment_date=None,
    )


class TestScoring:
    def test_invoice_full_score(self):
        invoice = _invoice("SHMAKE-0001", "1150.00", client_name="Acme Ltd", due_date=date(2026, 5, 20))
        bank = _bank("1150.00", "ACME LTD SHMAKE-0001")
        assert score_invoice(bank, invoice) == 50 + 40 + 20 + 10

    def test_invoice_amount_within_five_percent(self):
        assert score_invoice(_bank("96.00"), _invoice("INV-1", "100.00")) == 20
        assert score_invoice(_bank("94.99"), _invoice("INV-1", "100.00")) == 0

    def test_invoice_amount_within_one_cent_is_exact(self):
        assert score_invoice(_bank("100.004"), _invoice("INV-1", "100.00")) == 50

    def test_invoice_due_date_outside_window(self):
        invoice = _invoice("INV-1", "1.00", due_date=date(2026, 5, 10))
        assert score_invoice(_bank("500.00", day=date(2026, 5, 18)), invoice) == 0

    def test_expense_amount_supplier_tokens_and_date(self):
        expense = _expense(
            7, "89.99", description="Adobe Creative Cloud", supplier="Adobe", day=date(2026, 5, 16)
        )
        bank = _bank("-89.99", "ADOBE CREATIVE CLOUD")
        # 50 amount + 25 supplier + 3 shared words + 15 date
        assert score_expense(bank, expense) == 50 + 25 + 30 + 15

    def test_expense_short_tokens_ignored(self):
        expense = _expense(7, "1.00", description="to a NZ shop")
        assert score_expense(_bank("-50.00", "to a NZ shop"), expense) == 10


class TestSuggestMatches:
    def test_incoming_only_scores_invoices(self):
        invoice = _invoice("INV-1", "100.00")
        expense = _expense(1, "100.00")
        result = suggest_matches(_bank("100.00"), [invoice], [expense])
        assert [(c.match_type, c.target_id) for c in result] == [("invoice", "INV-1")]

    def test_outgoing_only_scores_expenses(self):
        invoice = _invoice("INV-1", "100.00")
        expense = _expense(1, "100.00")
        result = suggest_matches(_bank("-100.00"), [invoice], [expense])
        assert [(c.match_type, c.target_id) for c in result] == [("expense", 1)]

    def test_zero_amount_has_no_candidates(self):
        assert suggest_matches(_bank("0"), [_invoice("INV-1", "0")], [_expense(1, "0")]) == []

    def test_settled_invoices_and_paid_expenses_excluded(self):
        invoices = [_invoice("PAID", "100.00", status="Paid"), _invoice("DRAFT", "100.00", status="Draft")]
        assert suggest_matches(_bank("100.00"), invoices, []) == []
        assert suggest_matches(_bank("-100.00"), [], [_expense(1, "100.00", paid=True)]) == []

    def test_below_threshold_dropped(self):
        # 20 points for a near amount is under the threshold
        assert suggest_matches(_bank("97.00"), [_invoice("INV-1", "100.00")], []) == []

    def test_at_most_five_sorted_by_score_stable(self):
        invoices = [_invoice(f"INV-{i}", "100.00") for i in range(7)]
        invoices.append(_invoice("BEST", "100.00", client_name="Acme"))
        result = suggest_matches(_bank("100.00", "acme payment"), invoices, [])

        assert len(result) == 5
        assert result[0].target_id == "BEST"
        assert result[0].score == 70
        assert [c.target_id for c in result[1:]] == ["INV-0", "INV-1", "INV-2", "INV-3"]

    def test_labels(self):
        inv = suggest_matches(_bank("100.00"), [_invoice("INV-1", "100.00", client_name="Acme")], [])
        assert inv[0].label == "INV-1 Acme"
        exp = suggest_matches(_bank("-5.00"), [], [_expense(3, "5.00", supplier="Z Energy")])
        assert exp[0].label == "Z Energy"
        exp = suggest_matches(_bank("-5.00"), [], [_expense(4, "5.00")])
        assert exp[0].label == "Expense 4"


class TestReconciliationService:
    def test_suggest_for_stored_transaction(self, reconciliation_service, sample_invoice):
        txn_id = reconciliation_service.add_bank_transaction(
            date(2026, 5, 18), f"ACME LTD {sample_invoice.id}", Decimal("1150.00")
        )
        candidates = reconciliation_service.suggest_for(txn_id)
        assert candidates[0].target_id == sample_invoice.id
        assert candidates[0].score == 120
        assert candidates[0].label == f"{sample_invoice.id} Acme Ltd"

    def test_suggest_for_missing_transaction(self, reconciliation_service):
        with pytest.raises(NotFoundError):
            reconciliation_service.suggest_for(999)

    def test_match_expense_marks_paid_and_reconciled(self, temp_db, reconciliation_service, sample_expense):
        txn_id = reconciliation_service.add_bank_transaction(
            date(2026, 5, 11), "ADOBE CREATIVE CLOUD", Decimal("-89.99")
        )

        match = reconciliation_service.create_bank_match(txn_id, "expense", str(sample_expense.id))

        assert match is not None
        assert match.expense_id == sample_expense.id
        assert match.invoice_id is None
        assert match.amount == Decimal("89.99")
        assert temp_db.get_bank_transaction(txn_id).reconciled is True
        expense = temp_db.get_expense(sample_expense.id)
        assert expense.paid is True
        assert expense.payment_date == date(2026, 5, 11)

    def test_match_invoice_leaves_status(self, temp_db, reconciliation_service, sample_invoice):
        txn_id = reconciliation_service.add_bank_transaction(date(2026, 5, 18), "ACME", Decimal("1150.00"))

        match = reconciliation_service.create_bank_match(
            txn_id, "invoice", sample_invoice.id, amount=Decimal("1000")
        )

        assert match.invoice_id == sample_invoice.id
        assert match.amount == Decimal("1000.00")
        assert temp_db.get_bank_transaction(txn_id).reconciled is True
        assert temp_db.get_invoice(sample_invoice.id).status == "Sent"

    def test_cross_partition_rejected(self, temp_db, reconciliation_service, sample_invoice, sample_expense):
        incoming = reconciliation_service.add_bank_transaction(date(2026, 5, 18), "IN", Decimal("89.99"))
        outgoing = reconciliation_service.add_bank_transaction(date(2026, 5, 18), "OUT", Decimal("-1150.00"))

        with pytest.raises(ValidationError):
            reconciliation_service.create_bank_match(incoming, "expense", sample_expense.id)
        with pytest.raises(ValidationError):
            reconciliation_service.create_bank_match(outgoing, "invoice", sample_invoice.id)

        assert temp_db.list_bank_matches() == []
        assert temp_db.get_expense(sample_expense.id).paid is False

    def test_invalid_type_and_missing_target(self, reconciliation_service):
        txn_id = reconciliation_service.add_bank_transaction(date(2026, 5, 18), "IN", Decimal("10"))
        with pytest.raises(ValidationError):
            reconciliation_service.create_bank_match(txn_id, "refund", "X")
        with pytest.raises(NotFoundError):
            reconciliation_service.create_bank_match(txn_id, "invoice", "SHMAKE-9999")
        with pytest.raises(NotFoundError):
            reconciliation_service.create_bank_match(12345, "invoice", "SHMAKE-9999")

    def test_delete_match_restores_flags(self, temp_db, reconciliation_service, sample_expense):
        txn_id = reconciliation_service.add_bank_transaction(date(2026, 5, 11), "ADOBE", Decimal("-89.99"))
        match = reconciliation_service.create_bank_match(txn_id, "expense", sample_expense.id)

        assert reconciliation_service.delete_bank_match(match.id, txn_id) is True

        assert temp_db.list_bank_matches(txn_id) == []
        assert temp_db.get_bank_transaction(txn_id).reconciled is False
        expense = temp_db.get_expense(sample_expense.id)
        assert expense.paid is False
        assert expense.payment_date is None

    def test_delete_one_of_two_matches_keeps_reconciled(self, temp_db, reconciliation_service):
        invoice_ids = []
        for amount in ("400.00", "600.00"):
            invoice_ids.append(
                temp_db.create_invoice(invoice_id=f"INV-{amount}", amount=Decimal(amount), status="Sent")
            )
        txn_id = reconciliation_service.add_bank_transaction(date(2026, 5, 18), "ACME", Decimal("1000.00"))
        first = reconciliation_service.create_bank_match(txn_id, "invoice", invoice_ids[0], amount="400")
        reconciliation_service.create_bank_match(txn_id, "invoice", invoice_ids[1], amount="600")

        assert reconciliation_service.delete_bank_match(first.id, txn_id) is True
        assert temp_db.get_bank_transaction(txn_id).reconciled is True
        assert len(temp_db.list_bank_matches(txn_id)) == 1

    def test_delete_match_wrong_transaction(self, reconciliation_service, sample_expense):
        txn_id = reconciliation_service.add_bank_transaction(date(2026, 5, 11), "ADOBE", Decimal("-89.99"))
        match = reconciliation_service.create_bank_match(txn_id, "expense", sample_expense.id)

        assert reconciliation_service.delete_bank_match(match.id, txn_id + 1) is False
        assert reconciliation_service.delete_bank_match(9999, txn_id) is False
        assert len(reconciliation_service.list_matches(txn_id)) == 1


class TestSuggestMatchesRandomized:
    """Partition and score floor over seeded random statements and ledgers."""

    AMOUNTS = ["0.00", "5.00", "89.99", "96.00", "100.00", "1150.00"]
    WORDS = ["acme", "adobe", "creative", "cloud", "countdown", "shmake", "power", "rent"]

    @pytest.mark.parametrize("seed", range(25))
    def test_partition_and_score_floor(self, seed):
        rng = random.Random(seed)
        base = date(2026, 5, 10)

        def text():
            return " ".join(rng.sample(self.WORDS, rng.randint(0, 3)))

        def day():
            return rng.choice([None, base + timedelta(days=rng.randint(-10, 10))])

        invoices = [
            _invoice(
                f"INV-{i}",
                rng.choice(self.AMOUNTS),
                client_name=rng.choice(["", "Acme", "Adobe"]),
                status=rng.choice(["Sent", "Overdue", "Paid", "Draft"]),
                due_date=day(),
            )
            for i in range(rng.randint(0, 8))
        ]
        expenses = [
            _expense(
                i,
                rng.choice(self.AMOUNTS),
                description=text() or None,
                supplier=rng.choice([None, "Adobe", "Countdown"]),
                day=day(),
                paid=rng.random() < 0.3,
            )
            for i in range(rng.randint(0, 8))
        ]
        by_invoice = {inv.id: inv for inv in invoices}
        by_expense = {exp.id: exp for exp in expenses}

        for _ in range(10):
            sign = rng.choice(["", "-"])
            bank = _bank(sign + rng.choice(self.AMOUNTS), text().upper(), day=day())

            result = suggest_matches(bank, invoices, expenses)

            assert len(result) <= 5
            assert [c.score for c in result] == sorted((c.score for c in result), reverse=True)
            for candidate in result:
                assert candidate.score >= 30
                if candidate.match_type == "invoice":
                    assert bank.amount > 0
                    invoice = by_invoice[candidate.target_id]
                    assert invoice.status not in ("Paid", "Draft")
                    assert candidate.score == score_invoice(bank, invoice)
                else:
                    assert bank.amount < 0
                    expense = by_expense[candidate.target_id]
                    assert expense.paid is False
                    assert candidate.score == score_expense(bank, expense)
