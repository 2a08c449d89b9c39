"""Bank statement CSV import."""

import csv
from datetime import date
from pathlib import Path
from typing import Any, Optional

from backoffice.database.base import Database
from backoffice.domain.reconciliation import ReconciliationService
from backoffice.utils.amount_parser import parse_amount
from backoffice.utils.date_parser import parse_date

REQUIRED_COLUMNS = ("date", "description", "amount")


class BankStatementImportService:
    """Service for importing bank statement lines to reconcile."""

    def __init__(self, db: Database):
        """Initialize bank statement import service.

        Args:
            db: Database instance
        """
        self.db = db
        self.reconciliation = ReconciliationService(db)

    def import_csv(
        self,
        csv_file_path: str,
        bank_name: Optional[str] = None,
        import_batch: Optional[str] = None,
    ) -> dict[str, Any]:
        """Import bank transactions from a CSV with date, description and amount columns.

        Column names are matched case-insensitively. Rows already present
        (same date, description and amount) are skipped.

        Args:
            csv_file_path: Path to CSV file
            bank_name: Bank the statement comes from
            import_batch: Batch label; defaults to the file name

        Returns:
            Dict with import statistics:
            - imported: number of transactions imported
            - skipped: number of transactions skipped (duplicates)
            - errors: list of error messages

        Raises:
            ValueError: If required columns are missing
            FileNotFoundError: If CSV file doesn't exist
        """
        csv_path = Path(csv_file_path)
        if not csv_path.exists():
            raise FileNotFoundError(f"CSV file not found: {csv_file_path}")
        batch = import_batch or csv_path.name

        existing = {
            (t.date, t.description, t.amount) for t in self.db.list_bank_transactions()
        }

        imported = 0
        skipped = 0
        errors = []

        with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
            # Try to detect delimiter
            sample = f.read(1024)
            f.seek(0)
            try:
                delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t").delimiter
            except csv.Error:
                delimiter = ","

            reader = csv.DictReader(f, delimiter=delimiter)
            if reader.fieldnames is None:
                raise ValueError("CSV file has no columns")

            columns = {name.strip().lower(): name for name in reader.fieldnames if name}
            missing = [c for c in REQUIRED_COLUMNS if c not in columns]
            if missing:
                raise ValueError(f"CSV file missing required columns: {', '.join(missing)}")

            for row_num, row in enumerate(reader, start=2):  # Start at 2 (header is row 1)
                date_str = (row.get(columns["date"]) or "").strip()
                amount_str = (row.get(columns["amount"]) or "").strip()
                description = (row.get(columns["description"]) or "").strip()
                if not date_str:
                    errors.append(f"Row {row_num}: Missing date")
                    continue
                if not amount_str:
                    errors.append(f"Row {row_num}: Missing amount")
                    continue

                try:
                    txn_date: date = parse_date(date_str)
                    amount = parse_amount(amount_str)
                except ValueError as e:
                    errors.append(f"Row {row_num}: {e}")
                    continue

                if (txn_date, description, amount) in existing:
                    skipped += 1
                    continue

                txn_id = self.reconciliation.add_bank_transaction(
                    txn_date, description, amount, bank_name=bank_name, import_batch=batch
                )
                if txn_id is None:
                    errors.append(f"Row {row_num}: failed to store transaction")
                    continue
                existing.add((txn_date, description, amount))
                imported += 1

        return {"imported": imported, "skipped": skipped, "errors": errors}
