"""
CSV Parser for bank statement exports

Handles the common Brazilian export layout (Data;Descrição;Valor;Saldo,
comma or semicolon separated) as well as English headers.
"""
import csv
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..logging_setup import get_logger
from .models import RawRecord, parse_amount

logger = get_logger(__name__)

DATE_COLUMNS = ('Data', 'Date')
DESCRIPTION_COLUMNS = ('Descrição', 'Descricao', 'Description', 'Histórico', 'Historico')
AMOUNT_COLUMNS = ('Valor', 'Amount')
BALANCE_COLUMNS = ('Saldo', 'Balance')


class StatementParser:
    """Parser for bank statement CSV exports"""

    DATE_FORMATS = [
        '%d/%m/%Y',      # 30/01/2025
        '%d/%m/%y',      # 30/01/25
        '%Y-%m-%d',      # 2025-01-30
        '%d-%m-%Y',      # 30-01-2025
    ]

    def parse_date(self, date_str: str) -> str:
        """Parse date string to YYYY-MM-DD format"""
        date_str = (date_str or '').strip()
        if not date_str:
            raise ValueError("Empty date")

        for fmt in self.DATE_FORMATS:
            try:
                return datetime.strptime(date_str, fmt).strftime('%Y-%m-%d')
            except ValueError:
                continue

        raise ValueError(f"Could not parse date: {date_str}")

    def parse(self, csv_path: Union[str, Path], account_ref: Optional[str] = None) -> List[RawRecord]:
        """
        Parse a statement CSV

        Args:
            csv_path: Path to CSV file
            account_ref: Account identifier stamped on every record

        Returns:
            RawRecords in file order (blank lines skipped)

        Raises:
            ValueError: a required column is missing or a date is malformed
        """
        records = []

        with open(csv_path, 'r', encoding='utf-8-sig', newline='') as f:
            sample = f.readline()
            f.seek(0)
            delimiter = ';' if sample.count(';') > sample.count(',') else ','
            reader = csv.DictReader(f, delimiter=delimiter)

            headers = [h.strip() for h in (reader.fieldnames or [])]
            date_col = _find_column(headers, DATE_COLUMNS)
            desc_col = _find_column(headers, DESCRIPTION_COLUMNS)
            amount_col = _find_column(headers, AMOUNT_COLUMNS)
            balance_col = _find_column(headers, BALANCE_COLUMNS, required=False)

            for line_no, row in enumerate(reader, start=2):
                # Fields past the header (trailing delimiters) land under None
                row = {k.strip(): (v or '').strip() for k, v in row.items() if k is not None}
                if not any(row.values()):
                    continue

                try:
                    txn_date = self.parse_date(row[date_col])
                except ValueError as e:
                    raise ValueError(f"{csv_path}:{line_no}: {e}") from e

                balance = row.get(balance_col) if balance_col else None
                records.append(RawRecord(
                    date=txn_date,
                    description=row[desc_col],
                    amount=parse_amount(row[amount_col]),
                    balance=parse_amount(balance) if balance else None,
                    account_ref=account_ref,
                ))

        logger.info("Parsed %d records from %s", len(records), csv_path)
        return records


def _find_column(headers: List[str], candidates, required: bool = True) -> Optional[str]:
    lowered: Dict[str, str] = {h.lower(): h for h in headers}
    for name in candidates:
        if name.lower() in lowered:
            return lowered[name.lower()]
    if required:
        raise ValueError(f"Missing column: one of {', '.join(candidates)} (found: {', '.join(headers)})")
    return None


def parse_statement_csv(csv_path: Union[str, Path], account_ref: Optional[str] = None) -> List[RawRecord]:
    """Parse a statement CSV into RawRecords"""
    return StatementParser().parse(csv_path, account_ref)
