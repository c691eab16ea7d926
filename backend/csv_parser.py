from __future__ import annotations

import csv
import io
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable

from pydantic import BaseModel

from backend.models import OTHER_CATEGORY, Expense, new_record_id

EXPORT_HEADERS = ["Date", "Description", "Category", "Amount", "Currency"]
CSV_MEDIA_TYPE = "text/csv"
MIN_FIELDS = 4


class RowIssue(BaseModel):
    line_number: int
    reason: str
    raw: str


class CSVParseResult(BaseModel):
    rows: list[Expense]
    issues: list[RowIssue] = []

    @property
    def imported_count(self) -> int:
        return len(self.rows)

    def summary_message(self) -> str:
        if self.rows:
            return f"Successfully imported {self.imported_count} transactions."
        return "No valid transactions found in file."


def export_transactions_csv(
    expenses: Iterable[Expense],
    default_currency: str,
    include_currency: bool = True,
) -> str:
    headers = EXPORT_HEADERS if include_currency else EXPORT_HEADERS[:-1]
    lines = [",".join(headers)]
    for expense in expenses:
        fields = [
            expense.date,
            quote_field(expense.description),
            expense.category,
            format_amount(expense.amount),
        ]
        if include_currency:
            fields.append(expense.currency_or(default_currency))
        lines.append(",".join(fields))
    return "\n".join(lines)


def export_filename(today: date) -> str:
    return f"transactions_{today.isoformat()}.csv"


def parse_transactions_csv(
    contents: str,
    default_currency: str,
    id_factory: Callable[[], str] = new_record_id,
) -> CSVParseResult:
    """Parse exported-style rows; bad rows are skipped and reported as issues.

    Records are read with the csv module over the whole text, so a quoted
    description may span several physical lines.
    """
    reader = csv.reader(io.StringIO(contents, newline=""), skipinitialspace=True)

    rows: list[Expense] = []
    issues: list[RowIssue] = []
    first_record = True
    while True:
        line_number = reader.line_num + 1
        try:
            fields = next(reader)
        except StopIteration:
            break
        except csv.Error as exc:
            issues.append(
                RowIssue(line_number=line_number, reason=f"Malformed row: {exc}", raw="")
            )
            break

        raw = ",".join(fields).strip()
        if first_record:
            first_record = False
            if "date" in raw.lower():
                continue
        if not raw:
            continue
        try:
            expense = parse_row(fields, default_currency, id_factory)
        except ValueError as exc:
            issues.append(RowIssue(line_number=line_number, reason=str(exc), raw=raw))
            continue
        rows.append(expense)

    return CSVParseResult(rows=rows, issues=issues)


def parse_row(
    fields: list[str],
    default_currency: str,
    id_factory: Callable[[], str] = new_record_id,
) -> Expense:
    if len(fields) < MIN_FIELDS:
        raise ValueError(f"Expected at least {MIN_FIELDS} fields, found {len(fields)}.")

    date_value = clean_text(fields[0])
    if not date_value:
        raise ValueError("Missing date.")

    amount = parse_decimal(fields[3])
    if amount is None:
        raise ValueError(f"Invalid amount: {clean_text(fields[3]) or '(empty)'}.")
    if amount < 0:
        raise ValueError("Amount must not be negative.")

    currency = clean_text(fields[4]).upper() if len(fields) > MIN_FIELDS else ""

    return Expense(
        id=id_factory(),
        date=date_value,
        description=clean_text(fields[1]),
        category=clean_text(fields[2]) or OTHER_CATEGORY,
        amount=amount,
        currency=currency or default_currency,
    )


def quote_field(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def format_amount(amount: Decimal) -> str:
    return f"{amount:f}"


def parse_decimal(value: str | None) -> Decimal | None:
    cleaned = clean_text(value)
    if not cleaned:
        return None

    negative = False
    if cleaned.startswith("(") and cleaned.endswith(")"):
        negative = True
        cleaned = cleaned[1:-1]

    cleaned = cleaned.replace("$", "").replace(",", "")
    cleaned = re.sub(r"\s+", "", cleaned)

    if cleaned.startswith("-"):
        negative = True
        cleaned = cleaned[1:]
    elif cleaned.startswith("+"):
        cleaned = cleaned[1:]

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None

    return -amount if negative else amount


def clean_text(value: str | None) -> str:
    return value.strip() if value else ""
