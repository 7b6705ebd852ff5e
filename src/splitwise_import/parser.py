"""CSV expense file reader.

Headers are normalized to identifiers (``"Split "`` becomes ``split``,
``"Due Date"`` becomes ``due_date``) and cell values are converted to
``Decimal``, ``date`` or ``datetime`` when they look like one.
"""

import csv
import logging
import re
from collections.abc import Iterator
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from .exceptions import ParseError
from .models import ExpenseEntry

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("amount", "description", "date", "comment", "split")

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")


def normalize_header(header: str) -> str:
    """Turn a header cell into a field identifier."""
    name = re.sub(r"[^\s\w]+", "", header.lower()).strip()
    return re.sub(r"\s+", "_", name)


def convert_value(raw: str) -> Any:
    """Infer the type of a single cell."""
    value = raw.strip()
    if not value:
        return None
    if _NUMBER_RE.match(value):
        try:
            return Decimal(value)
        except InvalidOperation:
            return raw
    if _DATE_RE.match(value):
        try:
            return date.fromisoformat(value)
        except ValueError:
            return raw
    if _DATETIME_RE.match(value):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return raw
    return raw


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _split_code(value: Any) -> str | None:
    text = _as_text(value)
    return text.strip() if text is not None else None


class ExpenseFile:
    """
    Expense rows of a CSV file, in file order.

    Iterating opens the file again each time, so the same ExpenseFile can be
    walked more than once. Nothing is read until iteration starts.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def __iter__(self) -> Iterator[ExpenseEntry]:
        try:
            with self.path.open(newline="", encoding="utf-8-sig") as f:
                reader = csv.reader(f)
                header_row = next(reader, None)
                if header_row is None:
                    raise ParseError(f"{self.path}: file is empty")

                headers = [normalize_header(h) for h in header_row]
                missing = [name for name in REQUIRED_FIELDS if name not in headers]
                if missing:
                    raise ParseError(
                        f"{self.path}: missing required column(s): {', '.join(missing)}"
                    )

                for cells in reader:
                    if not any(cell.strip() for cell in cells):
                        continue
                    yield self._to_entry(
                        reader.line_num, dict(zip(headers, cells, strict=False))
                    )
        except OSError as e:
            raise ParseError(f"Cannot read expense file {self.path}: {e}") from e
        except (csv.Error, UnicodeDecodeError) as e:
            raise ParseError(f"{self.path}: malformed CSV: {e}") from e

    def _to_entry(self, line_num: int, cells: dict[str, str]) -> ExpenseEntry:
        """Build an entry from one row of raw cells."""
        record = {name: convert_value(cells.get(name, "")) for name in REQUIRED_FIELDS}

        amount = record["amount"]
        if not isinstance(amount, Decimal):
            raise ParseError(
                f"{self.path}, line {line_num}: amount {cells.get('amount')!r} "
                f"is not a number"
            )

        raw_date = record["date"]
        return ExpenseEntry(
            amount=amount,
            description=_as_text(record["description"]),
            date=raw_date if isinstance(raw_date, date) else _as_text(raw_date),
            comment=_as_text(record["comment"]),
            split=_split_code(record["split"]),
        )


def parse_file(path: Path | str) -> list[ExpenseEntry]:
    """Read every expense row of a CSV file."""
    entries = list(ExpenseFile(path))
    logger.info(f"Parsed {len(entries)} expenses from {path}")
    return entries
