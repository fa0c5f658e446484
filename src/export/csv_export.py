"""
Monthly CSV Export

The export keeps the column layout the backend's users already open in
spreadsheet tools: semicolon-delimited, Portuguese header, one row per
transaction of the current month.

Quoting rule: a cell containing a quote, semicolon, comma or newline is
wrapped in quotes with internal quotes doubled. The stdlib csv writer only
quotes on the delimiter, so cells are escaped here.
"""

from datetime import datetime, tzinfo
from typing import Any, Iterable, Optional

from src.config import get_settings
from src.models.transaction import Transaction


CSV_DELIMITER = ";"
CSV_LINE_SEPARATOR = "\n"

CSV_HEADER = [
    "ID",
    "Data de criação",
    "Quando",
    "Estabelecimento",
    "Valor",
    "Tipo",
    "Categoria",
    "Detalhes",
    "Identificador",
    "Telefone",
]

_QUOTE_TRIGGERS = ('"', ";", ",", "\n")


def escape_cell(value: Any) -> str:
    """Render one cell, quoting it when it contains a special character."""
    cell = "" if value is None else str(value)
    if any(trigger in cell for trigger in _QUOTE_TRIGGERS):
        return '"' + cell.replace('"', '""') + '"'
    return cell


def transaction_to_csv_row(transaction: Transaction) -> list[Any]:
    """Column values for one transaction, in header order."""
    return [
        transaction.id,
        transaction.created_at,
        transaction.occurred_at,
        transaction.establishment,
        transaction.amount,
        transaction.type.value,
        transaction.category,
        transaction.details or "",
        transaction.owner or "",
        transaction.phone_e164 or "",
    ]


def build_csv(transactions: Iterable[Transaction]) -> str:
    """Build the CSV text (header + one line per transaction)."""
    rows = [CSV_HEADER] + [transaction_to_csv_row(t) for t in transactions]
    return CSV_LINE_SEPARATOR.join(
        CSV_DELIMITER.join(escape_cell(value) for value in row)
        for row in rows
    )


def export_filename(
    reference: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    prefix: Optional[str] = None,
) -> str:
    """File name of the export, e.g. transacoes-2024-05.csv."""
    settings = get_settings().app
    tz = tz or settings.tzinfo
    prefix = prefix or settings.export_file_prefix
    reference = reference or datetime.now(tz)
    return f"{prefix}-{reference.year}-{reference.month:02d}.csv"
