"""
Amount parsing and currency display.

Amounts reach us as numbers from the dashboard form and as Brazilian-formatted
text ("R$ 1.234,56", "99,40") from the messaging integration.
"""

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from src.config import get_settings


_CURRENCY_RE = re.compile(r"[Rr]\$?")
_TWO_PLACES = Decimal("0.01")


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Convert a loosely-typed amount into a Decimal.

    Rules:
    - int / float / Decimal pass through (non-finite -> None)
    - strings drop whitespace and the R$ marker
    - with a comma present, the comma is the decimal separator and dots are
      thousands separators ("1.234,56"); otherwise the dot is decimal ("99.4")

    Returns None when the value is not a finite number.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        return value if value.is_finite() else None

    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return Decimal(str(value))

    if not isinstance(value, str):
        return None

    text = re.sub(r"\s", "", value)
    text = _CURRENCY_RE.sub("", text)
    if not text:
        return None

    if "," in text:
        text = text.replace(".", "").replace(",", ".")

    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None

    return amount if amount.is_finite() else None


def format_currency(value: Any, symbol: Optional[str] = None) -> str:
    """Format an amount as pt-BR currency, e.g. "R$ 1.234,56"."""
    symbol = symbol if symbol is not None else get_settings().app.currency_symbol
    amount = parse_amount(value)
    if amount is None:
        amount = Decimal("0")

    amount = amount.quantize(_TWO_PLACES)
    sign = "-" if amount < 0 else ""
    # 1,234.56 -> 1.234,56
    text = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}{symbol} {text}"


def format_signed_currency(value: Any, is_income: bool, symbol: Optional[str] = None) -> str:
    """Format an amount with the +/- sign implied by its type."""
    amount = parse_amount(value) or Decimal("0")
    prefix = "+" if is_income else "-"
    return f"{prefix}{format_currency(abs(amount), symbol)}"
