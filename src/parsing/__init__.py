"""Parsing helpers for loosely-typed backend values."""

from src.parsing.identifiers import normalize_jid_to_phone
from src.parsing.money import format_currency, format_signed_currency, parse_amount
from src.parsing.timestamps import (
    DISPLAY_PLACEHOLDER,
    days_from_today,
    format_display_date,
    is_in_range,
    month_range,
    parse_timestamp,
    to_form_date,
)

__all__ = [
    "DISPLAY_PLACEHOLDER",
    "days_from_today",
    "format_currency",
    "format_display_date",
    "format_signed_currency",
    "is_in_range",
    "month_range",
    "normalize_jid_to_phone",
    "parse_amount",
    "parse_timestamp",
    "to_form_date",
]
