"""
Timestamp Normalization

The `quando` column on the backend has no reliable format. Rows written by
the dashboard hold an ISO date, rows written by the messaging integration
hold epoch seconds or epoch milliseconds (as numbers or digit strings), and
some rows are empty.

Every view goes through `parse_timestamp` so the rules live in one place:

- None / empty / whitespace -> None
- numbers and all-digit strings: 13 digits -> epoch milliseconds,
  anything else -> epoch seconds
- other strings: ISO-8601, then DD/MM/YYYY
- anything that does not produce a valid calendar date -> None

Parsing NEVER raises. Callers decide how to degrade (placeholder, skip, keep).
"""

import math
import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Optional

import structlog

from src.config import get_settings


DISPLAY_PLACEHOLDER = "—"

EPOCH_MILLIS_DIGITS = 13

# pt-BR month abbreviations, as shown in the transaction list
MONTH_ABBREVIATIONS = [
    "jan", "fev", "mar", "abr", "mai", "jun",
    "jul", "ago", "set", "out", "nov", "dez",
]

_DIGITS_RE = re.compile(r"^\d+$")
# date, time to the second, optional fraction, optional +HH / +HHMM / +HH:MM offset
_ISO_TAIL_RE = re.compile(
    r"^(?P<head>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2})"
    r"(?P<fraction>\.\d+)?"
    r"(?P<offset>[+-]\d{2}(?::?\d{2})?)?$"
)
_FALLBACK_FORMATS = ("%d/%m/%Y", "%d/%m/%Y %H:%M", "%d/%m/%Y %H:%M:%S")

logger = structlog.get_logger(__name__)


def _default_tz() -> tzinfo:
    return get_settings().app.tzinfo


def _from_epoch(value: float, digit_count: int, tz: tzinfo) -> Optional[datetime]:
    millis = value if digit_count == EPOCH_MILLIS_DIGITS else value * 1000
    try:
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).astimezone(tz)
    except (OverflowError, OSError, ValueError):
        return None


def _normalize_iso(text: str) -> str:
    """Rewrite Postgres-style ISO text into what `fromisoformat` accepts on 3.9+."""
    candidate = text
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"

    match = _ISO_TAIL_RE.match(candidate)
    if match is None:
        return candidate

    head, fraction, offset = match.group("head", "fraction", "offset")
    if fraction:
        fraction = "." + fraction[1:7].ljust(6, "0")
    if offset:
        sign, digits = offset[0], offset[1:].replace(":", "")
        digits = digits.ljust(4, "0")
        offset = f"{sign}{digits[:2]}:{digits[2:4]}"
    return f"{head}{fraction or ''}{offset or ''}"


def _parse_text(text: str, tz: tzinfo) -> Optional[datetime]:
    candidate = _normalize_iso(text)

    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        for fmt in _FALLBACK_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None

    # Naive values (including date-only strings) are wall-clock time in tz
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def parse_timestamp(value: Any, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Normalize an unknown-shaped timestamp into an aware datetime.

    Args:
        value: String, int, float, date, datetime or None
        tz: Timezone the result is expressed in (and naive input is read in).
            Defaults to the configured application timezone.

    Returns:
        Aware datetime in `tz`, or None if the value is unparseable
    """
    tz = tz or _default_tz()

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=tz)
        return value.astimezone(tz)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=tz)

    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        digit_count = len(str(abs(int(value))))
        return _from_epoch(float(value), digit_count, tz)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if _DIGITS_RE.match(text):
            return _from_epoch(float(int(text)), len(text), tz)
        return _parse_text(text, tz)

    return None


def format_display_date(value: Any, tz: Optional[tzinfo] = None) -> str:
    """
    Format a raw timestamp for the transaction list ("05 mai 2024").

    Returns the fixed placeholder when the value cannot be parsed.
    """
    parsed = parse_timestamp(value, tz)
    if parsed is None:
        logger.warning("invalid_timestamp", value=repr(value))
        return DISPLAY_PLACEHOLDER
    return f"{parsed.day:02d} {MONTH_ABBREVIATIONS[parsed.month - 1]} {parsed.year}"


def to_form_date(value: Any, tz: Optional[tzinfo] = None) -> str:
    """
    Convert a stored timestamp into the YYYY-MM-DD text used by the form.

    Empty values become today; unparseable values are returned as-is so the
    user can see (and fix) what was stored.
    """
    tz = tz or _default_tz()
    if value is None or (isinstance(value, str) and not value.strip()):
        return datetime.now(tz).date().isoformat()

    parsed = parse_timestamp(value, tz)
    if parsed is None:
        return str(value)
    return parsed.date().isoformat()


def month_range(
    reference: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> tuple[datetime, datetime]:
    """
    Get the [start, end) range of the calendar month containing `reference`.

    Start is the first instant of the month (inclusive), end is the first
    instant of the next month (exclusive).
    """
    tz = tz or _default_tz()
    reference = reference or datetime.now(tz)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=tz)
    else:
        reference = reference.astimezone(tz)

    start = datetime(reference.year, reference.month, 1, tzinfo=tz)
    if reference.month == 12:
        end = datetime(reference.year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime(reference.year, reference.month + 1, 1, tzinfo=tz)
    return start, end


def is_in_range(
    value: Any,
    start: datetime,
    end: datetime,
    tz: Optional[tzinfo] = None,
) -> bool:
    """Check whether a raw timestamp falls in [start, end). Unparseable -> False."""
    parsed = parse_timestamp(value, tz)
    if parsed is None:
        return False
    return start <= parsed < end


def days_from_today(value: Any, tz: Optional[tzinfo] = None) -> Optional[int]:
    """Number of days between today and the timestamp's date (positive = future)."""
    tz = tz or _default_tz()
    parsed = parse_timestamp(value, tz)
    if parsed is None:
        return None
    delta: timedelta = parsed.date() - datetime.now(tz).date()
    return delta.days
