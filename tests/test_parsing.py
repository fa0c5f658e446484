"""Tests for timestamp, amount and identifier parsing."""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from src.parsing import (
    DISPLAY_PLACEHOLDER,
    format_currency,
    format_display_date,
    format_signed_currency,
    is_in_range,
    month_range,
    normalize_jid_to_phone,
    parse_amount,
    parse_timestamp,
    to_form_date,
)


# 2024-05-05 11:00:00 UTC
EPOCH_SECONDS = 1714906800
EPOCH_MILLIS = EPOCH_SECONDS * 1000


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_seconds_and_millis_same_date(self, tz):
        """Test epoch seconds and milliseconds of one instant give one date."""
        from_seconds = parse_timestamp(EPOCH_SECONDS, tz)
        from_millis = parse_timestamp(EPOCH_MILLIS, tz)
        assert from_seconds == from_millis
        assert from_seconds.date() == date(2024, 5, 5)

    def test_digit_strings_are_epochs(self, tz):
        """Test all-digit strings follow the same digit-count rule."""
        assert parse_timestamp(str(EPOCH_MILLIS), tz) == parse_timestamp(EPOCH_SECONDS, tz)
        assert parse_timestamp(str(EPOCH_SECONDS), tz) == parse_timestamp(EPOCH_SECONDS, tz)

    def test_float_epoch(self, tz):
        """Test float epoch seconds."""
        assert parse_timestamp(float(EPOCH_SECONDS), tz).date() == date(2024, 5, 5)

    def test_iso_with_z(self, tz):
        """Test ISO strings with a Z suffix are UTC."""
        parsed = parse_timestamp("2024-05-05T11:00:00Z", tz)
        assert parsed == datetime(2024, 5, 5, 11, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value,expected", [
        ("2024-05-05 11:00:00.12+00", datetime(2024, 5, 5, 11, 0, 0, 120000, tzinfo=timezone.utc)),
        ("2024-05-05T11:00:00.1234+00", datetime(2024, 5, 5, 11, 0, 0, 123400, tzinfo=timezone.utc)),
        ("2024-05-05T08:00:00-0300", datetime(2024, 5, 5, 11, 0, tzinfo=timezone.utc)),
        ("2024-05-05 11:00:00+00:00", datetime(2024, 5, 5, 11, 0, tzinfo=timezone.utc)),
    ])
    def test_postgres_timestamps(self, value, expected, tz):
        """Test Postgres fractions and short offsets are parsed."""
        assert parse_timestamp(value, tz) == expected

    def test_date_only_is_local_calendar_date(self, tz):
        """Test a date-only string is midnight in the configured timezone."""
        parsed = parse_timestamp("2024-05-01", tz)
        assert parsed == datetime(2024, 5, 1, tzinfo=tz)
        assert parsed.date() == date(2024, 5, 1)

    def test_brazilian_date_fallback(self, tz):
        """Test DD/MM/YYYY is accepted."""
        assert parse_timestamp("03/05/2024", tz).date() == date(2024, 5, 3)

    def test_date_and_datetime_objects(self, tz):
        """Test date objects become local midnight, naive datetimes get tz."""
        assert parse_timestamp(date(2024, 5, 3), tz) == datetime(2024, 5, 3, tzinfo=tz)
        assert parse_timestamp(datetime(2024, 5, 3, 9, 30), tz).tzinfo is tz

    @pytest.mark.parametrize("value", [
        None, "", "   ", "not a date", "2024-13-45", True, float("nan"),
        10 ** 30, object(),
    ])
    def test_unparseable_values(self, value, tz):
        """Test garbage never raises and gives None."""
        assert parse_timestamp(value, tz) is None


class TestDisplayDates:
    """Tests for display and form date helpers."""

    def test_format_display_date(self, tz):
        """Test the pt-BR display format."""
        assert format_display_date("2024-05-05", tz) == "05 mai 2024"
        assert format_display_date(EPOCH_MILLIS, tz) == "05 mai 2024"

    @pytest.mark.parametrize("value", [None, "", "garbage", "99/99/9999"])
    def test_placeholder_for_unparseable(self, value, tz):
        """Test unparseable values display as the placeholder."""
        assert format_display_date(value, tz) == DISPLAY_PLACEHOLDER

    def test_to_form_date(self, tz):
        """Test form dates are YYYY-MM-DD, raw text when unparseable."""
        assert to_form_date(EPOCH_SECONDS, tz) == "2024-05-05"
        assert to_form_date("garbage", tz) == "garbage"
        assert to_form_date("", tz) == datetime.now(tz).date().isoformat()


class TestMonthRange:
    """Tests for month boundaries."""

    def test_month_range(self, reference, tz):
        """Test [first instant, first instant of next month)."""
        start, end = month_range(reference, tz)
        assert start == datetime(2024, 5, 1, tzinfo=tz)
        assert end == datetime(2024, 6, 1, tzinfo=tz)

    def test_december_rolls_over(self, tz):
        """Test December ends at January of the next year."""
        start, end = month_range(datetime(2024, 12, 31, 23, 0, tzinfo=tz), tz)
        assert start == datetime(2024, 12, 1, tzinfo=tz)
        assert end == datetime(2025, 1, 1, tzinfo=tz)

    def test_is_in_range(self, reference, tz):
        """Test the end bound is exclusive and garbage is outside."""
        start, end = month_range(reference, tz)
        assert is_in_range("2024-05-01", start, end, tz) is True
        assert is_in_range("2024-06-01", start, end, tz) is False
        assert is_in_range("garbage", start, end, tz) is False


class TestParseAmount:
    """Tests for parse_amount."""

    @pytest.mark.parametrize("value,expected", [
        (99.4, Decimal("99.4")),
        (100, Decimal("100")),
        ("99.4", Decimal("99.4")),
        ("99,40", Decimal("99.40")),
        ("R$ 1.234,56", Decimal("1234.56")),
        ("  R$12,00 ", Decimal("12.00")),
        ("-50", Decimal("-50")),
    ])
    def test_valid_amounts(self, value, expected):
        """Test numbers and Brazilian-formatted text."""
        assert parse_amount(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "R$", float("inf"), "NaN", True])
    def test_invalid_amounts(self, value):
        """Test non-numbers give None."""
        assert parse_amount(value) is None


class TestFormatCurrency:
    """Tests for currency display."""

    def test_format_currency(self):
        """Test pt-BR grouping and decimals."""
        assert format_currency(Decimal("1234.56"), "R$") == "R$ 1.234,56"
        assert format_currency(0, "R$") == "R$ 0,00"
        assert format_currency(Decimal("-650"), "R$") == "-R$ 650,00"

    def test_format_signed_currency(self):
        """Test the sign follows the transaction type."""
        assert format_signed_currency(Decimal("10"), True, "R$") == "+R$ 10,00"
        assert format_signed_currency(Decimal("10"), False, "R$") == "-R$ 10,00"


class TestNormalizeJid:
    """Tests for JID to phone conversion."""

    def test_whatsapp_jid(self):
        """Test the server suffix is dropped and + added."""
        assert normalize_jid_to_phone("5511999999999@s.whatsapp.net") == "+5511999999999"

    def test_plain_number_with_punctuation(self):
        """Test non-digits are dropped."""
        assert normalize_jid_to_phone(" +55 (11) 99999-9999 ") == "+5511999999999"

    @pytest.mark.parametrize("value", [None, "", "   ", "@s.whatsapp.net", "abc"])
    def test_no_digits(self, value):
        """Test None when no digits remain."""
        assert normalize_jid_to_phone(value) is None
