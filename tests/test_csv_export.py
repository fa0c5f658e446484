"""Tests for the monthly CSV export."""

from datetime import datetime
from decimal import Decimal

from src.export import CSV_HEADER, build_csv, escape_cell, export_filename
from src.models.transaction import Transaction, TransactionType


class TestEscapeCell:
    """Tests for cell quoting."""

    def test_plain_cell_unquoted(self):
        """Test ordinary text is left alone."""
        assert escape_cell("Padaria") == "Padaria"

    def test_comma_is_quoted(self):
        """Test a comma forces quoting."""
        assert escape_cell("Market, Inc") == '"Market, Inc"'

    def test_quotes_doubled(self):
        """Test embedded quotes are doubled."""
        assert escape_cell('Bar "do Zé"') == '"Bar ""do Zé"""'

    def test_semicolon_and_newline_quoted(self):
        """Test the delimiter and newlines force quoting."""
        assert escape_cell("a;b") == '"a;b"'
        assert escape_cell("a\nb") == '"a\nb"'

    def test_none_is_empty(self):
        """Test missing values are empty cells."""
        assert escape_cell(None) == ""


class TestBuildCsv:
    """Tests for build_csv."""

    def test_header_and_row(self):
        """Test the header line and a quoted establishment column."""
        transaction = Transaction(
            id="1",
            created_at="2024-05-01T10:00:00+00:00",
            occurred_at="2024-05-03",
            owner="uid-1",
            establishment="Market, Inc",
            amount=Decimal("12.50"),
            type=TransactionType.EXPENSE,
            category="food",
        )
        lines = build_csv([transaction]).split("\n")

        assert lines[0] == ";".join(CSV_HEADER)
        assert lines[0].startswith("ID;Data de criação;Quando;Estabelecimento;Valor")
        assert lines[1] == (
            '1;2024-05-01T10:00:00+00:00;2024-05-03;"Market, Inc";12.50;despesa;food;;uid-1;'
        )
        assert lines[1].split(";")[3] == '"Market, Inc"'

    def test_empty_list_is_header_only(self):
        """Test no rows gives only the header."""
        assert build_csv([]) == ";".join(CSV_HEADER)


class TestExportFilename:
    """Tests for export_filename."""

    def test_month_zero_padded(self, tz):
        """Test the file name is prefix-year-month.csv."""
        assert export_filename(datetime(2024, 5, 15, tzinfo=tz), tz, "transacoes") == "transacoes-2024-05.csv"
        assert export_filename(datetime(2024, 12, 1, tzinfo=tz), tz, "transacoes") == "transacoes-2024-12.csv"
