"""
Unit tests for the PDF statement parser.

Row reconstruction is tested with synthetic fragments; document loading and
password handling with statements drawn by reportlab (see conftest).
"""

import asyncio
import pytest
from decimal import Decimal

from ledgerimport.core.exceptions import (
    CorruptFileError,
    IncorrectPasswordError,
    PasswordRequiredError,
)
from ledgerimport.core.preferences import ImportPreferences
from ledgerimport.parsers.bank.models import TransactionType
from ledgerimport.parsers.bank.pdf import (
    PDFStatementParser,
    ProtectionStatus,
    TextFragment,
    TextRow,
    align_to_header,
    find_header_row,
    group_rows,
    is_password_error,
    open_pdf,
    probe_protection,
)

# Header x positions used by the synthetic rows
DATE_X, DESC_X, DEBIT_X, CREDIT_X = 50, 130, 350, 450


def frag(text, x0, y=100.0):
    """Fragment with a width proportional to its text."""
    return TextFragment(text=text, x0=x0, x1=x0 + 6 * len(text), y=y)


def row(y, *cells):
    """TextRow from (text, x0) pairs."""
    return TextRow(y=y, fragments=[frag(text, x0, y) for text, x0 in cells])


def header_row(y=700.0):
    return row(y, ("Date", DATE_X), ("Description", DESC_X), ("Debit", DEBIT_X), ("Credit", CREDIT_X))


@pytest.fixture
def parser():
    """PDF parser with default preferences."""
    return PDFStatementParser()


class TestGroupRows:
    """Tests for y-band row grouping."""

    def test_fragments_within_tolerance_share_a_row(self):
        rows = group_rows([
            frag("Coffee Shop", 130, y=99.8),
            frag("2024-01-15", 50, y=100.4),
            frag("Salary", 130, y=80.0),
        ])

        assert len(rows) == 2
        assert rows[0].cells == ["2024-01-15", "Coffee Shop"]
        assert rows[1].cells == ["Salary"]

    def test_rows_ordered_top_to_bottom(self):
        rows = group_rows([frag("low", 50, y=10), frag("high", 50, y=500), frag("mid", 50, y=250)])
        assert [r.cells[0] for r in rows] == ["high", "mid", "low"]

    def test_tolerance_is_configurable(self):
        fragments = [frag("a", 50, y=100.4), frag("b", 90, y=99.8)]

        assert len(group_rows(fragments, tolerance=2.0)) == 1
        assert len(group_rows(fragments, tolerance=0.5)) == 2

    def test_empty_fragments_dropped(self):
        rows = group_rows([frag("", 50), frag("x", 60)])
        assert rows[0].cells == ["x"]

    def test_no_fragments(self):
        assert group_rows([]) == []


class TestFindHeaderRow:
    """Tests for header discovery."""

    def test_skips_title_rows(self):
        rows = [row(780, ("Account Statement", 50)), header_row()]
        assert find_header_row(rows) == 1

    def test_needs_enough_cells(self):
        """Test a two-cell row mentioning a date is not the header."""
        rows = [row(780, ("Statement date", 50), ("2024-01-31", 200)), header_row()]
        assert find_header_row(rows) == 1

    def test_defaults_to_first_row(self):
        rows = [row(780, ("a", 50), ("b", 100), ("c", 150)), row(760, ("d", 50), ("e", 100), ("f", 150))]
        assert find_header_row(rows) == 0

    def test_only_leading_rows_scanned(self):
        rows = [row(800 - i * 20, ("x", 50)) for i in range(5)] + [header_row(600)]
        assert find_header_row(rows, scan_rows=5) == 0


class TestAlignToHeader:
    """Tests for mapping fragments to header columns."""

    def test_missing_cells_stay_empty(self):
        data = row(680, ("2024-01-16", DATE_X), ("Salary", DESC_X), ("3000.00", CREDIT_X))
        assert align_to_header(data, header_row()) == ["2024-01-16", "Salary", "", "3000.00"]

    def test_fragments_in_one_column_joined(self):
        data = row(680, ("2024-01-16", DATE_X), ("Coffee", DESC_X), ("Shop", DESC_X + 45))
        assert align_to_header(data, header_row())[1] == "Coffee Shop"


class TestParseRows:
    """Tests for turning reconstructed rows into transactions."""

    def test_transactions(self, parser):
        rows = [
            row(780, ("Account Statement", 50)),
            header_row(),
            row(680, ("2024-01-15", DATE_X), ("Coffee Shop", DESC_X), ("4.50", DEBIT_X)),
            row(660, ("2024-01-16", DATE_X), ("Salary", DESC_X), ("3000.00", CREDIT_X)),
        ]
        result = parser.parse_rows(rows)

        assert result.success
        assert result.warnings == []
        coffee, salary = result.transactions
        assert coffee.type == TransactionType.EXPENSE
        assert coffee.amount == Decimal("4.50")
        assert coffee.row_index == 3
        assert salary.type == TransactionType.INCOME
        assert salary.amount == Decimal("3000.00")
        assert salary.row_index == 4

    def test_skipped_rows_counted_in_one_warning(self, parser):
        """Test rows dropped silently are summarised in warnings, not errors."""
        rows = [
            header_row(),
            row(680, ("2024-01-15", DATE_X), ("Coffee Shop", DESC_X), ("4.50", DEBIT_X)),
            row(660, ("Opening Balance", DESC_X), ("1000.00", CREDIT_X)),
            row(640, ("2024-01-17", DATE_X), ("Adjustment", DESC_X), ("0.00", DEBIT_X)),
            row(620, ("2024-01-18", DATE_X), ("X", DESC_X), ("5.00", DEBIT_X)),
            row(600, ("Page 1 of 1", 250)),
        ]
        result = parser.parse_rows(rows)

        assert result.success
        assert result.transaction_count == 1
        assert result.errors == []
        assert result.warnings == [
            "Skipped 3 PDF rows (1 with zero amount, 1 without date, 1 without description)"
        ]

    def test_positional_indexing_when_alignment_off(self):
        """Test the plain positional mode shifts cells after a missing column."""
        parser = PDFStatementParser(ImportPreferences({"pdf": {"align_by_position": False}}))
        rows = [
            header_row(),
            row(680, ("2024-01-16", DATE_X), ("Salary", DESC_X), ("3000.00", CREDIT_X)),
        ]
        result = parser.parse_rows(rows)

        assert result.transactions[0].type == TransactionType.EXPENSE

    def test_too_few_rows(self, parser):
        result = parser.parse_rows([header_row()])

        assert not result.success
        assert result.errors == ["PDF appears to be empty or has no readable text"]

    def test_header_too_narrow(self, parser):
        rows = [row(700, ("Statement", 50)), row(680, ("Nothing", 50))]
        result = parser.parse_rows(rows)

        assert result.errors == ["Could not find header row in PDF"]

    def test_no_date_column(self, parser):
        rows = [
            row(700, ("Item", DATE_X), ("Description", DESC_X), ("Amount", DEBIT_X)),
            row(680, ("2024-01-15", DATE_X), ("Coffee", DESC_X), ("4.50", DEBIT_X)),
        ]
        result = parser.parse_rows(rows)

        assert result.errors == ["Could not find date column in PDF"]

    def test_no_survivors(self, parser):
        rows = [header_row(), row(680, ("Totals", DESC_X), ("4.50", DEBIT_X))]
        result = parser.parse_rows(rows)

        assert not result.success
        assert result.errors == [
            "No valid transactions found in PDF. The PDF may not be in a structured format."
        ]


class TestPDFDocuments:
    """Tests against real PDF bytes."""

    def test_unprotected_statement(self, parser, statement_pdf):
        result = parser.parse_bytes(statement_pdf, source_file="statement.pdf")

        assert result.success
        assert [t.description for t in result.transactions] == [
            "Coffee Shop", "Salary Credit", "Grocery Store"
        ]
        assert [t.type for t in result.transactions] == [
            TransactionType.EXPENSE, TransactionType.INCOME, TransactionType.EXPENSE
        ]
        assert result.total_debits == Decimal("86.60")
        assert result.total_credits == Decimal("3000.00")

    def test_async_matches_sync(self, parser, statement_pdf):
        sync_result = parser.parse_bytes(statement_pdf)
        async_result = asyncio.run(parser.parse_bytes_async(statement_pdf))

        assert async_result.success
        assert async_result.transactions == sync_result.transactions

    def test_encrypted_without_password(self, parser, encrypted_pdf):
        result = parser.parse_bytes(encrypted_pdf)

        assert not result.success
        assert result.password_required
        assert result.errors == ["PDF is password-protected. Please provide the password."]

    def test_encrypted_with_password(self, parser, encrypted_pdf, pdf_password):
        result = parser.parse_bytes(encrypted_pdf, password=pdf_password)

        assert result.success
        assert result.transaction_count == 3

    def test_encrypted_with_wrong_password(self, parser, encrypted_pdf):
        """Test a wrong password asks again and is never echoed."""
        result = parser.parse_bytes(encrypted_pdf, password="hunter2")

        assert not result.success
        assert result.password_required
        assert result.errors == ["Incorrect password or PDF is password-protected"]
        assert all("hunter2" not in message for message in result.errors + result.warnings)

    def test_not_a_pdf(self, parser):
        result = parser.parse_bytes(b"this is not a pdf")

        assert not result.success
        assert not result.password_required


class TestProtection:
    """Tests for protection probing and password error detection."""

    def test_probe(self, statement_pdf, encrypted_pdf):
        assert probe_protection(statement_pdf) == ProtectionStatus.UNPROTECTED
        assert probe_protection(encrypted_pdf) == ProtectionStatus.PASSWORD_REQUIRED
        assert probe_protection(b"this is not a pdf") == ProtectionStatus.CORRUPT

    def test_open_pdf_errors(self, encrypted_pdf):
        with pytest.raises(PasswordRequiredError) as exc_info:
            with open_pdf(encrypted_pdf):
                pass
        assert not isinstance(exc_info.value, IncorrectPasswordError)

        with pytest.raises(IncorrectPasswordError):
            with open_pdf(encrypted_pdf, password="wrong"):
                pass

        with pytest.raises(CorruptFileError):
            with open_pdf(b"this is not a pdf"):
                pass

    def test_is_password_error(self):
        assert is_password_error(ValueError("Password required"))
        assert is_password_error(RuntimeError("Unsupported encryption"))

        try:
            try:
                raise KeyError("password incorrect")
            except KeyError as inner:
                raise RuntimeError("open failed") from inner
        except RuntimeError as outer:
            assert is_password_error(outer)

        assert not is_password_error(ValueError("No /Root object"))
