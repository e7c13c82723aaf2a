"""
Unit tests for statement format detection and dispatch.
"""

import asyncio
import pytest

from ledgerimport.parsers.bank.dispatcher import (
    StatementDispatcher,
    StatementFormat,
    detect_format,
    password_required_result,
)
from ledgerimport.parsers.bank.pdf import ProtectionStatus


@pytest.fixture
def dispatcher():
    """Dispatcher with default preferences."""
    return StatementDispatcher()


class TestDetectFormat:
    """Tests for detect_format."""

    def test_content_signatures(self):
        """Test magic bytes win over the extension."""
        assert detect_format(b"%PDF-1.7\n...", "statement.csv") == StatementFormat.PDF
        assert detect_format(b"PK\x03\x04rest", "statement.pdf") == StatementFormat.SPREADSHEET
        assert detect_format(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1rest", "") == StatementFormat.SPREADSHEET

    def test_pdf_header_after_junk(self):
        assert detect_format(b"\r\n\r\n%PDF-1.4", "") == StatementFormat.PDF

    @pytest.mark.parametrize("filename,expected", [
        ("statement.csv", StatementFormat.CSV),
        ("STATEMENT.TXT", StatementFormat.CSV),
        ("statement.xlsx", StatementFormat.SPREADSHEET),
        ("statement.xls", StatementFormat.SPREADSHEET),
        ("statement.pdf", StatementFormat.PDF),
        ("statement.docx", StatementFormat.UNKNOWN),
        ("", StatementFormat.UNKNOWN),
    ])
    def test_extension_fallback(self, filename, expected):
        assert detect_format(b"Date,Description\n", filename) == expected


class TestDispatch:
    """Tests for StatementDispatcher.parse."""

    def test_csv(self, dispatcher, sample_csv):
        result = dispatcher.parse(sample_csv.encode(), "statement.csv")

        assert result.success
        assert result.source_file == "statement.csv"
        assert result.transaction_count == 2

    def test_spreadsheet(self, dispatcher, sample_workbook):
        """Test a workbook is recognised from content even with a misleading name."""
        result = dispatcher.parse(sample_workbook, "download")

        assert result.success
        assert result.transaction_count == 2

    def test_pdf(self, dispatcher, statement_pdf):
        result = dispatcher.parse(statement_pdf, "statement.pdf")

        assert result.success
        assert result.transaction_count == 3

    def test_unsupported(self, dispatcher):
        result = dispatcher.parse(b"hello", "notes.docx")

        assert not result.success
        assert result.errors == ["Unsupported file format: notes.docx"]

    def test_parser_crash_becomes_failure(self, dispatcher, monkeypatch):
        """Test unexpected parser exceptions become file-level failures."""
        def boom(*args, **kwargs):
            raise RuntimeError("unexpected")

        monkeypatch.setattr(dispatcher.csv_parser, "parse_bytes", boom)
        result = dispatcher.parse(b"Date,Description\n", "statement.csv")

        assert not result.success
        assert result.errors == ["Failed to parse CSV: unexpected"]


class TestPasswordFlow:
    """Tests for protected PDF handling."""

    def test_protected_pdf_without_password(self, dispatcher, encrypted_pdf):
        """Test the caller is asked for a password instead of getting a parse error."""
        result = dispatcher.parse(encrypted_pdf, "statement.pdf")

        assert not result.success
        assert result.password_required
        assert result.errors == ["PDF is password-protected. Please provide the password."]
        assert result.transactions == []

    def test_protected_pdf_with_password(self, dispatcher, encrypted_pdf, pdf_password):
        result = dispatcher.parse(encrypted_pdf, "statement.pdf", password=pdf_password)

        assert result.success
        assert result.transaction_count == 3

    def test_wrong_password_not_echoed(self, dispatcher, encrypted_pdf):
        result = dispatcher.parse(encrypted_pdf, "statement.pdf", password="letmein")

        assert result.password_required
        assert "Incorrect password" in result.errors[0]
        assert not any("letmein" in message for message in result.errors)

    def test_password_not_retained(self, dispatcher, encrypted_pdf, pdf_password):
        """Test a password from one call does not unlock the next."""
        dispatcher.parse(encrypted_pdf, "statement.pdf", password=pdf_password)
        result = dispatcher.parse(encrypted_pdf, "statement.pdf")

        assert result.password_required

    def test_probe(self, dispatcher, encrypted_pdf, sample_csv):
        assert dispatcher.probe(encrypted_pdf, "statement.pdf") == ProtectionStatus.PASSWORD_REQUIRED
        assert dispatcher.probe(sample_csv.encode(), "statement.csv") is None

    def test_password_required_result(self):
        result = password_required_result("x.pdf")

        assert result.password_required
        assert not result.success
        assert result.source_file == "x.pdf"


class TestDispatchAsync:
    """Tests for StatementDispatcher.parse_async."""

    def test_pdf(self, dispatcher, statement_pdf):
        result = asyncio.run(dispatcher.parse_async(statement_pdf, "statement.pdf"))

        assert result.success
        assert [t.row_index for t in result.transactions] == [3, 4, 5]

    def test_protected_pdf(self, dispatcher, encrypted_pdf):
        result = asyncio.run(dispatcher.parse_async(encrypted_pdf, "statement.pdf"))
        assert result.password_required

    def test_csv(self, dispatcher, sample_csv):
        result = asyncio.run(dispatcher.parse_async(sample_csv.encode(), "statement.csv"))
        assert result.transaction_count == 2

    def test_probe_and_load_run_in_threads(self, dispatcher, statement_pdf, monkeypatch):
        """Test the protection probe and document load are awaited off the event loop."""
        called = []
        to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args, **kwargs):
            called.append(getattr(func, "__name__", repr(func)))
            return await to_thread(func, *args, **kwargs)

        monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)

        result = asyncio.run(dispatcher.parse_async(statement_pdf, "statement.pdf"))

        assert result.success
        assert called[:2] == ["_pdf_gate", "load_pdf"]
        assert called.count("_page_rows") == 1

    def test_wrong_password(self, dispatcher, encrypted_pdf):
        result = asyncio.run(dispatcher.parse_async(encrypted_pdf, "statement.pdf", password="nope"))

        assert result.password_required
        assert result.errors == ["Incorrect password or PDF is password-protected"]
