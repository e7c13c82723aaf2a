"""
Unit tests for the ledgerimport exception hierarchy.
"""

from ledgerimport.core.exceptions import (
    ConfigError,
    CorruptFileError,
    IncorrectPasswordError,
    LedgerImportError,
    LedgerStoreError,
    PasswordRequiredError,
    StatementParseError,
    UnsupportedFormatError,
)


class TestExceptions:
    """Tests for exception messages and codes."""

    def test_hierarchy(self):
        assert issubclass(StatementParseError, LedgerImportError)
        assert issubclass(IncorrectPasswordError, PasswordRequiredError)
        assert issubclass(CorruptFileError, StatementParseError)
        assert issubclass(LedgerStoreError, LedgerImportError)
        assert issubclass(ConfigError, LedgerImportError)

    def test_password_messages(self):
        assert PasswordRequiredError().message == "PDF is password-protected. Please provide the password."
        assert PasswordRequiredError().code == "PASSWORD_REQUIRED"
        assert IncorrectPasswordError().message == "Incorrect password or PDF is password-protected"
        assert IncorrectPasswordError().code == "INCORRECT_PASSWORD"

    def test_unsupported_format(self):
        error = UnsupportedFormatError("notes.docx")

        assert error.message == "Unsupported file format: notes.docx"
        assert error.filename == "notes.docx"
        assert str(error) == error.message

    def test_config_error_field(self):
        error = ConfigError("bad", field="pdf.row_tolerance")
        assert error.field == "pdf.row_tolerance"
        assert error.code == "CONFIG_ERROR"
