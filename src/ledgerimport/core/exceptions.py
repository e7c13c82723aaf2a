"""
Custom exceptions for the ledgerimport core module.

All ledgerimport-specific exceptions inherit from LedgerImportError for easy catching.
Parsers raise these internally; the dispatcher and pipeline turn them into
ParseResult failures so that malformed input never escapes as a crash.
"""


class LedgerImportError(Exception):
    """Base exception for all ledgerimport errors."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code


class StatementParseError(LedgerImportError):
    """File-level failure while reading a statement."""

    def __init__(self, message: str, code: str = "PARSE_ERROR"):
        super().__init__(message, code)


class PasswordRequiredError(StatementParseError):
    """Raised when a PDF is encrypted and no password was supplied."""

    def __init__(
        self,
        message: str = "PDF is password-protected. Please provide the password.",
        code: str = "PASSWORD_REQUIRED"
    ):
        super().__init__(message, code)


class IncorrectPasswordError(PasswordRequiredError):
    """Raised when the supplied password cannot decrypt the PDF."""

    def __init__(
        self,
        message: str = "Incorrect password or PDF is password-protected",
        code: str = "INCORRECT_PASSWORD"
    ):
        super().__init__(message, code)


class CorruptFileError(StatementParseError):
    """Raised when a file cannot be opened for reasons other than encryption."""

    def __init__(self, message: str, code: str = "CORRUPT_FILE"):
        super().__init__(message, code)


class UnsupportedFormatError(StatementParseError):
    """Raised when the file is not CSV, spreadsheet or PDF."""

    def __init__(self, filename: str, code: str = "UNSUPPORTED_FORMAT"):
        super().__init__(f"Unsupported file format: {filename}", code)
        self.filename = filename


class LedgerStoreError(LedgerImportError):
    """Ledger store read/write failures."""

    def __init__(self, message: str, code: str = "LEDGER_ERROR"):
        super().__init__(message, code)


class ConfigError(LedgerImportError):
    """Invalid configuration values."""

    def __init__(self, message: str, field: str = None, code: str = "CONFIG_ERROR"):
        super().__init__(message, code)
        self.field = field
