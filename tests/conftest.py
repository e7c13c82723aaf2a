"""
Shared pytest fixtures for ledgerimport tests.

Provides preferences, ledgers and in-memory statement files (CSV text,
openpyxl workbooks and reportlab PDFs).
"""

import io
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ledgerimport.core.ledger import Expense, Income, InMemoryLedgerStore
from ledgerimport.core.preferences import ImportPreferences


# Password used for the encrypted statement fixture
TEST_PDF_PASSWORD = "secret"

# x position of each column on the generated PDF statements
PDF_COLUMNS = (50, 130, 350, 450)

SAMPLE_CSV = (
    "Date,Description,Debit,Credit,Reference\n"
    "2024-01-15,Coffee Shop,4.50,,TXN001\n"
    "2024-01-16,Salary,,3000.00,TXN002\n"
)


def build_workbook(rows, sheet_title="Sheet1", extra_sheets=None) -> bytes:
    """Write rows to an in-memory .xlsx workbook."""
    from openpyxl import Workbook

    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title
    for row in rows:
        ws.append(list(row))

    for title, sheet_rows in (extra_sheets or {}).items():
        sheet = wb.create_sheet(title)
        for row in sheet_rows:
            sheet.append(list(row))

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def build_statement_pdf(lines, password=None, title="Account Statement") -> bytes:
    """
    Draw a one-page statement with each cell at a fixed column position.

    Args:
        lines: Rows of cell texts, header first; '' leaves a cell empty
        password: Encrypt the document with this user password
        title: Single-fragment line drawn above the table
    """
    from reportlab.lib.pagesizes import A4
    from reportlab.pdfgen import canvas

    buf = io.BytesIO()
    kwargs = {"encrypt": password} if password else {}
    pdf = canvas.Canvas(buf, pagesize=A4, **kwargs)
    pdf.setFont("Helvetica", 10)

    y = 780
    if title:
        pdf.drawString(PDF_COLUMNS[0], y, title)
        y -= 30

    for line in lines:
        for x, text in zip(PDF_COLUMNS, line):
            if text:
                pdf.drawString(x, y, text)
        y -= 20

    pdf.showPage()
    pdf.save()
    return buf.getvalue()


STATEMENT_LINES = [
    ("Date", "Description", "Debit", "Credit"),
    ("2024-01-15", "Coffee Shop", "4.50", ""),
    ("2024-01-16", "Salary Credit", "", "3000.00"),
    ("2024-01-18", "Grocery Store", "82.10", ""),
]


@pytest.fixture
def preferences():
    """Default import preferences."""
    return ImportPreferences.default()


@pytest.fixture
def sample_csv():
    """Two-row CSV statement (one expense, one income)."""
    return SAMPLE_CSV


@pytest.fixture
def sample_workbook():
    """Workbook equivalent of the sample CSV, with real date cells."""
    return build_workbook([
        ["Date", "Description", "Debit", "Credit", "Reference"],
        [datetime(2024, 1, 15), "Coffee Shop", 4.50, None, "TXN001"],
        [datetime(2024, 1, 16), "Salary", None, 3000.00, "TXN002"],
    ])


@pytest.fixture
def statement_pdf():
    """Unprotected PDF statement with three transactions."""
    return build_statement_pdf(STATEMENT_LINES)


@pytest.fixture
def encrypted_pdf():
    """The same statement, protected with TEST_PDF_PASSWORD."""
    return build_statement_pdf(STATEMENT_LINES, password=TEST_PDF_PASSWORD)


@pytest.fixture
def ledger():
    """Ledger holding one income and one expense."""
    return InMemoryLedgerStore(
        incomes=[Income(id="inc-1", amount="3000.00", source="Salary", date="2024-01-16")],
        expenses=[Expense(id="exp-1", amount="4.50", category="Coffee Shop", date="2024-01-15")],
    )


@pytest.fixture
def make_workbook():
    """Builder for in-memory workbooks."""
    return build_workbook


@pytest.fixture
def make_statement_pdf():
    """Builder for in-memory PDF statements."""
    return build_statement_pdf


@pytest.fixture
def pdf_password():
    """Password of the encrypted_pdf fixture."""
    return TEST_PDF_PASSWORD
