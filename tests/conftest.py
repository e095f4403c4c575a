"""Shared pytest fixtures for ofxledger tests."""

import tempfile
import os
from decimal import Decimal
from pathlib import Path
import pytest

from ofxledger.database.factories import create_sqlite_database
from ofxledger.domain.account import AccountService
from ofxledger.domain.category import CategoryService
from ofxledger.domain.entities import CategoryType
from ofxledger.domain.statement_import import StatementImportService

SAMPLE_CATEGORIES = [
    ("Food & Dining", None, CategoryType.EXPENSE),
    ("Groceries", "Food & Dining", None),
    ("Restaurants", "Food & Dining", None),
    ("Entertainment", None, CategoryType.EXPENSE),
    ("Streaming", "Entertainment", None),
    ("Income", None, CategoryType.INCOME),
    ("Salary", "Income", None),
    ("Transfers", None, CategoryType.TRANSFER),
]

_STATEMENT_HEADER = """OFXHEADER:100
DATA:OFXSGML
VERSION:102
SECURITY:NONE
ENCODING:USASCII
CHARSET:1252
COMPRESSION:NONE
OLDFILEUID:NONE
NEWFILEUID:NONE

<OFX>
<BANKMSGSRSV1>
<STMTTRNRS>
<TRNUID>1
<STMTRS>
<CURDEF>USD
<BANKACCTFROM>
<BANKID>111000025
<ACCTID>5550001
<ACCTTYPE>CHECKING
</BANKACCTFROM>
<BANKTRANLIST>
<DTSTART>20240101
<DTEND>20240131
"""

_STATEMENT_FOOTER = """</BANKTRANLIST>
<LEDGERBAL>
<BALAMT>100.00
<DTASOF>20240131
</LEDGERBAL>
</STMTRS>
</STMTTRNRS>
</BANKMSGSRSV1>
</OFX>
"""


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def reopen_db(temp_db):
    """Open a second connection to the temporary database.

    CLI commands write through their own session, so state is read back
    through a fresh one.
    """
    opened = []

    def _open():
        db = create_sqlite_database(database_path=temp_db.database_path)
        db.connect()
        opened.append(db)
        return db

    yield _open

    for db in opened:
        db.disconnect()


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def import_service(temp_db):
    """Create a StatementImportService with a temporary database."""
    return StatementImportService(temp_db)


@pytest.fixture
def sample_account(account_service):
    """Create a sample account with an opening balance of 1000.00."""
    account_id = account_service.create_account(
        name="Test Account", bank_name="Test Bank", currency="USD", balance=Decimal("1000.00")
    )
    return account_service.get_account(account_id)


@pytest.fixture
def other_account(account_service):
    """Create a second account."""
    account_id = account_service.create_account(name="Savings", bank_name="Test Bank")
    return account_service.get_account(account_id)


@pytest.fixture
def sample_categories(category_service):
    """Create a small category tree and return IDs keyed by path."""
    category_ids = {}
    for name, parent, category_type in SAMPLE_CATEGORIES:
        category_id = category_service.create_category(
            name=name, parent_path=parent, category_type=category_type
        )
        path = f"{parent} > {name}" if parent else name
        category_ids[path] = category_id
    return category_ids


@pytest.fixture
def make_statement():
    """Build SGML statement bytes from (fitid, posted, amount, name) tuples.

    An entry may carry a fifth TRNTYPE element; fitid None leaves FITID out.
    """

    def _make(entries) -> bytes:
        blocks = []
        for entry in entries:
            fitid, posted, amount, name = entry[:4]
            trntype = entry[4] if len(entry) > 4 else ("CREDIT" if not amount.startswith("-") else "DEBIT")
            lines = ["<STMTTRN>", f"<TRNTYPE>{trntype}", f"<DTPOSTED>{posted}", f"<TRNAMT>{amount}"]
            if fitid is not None:
                lines.append(f"<FITID>{fitid}")
            lines.append(f"<NAME>{name}")
            lines.append("</STMTTRN>")
            blocks.append("\n".join(lines) + "\n")
        return (_STATEMENT_HEADER + "".join(blocks) + _STATEMENT_FOOTER).encode("ascii")

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
