"""Shared pytest fixtures for pocketledger tests."""

import tempfile
import os
from datetime import date
import pytest

from pocketledger.database.factories import create_sqlite_database
from pocketledger.domain.account import AccountService
from pocketledger.domain.category import CategoryService
from pocketledger.domain.debt import DebtService
from pocketledger.domain.settlement import SettlementService
from pocketledger.domain.transaction import TransactionService
from pocketledger.utils.clock import FixedClock

OWNER = "alice"
OTHER_OWNER = "bob"
TODAY = date(2024, 4, 15)


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
def owner():
    return OWNER


@pytest.fixture
def clock():
    """Clock frozen at a fixed business date."""
    return FixedClock(TODAY)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(temp_db)


@pytest.fixture
def transaction_service(temp_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(temp_db)


@pytest.fixture
def debt_service(temp_db, clock):
    """Create a DebtService with a temporary database and a fixed clock."""
    return DebtService(temp_db, clock=clock)


@pytest.fixture
def settlement_service(temp_db):
    """Create a SettlementService with a temporary database."""
    return SettlementService(temp_db)


@pytest.fixture
def checking(account_service):
    """Bank account opened with 1000.00."""
    account_id = account_service.create_account(OWNER, "Checking", balance="1000.00")
    return account_service.get_account(OWNER, account_id)


@pytest.fixture
def wallet(account_service):
    """Cash account opened with 100.00."""
    account_id = account_service.create_account(OWNER, "Wallet", account_type="cash", balance="100.00")
    return account_service.get_account(OWNER, account_id)


@pytest.fixture
def groceries(category_service):
    """Expense category."""
    category_id = category_service.create_category(OWNER, "Groceries", "expense")
    return category_service.get_category(OWNER, category_id)


@pytest.fixture
def salary(category_service):
    """Income category."""
    category_id = category_service.create_category(OWNER, "Salary", "income")
    return category_service.get_category(OWNER, category_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
