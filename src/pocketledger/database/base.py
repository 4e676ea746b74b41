"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from pocketledger.domain.entities import (
    Account,
    Category,
    Transaction,
    Debt,
    DebtUpdate,
    Repayment,
    Settlement,
)


class Database(ABC):
    """Abstract database interface for pocketledger.

    Every method that takes an ``owner_id`` only ever sees rows of that owner.
    Write methods commit immediately unless they run inside :meth:`atomic`,
    in which case the outermost unit commits or rolls back all of them.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Open an atomic unit of work.

        Nested units join the enclosing one through a savepoint. Leaving the
        outermost unit commits; an exception rolls the unit back and
        propagates.
        """
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self, owner_id: str, name: str, account_type: str, balance: Decimal, currency: str
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, owner_id: str, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self, owner_id: str) -> list[Account]:
        """List all accounts of an owner."""
        pass

    @abstractmethod
    def adjust_account_balance(
        self, owner_id: str, account_id: int, delta: Decimal
    ) -> Optional[Account]:
        """Add ``delta`` to an account balance under a row lock.

        Returns the updated account, or None if the account does not exist.
        """
        pass

    # Category operations
    @abstractmethod
    def create_category(self, owner_id: str, name: str, category_type: str) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, owner_id: str, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def list_categories(self, owner_id: str, category_type: Optional[str] = None) -> list[Category]:
        """List categories, optionally filtered by type."""
        pass

    @abstractmethod
    def get_or_create_category(self, owner_id: str, name: str, category_type: str) -> Category:
        """Find or create a category, safe against concurrent creation."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        owner_id: str,
        amount: Decimal,
        transaction_type: str,
        transaction_date: date,
        account_id: Optional[int] = None,
        to_account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        description: Optional[str] = None,
        is_reimbursable: bool = False,
        counterparty_name: Optional[str] = None,
        settlement_group_id: Optional[str] = None,
    ) -> int:
        """Create a transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, owner_id: str, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def update_transaction(
        self,
        transaction_id: int,
        *,
        account_id: Optional[int],
        to_account_id: Optional[int],
        category_id: Optional[int],
        amount: Decimal,
        transaction_type: str,
        transaction_date: date,
        description: Optional[str],
    ) -> None:
        """Overwrite the balance-relevant fields of a transaction."""
        pass

    @abstractmethod
    def set_reimbursement(
        self,
        transaction_id: int,
        reimbursed_amount: Decimal,
        is_reimbursable: Optional[bool] = None,
        counterparty_name: Optional[str] = None,
        settlement_group_id: Optional[str] = None,
        update_labels: bool = False,
    ) -> None:
        """Update reimbursement tracking fields of a transaction."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        owner_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category_id: Optional[int] = None,
        account_id: Optional[int] = None,
        transaction_type: Optional[str] = None,
        is_reimbursable: Optional[bool] = None,
        settlement_group_id: Optional[str] = None,
        counterparty_name: Optional[str] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """List transactions, newest first, with optional filters."""
        pass

    @abstractmethod
    def count_transactions(self, owner_id: str, **filters) -> int:
        """Count transactions matching the same filters as list_transactions."""
        pass

    @abstractmethod
    def list_reimbursable_pool(
        self,
        owner_id: str,
        settlement_group_id: Optional[str] = None,
        counterparty_name: Optional[str] = None,
    ) -> list[Transaction]:
        """Lock and return reimbursable transactions in creation order."""
        pass

    @abstractmethod
    def list_reimbursable_labels(self, owner_id: str, label: str) -> list[str]:
        """Distinct non-null ``counterparty_name`` or ``settlement_group_id``
        values of an owner's reimbursable transactions, sorted."""
        pass

    # Debt operations
    @abstractmethod
    def create_debt(self, owner_id: str, **fields) -> int:
        """Create a debt. Returns debt ID."""
        pass

    @abstractmethod
    def get_debt(self, owner_id: str, debt_id: int, lock: bool = False) -> Optional[Debt]:
        """Get debt by ID, optionally locking the row for update."""
        pass

    @abstractmethod
    def list_debts(
        self,
        owner_id: str,
        role: Optional[str] = None,
        counterparty_name: Optional[str] = None,
        settlement_group_id: Optional[str] = None,
    ) -> list[Debt]:
        """List debts with optional filters."""
        pass

    @abstractmethod
    def update_debt(self, debt_id: int, **fields) -> None:
        """Set debt columns."""
        pass

    @abstractmethod
    def delete_debt(self, debt_id: int) -> None:
        """Delete a debt together with its updates and repayments."""
        pass

    @abstractmethod
    def list_debt_settlement_groups(self, owner_id: str) -> list[str]:
        """Distinct settlement group labels used by an owner's debts."""
        pass

    # Debt update operations
    @abstractmethod
    def create_debt_update(
        self, debt_id: int, update_date: date, transaction_id: Optional[int], status: str
    ) -> int:
        """Record a scheduled installment. Returns update ID."""
        pass

    @abstractmethod
    def get_debt_update_for_date(self, debt_id: int, update_date: date) -> Optional[DebtUpdate]:
        """Get the update row of a debt for an exact due date."""
        pass

    @abstractmethod
    def get_last_debt_update(self, debt_id: int) -> Optional[DebtUpdate]:
        """Get the update row with the latest due date."""
        pass

    @abstractmethod
    def list_debt_updates(self, debt_id: int) -> list[DebtUpdate]:
        """List update rows of a debt in due-date order."""
        pass

    # Repayment operations
    @abstractmethod
    def create_repayment(
        self,
        debt_id: int,
        amount: Decimal,
        adjustment_amount: Decimal,
        repayment_date: date,
        notes: Optional[str] = None,
        transaction_id: Optional[int] = None,
    ) -> int:
        """Record a repayment. Returns repayment ID."""
        pass

    @abstractmethod
    def get_repayment(self, debt_id: int, repayment_id: int) -> Optional[Repayment]:
        """Get a repayment of a debt."""
        pass

    @abstractmethod
    def list_repayments(self, debt_id: int) -> list[Repayment]:
        """List repayments of a debt, newest first."""
        pass

    @abstractmethod
    def set_repayment_transaction(self, repayment_id: int, transaction_id: Optional[int]) -> None:
        """Link a repayment to its money-movement transaction."""
        pass

    @abstractmethod
    def delete_repayment(self, repayment_id: int) -> None:
        """Delete a repayment."""
        pass

    # Settlement operations
    @abstractmethod
    def create_settlement(
        self,
        owner_id: str,
        amount: Decimal,
        settlement_date: date,
        settlement_group_id: Optional[str] = None,
        counterparty_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Create a settlement. Returns settlement ID."""
        pass

    @abstractmethod
    def get_settlement(self, owner_id: str, settlement_id: int) -> Optional[Settlement]:
        """Get settlement by ID."""
        pass

    @abstractmethod
    def list_settlements(
        self,
        owner_id: str,
        settlement_group_id: Optional[str] = None,
        counterparty_name: Optional[str] = None,
    ) -> list[Settlement]:
        """List settlements, newest first."""
        pass

    @abstractmethod
    def delete_settlement(self, settlement_id: int) -> None:
        """Delete a settlement record."""
        pass
