"""Account domain service."""

from decimal import Decimal
from typing import Optional

from pocketledger.database.base import Database
from pocketledger.domain.entities import Account as AccountEntity, AccountType
from pocketledger.domain.errors import NotFoundError, ValidationError, account_not_found
from pocketledger.utils.amount_parser import parse_amount


class AccountService:
    """Service for managing accounts.

    Balances are only written by the transaction ledger through
    :meth:`adjust_balance`; there is no "set balance" operation.
    """

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        owner_id: str,
        name: str,
        account_type: str = AccountType.BANK,
        balance: str | Decimal = "0",
        currency: str = "USD",
    ) -> int:
        """Create a new account.

        Args:
            owner_id: Owning user
            name: Account name, unique per owner
            account_type: bank, cash, credit_card, wallet or savings
            balance: Opening balance
            currency: Display currency label

        Returns:
            Account ID

        Raises:
            ValidationError: If the type or opening balance is invalid
            ConflictError: If account name already exists
        """
        if not name or not name.strip():
            raise ValidationError("Account name is required")
        try:
            account_type = AccountType(account_type)
        except ValueError:
            raise ValidationError(
                f"Unknown account type '{account_type}'. "
                f"Supported: {', '.join(t.value for t in AccountType)}"
            )
        return self.db.create_account(
            owner_id=owner_id,
            name=name.strip(),
            account_type=account_type,
            balance=parse_amount(balance),
            currency=currency,
        )

    def get_account(self, owner_id: str, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(owner_id, account_id)

    def require_account(self, owner_id: str, account_id: int) -> AccountEntity:
        """Get account by ID or raise NotFoundError."""
        account = self.db.get_account(owner_id, account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def list_accounts(self, owner_id: str) -> list[AccountEntity]:
        """List all accounts of an owner."""
        return self.db.list_accounts(owner_id)

    def adjust_balance(self, owner_id: str, account_id: int, delta: Decimal) -> AccountEntity:
        """Apply a signed delta to an account balance.

        Raises:
            NotFoundError: If the account does not exist for the owner
        """
        account = self.db.adjust_account_balance(owner_id, account_id, delta)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account
