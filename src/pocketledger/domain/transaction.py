"""Transaction domain service.

Balance effects are derived, never stored: a transaction's ``type``,
``amount`` and account references fully determine how it moved money, so
reversing a transaction means applying the negation of the same effect
computed from a snapshot of the row as it was before the change.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from pocketledger.database.base import Database
from pocketledger.domain.account import AccountService
from pocketledger.domain.category import CategoryService
from pocketledger.domain.entities import (
    Category,
    Page,
    Transaction as TransactionEntity,
    TransactionType,
)
from pocketledger.domain.errors import (
    NotFoundError,
    ValidationError,
    transaction_not_found,
)
from pocketledger.utils.amount_parser import parse_positive_amount

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


def resolve_transaction_type(
    explicit_type: Optional[str], category: Optional[Category]
) -> TransactionType:
    """Determine the effective type of a transaction.

    An explicit type always wins; otherwise the category's type is used.

    Raises:
        ValidationError: If the type is unknown or cannot be determined
    """
    if explicit_type is not None:
        try:
            return TransactionType(explicit_type)
        except ValueError:
            raise ValidationError(
                f"Unknown transaction type '{explicit_type}'. "
                f"Supported: {', '.join(t.value for t in TransactionType)}"
            )
    if category is not None:
        return TransactionType(category.type.value)
    raise ValidationError("Transaction type is required when no category is given")


def moves_between_accounts(transaction_type: TransactionType, to_account_id: Optional[int]) -> bool:
    """True for transfers and for savings that name a destination account."""
    if transaction_type == TransactionType.TRANSFER:
        return True
    return transaction_type == TransactionType.SAVINGS and to_account_id is not None


def balance_effects(
    transaction_type: TransactionType,
    amount: Decimal,
    account_id: Optional[int],
    to_account_id: Optional[int],
) -> dict[int, Decimal]:
    """Signed balance delta per account caused by a transaction.

    Returns an empty mapping for transactions with no account (tracking-only
    records).

    Raises:
        ValidationError: If a transfer is missing its source or destination
    """
    effects: dict[int, Decimal] = {}
    if moves_between_accounts(transaction_type, to_account_id):
        if account_id is None or to_account_id is None:
            raise ValidationError("Transfers require both a source and a destination account")
        effects[account_id] = effects.get(account_id, Decimal("0")) - amount
        effects[to_account_id] = effects.get(to_account_id, Decimal("0")) + amount
    elif account_id is not None:
        sign = -1 if transaction_type == TransactionType.EXPENSE else 1
        effects[account_id] = sign * amount
    return effects


def move_label(transaction_type: TransactionType, destination_name: str) -> str:
    """Label naming the destination of a transfer or savings move."""
    if transaction_type == TransactionType.TRANSFER:
        return f"Transfer to {destination_name}"
    return f"Savings to {destination_name}"


def compose_move_description(
    description: Optional[str],
    transaction_type: TransactionType,
    destination_name: str,
    previous_label: Optional[str] = None,
) -> str:
    """Mention the destination account unless the text already says transfer.

    ``previous_label`` is the label added for the old destination; it is
    removed first so a changed destination replaces it instead of stacking.
    """
    label = move_label(transaction_type, destination_name)
    if description and previous_label and previous_label != label:
        if description == previous_label:
            description = None
        elif description.endswith(f" ({previous_label})"):
            description = description[: -len(previous_label) - 3]
    if description and ("transfer" in description.lower() or label in description):
        return description
    return f"{description} ({label})" if description else label


class TransactionService:
    """Service for managing transactions and the balances they move."""

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db
        self.accounts = AccountService(db)
        self.categories = CategoryService(db)

    def _apply_effects(self, owner_id: str, effects: dict[int, Decimal]) -> None:
        # Lock accounts in id order so concurrent writers cannot deadlock
        for account_id in sorted(effects):
            self.accounts.adjust_balance(owner_id, account_id, effects[account_id])

    def _reverse_effects(self, owner_id: str, snapshot: TransactionEntity) -> None:
        effects = balance_effects(
            snapshot.type, snapshot.amount, snapshot.account_id, snapshot.to_account_id
        )
        for account_id in sorted(effects):
            account = self.db.adjust_account_balance(owner_id, account_id, -effects[account_id])
            if account is None:
                logger.warning(
                    "Account %s of transaction %s no longer exists; skipping reversal",
                    account_id,
                    snapshot.id,
                )

    def _describe(
        self,
        owner_id: str,
        transaction_type: TransactionType,
        account_id: Optional[int],
        to_account_id: Optional[int],
        description: Optional[str],
        previous_label: Optional[str] = None,
    ) -> Optional[str]:
        """Check referenced accounts exist and build the stored description."""
        if moves_between_accounts(transaction_type, to_account_id):
            if account_id is None or to_account_id is None:
                raise ValidationError("Transfers require both a source and a destination account")
            self.accounts.require_account(owner_id, account_id)
            destination = self.accounts.require_account(owner_id, to_account_id)
            return compose_move_description(
                description, transaction_type, destination.name, previous_label
            )
        if account_id is not None:
            self.accounts.require_account(owner_id, account_id)
        return description

    def create_transaction(
        self,
        owner_id: str,
        amount: str | Decimal,
        transaction_date: date,
        transaction_type: Optional[str] = None,
        account_id: Optional[int] = None,
        to_account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        description: Optional[str] = None,
        is_reimbursable: bool = False,
        counterparty_name: Optional[str] = None,
        settlement_group_id: Optional[str] = None,
    ) -> TransactionEntity:
        """Create a transaction and apply its balance effect.

        Args:
            owner_id: Owning user
            amount: Positive amount
            transaction_date: Business date of the transaction
            transaction_type: expense, income, savings or transfer; derived
                from the category when omitted
            account_id: Account the money leaves (expense, transfer) or enters
            to_account_id: Destination for transfers and savings moves
            category_id: Optional category
            description: Optional free text
            is_reimbursable: Whether a third party is expected to pay it back
            counterparty_name: Who owes the reimbursement
            settlement_group_id: Label grouping reimbursable transactions

        Returns:
            The persisted transaction

        Raises:
            NotFoundError: If a referenced account or category does not exist
            ValidationError: If the amount or type is invalid
        """
        amount = parse_positive_amount(amount)

        with self.db.atomic():
            category = None
            if category_id is not None:
                category = self.categories.require_category(owner_id, category_id)
            txn_type = resolve_transaction_type(transaction_type, category)
            if not moves_between_accounts(txn_type, to_account_id):
                to_account_id = None

            description = self._describe(owner_id, txn_type, account_id, to_account_id, description)
            self._apply_effects(
                owner_id, balance_effects(txn_type, amount, account_id, to_account_id)
            )

            transaction_id = self.db.create_transaction(
                owner_id=owner_id,
                amount=amount,
                transaction_type=txn_type,
                transaction_date=transaction_date,
                account_id=account_id,
                to_account_id=to_account_id,
                category_id=category_id,
                description=description,
                is_reimbursable=is_reimbursable,
                counterparty_name=counterparty_name,
                settlement_group_id=settlement_group_id,
            )

        logger.info(
            "Created %s transaction %s for owner %s: %s", txn_type, transaction_id, owner_id, amount
        )
        return self.require_transaction(owner_id, transaction_id)

    def get_transaction(self, owner_id: str, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID.

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(owner_id, transaction_id)

    def require_transaction(self, owner_id: str, transaction_id: int) -> TransactionEntity:
        """Get transaction by ID or raise NotFoundError."""
        txn = self.db.get_transaction(owner_id, transaction_id)
        if txn is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return txn

    def update_transaction(
        self,
        owner_id: str,
        transaction_id: int,
        amount: Optional[str | Decimal] = None,
        transaction_type: Optional[str] = None,
        account_id: Optional[int] = None,
        to_account_id: Optional[int] = None,
        category_id: Optional[int] = None,
        transaction_date: Optional[date] = None,
        description: Optional[str] = None,
        clear_category: bool = False,
        clear_account: bool = False,
    ) -> TransactionEntity:
        """Update a transaction, moving balances from the old to the new effect.

        Fields left as None keep their stored value. The old effect is always
        reversed from the stored row, then the new effect is applied, so
        repeating the same update leaves balances unchanged.

        Args:
            clear_category: If True, remove the category (category_id must be None)
            clear_account: If True, detach the transaction from its account

        Raises:
            NotFoundError: If the transaction, or a new account or category, does not exist
            ValidationError: If the new values are inconsistent
        """
        if clear_category and category_id is not None:
            raise ValidationError("Cannot set both category_id and clear_category")
        if clear_account and account_id is not None:
            raise ValidationError("Cannot set both account_id and clear_account")

        with self.db.atomic():
            snapshot = self.require_transaction(owner_id, transaction_id)

            new_amount = parse_positive_amount(amount) if amount is not None else snapshot.amount
            if new_amount < snapshot.reimbursed_amount:
                raise ValidationError(
                    f"Amount {new_amount} is below the already reimbursed {snapshot.reimbursed_amount}"
                )

            category = None
            if clear_category:
                new_category_id = None
            elif category_id is not None:
                category = self.categories.require_category(owner_id, category_id)
                new_category_id = category_id
            else:
                new_category_id = snapshot.category_id

            if transaction_type is not None or category is not None:
                new_type = resolve_transaction_type(transaction_type, category)
            else:
                new_type = snapshot.type

            if clear_account:
                new_account_id = None
            else:
                new_account_id = account_id if account_id is not None else snapshot.account_id
            new_to_account_id = to_account_id if to_account_id is not None else snapshot.to_account_id
            if not moves_between_accounts(new_type, new_to_account_id):
                new_to_account_id = None

            previous_label = None
            if description is None and moves_between_accounts(snapshot.type, snapshot.to_account_id):
                old_destination = self.db.get_account(owner_id, snapshot.to_account_id)
                if old_destination is not None:
                    previous_label = move_label(snapshot.type, old_destination.name)

            new_description = self._describe(
                owner_id,
                new_type,
                new_account_id,
                new_to_account_id,
                description if description is not None else snapshot.description,
                previous_label,
            )

            self._reverse_effects(owner_id, snapshot)
            self._apply_effects(
                owner_id,
                balance_effects(new_type, new_amount, new_account_id, new_to_account_id),
            )

            self.db.update_transaction(
                transaction_id,
                account_id=new_account_id,
                to_account_id=new_to_account_id,
                category_id=new_category_id,
                amount=new_amount,
                transaction_type=new_type,
                transaction_date=transaction_date or snapshot.transaction_date,
                description=new_description,
            )

        logger.info("Updated transaction %s for owner %s", transaction_id, owner_id)
        return self.require_transaction(owner_id, transaction_id)

    def delete_transaction(self, owner_id: str, transaction_id: int) -> TransactionEntity:
        """Delete a transaction after reversing its balance effect.

        Returns:
            The transaction as it was before deletion

        Raises:
            NotFoundError: If transaction doesn't exist
        """
        with self.db.atomic():
            snapshot = self.require_transaction(owner_id, transaction_id)
            self._reverse_effects(owner_id, snapshot)
            self.db.delete_transaction(transaction_id)

        logger.info("Deleted transaction %s for owner %s", transaction_id, owner_id)
        return snapshot

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
    ) -> list[TransactionEntity]:
        """List an owner's transactions, newest first.

        Args:
            start_date: Optional start date filter (inclusive)
            end_date: Optional end date filter (inclusive)
            category_id: Optional category ID filter
            account_id: Optional (source) account ID filter
            transaction_type: Optional type filter
            is_reimbursable: Optional reimbursable flag filter
            settlement_group_id: Optional settlement group filter
            counterparty_name: Optional counterparty filter
        """
        return self.db.list_transactions(
            owner_id,
            start_date=start_date,
            end_date=end_date,
            category_id=category_id,
            account_id=account_id,
            transaction_type=_optional_type(transaction_type),
            is_reimbursable=is_reimbursable,
            settlement_group_id=settlement_group_id,
            counterparty_name=counterparty_name,
        )

    def list_transactions_page(
        self, owner_id: str, offset: int = 0, limit: int = DEFAULT_PAGE_SIZE, **filters
    ) -> Page:
        """Paginated variant of :meth:`list_transactions`."""
        if offset < 0 or limit <= 0:
            raise ValidationError("Offset must be >= 0 and limit must be > 0")
        if "transaction_type" in filters:
            filters["transaction_type"] = _optional_type(filters["transaction_type"])
        items = self.db.list_transactions(owner_id, offset=offset, limit=limit, **filters)
        total = self.db.count_transactions(owner_id, **filters)
        return Page(items=items, total=total, offset=offset, limit=limit)

    def mark_reimbursable(
        self,
        owner_id: str,
        transaction_id: int,
        counterparty_name: str,
        settlement_group_id: Optional[str] = None,
    ) -> TransactionEntity:
        """Flag a transaction as expected to be paid back.

        Any previously tracked reimbursement is reset to zero.
        """
        if not counterparty_name or not counterparty_name.strip():
            raise ValidationError("Counterparty name is required")
        with self.db.atomic():
            self.require_transaction(owner_id, transaction_id)
            self.db.set_reimbursement(
                transaction_id,
                reimbursed_amount=Decimal("0.00"),
                is_reimbursable=True,
                counterparty_name=counterparty_name.strip(),
                settlement_group_id=settlement_group_id or None,
                update_labels=True,
            )
        return self.require_transaction(owner_id, transaction_id)

    def get_summary(
        self,
        owner_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category_id: Optional[int] = None,
        account_id: Optional[int] = None,
        transaction_type: Optional[str] = None,
    ) -> dict[str, Decimal]:
        """Total amount per transaction type."""
        summary: dict[str, Decimal] = {}
        for txn in self.list_transactions(
            owner_id,
            start_date=start_date,
            end_date=end_date,
            category_id=category_id,
            account_id=account_id,
            transaction_type=transaction_type,
        ):
            summary[txn.type.value] = summary.get(txn.type.value, Decimal("0.00")) + txn.amount
        return summary


def _optional_type(value: Optional[str]) -> Optional[TransactionType]:
    return None if value is None else resolve_transaction_type(value, None)
