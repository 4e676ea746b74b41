"""Tests for database mappers."""

from datetime import datetime, date, UTC
from decimal import Decimal

from pocketledger.database.models import (
    Account as ORMAccount,
    Debt as ORMDebt,
    DebtUpdate as ORMDebtUpdate,
    Transaction as ORMTransaction,
)
from pocketledger.database.mappers import (
    account_to_domain,
    debt_to_domain,
    debt_update_to_domain,
    transaction_to_domain,
)
from pocketledger.domain.entities import (
    AccountType,
    DebtRole,
    DebtStatus,
    DebtUpdateStatus,
    Frequency,
    TransactionType,
)


class TestAccountMapper:
    """Tests for Account mapper."""

    def test_account_to_domain(self):
        """Test converting ORM Account to domain Account."""
        orm_account = ORMAccount(
            id=1,
            owner_id="alice",
            name="Checking",
            type="bank",
            balance=Decimal("12.5"),
            currency="EUR",
            created_at=datetime.now(UTC),
        )

        account = account_to_domain(orm_account)

        assert account.type is AccountType.BANK
        assert account.balance == Decimal("12.50")
        assert str(account.balance) == "12.50"
        assert account.currency == "EUR"


class TestTransactionMapper:
    """Tests for Transaction mapper."""

    def test_transaction_to_domain(self):
        orm_transaction = ORMTransaction(
            id=3,
            owner_id="alice",
            account_id=1,
            to_account_id=2,
            category_id=None,
            amount=Decimal("100"),
            type="transfer",
            transaction_date=date(2024, 1, 15),
            description="Transfer to Savings",
            is_reimbursable=False,
            reimbursed_amount=None,
            created_at=datetime.now(UTC),
        )

        txn = transaction_to_domain(orm_transaction)

        assert txn.type is TransactionType.TRANSFER
        assert txn.amount == Decimal("100.00")
        assert txn.reimbursed_amount == Decimal("0.00")
        assert txn.to_account_id == 2
        assert txn.is_reimbursable is False


class TestDebtMapper:
    """Tests for Debt mappers."""

    def test_institutional_debt_to_domain(self):
        orm_debt = ORMDebt(
            id=1,
            owner_id="alice",
            name="Car loan",
            principal=Decimal("1200"),
            current_balance=Decimal("900"),
            role="institutional",
            status="open",
            installment_amount=Decimal("100"),
            frequency="monthly",
            start_date=date(2024, 1, 15),
            next_due_date=date(2024, 4, 15),
            paid_amount=Decimal("0"),
            adjustment_total=Decimal("0"),
        )

        debt = debt_to_domain(orm_debt)

        assert debt.role is DebtRole.INSTITUTIONAL
        assert debt.status is DebtStatus.OPEN
        assert debt.frequency is Frequency.MONTHLY
        assert debt.installment_amount == Decimal("100.00")
        assert debt.counterparty_name is None

    def test_personal_debt_to_domain(self):
        orm_debt = ORMDebt(
            id=2,
            owner_id="alice",
            name="Dinner",
            principal=Decimal("40"),
            current_balance=Decimal("40"),
            role="lent",
            status="overdue",
            counterparty_name="Bob",
            paid_amount=Decimal("0"),
            adjustment_total=Decimal("-5"),
        )

        debt = debt_to_domain(orm_debt)

        assert debt.frequency is None
        assert debt.installment_amount is None
        assert debt.status is DebtStatus.OVERDUE
        assert debt.adjustment_total == Decimal("-5.00")

    def test_debt_update_to_domain(self):
        orm_update = ORMDebtUpdate(
            id=1,
            debt_id=1,
            update_date=date(2024, 2, 15),
            transaction_id=7,
            status="paid",
            created_at=datetime.now(UTC),
        )

        update = debt_update_to_domain(orm_update)

        assert update.status is DebtUpdateStatus.PAID
        assert update.transaction_id == 7
