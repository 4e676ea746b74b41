"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, making it easy to change when
the database schema changes.
"""

from decimal import Decimal
from typing import Optional

from pocketledger.domain import entities as domain
from pocketledger.database.models import (
    Account as ORMAccount,
    Category as ORMCategory,
    Transaction as ORMTransaction,
    Debt as ORMDebt,
    DebtUpdate as ORMDebtUpdate,
    Repayment as ORMRepayment,
    Settlement as ORMSettlement,
)

CENT = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(value or 0).quantize(CENT)


def _optional_money(value) -> Optional[Decimal]:
    return None if value is None else _money(value)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        owner_id=orm_account.owner_id,
        name=orm_account.name,
        type=domain.AccountType(orm_account.type),
        balance=_money(orm_account.balance),
        currency=orm_account.currency,
        created_at=orm_account.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        owner_id=orm_category.owner_id,
        name=orm_category.name,
        type=domain.CategoryType(orm_category.type),
        created_at=orm_category.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        owner_id=orm_transaction.owner_id,
        account_id=orm_transaction.account_id,
        to_account_id=orm_transaction.to_account_id,
        category_id=orm_transaction.category_id,
        amount=_money(orm_transaction.amount),
        type=domain.TransactionType(orm_transaction.type),
        transaction_date=orm_transaction.transaction_date,
        description=orm_transaction.description,
        is_reimbursable=bool(orm_transaction.is_reimbursable),
        reimbursed_amount=_money(orm_transaction.reimbursed_amount),
        counterparty_name=orm_transaction.counterparty_name,
        settlement_group_id=orm_transaction.settlement_group_id,
        created_at=orm_transaction.created_at,
    )


def debt_to_domain(orm_debt: ORMDebt) -> domain.Debt:
    """Convert SQLAlchemy Debt model to domain Debt entity."""
    return domain.Debt(
        id=orm_debt.id,
        owner_id=orm_debt.owner_id,
        account_id=orm_debt.account_id,
        name=orm_debt.name,
        principal=_money(orm_debt.principal),
        current_balance=_money(orm_debt.current_balance),
        role=domain.DebtRole(orm_debt.role),
        status=domain.DebtStatus(orm_debt.status),
        installment_amount=_optional_money(orm_debt.installment_amount),
        frequency=domain.Frequency(orm_debt.frequency) if orm_debt.frequency else None,
        start_date=orm_debt.start_date,
        next_due_date=orm_debt.next_due_date,
        term=orm_debt.term,
        counterparty_name=orm_debt.counterparty_name,
        paid_amount=_money(orm_debt.paid_amount),
        adjustment_total=_money(orm_debt.adjustment_total),
        due_date=orm_debt.due_date,
        settlement_group_id=orm_debt.settlement_group_id,
        notes=orm_debt.notes,
        created_at=orm_debt.created_at,
    )


def debt_update_to_domain(orm_update: ORMDebtUpdate) -> domain.DebtUpdate:
    """Convert SQLAlchemy DebtUpdate model to domain DebtUpdate entity."""
    return domain.DebtUpdate(
        id=orm_update.id,
        debt_id=orm_update.debt_id,
        update_date=orm_update.update_date,
        transaction_id=orm_update.transaction_id,
        status=domain.DebtUpdateStatus(orm_update.status),
        created_at=orm_update.created_at,
    )


def repayment_to_domain(orm_repayment: ORMRepayment) -> domain.Repayment:
    """Convert SQLAlchemy Repayment model to domain Repayment entity."""
    return domain.Repayment(
        id=orm_repayment.id,
        debt_id=orm_repayment.debt_id,
        amount=_money(orm_repayment.amount),
        adjustment_amount=_money(orm_repayment.adjustment_amount),
        date=orm_repayment.date,
        notes=orm_repayment.notes,
        transaction_id=orm_repayment.transaction_id,
        created_at=orm_repayment.created_at,
    )


def settlement_to_domain(orm_settlement: ORMSettlement) -> domain.Settlement:
    """Convert SQLAlchemy Settlement model to domain Settlement entity."""
    return domain.Settlement(
        id=orm_settlement.id,
        owner_id=orm_settlement.owner_id,
        settlement_group_id=orm_settlement.settlement_group_id,
        counterparty_name=orm_settlement.counterparty_name,
        amount=_money(orm_settlement.amount),
        settlement_date=orm_settlement.settlement_date,
        notes=orm_settlement.notes,
        created_at=orm_settlement.created_at,
    )
