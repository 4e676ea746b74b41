"""Domain model entities for pocketledger.

These are pure data classes representing business concepts, independent of
database schema. Services read them as immutable snapshots: any computation
that needs "the value before this change" (balance reversal, repayment
rollback) reads it from the snapshot, never from a row that is being mutated.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import StrEnum
from typing import Optional


class AccountType(StrEnum):
    BANK = "bank"
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    WALLET = "wallet"
    SAVINGS = "savings"


class CategoryType(StrEnum):
    EXPENSE = "expense"
    INCOME = "income"
    SAVINGS = "savings"


class TransactionType(StrEnum):
    EXPENSE = "expense"
    INCOME = "income"
    SAVINGS = "savings"
    TRANSFER = "transfer"


class DebtRole(StrEnum):
    LENT = "lent"
    BORROWED = "borrowed"
    INSTITUTIONAL = "institutional"


class DebtStatus(StrEnum):
    OPEN = "open"
    SETTLED = "settled"
    OVERDUE = "overdue"


class Frequency(StrEnum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class DebtUpdateStatus(StrEnum):
    PAID = "paid"
    PENDING = "pending"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Account:
    """Money-holding account domain entity."""

    id: int
    owner_id: str
    name: str
    type: AccountType
    balance: Decimal
    currency: str
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Category domain entity. Its type implies a transaction type."""

    id: int
    owner_id: str
    name: str
    type: CategoryType
    created_at: datetime


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity.

    ``amount`` is never negative; the direction of the balance effect is
    derived from ``type``.
    """

    id: int
    owner_id: str
    account_id: Optional[int]
    to_account_id: Optional[int]
    category_id: Optional[int]
    amount: Decimal
    type: TransactionType
    transaction_date: date
    description: Optional[str]
    is_reimbursable: bool
    reimbursed_amount: Decimal
    counterparty_name: Optional[str]
    settlement_group_id: Optional[str]
    created_at: datetime

    @property
    def pending_reimbursement(self) -> Decimal:
        """Amount still expected back from the counterparty."""
        return self.amount - self.reimbursed_amount


@dataclass(frozen=True)
class Debt:
    """Debt domain entity covering institutional and personal debts."""

    id: int
    owner_id: str
    account_id: Optional[int]
    name: str
    principal: Decimal
    current_balance: Decimal
    role: DebtRole
    status: DebtStatus
    # Institutional only
    installment_amount: Optional[Decimal] = None
    frequency: Optional[Frequency] = None
    start_date: Optional[date] = None
    next_due_date: Optional[date] = None
    term: Optional[int] = None
    # Personal only
    counterparty_name: Optional[str] = None
    paid_amount: Decimal = Decimal("0.00")
    adjustment_total: Decimal = Decimal("0.00")
    due_date: Optional[date] = None
    settlement_group_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_institutional(self) -> bool:
        return self.role == DebtRole.INSTITUTIONAL


@dataclass(frozen=True)
class DebtUpdate:
    """One applied (or attempted) scheduled installment of an institutional debt."""

    id: int
    debt_id: int
    update_date: date
    transaction_id: Optional[int]
    status: DebtUpdateStatus
    created_at: datetime


@dataclass(frozen=True)
class Repayment:
    """Informal payment against a personal debt."""

    id: int
    debt_id: int
    amount: Decimal
    adjustment_amount: Decimal
    date: date
    notes: Optional[str]
    transaction_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class Settlement:
    """Money received and distributed across reimbursable transactions."""

    id: int
    owner_id: str
    settlement_group_id: Optional[str]
    counterparty_name: Optional[str]
    amount: Decimal
    settlement_date: date
    notes: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class DebtView:
    """Debt augmented with computed figures for listing."""

    debt: Debt
    remaining: Decimal
    progress: Decimal


@dataclass(frozen=True)
class BatchRepaymentOutcome:
    """Per-debt result of a batch repayment."""

    debt_id: int
    outcome: str  # "updated" or "skipped"
    amount: Decimal = Decimal("0.00")
    adjustment_amount: Decimal = Decimal("0.00")
    repayment_id: Optional[int] = None
    debt: Optional[Debt] = None


@dataclass(frozen=True)
class BatchRepaymentResult:
    outcomes: list[BatchRepaymentOutcome]
    transaction: Optional[Transaction] = None


@dataclass(frozen=True)
class SettlementAllocation:
    transaction_id: int
    amount: Decimal


@dataclass(frozen=True)
class SettlementResult:
    """Persisted settlement and how its amount was distributed."""

    settlement: Settlement
    allocations: list[SettlementAllocation] = field(default_factory=list)

    @property
    def allocated_total(self) -> Decimal:
        return sum((a.amount for a in self.allocations), Decimal("0.00"))


@dataclass(frozen=True)
class Page:
    """A page of list results."""

    items: list
    total: int
    offset: int
    limit: int
