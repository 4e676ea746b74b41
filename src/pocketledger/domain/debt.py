"""Debt domain service.

Two families of debt live here:

* institutional debts (loans, cards) amortize on a fixed schedule. Missed
  installments are applied retroactively by catch-up, one DebtUpdate row per
  due date; the (debt, due date) uniqueness makes catch-up safe to repeat.
* personal debts (money lent or borrowed) are paid down by free-form
  repayments. Their running totals are always recomputed with
  ``remaining = principal - paid + adjustments`` so that deleting a
  repayment exactly undoes adding it.
"""

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from pocketledger.database.base import Database
from pocketledger.domain.account import AccountService
from pocketledger.domain.allocation import allocate_proportionally
from pocketledger.domain.category import CategoryService
from pocketledger.domain.entities import (
    BatchRepaymentOutcome,
    BatchRepaymentResult,
    Debt,
    DebtRole,
    DebtStatus,
    DebtUpdate,
    DebtUpdateStatus,
    DebtView,
    Frequency,
    Repayment,
    TransactionType,
)
from pocketledger.domain.errors import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
    debt_not_found,
    repayment_not_found,
)
from pocketledger.domain.schedule import (
    compute_debt_status,
    debt_progress,
    debt_remaining,
    next_due_date,
    remaining_balance,
)
from pocketledger.domain.transaction import TransactionService, resolve_transaction_type
from pocketledger.utils.amount_parser import parse_amount, parse_positive_amount
from pocketledger.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _role(value: str) -> DebtRole:
    try:
        return DebtRole(value)
    except ValueError:
        raise ValidationError(
            f"Unknown debt role '{value}'. Supported: {', '.join(r.value for r in DebtRole)}"
        )


def _frequency(value: str) -> Frequency:
    try:
        return Frequency(value)
    except ValueError:
        raise ValidationError(
            f"Unknown frequency '{value}'. Supported: {', '.join(f.value for f in Frequency)}"
        )


def _status(value: str) -> DebtStatus:
    try:
        return DebtStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown debt status '{value}'")


def repayment_transaction_type(role: DebtRole) -> TransactionType:
    """Money comes back to a lender; a borrower pays money out."""
    return TransactionType.INCOME if role == DebtRole.LENT else TransactionType.EXPENSE


class DebtService:
    """Service for institutional amortization and personal debt repayments."""

    def __init__(self, db: Database, clock: Optional[Clock] = None):
        """Initialize debt service.

        Args:
            db: Database instance
            clock: Source of "today" for catch-up and overdue detection
        """
        self.db = db
        self.clock = clock or SystemClock()
        self.accounts = AccountService(db)
        self.categories = CategoryService(db)
        self.transactions = TransactionService(db)

    # Lookup
    def require_debt(self, owner_id: str, debt_id: int, lock: bool = False) -> Debt:
        """Get debt by ID or raise NotFoundError."""
        debt = self.db.get_debt(owner_id, debt_id, lock=lock)
        if debt is None:
            raise NotFoundError(debt_not_found(debt_id))
        return debt

    def get_debt(self, owner_id: str, debt_id: int) -> DebtView:
        """Get one debt with its computed remaining amount and progress."""
        return self._view(self.require_debt(owner_id, debt_id))

    def get_debts(
        self,
        owner_id: str,
        role: Optional[str] = None,
        status: Optional[str] = None,
        counterparty_name: Optional[str] = None,
    ) -> list[DebtView]:
        """List an owner's debts with computed remaining amount and progress.

        The status filter applies to the status as of today, so a personal
        debt whose due date has passed is listed as overdue.
        """
        debts = self.db.list_debts(
            owner_id,
            role=_role(role) if role else None,
            counterparty_name=counterparty_name,
        )
        views = [self._view(debt) for debt in debts]
        if status:
            wanted = _status(status)
            views = [view for view in views if view.debt.status == wanted]
        return views

    def get_debt_updates(self, owner_id: str, debt_id: int) -> list[DebtUpdate]:
        self.require_debt(owner_id, debt_id)
        return self.db.list_debt_updates(debt_id)

    def get_repayments(self, owner_id: str, debt_id: int) -> list[Repayment]:
        self.require_debt(owner_id, debt_id)
        return self.db.list_repayments(debt_id)

    def get_debt_settlement_groups(self, owner_id: str) -> list[str]:
        return self.db.list_debt_settlement_groups(owner_id)

    def get_debts_by_settlement_group(self, owner_id: str, settlement_group_id: str) -> list[DebtView]:
        debts = self.db.list_debts(owner_id, settlement_group_id=settlement_group_id)
        return [self._view(debt) for debt in debts]

    def _view(self, debt: Debt) -> DebtView:
        # Overdue depends on today, not on the last write
        if not debt.is_institutional and debt.status != DebtStatus.SETTLED:
            status = compute_debt_status(
                remaining_balance(debt.principal, debt.paid_amount, debt.adjustment_total),
                debt.due_date,
                self.clock.today(),
            )
            if status != debt.status:
                debt = replace(debt, status=status)
        return DebtView(debt=debt, remaining=debt_remaining(debt), progress=debt_progress(debt))

    # Lifecycle
    def create_debt(
        self,
        owner_id: str,
        name: str,
        principal: str | Decimal,
        role: str = DebtRole.INSTITUTIONAL,
        account_id: Optional[int] = None,
        current_balance: Optional[str | Decimal] = None,
        installment_amount: Optional[str | Decimal] = None,
        frequency: Optional[str] = None,
        start_date: Optional[date] = None,
        term: Optional[int] = None,
        counterparty_name: Optional[str] = None,
        due_date: Optional[date] = None,
        settlement_group_id: Optional[str] = None,
        notes: Optional[str] = None,
        create_transaction: Optional[bool] = None,
        category_id: Optional[int] = None,
    ) -> Debt:
        """Create a debt.

        Institutional debts need ``installment_amount``, ``frequency`` and
        ``start_date``; their first installment falls due on ``start_date``.

        Personal (lent/borrowed) debts can record the principal moving as a
        linked transaction: always when ``create_transaction`` is True, by
        default when an account is given, never when it is False.

        Raises:
            ValidationError: If required fields are missing or invalid
            NotFoundError: If the account or category does not exist
        """
        if not name or not name.strip():
            raise ValidationError("Debt name is required")
        role = _role(role)
        principal = parse_positive_amount(principal, "Principal")

        with self.db.atomic():
            if account_id is not None:
                self.accounts.require_account(owner_id, account_id)

            if role == DebtRole.INSTITUTIONAL:
                debt_id = self._create_institutional(
                    owner_id,
                    name.strip(),
                    principal,
                    account_id,
                    current_balance,
                    installment_amount,
                    frequency,
                    start_date,
                    term,
                    notes,
                )
            else:
                debt_id = self._create_personal(
                    owner_id,
                    name.strip(),
                    principal,
                    role,
                    account_id,
                    counterparty_name,
                    due_date,
                    settlement_group_id,
                    notes,
                    create_transaction,
                    category_id,
                )

        logger.info("Created %s debt %s for owner %s: %s", role, debt_id, owner_id, principal)
        return self.require_debt(owner_id, debt_id)

    def _create_institutional(
        self,
        owner_id,
        name,
        principal,
        account_id,
        current_balance,
        installment_amount,
        frequency,
        start_date,
        term,
        notes,
    ) -> int:
        if installment_amount is None or frequency is None or start_date is None:
            raise ValidationError(
                "Institutional debts require installment_amount, frequency and start_date"
            )
        if term is not None and term <= 0:
            raise ValidationError("Term must be a positive number of installments")
        balance = principal if current_balance is None else parse_amount(current_balance)
        return self.db.create_debt(
            owner_id,
            account_id=account_id,
            name=name,
            principal=principal,
            current_balance=balance,
            role=DebtRole.INSTITUTIONAL,
            status=DebtStatus.SETTLED if balance <= 0 else DebtStatus.OPEN,
            installment_amount=parse_positive_amount(installment_amount, "Installment amount"),
            frequency=_frequency(frequency),
            start_date=start_date,
            next_due_date=start_date,
            term=term,
            notes=notes,
        )

    def _create_personal(
        self,
        owner_id,
        name,
        principal,
        role,
        account_id,
        counterparty_name,
        due_date,
        settlement_group_id,
        notes,
        create_transaction,
        category_id,
    ) -> int:
        today = self.clock.today()
        debt_id = self.db.create_debt(
            owner_id,
            account_id=account_id,
            name=name,
            principal=principal,
            current_balance=principal,
            role=role,
            status=compute_debt_status(principal, due_date, today),
            counterparty_name=counterparty_name,
            paid_amount=ZERO,
            adjustment_total=ZERO,
            due_date=due_date,
            settlement_group_id=settlement_group_id,
            notes=notes,
        )

        if create_transaction is None:
            create_transaction = account_id is not None
        if create_transaction:
            category = None
            if category_id is not None:
                category = self.categories.require_category(owner_id, category_id)
            if role == DebtRole.LENT:
                txn_type = TransactionType.EXPENSE
                description = f"Lent to {counterparty_name or name}"
            else:
                txn_type = (
                    resolve_transaction_type(None, category)
                    if category is not None
                    else TransactionType.INCOME
                )
                description = f"Borrowed from {counterparty_name or name}"
            self.transactions.create_transaction(
                owner_id,
                amount=principal,
                transaction_date=today,
                transaction_type=txn_type,
                account_id=account_id,
                category_id=category_id,
                description=description,
            )
        return debt_id

    def update_debt(
        self,
        owner_id: str,
        debt_id: int,
        name: Optional[str] = None,
        account_id: Optional[int] = None,
        notes: Optional[str] = None,
        due_date: Optional[date] = None,
        status: Optional[str] = None,
    ) -> Debt:
        """Update descriptive fields of a debt.

        Changing the due date of a personal debt recomputes its status; an
        explicit ``status`` overrides the computed one.
        """
        with self.db.atomic():
            debt = self.require_debt(owner_id, debt_id, lock=True)
            fields = {}
            if name is not None:
                if not name.strip():
                    raise ValidationError("Debt name is required")
                fields["name"] = name.strip()
            if account_id is not None:
                self.accounts.require_account(owner_id, account_id)
                fields["account_id"] = account_id
            if notes is not None:
                fields["notes"] = notes
            if due_date is not None:
                fields["due_date"] = due_date
                if not debt.is_institutional:
                    fields["status"] = compute_debt_status(
                        remaining_balance(debt.principal, debt.paid_amount, debt.adjustment_total),
                        due_date,
                        self.clock.today(),
                    )
            if status is not None:
                fields["status"] = _status(status)
            if fields:
                self.db.update_debt(debt_id, **fields)
        return self.require_debt(owner_id, debt_id)

    def delete_debt(self, owner_id: str, debt_id: int) -> Debt:
        """Delete a debt with its schedule rows and repayments.

        Transactions already created for it stay: the money did move.
        """
        with self.db.atomic():
            debt = self.require_debt(owner_id, debt_id, lock=True)
            self.db.delete_debt(debt_id)
        logger.info("Deleted debt %s for owner %s", debt_id, owner_id)
        return debt

    # Institutional amortization
    def _is_paid_off(self, debt: Debt) -> bool:
        if debt.current_balance <= 0:
            return True
        if debt.term is not None:
            return len(self.db.list_debt_updates(debt.id)) >= debt.term
        return False

    def _apply_debt_update(self, debt: Debt, due: date, transaction_date: date) -> Debt:
        """Pay one installment: linked expense, DebtUpdate row, amortization."""
        category_id = self.categories.find_or_create_debt_payment_category(debt.owner_id)
        txn = self.transactions.create_transaction(
            debt.owner_id,
            amount=debt.installment_amount,
            transaction_date=transaction_date,
            transaction_type=TransactionType.EXPENSE,
            account_id=debt.account_id,
            category_id=category_id,
            description=f"{debt.name} Payment",
        )
        self.db.create_debt_update(debt.id, due, txn.id, DebtUpdateStatus.PAID)

        new_balance = debt.current_balance - debt.installment_amount
        self.db.update_debt(
            debt.id,
            current_balance=new_balance,
            next_due_date=next_due_date(debt.start_date, debt.frequency, due),
            status=DebtStatus.SETTLED if new_balance <= 0 else DebtStatus.OPEN,
        )
        logger.info(
            "Applied installment of debt %s due %s: balance %s -> %s",
            debt.id,
            due,
            debt.current_balance,
            new_balance,
        )
        return self.require_debt(debt.owner_id, debt.id)

    def _require_institutional(self, owner_id: str, debt_id: int) -> Debt:
        debt = self.require_debt(owner_id, debt_id)
        if not debt.is_institutional:
            raise InvalidOperationError(
                f"Debt {debt_id} is a {debt.role} debt; scheduled payments apply to institutional debts only"
            )
        return debt

    def catch_up_debt(self, owner_id: str, debt_id: int) -> Debt:
        """Apply every installment that fell due before today.

        Each installment is its own atomic unit. Due dates that already have
        a DebtUpdate row are skipped, so running catch-up again is a no-op.

        Raises:
            NotFoundError: If the debt does not exist
            InvalidOperationError: If the debt is not institutional
        """
        debt = self._require_institutional(owner_id, debt_id)
        today = self.clock.today()

        last = self.db.get_last_debt_update(debt.id)
        due = next_due_date(debt.start_date, debt.frequency, last.update_date) if last else debt.start_date

        while due < today:
            try:
                with self.db.atomic():
                    debt = self.require_debt(owner_id, debt_id, lock=True)
                    if self._is_paid_off(debt):
                        break
                    if self.db.get_debt_update_for_date(debt.id, due) is None:
                        debt = self._apply_debt_update(debt, due, due)
                    else:
                        logger.debug("Debt %s installment %s already applied", debt.id, due)
            except ConflictError:
                logger.info("Debt %s installment %s applied concurrently; skipping", debt_id, due)
            due = next_due_date(debt.start_date, debt.frequency, due)

        return self.require_debt(owner_id, debt_id)

    def catch_up_all_debts(self, owner_id: str) -> list[Debt]:
        """Run catch-up for every institutional debt of an owner."""
        caught_up = []
        for debt in self.db.list_debts(owner_id, role=DebtRole.INSTITUTIONAL):
            caught_up.append(self.catch_up_debt(owner_id, debt.id))
        return caught_up

    def pay_early(self, owner_id: str, debt_id: int) -> Debt:
        """Pay the upcoming installment today, before it falls due.

        The DebtUpdate row is keyed by the installment's due date, so the
        schedule advances by exactly one period and catch-up will not apply
        that installment again.

        Raises:
            InvalidOperationError: If today is on or after the due date (use
                catch-up) or the debt is already paid off
        """
        today = self.clock.today()
        with self.db.atomic():
            debt = self._require_institutional(owner_id, debt_id)
            debt = self.require_debt(owner_id, debt_id, lock=True)
            if self._is_paid_off(debt):
                raise InvalidOperationError(f"Debt {debt_id} is already paid off")
            due = debt.next_due_date
            if today >= due:
                raise InvalidOperationError(
                    f"Installment of debt {debt_id} was due {due}; run catch-up instead of paying early"
                )
            debt = self._apply_debt_update(debt, due, today)
        return debt

    # Personal repayments
    def _apply_repayment_totals(
        self, debt: Debt, amount_delta: Decimal, adjustment_delta: Decimal
    ) -> None:
        paid = debt.paid_amount + amount_delta
        adjustments = debt.adjustment_total + adjustment_delta
        remaining = remaining_balance(debt.principal, paid, adjustments)
        self.db.update_debt(
            debt.id,
            paid_amount=paid,
            adjustment_total=adjustments,
            current_balance=max(ZERO, remaining),
            status=compute_debt_status(remaining, debt.due_date, self.clock.today()),
        )

    def _require_personal(self, owner_id: str, debt_id: int) -> Debt:
        debt = self.require_debt(owner_id, debt_id, lock=True)
        if debt.is_institutional:
            raise InvalidOperationError(
                f"Debt {debt_id} is institutional; its payments are applied by catch-up"
            )
        return debt

    def add_repayment(
        self,
        owner_id: str,
        debt_id: int,
        amount: str | Decimal,
        repayment_date: Optional[date] = None,
        adjustment_amount: str | Decimal = "0",
        notes: Optional[str] = None,
        account_id: Optional[int] = None,
    ) -> Repayment:
        """Record a repayment against a personal debt.

        ``adjustment_amount`` raises (positive) or lowers (negative) what is
        owed, e.g. interest or a waived part. With an account, the money
        movement is recorded as a linked transaction.

        Raises:
            NotFoundError: If the debt or account does not exist
            InvalidOperationError: If the debt is institutional
            ValidationError: If the amounts are invalid
        """
        amount = parse_amount(amount)
        adjustment = parse_amount(adjustment_amount)
        if amount < 0:
            raise ValidationError("Repayment amount cannot be negative")
        if amount == 0 and adjustment == 0:
            raise ValidationError("Repayment needs an amount or an adjustment")
        repayment_date = repayment_date or self.clock.today()

        with self.db.atomic():
            debt = self._require_personal(owner_id, debt_id)
            transaction_id = None
            if account_id is not None and amount > 0:
                txn = self.transactions.create_transaction(
                    owner_id,
                    amount=amount,
                    transaction_date=repayment_date,
                    transaction_type=repayment_transaction_type(debt.role),
                    account_id=account_id,
                    description=self._repayment_description(debt),
                )
                transaction_id = txn.id
            repayment_id = self.db.create_repayment(
                debt.id, amount, adjustment, repayment_date, notes, transaction_id
            )
            self._apply_repayment_totals(debt, amount, adjustment)

        logger.info("Added repayment %s of %s to debt %s", repayment_id, amount, debt_id)
        return self.db.get_repayment(debt_id, repayment_id)

    @staticmethod
    def _repayment_description(debt: Debt) -> str:
        party = debt.counterparty_name or debt.name
        if debt.role == DebtRole.LENT:
            return f"Repayment from {party}"
        return f"Repayment to {party}"

    def delete_repayment(self, owner_id: str, debt_id: int, repayment_id: int) -> Debt:
        """Undo a repayment: totals, status, linked transaction and the row itself.

        Raises:
            NotFoundError: If the debt or repayment does not exist
        """
        with self.db.atomic():
            debt = self._require_personal(owner_id, debt_id)
            repayment = self.db.get_repayment(debt_id, repayment_id)
            if repayment is None:
                raise NotFoundError(repayment_not_found(repayment_id, debt_id))

            self._apply_repayment_totals(debt, -repayment.amount, -repayment.adjustment_amount)
            if repayment.transaction_id is not None:
                if self.db.get_transaction(owner_id, repayment.transaction_id) is not None:
                    self.transactions.delete_transaction(owner_id, repayment.transaction_id)
            self.db.delete_repayment(repayment_id)

        logger.info("Deleted repayment %s of debt %s", repayment_id, debt_id)
        return self.require_debt(owner_id, debt_id)

    def batch_repayment(
        self,
        owner_id: str,
        debt_ids: Sequence[int],
        payment_amount: str | Decimal,
        repayment_date: Optional[date] = None,
        adjustment_amount: str | Decimal = "0",
        notes: Optional[str] = None,
        account_id: Optional[int] = None,
    ) -> BatchRepaymentResult:
        """Spread one payment over several personal debts by remaining amount.

        Each debt receives ``payment * remaining / total_remaining`` (see
        allocate_proportionally for the cent policy) as its own Repayment.
        Settled debts are skipped. With an account, a single transaction for
        the whole payment is linked to the first updated debt's repayment.

        Raises:
            NotFoundError: If a debt or the account does not exist
            InvalidOperationError: If a debt is institutional, lent and
                borrowed debts are mixed, nothing is outstanding or the
                payment exceeds the total remaining
        """
        payment = parse_positive_amount(payment_amount, "Payment amount")
        adjustment = parse_amount(adjustment_amount)
        debt_ids = list(dict.fromkeys(debt_ids))
        if not debt_ids:
            raise ValidationError("Select at least one debt")
        repayment_date = repayment_date or self.clock.today()

        with self.db.atomic():
            debts = [self._require_personal(owner_id, debt_id) for debt_id in debt_ids]
            roles = {debt.role for debt in debts}
            if len(roles) > 1:
                raise InvalidOperationError(
                    "Cannot mix lent and borrowed debts in one batch repayment"
                )

            weights = [debt_remaining(debt) for debt in debts]
            total_remaining = sum(weights, ZERO)
            if total_remaining <= 0:
                raise InvalidOperationError("All selected debts are already settled")
            if payment > total_remaining:
                raise InvalidOperationError(
                    f"Payment {payment:.2f} exceeds total remaining {total_remaining:.2f}"
                )

            shares = allocate_proportionally(payment, weights)
            if adjustment:
                adjustment_shares = allocate_proportionally(adjustment, weights, cap=False)
            else:
                adjustment_shares = [ZERO] * len(debts)

            outcomes = []
            first_repayment_id = None
            for debt, share, adjustment_share in zip(debts, shares, adjustment_shares):
                if share == 0 and adjustment_share == 0:
                    logger.debug("Batch repayment skips debt %s", debt.id)
                    outcomes.append(BatchRepaymentOutcome(debt_id=debt.id, outcome="skipped", debt=debt))
                    continue
                repayment_id = self.db.create_repayment(
                    debt.id, share, adjustment_share, repayment_date, notes
                )
                self._apply_repayment_totals(debt, share, adjustment_share)
                if first_repayment_id is None:
                    first_repayment_id = repayment_id
                outcomes.append(
                    BatchRepaymentOutcome(
                        debt_id=debt.id,
                        outcome="updated",
                        amount=share,
                        adjustment_amount=adjustment_share,
                        repayment_id=repayment_id,
                        debt=self.require_debt(owner_id, debt.id),
                    )
                )

            txn = None
            if account_id is not None:
                txn = self.transactions.create_transaction(
                    owner_id,
                    amount=payment,
                    transaction_date=repayment_date,
                    transaction_type=repayment_transaction_type(debts[0].role),
                    account_id=account_id,
                    description=f"Batch repayment ({len(debt_ids)} debts)",
                )
                self.db.set_repayment_transaction(first_repayment_id, txn.id)

        logger.info(
            "Batch repayment of %s over %d debts for owner %s", payment, len(debt_ids), owner_id
        )
        return BatchRepaymentResult(outcomes=outcomes, transaction=txn)
