"""Settlement domain service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from pocketledger.database.base import Database
from pocketledger.domain.allocation import allocate_proportionally
from pocketledger.domain.entities import Settlement, SettlementAllocation, SettlementResult
from pocketledger.domain.errors import (
    InvalidOperationError,
    NotFoundError,
    ValidationError,
    settlement_exceeds_pending,
    settlement_not_found,
)
from pocketledger.utils.amount_parser import parse_positive_amount

logger = logging.getLogger(__name__)


class SettlementService:
    """Service for distributing received money over reimbursable transactions."""

    def __init__(self, db: Database):
        """Initialize settlement service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_settlement(
        self,
        owner_id: str,
        amount: str | Decimal,
        settlement_date: date,
        settlement_group_id: Optional[str] = None,
        counterparty_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SettlementResult:
        """Record a settlement and spread it over the matching reimbursable pool.

        The pool is every reimbursable transaction of the owner matching the
        settlement group and/or counterparty, in creation order. Each member
        receives a share proportional to what is still pending on it, rounded
        down to the cent; the last member absorbs the remaining cents.

        Args:
            owner_id: Owning user
            amount: Money received
            settlement_date: Date the money was received
            settlement_group_id: Pool filter by settlement group
            counterparty_name: Pool filter by counterparty
            notes: Optional free text

        Returns:
            The persisted settlement and the per-transaction allocation

        Raises:
            ValidationError: If the amount is invalid or no pool filter is given
            InvalidOperationError: If the pool is empty or the amount exceeds
                what is pending
        """
        amount = parse_positive_amount(amount)
        settlement_group_id = settlement_group_id or None
        counterparty_name = counterparty_name or None
        if settlement_group_id is None and counterparty_name is None:
            raise ValidationError("A settlement group or counterparty is required")

        with self.db.atomic():
            pool = self.db.list_reimbursable_pool(
                owner_id,
                settlement_group_id=settlement_group_id,
                counterparty_name=counterparty_name,
            )
            if not pool:
                raise InvalidOperationError("No reimbursable transactions match this settlement")

            pending = [txn.pending_reimbursement for txn in pool]
            total_pending = sum(pending, Decimal("0.00"))
            if amount > total_pending:
                raise InvalidOperationError(settlement_exceeds_pending(amount, total_pending))

            settlement_id = self.db.create_settlement(
                owner_id,
                amount,
                settlement_date,
                settlement_group_id=settlement_group_id,
                counterparty_name=counterparty_name,
                notes=notes,
            )

            allocations = []
            for txn, share in zip(pool, allocate_proportionally(amount, pending)):
                if share == 0:
                    continue
                self.db.set_reimbursement(txn.id, txn.reimbursed_amount + share)
                allocations.append(SettlementAllocation(transaction_id=txn.id, amount=share))

        logger.info(
            "Settlement %s of %s distributed over %d transactions for owner %s",
            settlement_id,
            amount,
            len(allocations),
            owner_id,
        )
        return SettlementResult(
            settlement=self.get_settlement(owner_id, settlement_id), allocations=allocations
        )

    def get_settlement(self, owner_id: str, settlement_id: int) -> Settlement:
        """Get settlement by ID or raise NotFoundError."""
        settlement = self.db.get_settlement(owner_id, settlement_id)
        if settlement is None:
            raise NotFoundError(settlement_not_found(settlement_id))
        return settlement

    def get_user_settlements(
        self,
        owner_id: str,
        settlement_group_id: Optional[str] = None,
        counterparty_name: Optional[str] = None,
    ) -> list[Settlement]:
        """List an owner's settlements, newest first."""
        return self.db.list_settlements(
            owner_id,
            settlement_group_id=settlement_group_id,
            counterparty_name=counterparty_name,
        )

    def delete_settlement(self, owner_id: str, settlement_id: int) -> Settlement:
        """Delete a settlement record.

        Reimbursements it already applied to transactions are kept.
        """
        with self.db.atomic():
            settlement = self.get_settlement(owner_id, settlement_id)
            self.db.delete_settlement(settlement_id)
        logger.info("Deleted settlement %s for owner %s", settlement_id, owner_id)
        return settlement

    def get_counterparties(self, owner_id: str) -> list[str]:
        """Distinct counterparties of the owner's reimbursable transactions."""
        return self.db.list_reimbursable_labels(owner_id, "counterparty_name")

    def get_settlement_groups(self, owner_id: str) -> list[str]:
        """Distinct settlement groups of the owner's reimbursable transactions."""
        return self.db.list_reimbursable_labels(owner_id, "settlement_group_id")
