"""Pure debt arithmetic: due dates, remaining balance, status, progress."""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from pocketledger.domain.entities import Debt, DebtStatus
from pocketledger.utils.date_parser import add_period

ZERO = Decimal("0.00")


def next_due_date(start: date, frequency: str, last: Optional[date] = None) -> date:
    """Due date following ``last`` (or ``start`` when nothing was applied yet)."""
    return add_period(last or start, frequency)


def remaining_balance(principal: Decimal, paid_amount: Decimal, adjustment_total: Decimal) -> Decimal:
    """What is still owed on a personal debt; may be negative when overpaid."""
    return principal - paid_amount + adjustment_total


def compute_debt_status(remaining: Decimal, due_date: Optional[date], today: date) -> DebtStatus:
    if remaining <= 0:
        return DebtStatus.SETTLED
    if due_date is not None and due_date < today:
        return DebtStatus.OVERDUE
    return DebtStatus.OPEN


def debt_remaining(debt: Debt) -> Decimal:
    """Remaining amount of any debt, never below zero."""
    if debt.is_institutional:
        return max(ZERO, debt.current_balance)
    return max(ZERO, remaining_balance(debt.principal, debt.paid_amount, debt.adjustment_total))


def debt_progress(debt: Debt) -> Decimal:
    """Percentage of the debt already paid off, between 0 and 100."""
    if debt.is_institutional:
        owed = debt.principal
    else:
        owed = debt.principal + debt.adjustment_total
    if owed <= 0:
        return Decimal("100.00")
    paid = owed - debt_remaining(debt)
    percent = (paid / owed * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return min(Decimal("100.00"), max(ZERO, percent))
