"""Cent-exact proportional distribution of a payment over a pool."""

from decimal import Decimal, ROUND_DOWN
from typing import Sequence

from pocketledger.domain.errors import InvalidOperationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def allocate_proportionally(
    amount: Decimal, weights: Sequence[Decimal], cap: bool = True
) -> list[Decimal]:
    """Split ``amount`` over ``weights`` in proportion to each weight.

    Every share is first rounded down to the cent. The cents lost to rounding
    go to the last member with a positive weight; when ``cap`` is set no
    member may receive more than its own weight, and whatever the last
    member cannot take moves to the member before it, and so on. The shares
    therefore always sum to ``amount`` exactly.

    Members whose weight is zero or negative receive nothing.

    Args:
        amount: Amount to distribute, already in cents
        weights: Pending amount of each pool member, in pool order
        cap: Limit each share to its member's weight

    Returns:
        One share per weight, in the same order

    Raises:
        InvalidOperationError: If nothing in the pool can receive the amount,
            or (with ``cap``) the amount exceeds the total weight
    """
    shares = [ZERO for _ in weights]
    eligible = [i for i, weight in enumerate(weights) if weight > 0]
    total_weight = sum((weights[i] for i in eligible), ZERO)

    if amount == 0:
        return shares
    if not eligible:
        raise InvalidOperationError("Nothing pending to allocate the amount against")
    if cap and amount > total_weight:
        raise InvalidOperationError(
            f"Amount {amount:.2f} exceeds total pending {total_weight:.2f}"
        )

    for i in eligible:
        share = (amount * weights[i] / total_weight).quantize(CENT, rounding=ROUND_DOWN)
        if cap:
            share = min(share, weights[i])
        shares[i] = share

    leftover = amount - sum(shares, ZERO)
    for i in reversed(eligible):
        if leftover == 0:
            break
        give = min(leftover, weights[i] - shares[i]) if cap else leftover
        shares[i] += give
        leftover -= give

    return shares
