"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

from pocketledger.domain.errors import ValidationError

CENT = Decimal("0.01")
# Money columns are Numeric(12, 2)
MAX_AMOUNT = Decimal("10000000000")


def parse_amount(amount_str: str | Decimal | int) -> Decimal:
    """Parse an amount into an exact two-decimal Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Decimal and int values are accepted as-is. Floats are rejected: money is
    never carried in binary floating point.

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount quantized to cents

    Raises:
        ValidationError: If the amount cannot be parsed, is not finite, has
            more than two decimal places or does not fit a money column
    """
    if isinstance(amount_str, bool) or isinstance(amount_str, float):
        raise ValidationError(f"Amounts must be strings or Decimals, got {amount_str!r}")

    if isinstance(amount_str, (Decimal, int)):
        amount = Decimal(amount_str)
    else:
        if amount_str is None or not amount_str.strip():
            raise ValidationError("Empty amount string")

        # Remove whitespace
        amount_str = amount_str.strip()

        # Handle parentheses notation (negative)
        is_negative = False
        if amount_str.startswith("(") and amount_str.endswith(")"):
            is_negative = True
            amount_str = amount_str[1:-1]

        # Remove currency symbols
        amount_str = re.sub(r"[$€£¥]", "", amount_str)

        # Remove commas
        amount_str = amount_str.replace(",", "").strip()

        try:
            amount = Decimal(amount_str)
        except InvalidOperation:
            raise ValidationError(f"Could not parse amount '{amount_str}'")
        if is_negative:
            amount = -amount

    if not amount.is_finite():
        raise ValidationError(f"Amount must be a finite number, got '{amount}'")
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError(f"Amount '{amount}' is too large; the limit is {MAX_AMOUNT - CENT:,}")
    try:
        cents = amount.quantize(CENT)
    except InvalidOperation:
        raise ValidationError(f"Could not parse amount '{amount}'")
    if amount != cents:
        raise ValidationError(f"Amount '{amount}' has more than two decimal places")
    return cents


def parse_positive_amount(amount_str: str | Decimal | int, field_name: str = "Amount") -> Decimal:
    """Parse an amount that must be strictly greater than zero."""
    amount = parse_amount(amount_str)
    if amount <= 0:
        raise ValidationError(f"{field_name} must be greater than zero, got {amount}")
    return amount
