"""Money parsing utilities."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re

from spendguard.domain.errors import ValidationError

CENT = Decimal("0.01")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize a value to whole cents."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal rounded to cents.

    Handles various formats:
    - "12.50"
    - "$12.50"
    - "1,234.56"

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValidationError: If amount string cannot be parsed or is negative
    """
    if not amount_str or not amount_str.strip():
        raise ValidationError("Empty amount string")

    cleaned = re.sub(r"[$€£¥,\s]", "", amount_str)

    try:
        amount = to_money(cleaned)
    except InvalidOperation:
        raise ValidationError(f"Could not parse amount '{amount_str}'")

    if amount < 0:
        raise ValidationError(f"Amount must not be negative: '{amount_str}'")
    return amount
