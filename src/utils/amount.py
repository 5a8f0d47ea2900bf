"""Amount utilities for credit values."""

from decimal import ROUND_DOWN, Decimal, InvalidOperation

from src.core.exceptions import InvalidAmountError

# Matches DECIMAL(32, 8) storage
CREDIT_QUANTUM = Decimal("0.00000001")

# Largest single amount a caller may move. Keeps the 8-place quantize and
# balance sums inside the default 28-digit decimal context.
MAX_CREDIT_AMOUNT = Decimal("1000000000000000000")


def quantize_credits(value: Decimal | int | str) -> Decimal:
    """Truncate a credit value to storage precision (8 decimal places).

    Example: Decimal("1.123456789") -> Decimal("1.12345678")
    """
    return Decimal(value).quantize(CREDIT_QUANTUM, rounding=ROUND_DOWN)


def require_positive_amount(value: Decimal | int | str | None) -> Decimal:
    """Validate and normalize a credit amount supplied by a caller.

    Args:
        value: Raw amount

    Returns:
        Amount truncated to storage precision

    Raises:
        InvalidAmountError: Missing, non-numeric, non-finite, <= 0 or
            larger than MAX_CREDIT_AMOUNT
    """
    if value is None:
        raise InvalidAmountError()
    try:
        amount = Decimal(value)
        if not amount.is_finite():
            raise InvalidAmountError()
        if amount > MAX_CREDIT_AMOUNT:
            raise InvalidAmountError(
                amount, f"Amount exceeds the maximum of {MAX_CREDIT_AMOUNT:f} LC"
            )
        amount = quantize_credits(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmountError() from e
    if amount <= 0:
        raise InvalidAmountError(amount)
    return amount
