"""
Money Handling Module

Parsing, validation and formatting of currency amounts. Amounts are Decimal
values with two fractional digits. NEVER uses float for monetary values.
"""

from decimal import Decimal, InvalidOperation, getcontext
from typing import Union

from .exceptions import InvalidAmountError

# Set global decimal context for financial precision
getcontext().prec = 28

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

AmountLike = Union[Decimal, int, float, str]


def to_decimal(value: AmountLike) -> Decimal:
    """
    Convert a stored or user-supplied value to Decimal.

    Floats go through ``str()`` so that 2500.1 becomes Decimal('2500.1') rather
    than its binary approximation.

    Raises:
        InvalidAmountError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise InvalidAmountError(f"Invalid amount: {value!r}")
    if not result.is_finite():
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    return result


def parse_amount(value: AmountLike) -> Decimal:
    """
    Validate a transfer/deposit/withdrawal amount.

    The amount must be strictly positive and carry at most two fractional
    digits; it is returned quantized to exactly two.

    Raises:
        InvalidAmountError: If the amount is malformed, not positive or has
            sub-cent precision
    """
    amount = to_decimal(value)
    if amount <= 0:
        raise InvalidAmountError(f"Amount must be positive, got {value}")
    try:
        quantized = amount.quantize(CENT)
    except InvalidOperation:
        raise InvalidAmountError(f"Amount {value} is too large")
    if amount != quantized:
        raise InvalidAmountError(f"Amount {value} has more than two decimal places")
    return quantized


def format_amount(amount: Decimal) -> str:
    """Format for storage and display, e.g. Decimal('2500') -> '2500.00'"""
    return str(amount.quantize(CENT))
