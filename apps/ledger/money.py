"""
Money helpers.

All ledger amounts are ``Decimal`` values with two decimal places (paise).
Amounts are never silently rounded on input: a value with more precision
than the smallest currency unit is rejected.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .exceptions import PaymentValidationError

MONEY_PLACES = Decimal('0.01')
ZERO = Decimal('0.00')

# One smallest currency unit. Balances below this are treated as settled.
MONEY_EPSILON = Decimal('0.01')


def to_money(value, *, field='amount'):
    """
    Convert ``value`` to a two-place ``Decimal``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal('0.10')``
    rather than its binary expansion.

    Raises:
        PaymentValidationError: If the value is not a finite number or has
            more than two decimal places.
    """
    if isinstance(value, bool) or value is None:
        raise PaymentValidationError(f"{field} must be a number", detail={field: value})

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise PaymentValidationError(f"{field} must be a number", detail={field: str(value)})

    if not amount.is_finite():
        raise PaymentValidationError(f"{field} must be a finite number", detail={field: str(value)})

    try:
        quantized = amount.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Too many digits for the current decimal context
        raise PaymentValidationError(f"{field} is too large", detail={field: str(value)})

    if quantized != amount:
        raise PaymentValidationError(
            f"{field} must have at most 2 decimal places",
            detail={field: str(value)},
        )
    return quantized


def is_settled(balance):
    """True when ``balance`` is within one currency unit of zero."""
    return abs(balance) < MONEY_EPSILON
