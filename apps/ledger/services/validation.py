"""Input checks shared by the payment services. None of these touch the database."""

from typing import List, Tuple

from ..exceptions import PaymentValidationError
from ..models import PaymentMode


def validate_payment_details(payment_mode, bank_reference='') -> Tuple[str, str]:
    """
    Check the payment mode and its bank reference.

    Every mode except cash needs a cheque number or transfer reference.

    Returns:
        Normalized ``(payment_mode, bank_reference)``
    """
    mode = (payment_mode or '').strip().upper()
    if mode not in PaymentMode.values:
        raise PaymentValidationError(
            f"Unknown payment mode: {payment_mode}",
            detail={'payment_mode': payment_mode, 'allowed': list(PaymentMode.values)},
        )

    reference = (bank_reference or '').strip()
    if mode != PaymentMode.CASH and not reference:
        raise PaymentValidationError(
            f"Bank reference is required for {PaymentMode(mode).label} payments",
            detail={'bank_reference': 'required'},
        )
    return mode, reference


def normalize_bill_numbers(bill_numbers) -> List[int]:
    """Coerce the selected bill numbers to ints, rejecting empty or repeated picks."""
    if not bill_numbers:
        raise PaymentValidationError("Select at least one bill")

    numbers = []
    for value in bill_numbers:
        if isinstance(value, bool):
            raise PaymentValidationError(f"Invalid bill number: {value}")
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise PaymentValidationError(f"Invalid bill number: {value}")
        if number <= 0:
            raise PaymentValidationError(f"Invalid bill number: {value}")
        numbers.append(number)

    duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
    if duplicates:
        raise PaymentValidationError(
            "Bills selected more than once",
            detail={'bill_numbers': duplicates},
        )
    return numbers
