"""Balance calculator for a single bill."""

from decimal import Decimal
from typing import NamedTuple

from ..integrity import invariant_violation
from ..models import BillStatus
from ..money import ZERO, is_settled, to_money
from ..exceptions import PaymentValidationError


class BalanceResult(NamedTuple):
    balance_amount: Decimal
    status: str


def calculate_balance(
    net_amount,
    paid_amount,
    unpaid_status: str = BillStatus.PENDING
) -> BalanceResult:
    """
    Derive a bill's outstanding balance and status from its amounts.

    Pure function: the same inputs always give the same result. A balance
    smaller than one currency unit counts as fully paid.

    Args:
        net_amount: Bill total
        paid_amount: Amount paid so far
        unpaid_status: Status of a bill with nothing paid
            (``CREDIT`` for sales bills, ``PENDING`` for purchase bills)

    Returns:
        BalanceResult(balance_amount, status)

    Raises:
        PaymentValidationError: If either amount is negative
        InvariantViolation: If more has been paid than the bill is worth
    """
    net = to_money(net_amount, field='net_amount')
    paid = to_money(paid_amount, field='paid_amount')

    if net < ZERO or paid < ZERO:
        raise PaymentValidationError(
            "Bill amounts cannot be negative",
            detail={'net_amount': str(net), 'paid_amount': str(paid)},
        )

    balance = net - paid
    if balance < ZERO:
        raise invariant_violation(
            "Paid amount exceeds bill net amount",
            net_amount=net,
            paid_amount=paid,
        )

    if is_settled(balance):
        return BalanceResult(ZERO, BillStatus.PAID)
    if paid > ZERO:
        return BalanceResult(balance, BillStatus.PARTIALLY_PAID)
    return BalanceResult(balance, unpaid_status)
