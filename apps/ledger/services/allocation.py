"""
Oldest-first allocation of one payment across a set of bills.

The split depends only on bill numbers and balances, never on the order
the caller selected the bills in.
"""

import logging
from decimal import Decimal
from typing import Iterable, List, NamedTuple

from ..exceptions import InsufficientBalanceError, PaymentValidationError
from ..integrity import invariant_violation
from ..money import ZERO, to_money
from .balance import calculate_balance

logger = logging.getLogger(__name__)


class AllocationLine(NamedTuple):
    bill_number: int
    amount: Decimal


class PreviewLine(NamedTuple):
    bill_number: int
    current_balance: Decimal
    amount: Decimal
    balance_after: Decimal
    status_after: str


def _sorted_targets(target_bills) -> List[AllocationLine]:
    """Bill numbers with their balances as money, lowest number first."""
    bills = list(target_bills)
    if not bills:
        raise PaymentValidationError("Select at least one bill")

    numbers = [bill.bill_number for bill in bills]
    duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
    if duplicates:
        raise PaymentValidationError(
            "Bills selected more than once",
            detail={'bill_numbers': duplicates},
        )

    targets = []
    for bill in bills:
        balance = to_money(bill.balance_amount, field='balance_amount')
        if balance < ZERO:
            raise invariant_violation(
                "Bill has a negative balance",
                bill_number=bill.bill_number,
                balance_amount=balance,
            )
        targets.append(AllocationLine(bill.bill_number, balance))

    return sorted(targets, key=lambda target: target.bill_number)


def allocate(payment_amount, target_bills: Iterable) -> List[AllocationLine]:
    """
    Split a payment across bills, paying the oldest (lowest number) first.

    Each bill receives ``min(remaining, balance)`` until the payment is used
    up. Every selected bill gets a line; bills that receive nothing get a
    zero line.

    Args:
        payment_amount: Amount being paid or received
        target_bills: Objects exposing ``bill_number`` and ``balance_amount``

    Returns:
        Allocation lines in ascending bill number order

    Raises:
        PaymentValidationError: Non-positive amount, empty or duplicate selection
        InsufficientBalanceError: Amount exceeds the combined balance
        InvariantViolation: The split does not add up to the payment
    """
    amount = to_money(payment_amount)
    if amount <= ZERO:
        raise PaymentValidationError(
            "Payment amount must be greater than zero",
            detail={'amount': str(amount)},
        )

    targets = _sorted_targets(target_bills)
    available = sum((target.amount for target in targets), ZERO)
    if amount > available:
        raise InsufficientBalanceError(
            requested=amount,
            available=available,
            bill_numbers=[target.bill_number for target in targets],
        )

    lines = []
    remaining = amount
    for target in targets:
        share = min(remaining, target.amount) if remaining > ZERO else ZERO
        lines.append(AllocationLine(target.bill_number, share))
        remaining -= share

    allocated = sum((line.amount for line in lines), ZERO)
    if remaining != ZERO or allocated != amount:
        raise invariant_violation(
            "Allocation does not add up to the payment amount",
            payment_amount=amount,
            allocated=allocated,
        )

    logger.debug(
        f"[Allocate] {amount} across bills "
        f"{[line.bill_number for line in lines if line.amount > ZERO]}"
    )
    return lines


def preview_allocation(payment_amount, target_bills: Iterable) -> List[PreviewLine]:
    """
    Show how a payment would be split, and each bill's state afterwards.

    Read-only companion to :func:`allocate` for the review step before a
    payment is committed. Bills need ``paid_amount``, ``net_amount`` and
    ``unpaid_status`` in addition to the allocation fields.
    """
    targets = list(target_bills)
    lines = allocate(payment_amount, targets)
    bills = {bill.bill_number: bill for bill in targets}

    preview = []
    for line in lines:
        bill = bills[line.bill_number]
        result = calculate_balance(
            bill.net_amount,
            to_money(bill.paid_amount, field='paid_amount') + line.amount,
            unpaid_status=bill.unpaid_status,
        )
        preview.append(PreviewLine(
            bill_number=line.bill_number,
            current_balance=to_money(bill.balance_amount, field='balance_amount'),
            amount=line.amount,
            balance_after=result.balance_amount,
            status_after=result.status,
        ))
    return preview
