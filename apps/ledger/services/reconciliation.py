"""
Reconciliation queries.

Read-only views of committed ledger state: outstanding bills, payment
history and running totals. Nothing here takes a lock.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from django.db.models import Count, Q, QuerySet, Sum
from django.utils import timezone

from apps.parties.services import get_party_by_id

from ..exceptions import BillNotFoundError, PaymentValidationError, ReceiptNotFoundError
from ..integrity import invariant_violation
from ..models import Bill, PaymentAllocation, PaymentDirection, PaymentReceipt
from ..money import ZERO
from .balance import calculate_balance

logger = logging.getLogger(__name__)


def _check_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise PaymentValidationError(
            "Start date must not be after end date",
            detail={'date_from': str(start_date), 'date_to': str(end_date)},
        )


def _check_direction(direction: Optional[str]) -> Optional[str]:
    if not direction:
        return None
    if direction not in PaymentDirection.values:
        raise PaymentValidationError(
            f"Unknown direction: {direction}",
            detail={'direction': direction, 'allowed': list(PaymentDirection.values)},
        )
    return direction


def list_outstanding(party_id) -> QuerySet:
    """
    Get a party's bills that still have a balance, oldest first.

    Raises:
        PartyNotFoundError: If the party doesn't exist
    """
    party = get_party_by_id(party_id)
    return (
        Bill.objects
        .filter(party=party, balance_amount__gt=ZERO)
        .order_by('bill_number')
    )


def party_balance_summary(party_id) -> dict:
    """Totals across all of a party's bills."""
    party = get_party_by_id(party_id)
    totals = Bill.objects.filter(party=party).aggregate(
        total_net=Sum('net_amount'),
        total_paid=Sum('paid_amount'),
        total_pending=Sum('balance_amount'),
        bill_count=Count('bill_number'),
        outstanding_count=Count('bill_number', filter=Q(balance_amount__gt=ZERO)),
    )
    return {
        'party_id': party.pk,
        'party_name': party.display_name,
        'party_type': party.party_type,
        'total_net': totals['total_net'] or ZERO,
        'total_paid': totals['total_paid'] or ZERO,
        'total_pending': totals['total_pending'] or ZERO,
        'bill_count': totals['bill_count'],
        'outstanding_count': totals['outstanding_count'],
    }


def payment_history(
    start_date: date,
    end_date: date,
    search_text: Optional[str] = None,
    direction: Optional[str] = None,
    party_id=None
) -> List[PaymentReceipt]:
    """
    Get receipts dated within ``[start_date, end_date]``, newest first.

    The party-name search is a case-insensitive substring match applied to
    the date-filtered rows after they are loaded, so it behaves the same on
    every database backend.

    Args:
        start_date: First payment date (inclusive)
        end_date: Last payment date (inclusive)
        search_text: Optional fragment of the party name
        direction: Optional ``PaymentDirection`` value
        party_id: Optional party filter

    Returns:
        List of PaymentReceipt with party and allocations loaded
    """
    _check_range(start_date, end_date)
    direction = _check_direction(direction)

    queryset = (
        PaymentReceipt.objects
        .filter(payment_date__range=(start_date, end_date))
        .select_related('party', 'recorded_by', 'bank_account', 'bank_transaction__bank_account')
        .prefetch_related('allocations')
        .order_by('-payment_date', '-receipt_number')
    )
    if direction:
        queryset = queryset.filter(direction=direction)
    if party_id:
        queryset = queryset.filter(party_id=party_id)

    receipts = list(queryset)

    needle = (search_text or '').strip().casefold()
    if needle:
        receipts = [r for r in receipts if needle in r.party_name.casefold()]

    return receipts


def aggregate_totals(
    start_date: date,
    end_date: date,
    direction: Optional[str] = None,
    party_id=None
) -> Decimal:
    """Sum of allocated amounts with a payment date inside the range."""
    _check_range(start_date, end_date)
    direction = _check_direction(direction)

    queryset = PaymentAllocation.objects.filter(payment_date__range=(start_date, end_date))
    if direction:
        queryset = queryset.filter(receipt__direction=direction)
    if party_id:
        queryset = queryset.filter(receipt__party_id=party_id)

    return queryset.aggregate(total=Sum('amount'))['total'] or ZERO


def summary_totals(today: Optional[date] = None, direction: Optional[str] = None) -> dict:
    """Today's and this month's totals, as shown on the history screen header."""
    today = today or timezone.localdate()
    return {
        'date': today,
        'today': aggregate_totals(today, today, direction),
        'this_month': aggregate_totals(today.replace(day=1), today, direction),
    }


def bill_payment_history(bill_number) -> QuerySet:
    """
    Get every allocation applied to a bill, in the order they were made.

    Raises:
        BillNotFoundError: If the bill doesn't exist
    """
    if not Bill.objects.filter(bill_number=bill_number).exists():
        raise BillNotFoundError(f"Bill #{bill_number} not found")

    return (
        PaymentAllocation.objects
        .filter(bill_id=bill_number)
        .select_related('receipt')
        .order_by('payment_date', 'id')
    )


def get_receipt(receipt_number) -> PaymentReceipt:
    """
    Get a single receipt with its allocations.

    Raises:
        ReceiptNotFoundError: If the receipt doesn't exist
    """
    try:
        return (
            PaymentReceipt.objects
            .select_related('party', 'recorded_by', 'bank_account', 'bank_transaction__bank_account')
            .prefetch_related('allocations')
            .get(receipt_number=receipt_number)
        )
    except (PaymentReceipt.DoesNotExist, ValueError, TypeError):
        raise ReceiptNotFoundError(f"Receipt #{receipt_number} not found")


def verify_bill_integrity(bill_number) -> Bill:
    """
    Check that a bill's stored amounts agree with its allocations.

    ``paid_amount`` must equal the sum of the bill's allocations, and the
    stored balance and status must match a fresh recompute.

    Raises:
        BillNotFoundError: If the bill doesn't exist
        InvariantViolation: If the bill does not reconcile
    """
    try:
        bill = Bill.objects.get(bill_number=bill_number)
    except (Bill.DoesNotExist, ValueError, TypeError):
        raise BillNotFoundError(f"Bill #{bill_number} not found")

    allocated = bill.allocations.aggregate(total=Sum('amount'))['total'] or ZERO
    if allocated != bill.paid_amount:
        raise invariant_violation(
            "Bill paid amount differs from its allocations",
            bill_number=bill.bill_number,
            paid_amount=bill.paid_amount,
            allocated=allocated,
        )

    expected = calculate_balance(
        bill.net_amount,
        bill.paid_amount,
        unpaid_status=bill.unpaid_status,
    )
    if (expected.balance_amount, expected.status) != (bill.balance_amount, bill.status):
        raise invariant_violation(
            "Bill balance or status is out of date",
            bill_number=bill.bill_number,
            balance_amount=bill.balance_amount,
            status=bill.status,
            expected_balance=expected.balance_amount,
            expected_status=expected.status,
        )

    logger.debug(f"[VerifyBill][Bill:{bill.bill_number}] reconciles at {allocated}")
    return bill
