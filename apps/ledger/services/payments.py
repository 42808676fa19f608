"""
Payment entry service.

Entry point used by views: validates a payment request, allocates it over
the selected bills against freshly read balances, and commits it. A commit
that loses a race with another payment is re-allocated and retried.
"""

import logging
from typing import List, NamedTuple, Optional

from django.conf import settings
from django.db import IntegrityError

from apps.parties.models import Party
from apps.parties.services import get_party_by_id

from ..exceptions import (
    BillNotFoundError,
    ConcurrencyConflictError,
    PaymentValidationError,
)
from ..models import Bill, PaymentReceipt
from ..money import ZERO, to_money
from .allocation import allocate, preview_allocation
from .banking import get_bank_account
from .recorder import PaymentMetadata, bill_kind_for, commit
from .validation import normalize_bill_numbers, validate_payment_details

logger = logging.getLogger(__name__)


class PaymentResult(NamedTuple):
    receipt: PaymentReceipt
    created: bool


def _max_attempts() -> int:
    return max(1, int(settings.LEDGER.get('COMMIT_MAX_RETRIES', 3)))


def _positive_amount(amount):
    payment_amount = to_money(amount)
    if payment_amount <= ZERO:
        raise PaymentValidationError(
            "Payment amount must be greater than zero",
            detail={'amount': str(payment_amount)},
        )
    return payment_amount


def load_party_bills(party: Party, bill_numbers: List[int]) -> List[Bill]:
    """
    Read the selected bills of a party with their current balance and version.

    Raises:
        BillNotFoundError: If any bill number is unknown
        PaymentValidationError: If a bill belongs to another party, or is a
            sales bill for a supplier (or the reverse)
    """
    bills = list(
        Bill.objects
        .filter(bill_number__in=bill_numbers)
        .order_by('bill_number')
    )

    found = {bill.bill_number for bill in bills}
    missing = [n for n in bill_numbers if n not in found]
    if missing:
        raise BillNotFoundError(
            f"Bills not found: {missing}",
            detail={'bill_numbers': missing},
        )

    expected_kind = bill_kind_for(party)
    foreign = [
        bill.bill_number for bill in bills
        if bill.party_id != party.pk or bill.kind != expected_kind
    ]
    if foreign:
        raise PaymentValidationError(
            f"Bills {foreign} do not belong to {party.display_name}",
            detail={'bill_numbers': foreign},
        )
    return bills


def _clean_idempotency_key(idempotency_key) -> Optional[str]:
    key = (idempotency_key or '').strip() or None
    max_length = PaymentReceipt._meta.get_field('idempotency_key').max_length
    if key and len(key) > max_length:
        raise PaymentValidationError(
            f"Idempotency key must be at most {max_length} characters",
            detail={'idempotency_key': f"{len(key)} characters"},
        )
    return key


def _find_replay(
    idempotency_key: str,
    party_id,
    amount,
    payment_mode: str,
    bill_numbers: List[int],
    bank_account_id=None
) -> Optional[PaymentReceipt]:
    """
    Get the receipt an idempotency key already produced, if any.

    Bills that received nothing were never stored, so the replayed request
    may name more bills than the receipt allocated to, but never others.

    Raises:
        PaymentValidationError: The key belongs to a different payment
    """
    receipt = (
        PaymentReceipt.objects
        .select_related('party', 'recorded_by')
        .prefetch_related('allocations')
        .filter(idempotency_key=idempotency_key)
        .first()
    )
    if receipt is None:
        return None

    allocated = {allocation.bill_id for allocation in receipt.allocations.all()}
    same_payment = (
        str(receipt.party_id) == str(party_id)
        and receipt.total_amount == amount
        and receipt.payment_mode == payment_mode
        and allocated <= set(bill_numbers)
        and str(receipt.bank_account_id or '') == str(bank_account_id or '')
    )
    if not same_payment:
        raise PaymentValidationError(
            "Idempotency key was already used for a different payment",
            detail={
                'idempotency_key': idempotency_key,
                'receipt_number': receipt.receipt_number,
            },
        )

    logger.info(
        f"[RecordPayment][Party:{party_id}] replay of key {idempotency_key} "
        f"returns receipt #{receipt.receipt_number}"
    )
    return receipt


def record_payment(
    *,
    party_id,
    amount,
    payment_mode: str,
    bill_numbers,
    bank_reference: str = '',
    remarks: str = '',
    recorded_by=None,
    idempotency_key: Optional[str] = None,
    payment_date=None,
    bank_account_id=None
) -> PaymentResult:
    """
    Record a payment to a supplier or a receipt from a customer.

    Args:
        party_id: Party the money is paid to / received from
        amount: Payment amount
        payment_mode: ``PaymentMode`` value
        bill_numbers: Bills selected to settle, in any order
        bank_reference: Cheque number or transfer reference (non-cash modes)
        remarks: Free text stored on the receipt and each allocation
        recorded_by: Operator entering the payment
        idempotency_key: Client token; resubmitting it returns the first receipt
        payment_date: Defaults to today
        bank_account_id: Bank or cash account the money moves through

    Returns:
        PaymentResult(receipt, created). ``created`` is False for a replay.

    Raises:
        PaymentValidationError: Bad input or reused idempotency key
        BankAccountNotFoundError: Unknown or closed bank account
        PartyNotFoundError: Unknown or inactive party
        BillNotFoundError: Unknown bill
        InsufficientBalanceError: Amount exceeds the bills' balances
        ConcurrencyConflictError: Still conflicting after all retries
    """
    payment_amount = _positive_amount(amount)
    payment_mode, bank_reference = validate_payment_details(payment_mode, bank_reference)
    numbers = normalize_bill_numbers(bill_numbers)
    idempotency_key = _clean_idempotency_key(idempotency_key)

    if idempotency_key:
        existing = _find_replay(
            idempotency_key, party_id, payment_amount,
            payment_mode, numbers, bank_account_id,
        )
        if existing is not None:
            return PaymentResult(existing, False)

    party = get_party_by_id(party_id)
    bank_account = get_bank_account(bank_account_id) if bank_account_id else None
    metadata = PaymentMetadata(
        bank_reference=bank_reference,
        remarks=(remarks or '').strip(),
        payment_date=payment_date,
    )
    log_prefix = f"[RecordPayment][Party:{party.pk}]"
    max_attempts = _max_attempts()

    attempt = 0
    while True:
        attempt += 1
        bills = load_party_bills(party, numbers)
        lines = allocate(payment_amount, bills)

        try:
            receipt = commit(
                party=party,
                payment_amount=payment_amount,
                payment_mode=payment_mode,
                metadata=metadata,
                allocations=lines,
                expected_versions={bill.bill_number: bill.version for bill in bills},
                recorded_by=recorded_by,
                idempotency_key=idempotency_key,
                bank_account=bank_account,
            )
        except ConcurrencyConflictError as e:
            if attempt >= max_attempts:
                logger.warning(f"{log_prefix} giving up after {attempt} attempts: {e}")
                raise
            logger.info(f"{log_prefix} attempt {attempt} conflicted, re-allocating: {e}")
            continue
        except IntegrityError:
            # Same key committed by a concurrent request
            if not idempotency_key:
                raise
            existing = _find_replay(
                idempotency_key, party_id, payment_amount,
                payment_mode, numbers, bank_account_id,
            )
            if existing is None:
                raise
            return PaymentResult(existing, False)

        return PaymentResult(receipt, True)


def preview_payment(*, party_id, amount, bill_numbers):
    """
    Compute the split of a payment without saving anything.

    Returns:
        List of ``PreviewLine`` in ascending bill number order
    """
    payment_amount = _positive_amount(amount)
    numbers = normalize_bill_numbers(bill_numbers)
    party = get_party_by_id(party_id)
    bills = load_party_bills(party, numbers)
    return preview_allocation(payment_amount, bills)
