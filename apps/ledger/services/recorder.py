"""
Payment recorder.

Applies a computed allocation to the database as a single atomic unit:
one receipt, its allocations, the paid/balance/status/version update of
every bill touched and, when an account is given, the bank posting.
Either all of it is saved or none of it is.
"""

import logging
from datetime import date
from typing import Dict, Iterable, NamedTuple, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.parties.models import Party

from ..exceptions import (
    BillNotFoundError,
    ConcurrencyConflictError,
    PaymentValidationError,
)
from ..integrity import invariant_violation
from ..models import Bill, BillKind, PaymentAllocation, PaymentDirection, PaymentReceipt
from ..money import ZERO, to_money
from ..signals import payment_recorded
from .balance import calculate_balance
from .banking import post_receipt
from .validation import validate_payment_details

logger = logging.getLogger(__name__)


class PaymentMetadata(NamedTuple):
    bank_reference: str = ''
    remarks: str = ''
    payment_date: Optional[date] = None


def bill_kind_for(party: Party) -> str:
    """Suppliers are paid against purchase bills, customers against sales bills."""
    return BillKind.PURCHASE if party.is_supplier else BillKind.SALES


def direction_for(party: Party) -> str:
    return PaymentDirection.PAYMENT if party.is_supplier else PaymentDirection.RECEIPT


def _announce(receipt: PaymentReceipt) -> None:
    responses = payment_recorded.send_robust(sender=PaymentReceipt, receipt=receipt)
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.error(
                f"[PaymentRecorded][Receipt:{receipt.receipt_number}] "
                f"receiver {receiver!r} failed: {response}"
            )


def commit(
    *,
    party: Party,
    payment_amount,
    payment_mode: str,
    metadata: PaymentMetadata,
    allocations: Iterable,
    expected_versions: Dict[int, int],
    recorded_by=None,
    idempotency_key: Optional[str] = None,
    bank_account=None
) -> PaymentReceipt:
    """
    Persist one payment, its allocations and its bank posting atomically.

    Bills are locked in ascending bill number order so overlapping commits
    always queue in the same order. Every bill must still carry the version
    the allocation was computed against.

    Args:
        party: Party paying or being paid
        payment_amount: Total of the payment
        payment_mode: ``PaymentMode`` value
        metadata: Bank reference, remarks and payment date
        allocations: ``AllocationLine`` items; zero lines are skipped
        expected_versions: Bill number -> version read before allocating
        recorded_by: Operator entering the payment
        idempotency_key: Optional client token stored on the receipt
        bank_account: Optional BankAccount the money moves through

    Returns:
        The created PaymentReceipt

    Raises:
        PaymentValidationError: Bad payment mode, nothing to allocate, or a
            bill of another party
        BillNotFoundError: An allocated bill does not exist
        ConcurrencyConflictError: A bill changed since it was read
        InvariantViolation: Amounts do not reconcile
        IntegrityError: ``idempotency_key`` already used
    """
    amount = to_money(payment_amount)
    payment_mode, bank_reference = validate_payment_details(
        payment_mode, metadata.bank_reference
    )
    lines = sorted(
        (line for line in allocations if line.amount > ZERO),
        key=lambda line: line.bill_number,
    )
    if not lines:
        raise PaymentValidationError("Payment does not allocate anything to a bill")

    allocated = sum((line.amount for line in lines), ZERO)
    if allocated != amount:
        raise invariant_violation(
            "Allocation sum differs from payment amount",
            payment_amount=amount,
            allocated=allocated,
        )

    bill_numbers = [line.bill_number for line in lines]
    log_prefix = f"[CommitPayment][Party:{party.pk}]"
    payment_date = metadata.payment_date or timezone.localdate()

    with transaction.atomic():
        # Lock in bill number order to avoid deadlocks
        bills = {
            bill.bill_number: bill
            for bill in (
                Bill.objects
                .select_for_update()
                .filter(bill_number__in=bill_numbers)
                .order_by('bill_number')
            )
        }

        missing = [n for n in bill_numbers if n not in bills]
        if missing:
            raise BillNotFoundError(
                f"Bills not found: {missing}",
                detail={'bill_numbers': missing},
            )

        expected_kind = bill_kind_for(party)
        for bill in bills.values():
            if bill.party_id != party.pk or bill.kind != expected_kind:
                raise PaymentValidationError(
                    f"Bill #{bill.bill_number} does not belong to {party.display_name}",
                    detail={'bill_number': bill.bill_number},
                )
            if bill.version != expected_versions.get(bill.bill_number):
                logger.info(
                    f"{log_prefix} bill #{bill.bill_number} moved from version "
                    f"{expected_versions.get(bill.bill_number)} to {bill.version}"
                )
                raise ConcurrencyConflictError(
                    f"Bill #{bill.bill_number} was modified by another payment",
                    detail={'bill_number': bill.bill_number},
                )

        receipt = PaymentReceipt.objects.create(
            party=party,
            direction=direction_for(party),
            total_amount=amount,
            payment_mode=payment_mode,
            bank_reference=bank_reference,
            remarks=metadata.remarks,
            payment_date=payment_date,
            bills_count=len(lines),
            recorded_by=recorded_by,
            idempotency_key=idempotency_key,
            bank_account=bank_account,
        )

        for line in lines:
            bill = bills[line.bill_number]
            new_paid = bill.paid_amount + line.amount
            result = calculate_balance(
                bill.net_amount,
                new_paid,
                unpaid_status=bill.unpaid_status,
            )

            PaymentAllocation.objects.create(
                receipt=receipt,
                bill=bill,
                amount=line.amount,
                payment_mode=payment_mode,
                bank_reference=bank_reference,
                remarks=metadata.remarks,
                payment_date=payment_date,
            )

            updated = (
                Bill.objects
                .filter(bill_number=bill.bill_number, version=bill.version)
                .update(
                    paid_amount=new_paid,
                    balance_amount=result.balance_amount,
                    status=result.status,
                    version=F('version') + 1,
                    updated_at=timezone.now(),
                )
            )
            if updated != 1:
                raise ConcurrencyConflictError(
                    f"Bill #{bill.bill_number} was modified by another payment",
                    detail={'bill_number': bill.bill_number},
                )

        if bank_account is not None:
            post_receipt(receipt, bank_account, bill_numbers)

        transaction.on_commit(lambda: _announce(receipt))

    logger.info(
        f"{log_prefix} receipt #{receipt.receipt_number} {amount} "
        f"({payment_mode}) across bills {bill_numbers}"
    )
    return receipt
