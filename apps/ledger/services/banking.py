"""
Bank and cash postings.

Every payment recorded against a bank or cash account moves that account's
balance and leaves one BankTransaction row behind, inside the same database
transaction as the receipt itself.
"""

import logging
from datetime import date
from typing import Optional

from django.db.models import F, QuerySet
from django.utils import timezone

from ..exceptions import BankAccountNotFoundError
from ..models import BankAccount, BankTransaction, BankTransactionType, PaymentDirection, PaymentReceipt

logger = logging.getLogger(__name__)


def get_bank_account(account_id, active_only=True) -> BankAccount:
    """
    Get a bank or cash account by ID.

    Args:
        account_id: Account primary key
        active_only: Treat closed accounts as missing

    Raises:
        BankAccountNotFoundError: If the account doesn't exist, or is closed
            and ``active_only`` is set
    """
    queryset = BankAccount.objects.filter(is_active=True) if active_only else BankAccount.objects.all()
    try:
        return queryset.get(pk=account_id)
    except (BankAccount.DoesNotExist, ValueError, TypeError):
        raise BankAccountNotFoundError(
            f"Bank account {account_id} not found",
            detail={'bank_account_id': str(account_id)},
        )


def _particulars(receipt: PaymentReceipt, bill_numbers) -> str:
    if receipt.direction == PaymentDirection.RECEIPT:
        label = f"Customer payment - {receipt.party_name}"
    else:
        label = f"Supplier payment - {receipt.party_name}"
    if len(bill_numbers) == 1:
        return f"{label} (Bill #{bill_numbers[0]})"
    return f"{label} ({len(bill_numbers)} bills)"


def post_receipt(receipt: PaymentReceipt, bank_account: BankAccount, bill_numbers) -> BankTransaction:
    """
    Move the account balance for a receipt and record the movement.

    Must run inside the caller's ``transaction.atomic`` block. Receipts from
    customers are deposits, payments to suppliers are withdrawals. A
    withdrawal may take the account below zero; that is logged, not refused.
    """
    if receipt.direction == PaymentDirection.RECEIPT:
        transaction_type = BankTransactionType.DEPOSIT
        delta = receipt.total_amount
    else:
        transaction_type = BankTransactionType.WITHDRAWAL
        delta = -receipt.total_amount

    # Relative update: the balance read back afterwards is this row's own result
    BankAccount.objects.filter(pk=bank_account.pk).update(
        current_balance=F('current_balance') + delta,
        updated_at=timezone.now(),
    )
    bank_account.refresh_from_db(fields=['current_balance'])

    bank_transaction = BankTransaction.objects.create(
        bank_account=bank_account,
        receipt=receipt,
        transaction_type=transaction_type,
        amount=receipt.total_amount,
        balance_after=bank_account.current_balance,
        particulars=_particulars(receipt, bill_numbers),
        cheque_number=receipt.bank_reference,
        transaction_date=receipt.payment_date,
        created_by=receipt.recorded_by,
    )

    log_prefix = f"[BankPosting][Account:{bank_account.pk}][Receipt:{receipt.receipt_number}]"
    logger.info(
        f"{log_prefix} {transaction_type} {receipt.total_amount}, "
        f"balance now {bank_account.current_balance}"
    )
    if bank_account.current_balance < 0:
        logger.warning(f"{log_prefix} account is overdrawn")
    return bank_transaction


def account_transactions(
    account_id,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None
) -> QuerySet:
    """
    Get an account's postings in date order, optionally within a date range.

    Raises:
        BankAccountNotFoundError: If the account doesn't exist
    """
    if not BankAccount.objects.filter(pk=account_id).exists():
        raise BankAccountNotFoundError(
            f"Bank account {account_id} not found",
            detail={'bank_account_id': str(account_id)},
        )

    queryset = (
        BankTransaction.objects
        .filter(bank_account_id=account_id)
        .select_related('bank_account', 'receipt', 'receipt__party')
        .order_by('transaction_date', 'id')
    )
    if start_date:
        queryset = queryset.filter(transaction_date__gte=start_date)
    if end_date:
        queryset = queryset.filter(transaction_date__lte=end_date)
    return queryset
