"""
Ledger app services layer.

Services hold the payment engine: balance calculation, oldest-first
allocation, atomic commit with its bank posting, and the reconciliation
queries. Views call these functions and translate the exceptions into
HTTP responses.
"""

from ..exceptions import (
    LedgerServiceError,
    PaymentValidationError,
    BillNotFoundError,
    BankAccountNotFoundError,
    InsufficientBalanceError,
    ConcurrencyConflictError,
    InvariantViolation,
    ReceiptNotFoundError,
)

from .balance import (
    BalanceResult,
    calculate_balance,
)

from .allocation import (
    AllocationLine,
    PreviewLine,
    allocate,
    preview_allocation,
)

from .banking import (
    get_bank_account,
    post_receipt,
    account_transactions,
)

from .recorder import (
    PaymentMetadata,
    commit,
)

from .payments import (
    PaymentResult,
    record_payment,
    preview_payment,
)

from .reconciliation import (
    list_outstanding,
    party_balance_summary,
    payment_history,
    aggregate_totals,
    summary_totals,
    bill_payment_history,
    get_receipt,
    verify_bill_integrity,
)


__all__ = [
    # Exceptions
    'LedgerServiceError',
    'PaymentValidationError',
    'BillNotFoundError',
    'BankAccountNotFoundError',
    'InsufficientBalanceError',
    'ConcurrencyConflictError',
    'InvariantViolation',
    'ReceiptNotFoundError',

    # Balance
    'BalanceResult',
    'calculate_balance',

    # Allocation
    'AllocationLine',
    'PreviewLine',
    'allocate',
    'preview_allocation',

    # Bank postings
    'get_bank_account',
    'post_receipt',
    'account_transactions',

    # Recording
    'PaymentMetadata',
    'commit',
    'PaymentResult',
    'record_payment',
    'preview_payment',

    # Reconciliation
    'list_outstanding',
    'party_balance_summary',
    'payment_history',
    'aggregate_totals',
    'summary_totals',
    'bill_payment_history',
    'get_receipt',
    'verify_bill_integrity',
]
