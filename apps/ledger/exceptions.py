"""
Domain exceptions for the ledger app.

These exceptions are raised by the ledger services layer and represent
rejected or failed payment commits, separate from HTTP concerns. Views
catch them and convert them to responses.

Exception Hierarchy:
    LedgerServiceError (base)
    ├── PaymentValidationError
    │   ├── BillNotFoundError
    │   └── BankAccountNotFoundError
    ├── InsufficientBalanceError
    ├── ConcurrencyConflictError
    ├── InvariantViolation
    └── ReceiptNotFoundError

Usage:
    from apps.ledger.exceptions import InsufficientBalanceError

    try:
        record_payment(...)
    except InsufficientBalanceError as e:
        return Response({'error': str(e), 'detail': e.detail}, status=400)
"""


class LedgerServiceError(Exception):
    """
    Base exception for all ledger service errors.

    Every subclass carries a machine-readable ``code`` and an optional
    ``detail`` dict so callers can correct the request.
    """

    code = 'ledger_error'

    def __init__(self, message='', *, detail=None):
        super().__init__(message)
        self.detail = detail or {}


class PaymentValidationError(LedgerServiceError):
    """
    Raised when caller-supplied input is unusable on its face.

    Non-positive amount, empty bill selection, unknown payment mode,
    missing bank reference. Always raised before anything is persisted.
    """

    code = 'validation_error'


class BillNotFoundError(PaymentValidationError):
    """Raised when a selected bill does not exist."""

    code = 'bill_not_found'


class BankAccountNotFoundError(PaymentValidationError):
    """Raised when the selected bank or cash account is unknown or closed."""

    code = 'bank_account_not_found'


class InsufficientBalanceError(LedgerServiceError):
    """
    Raised when the payment amount exceeds the selected bills' balances.

    Example:
        raise InsufficientBalanceError(
            requested=Decimal('1500.00'),
            available=Decimal('1000.00'),
            bill_numbers=[101],
        )
    """

    code = 'insufficient_balance'

    def __init__(self, message='', *, requested, available, bill_numbers):
        self.requested = requested
        self.available = available
        self.bill_numbers = list(bill_numbers)
        message = message or (
            f"Payment amount ({requested}) exceeds total balance ({available}) "
            f"of bills {self.bill_numbers}"
        )
        super().__init__(message, detail={
            'requested': str(requested),
            'available': str(available),
            'bill_numbers': self.bill_numbers,
        })


class ConcurrencyConflictError(LedgerServiceError):
    """
    Raised when a bill changed between reading its balance and committing.

    The payments service retries internally; callers only see this once
    the retry bound is exhausted.
    """

    code = 'concurrency_conflict'


class InvariantViolation(LedgerServiceError):
    """
    Raised when an internal consistency check fails.

    Negative balance after apply, allocation sum mismatch, attempted
    mutation of an append-only ledger row. Always aborts the transaction.
    Logged on the ``apps.ledger.integrity`` logger.
    """

    code = 'invariant_violation'


class ReceiptNotFoundError(LedgerServiceError):
    """Raised when a payment receipt does not exist."""

    code = 'receipt_not_found'
