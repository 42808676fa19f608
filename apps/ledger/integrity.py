"""
Data-integrity reporting.

Invariant violations are logged on a dedicated logger so that operators can
alert on them separately from routine user errors.
"""

import logging

from .exceptions import InvariantViolation

integrity_logger = logging.getLogger('apps.ledger.integrity')


def invariant_violation(message, **context):
    """Log a data-integrity failure and return the exception to raise."""
    integrity_logger.critical(
        "INVARIANT VIOLATION: %s | context=%s", message, context,
    )
    return InvariantViolation(message, detail={k: str(v) for k, v in context.items()})
