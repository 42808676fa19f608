"""
Ledger signals.

``payment_recorded`` is sent once a payment commit has been durably saved.
Receivers (receipt printing, document export) get ``receipt=`` and run
outside the commit: their failures are logged and never undo the payment.
"""

from django.dispatch import Signal

payment_recorded = Signal()
