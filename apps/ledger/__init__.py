"""
Ledger App - Bill Payment Allocation & Reconciliation

This app settles purchase bills owed to suppliers and sales (credit) bills
owed by customers. One payment event is split across several outstanding
bills, oldest bill first, and committed as a single atomic unit.

Key Features:
- Oldest-first allocation of one payment across many bills
- Atomic commit with row locks and version checks on every touched bill
- Append-only allocation ledger grouped under a payment receipt
- Idempotent payment submission via a client-supplied key
- Outstanding balances, payment history and daily/monthly totals

Architecture:
- Models: Bill, PaymentReceipt, PaymentAllocation
- Services: balance, allocation, recorder, payments, reconciliation
- Views: thin DRF handlers over the service layer
- Exceptions: domain exception hierarchy (exceptions.py)
"""
