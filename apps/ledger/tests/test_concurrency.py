"""
Concurrency tests for payment commits.

TransactionTestCase is required here: every commit must really reach the
database so that a second commit sees the first one's row version.
"""

import threading
import unittest
from decimal import Decimal

from django.db import connection
from django.test import TransactionTestCase

from apps.parties.models import Party, PartyType
from apps.ledger.models import Bill, BillKind, BillStatus, PaymentAllocation, PaymentReceipt
from apps.ledger.services import (
    allocate,
    commit,
    record_payment,
    verify_bill_integrity,
    PaymentMetadata,
    ConcurrencyConflictError,
    InsufficientBalanceError,
)


class TestConcurrentPayments(TransactionTestCase):
    """Two payments racing for the same bill balance."""

    def setUp(self):
        """Create a supplier with one bill that has 300 left to pay."""
        self.supplier = Party.objects.create(
            display_name='Sunrise Dairy',
            party_type=PartyType.SUPPLIER,
        )
        self.bill = Bill.objects.create(
            party=self.supplier,
            kind=BillKind.PURCHASE,
            net_amount=Decimal('1000.00'),
        )
        record_payment(
            party_id=self.supplier.pk,
            amount='700.00',
            payment_mode='CASH',
            bill_numbers=[self.bill.bill_number],
        )
        self.bill.refresh_from_db()

    def test_second_commit_on_same_read_conflicts(self):
        """
        Both clerks read the bill at the same version; only the first commit wins.
        """
        first_lines = allocate(Decimal('300.00'), [self.bill])
        second_lines = allocate(Decimal('300.00'), [self.bill])
        read_versions = {self.bill.bill_number: self.bill.version}

        commit(
            party=self.supplier,
            payment_amount=Decimal('300.00'),
            payment_mode='CASH',
            metadata=PaymentMetadata(),
            allocations=first_lines,
            expected_versions=read_versions,
        )

        with self.assertRaises(ConcurrencyConflictError):
            commit(
                party=self.supplier,
                payment_amount=Decimal('300.00'),
                payment_mode='CASH',
                metadata=PaymentMetadata(),
                allocations=second_lines,
                expected_versions=read_versions,
            )

        self.bill.refresh_from_db()
        assert self.bill.balance_amount == Decimal('0.00')
        assert self.bill.status == BillStatus.PAID
        assert PaymentReceipt.objects.count() == 2
        verify_bill_integrity(self.bill.bill_number)

    def test_retry_after_conflict_is_rejected_on_fresh_balance(self):
        """Re-running the losing payment finds nothing left to pay."""
        record_payment(
            party_id=self.supplier.pk,
            amount='300.00',
            payment_mode='CASH',
            bill_numbers=[self.bill.bill_number],
        )

        with self.assertRaises(InsufficientBalanceError):
            record_payment(
                party_id=self.supplier.pk,
                amount='300.00',
                payment_mode='CASH',
                bill_numbers=[self.bill.bill_number],
            )

        self.bill.refresh_from_db()
        assert self.bill.paid_amount == Decimal('1000.00')

    @unittest.skipUnless(
        connection.vendor == 'postgresql',
        'Row locks need PostgreSQL (set TEST_DATABASE_URL)',
    )
    def test_threads_never_overdraw_bill(self):
        """
        Several threads pay the full remaining balance at once.

        select_for_update() plus the version check must let exactly one
        through; the rest see either a conflict or an empty balance.
        """
        attempts = 4
        barrier = threading.Barrier(attempts)
        results = []
        errors = []

        def pay():
            try:
                barrier.wait()
                result = record_payment(
                    party_id=self.supplier.pk,
                    amount='300.00',
                    payment_mode='CASH',
                    bill_numbers=[self.bill.bill_number],
                )
                results.append(result.receipt.receipt_number)
            except (ConcurrencyConflictError, InsufficientBalanceError) as e:
                errors.append(type(e).__name__)
            except Exception as e:
                errors.append(f"Unexpected error: {e}")
            finally:
                connection.close()

        threads = [threading.Thread(target=pay) for _ in range(attempts)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 1, f"Expected one successful payment, got {results}"
        assert not [e for e in errors if e.startswith('Unexpected')], errors

        self.bill.refresh_from_db()
        assert self.bill.paid_amount == Decimal('1000.00')
        assert self.bill.balance_amount == Decimal('0.00')
        allocated = sum(a.amount for a in PaymentAllocation.objects.filter(bill=self.bill))
        assert allocated == Decimal('1000.00')
