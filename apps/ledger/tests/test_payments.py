"""
Tests for record_payment(), the payment entry point.

Tests cover:
- End-to-end payment scenarios
- Input validation before any write
- Idempotent resubmission
- Retry after a lost race
"""

import pytest
from decimal import Decimal
from unittest.mock import patch

from apps.parties.exceptions import PartyNotFoundError
from apps.ledger.models import BillStatus, PaymentAllocation, PaymentDirection, PaymentReceipt
from apps.ledger.services import payments as payments_service
from apps.ledger.services import (
    record_payment,
    preview_payment,
    payment_history,
    verify_bill_integrity,
    AllocationLine,
    PaymentMetadata,
    PaymentValidationError,
    BillNotFoundError,
    InsufficientBalanceError,
    ConcurrencyConflictError,
)


# =============================================================================
# Scenarios
# =============================================================================

@pytest.mark.django_db
class TestPaymentScenarios:
    """Worked examples of settling bills."""

    def test_exact_payment_settles_bill(self, supplier, bill_a, clerk):
        result = record_payment(
            party_id=supplier.pk,
            amount=Decimal('1000.00'),
            payment_mode='CASH',
            bill_numbers=[bill_a.bill_number],
            recorded_by=clerk,
        )

        assert result.created is True
        bill_a.refresh_from_db()
        assert bill_a.balance_amount == Decimal('0.00')
        assert bill_a.status == BillStatus.PAID
        allocation = PaymentAllocation.objects.get(bill=bill_a)
        assert allocation.amount == Decimal('1000.00')

    def test_payment_spills_over_to_newer_bill(self, supplier, bill_a, bill_b):
        """Selected newest first, the older bill is still paid first."""
        record_payment(
            party_id=supplier.pk,
            amount=Decimal('1200.00'),
            payment_mode='CASH',
            bill_numbers=[bill_b.bill_number, bill_a.bill_number],
        )

        bill_a.refresh_from_db()
        bill_b.refresh_from_db()
        assert bill_a.paid_amount == Decimal('1000.00')
        assert bill_a.status == BillStatus.PAID
        assert bill_b.paid_amount == Decimal('200.00')
        assert bill_b.balance_amount == Decimal('300.00')
        assert bill_b.status == BillStatus.PARTIALLY_PAID

    def test_overpayment_rejected_without_writes(self, supplier, bill_a):
        with pytest.raises(InsufficientBalanceError) as exc_info:
            record_payment(
                party_id=supplier.pk,
                amount=Decimal('1500.00'),
                payment_mode='CASH',
                bill_numbers=[bill_a.bill_number],
            )

        assert exc_info.value.available == Decimal('1000.00')
        bill_a.refresh_from_db()
        assert bill_a.balance_amount == Decimal('1000.00')
        assert bill_a.version == 1
        assert PaymentAllocation.objects.count() == 0
        assert PaymentReceipt.objects.count() == 0

    def test_second_payment_of_settled_balance_rejected(self, supplier, make_bill):
        bill = make_bill(supplier, '300.00')
        record_payment(
            party_id=supplier.pk,
            amount='300.00',
            payment_mode='CASH',
            bill_numbers=[bill.bill_number],
        )

        with pytest.raises(InsufficientBalanceError):
            record_payment(
                party_id=supplier.pk,
                amount='300.00',
                payment_mode='CASH',
                bill_numbers=[bill.bill_number],
            )

        bill.refresh_from_db()
        assert bill.balance_amount == Decimal('0.00')
        assert bill.status == BillStatus.PAID

    def test_customer_receipt_grouped_over_two_bills(self, customer, sales_bills, clerk):
        c1, c2 = sales_bills

        result = record_payment(
            party_id=customer.pk,
            amount=Decimal('500.00'),
            payment_mode='UPI',
            bank_reference='UPI-5521',
            bill_numbers=[c1.bill_number, c2.bill_number],
            recorded_by=clerk,
        )

        receipt = result.receipt
        assert receipt.direction == PaymentDirection.RECEIPT
        assert receipt.total_amount == Decimal('500.00')
        assert [(a.bill_id, a.amount) for a in receipt.allocations.all()] == [
            (c1.bill_number, Decimal('200.00')),
            (c2.bill_number, Decimal('300.00')),
        ]

        history = payment_history(receipt.payment_date, receipt.payment_date)
        assert [r.receipt_number for r in history] == [receipt.receipt_number]
        assert len(history[0].allocations.all()) == 2

    def test_full_settlement_marks_every_bill_paid(self, supplier, bill_a, bill_b):
        record_payment(
            party_id=supplier.pk,
            amount=Decimal('1500.00'),
            payment_mode='BANK_TRANSFER',
            bank_reference='NEFT-1',
            bill_numbers=[bill_a.bill_number, bill_b.bill_number],
        )

        for bill in (bill_a, bill_b):
            bill.refresh_from_db()
            assert bill.status == BillStatus.PAID
            verify_bill_integrity(bill.bill_number)

    def test_payments_accumulate_on_bill(self, supplier, bill_a):
        for amount in ('100.00', '250.50', '649.50'):
            record_payment(
                party_id=supplier.pk,
                amount=amount,
                payment_mode='CASH',
                bill_numbers=[bill_a.bill_number],
            )

        bill_a.refresh_from_db()
        assert bill_a.paid_amount == Decimal('1000.00')
        assert bill_a.version == 4
        assert bill_a.status == BillStatus.PAID
        assert verify_bill_integrity(bill_a.bill_number) == bill_a


# =============================================================================
# Validation
# =============================================================================

@pytest.mark.django_db
class TestPaymentValidation:
    """Bad requests are rejected before anything is written."""

    @pytest.mark.parametrize('amount', ['0', '-5.00', '10.001', 'ten'])
    def test_invalid_amount(self, supplier, bill_a, amount):
        with pytest.raises(PaymentValidationError):
            record_payment(
                party_id=supplier.pk,
                amount=amount,
                payment_mode='CASH',
                bill_numbers=[bill_a.bill_number],
            )

    def test_unknown_payment_mode(self, supplier, bill_a):
        with pytest.raises(PaymentValidationError):
            record_payment(
                party_id=supplier.pk,
                amount='10.00',
                payment_mode='BARTER',
                bill_numbers=[bill_a.bill_number],
            )

    @pytest.mark.parametrize('mode', ['BANK_TRANSFER', 'CHEQUE', 'UPI', 'CARD'])
    def test_non_cash_mode_needs_reference(self, supplier, bill_a, mode):
        with pytest.raises(PaymentValidationError):
            record_payment(
                party_id=supplier.pk,
                amount='10.00',
                payment_mode=mode,
                bank_reference='   ',
                bill_numbers=[bill_a.bill_number],
            )

    def test_empty_selection(self, supplier):
        with pytest.raises(PaymentValidationError):
            record_payment(
                party_id=supplier.pk,
                amount='10.00',
                payment_mode='CASH',
                bill_numbers=[],
            )

    def test_duplicate_selection(self, supplier, bill_a):
        with pytest.raises(PaymentValidationError):
            record_payment(
                party_id=supplier.pk,
                amount='10.00',
                payment_mode='CASH',
                bill_numbers=[bill_a.bill_number, bill_a.bill_number],
            )

    def test_unknown_party(self, db):
        with pytest.raises(PartyNotFoundError):
            record_payment(
                party_id=424242,
                amount='10.00',
                payment_mode='CASH',
                bill_numbers=[1],
            )

    def test_unknown_bill(self, supplier, bill_a):
        with pytest.raises(BillNotFoundError) as exc_info:
            record_payment(
                party_id=supplier.pk,
                amount='10.00',
                payment_mode='CASH',
                bill_numbers=[bill_a.bill_number, 999999],
            )

        assert exc_info.value.detail == {'bill_numbers': [999999]}

    def test_bill_of_another_party(self, other_supplier, bill_a):
        with pytest.raises(PaymentValidationError):
            record_payment(
                party_id=other_supplier.pk,
                amount='10.00',
                payment_mode='CASH',
                bill_numbers=[bill_a.bill_number],
            )

        assert PaymentReceipt.objects.count() == 0


# =============================================================================
# Idempotency
# =============================================================================

@pytest.mark.django_db
class TestIdempotency:
    """Resubmitting with the same key never pays twice."""

    def test_replay_returns_original_receipt(self, supplier, bill_a):
        first = record_payment(
            party_id=supplier.pk,
            amount='400.00',
            payment_mode='CASH',
            bill_numbers=[bill_a.bill_number],
            idempotency_key='till-7-0001',
        )
        second = record_payment(
            party_id=supplier.pk,
            amount='400.00',
            payment_mode='CASH',
            bill_numbers=[bill_a.bill_number],
            idempotency_key='till-7-0001',
        )

        assert first.created is True
        assert second.created is False
        assert second.receipt.receipt_number == first.receipt.receipt_number
        bill_a.refresh_from_db()
        assert bill_a.paid_amount == Decimal('400.00')
        assert PaymentReceipt.objects.count() == 1

    def test_key_reused_for_different_amount(self, supplier, bill_a):
        record_payment(
            party_id=supplier.pk,
            amount='400.00',
            payment_mode='CASH',
            bill_numbers=[bill_a.bill_number],
            idempotency_key='till-7-0002',
        )

        with pytest.raises(PaymentValidationError):
            record_payment(
                party_id=supplier.pk,
                amount='450.00',
                payment_mode='CASH',
                bill_numbers=[bill_a.bill_number],
                idempotency_key='till-7-0002',
            )

    def test_key_reused_for_different_bills(self, supplier, bill_a, bill_b):
        record_payment(
            party_id=supplier.pk,
            amount='400.00',
            payment_mode='CASH',
            bill_numbers=[bill_a.bill_number],
            idempotency_key='till-7-0004',
        )

        with pytest.raises(PaymentValidationError) as exc_info:
            record_payment(
                party_id=supplier.pk,
                amount='400.00',
                payment_mode='CASH',
                bill_numbers=[bill_b.bill_number],
                idempotency_key='till-7-0004',
            )

        assert exc_info.value.detail['idempotency_key'] == 'till-7-0004'
        bill_b.refresh_from_db()
        assert bill_b.paid_amount == Decimal('0.00')

    def test_key_reused_for_different_mode(self, supplier, bill_a):
        record_payment(
            party_id=supplier.pk,
            amount='400.00',
            payment_mode='CASH',
            bill_numbers=[bill_a.bill_number],
            idempotency_key='till-7-0005',
        )

        with pytest.raises(PaymentValidationError):
            record_payment(
                party_id=supplier.pk,
                amount='400.00',
                payment_mode='UPI',
                bank_reference='UPI-77812',
                bill_numbers=[bill_a.bill_number],
                idempotency_key='till-7-0005',
            )

    def test_replay_naming_unfunded_bill_returns_original(self, supplier, bill_a, bill_b):
        """Bill B got a zero line the first time and was never stored."""
        first = record_payment(
            party_id=supplier.pk,
            amount='300.00',
            payment_mode='CASH',
            bill_numbers=[bill_b.bill_number, bill_a.bill_number],
            idempotency_key='till-7-0006',
        )
        second = record_payment(
            party_id=supplier.pk,
            amount='300.00',
            payment_mode='CASH',
            bill_numbers=[bill_a.bill_number, bill_b.bill_number],
            idempotency_key='till-7-0006',
        )

        assert second.created is False
        assert second.receipt.receipt_number == first.receipt.receipt_number

    def test_overlong_key_rejected(self, supplier, bill_a):
        with pytest.raises(PaymentValidationError) as exc_info:
            record_payment(
                party_id=supplier.pk,
                amount='100.00',
                payment_mode='CASH',
                bill_numbers=[bill_a.bill_number],
                idempotency_key='k' * 65,
            )

        assert exc_info.value.detail == {'idempotency_key': '65 characters'}
        assert not PaymentReceipt.objects.exists()

    def test_concurrent_duplicate_key_resolves_to_first_receipt(self, supplier, bill_a):
        """The unique key catches a duplicate that slipped past the lookup."""
        first = record_payment(
            party_id=supplier.pk,
            amount='100.00',
            payment_mode='CASH',
            bill_numbers=[bill_a.bill_number],
            idempotency_key='till-7-0003',
        )

        original = PaymentReceipt.objects.get(idempotency_key='till-7-0003')
        with patch.object(payments_service, '_find_replay', side_effect=[None, original]):
            second = record_payment(
                party_id=supplier.pk,
                amount='100.00',
                payment_mode='CASH',
                bill_numbers=[bill_a.bill_number],
                idempotency_key='till-7-0003',
            )

        assert second.created is False
        assert second.receipt.receipt_number == first.receipt.receipt_number
        bill_a.refresh_from_db()
        assert bill_a.paid_amount == Decimal('100.00')

    def test_blank_key_is_ignored(self, supplier, bill_a):
        for _ in range(2):
            record_payment(
                party_id=supplier.pk,
                amount='100.00',
                payment_mode='CASH',
                bill_numbers=[bill_a.bill_number],
                idempotency_key='  ',
            )

        assert PaymentReceipt.objects.count() == 2
        assert not PaymentReceipt.objects.exclude(idempotency_key=None).exists()


# =============================================================================
# Retry after conflict
# =============================================================================

@pytest.mark.django_db
class TestConflictRetry:
    """A commit that loses a race is re-allocated against fresh balances."""

    def _interfering_commit(self, supplier, bill, amount):
        """Wrap commit() so another payment lands just before the first attempt."""
        real_commit = payments_service.commit
        calls = []

        def flaky_commit(**kwargs):
            calls.append(dict(kwargs['expected_versions']))
            if len(calls) == 1:
                real_commit(
                    party=supplier,
                    payment_amount=amount,
                    payment_mode='CASH',
                    metadata=PaymentMetadata(),
                    allocations=[AllocationLine(bill.bill_number, amount)],
                    expected_versions={bill.bill_number: bill.version},
                )
            return real_commit(**kwargs)

        return flaky_commit, calls

    def test_retry_succeeds_when_balance_still_covers(self, supplier, bill_a):
        flaky_commit, calls = self._interfering_commit(supplier, bill_a, Decimal('200.00'))

        with patch.object(payments_service, 'commit', side_effect=flaky_commit):
            result = record_payment(
                party_id=supplier.pk,
                amount='300.00',
                payment_mode='CASH',
                bill_numbers=[bill_a.bill_number],
            )

        assert result.created is True
        assert calls == [{bill_a.bill_number: 1}, {bill_a.bill_number: 2}]
        bill_a.refresh_from_db()
        assert bill_a.paid_amount == Decimal('500.00')
        assert bill_a.version == 3
        verify_bill_integrity(bill_a.bill_number)

    def test_retry_rejects_when_balance_no_longer_covers(self, supplier, bill_a):
        flaky_commit, calls = self._interfering_commit(supplier, bill_a, Decimal('900.00'))

        with patch.object(payments_service, 'commit', side_effect=flaky_commit):
            with pytest.raises(InsufficientBalanceError):
                record_payment(
                    party_id=supplier.pk,
                    amount='300.00',
                    payment_mode='CASH',
                    bill_numbers=[bill_a.bill_number],
                )

        assert len(calls) == 1
        bill_a.refresh_from_db()
        assert bill_a.paid_amount == Decimal('900.00')

    def test_conflict_surfaces_after_retry_bound(self, supplier, bill_a, settings):
        settings.LEDGER = {'COMMIT_MAX_RETRIES': 2}

        with patch.object(
            payments_service,
            'commit',
            side_effect=ConcurrencyConflictError("bill changed"),
        ) as mock_commit:
            with pytest.raises(ConcurrencyConflictError):
                record_payment(
                    party_id=supplier.pk,
                    amount='100.00',
                    payment_mode='CASH',
                    bill_numbers=[bill_a.bill_number],
                )

        assert mock_commit.call_count == 2


# =============================================================================
# Preview
# =============================================================================

@pytest.mark.django_db
class TestPreviewPayment:
    """preview_payment() computes the split without saving."""

    def test_preview_does_not_write(self, supplier, bill_a, bill_b):
        preview = preview_payment(
            party_id=supplier.pk,
            amount='1200.00',
            bill_numbers=[bill_b.bill_number, bill_a.bill_number],
        )

        assert [(line.bill_number, line.amount) for line in preview] == [
            (bill_a.bill_number, Decimal('1000.00')),
            (bill_b.bill_number, Decimal('200.00')),
        ]
        bill_a.refresh_from_db()
        assert bill_a.paid_amount == Decimal('0.00')
        assert PaymentReceipt.objects.count() == 0
