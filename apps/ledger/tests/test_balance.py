"""
Unit tests for the balance calculator and money helpers.
"""

import pytest
from decimal import Decimal

from apps.ledger.models import BillStatus
from apps.ledger.money import to_money, is_settled
from apps.ledger.services import (
    calculate_balance,
    PaymentValidationError,
    InvariantViolation,
)


class TestCalculateBalance:
    """Tests for calculate_balance()."""

    def test_unpaid_purchase_bill_is_pending(self):
        result = calculate_balance(Decimal('1000.00'), Decimal('0.00'))

        assert result.balance_amount == Decimal('1000.00')
        assert result.status == BillStatus.PENDING

    def test_unpaid_sales_bill_stays_on_credit(self):
        result = calculate_balance(
            Decimal('1000.00'),
            Decimal('0.00'),
            unpaid_status=BillStatus.CREDIT,
        )

        assert result.status == BillStatus.CREDIT

    def test_partial_payment(self):
        result = calculate_balance(Decimal('500.00'), Decimal('200.00'))

        assert result.balance_amount == Decimal('300.00')
        assert result.status == BillStatus.PARTIALLY_PAID

    def test_partial_payment_on_sales_bill_is_partially_paid(self):
        result = calculate_balance(
            Decimal('500.00'),
            Decimal('0.01'),
            unpaid_status=BillStatus.CREDIT,
        )

        assert result.status == BillStatus.PARTIALLY_PAID

    def test_full_payment_is_paid(self):
        result = calculate_balance(Decimal('1000.00'), Decimal('1000.00'))

        assert result.balance_amount == Decimal('0.00')
        assert result.status == BillStatus.PAID

    def test_zero_value_bill_is_paid(self):
        result = calculate_balance(Decimal('0.00'), Decimal('0.00'))

        assert result.status == BillStatus.PAID

    def test_overpayment_is_invariant_violation(self):
        """Never clamps an overpaid bill to zero."""
        with pytest.raises(InvariantViolation):
            calculate_balance(Decimal('100.00'), Decimal('100.01'))

    @pytest.mark.parametrize('net, paid', [
        (Decimal('-1.00'), Decimal('0.00')),
        (Decimal('100.00'), Decimal('-5.00')),
    ])
    def test_negative_amounts_rejected(self, net, paid):
        with pytest.raises(PaymentValidationError):
            calculate_balance(net, paid)

    def test_same_inputs_same_result(self):
        first = calculate_balance(Decimal('750.50'), Decimal('250.25'))
        second = calculate_balance(Decimal('750.50'), Decimal('250.25'))

        assert first == second
        assert first.balance_amount == Decimal('500.25')

    def test_accepts_plain_numbers(self):
        result = calculate_balance(1000, '400.5')

        assert result.balance_amount == Decimal('599.50')


class TestMoney:
    """Tests for to_money() and is_settled()."""

    def test_float_goes_through_str(self):
        assert to_money(0.1) == Decimal('0.10')

    def test_integer_is_quantized(self):
        assert str(to_money(25)) == '25.00'

    def test_more_than_two_places_rejected(self):
        with pytest.raises(PaymentValidationError):
            to_money(Decimal('10.005'))

    @pytest.mark.parametrize('value', [None, True, 'abc', 'NaN', 'Infinity'])
    def test_non_numbers_rejected(self, value):
        with pytest.raises(PaymentValidationError):
            to_money(value)

    @pytest.mark.parametrize('value', ['1e30', Decimal('9E+40')])
    def test_huge_exponent_rejected(self, value):
        with pytest.raises(PaymentValidationError) as exc_info:
            to_money(value)

        assert exc_info.value.detail == {'amount': str(value)}

    def test_is_settled_below_one_unit(self):
        assert is_settled(Decimal('0.00'))
        assert is_settled(Decimal('0.004'))
        assert not is_settled(Decimal('0.01'))
