import pytest
from decimal import Decimal
from io import StringIO
from django.core.management import call_command

from apps.accounts.models import User
from apps.parties.models import Party
from apps.ledger.models import BankAccount, BankTransaction, Bill, PaymentReceipt
from apps.ledger.services import verify_bill_integrity


@pytest.mark.django_db
class TestCreateSampleData:
    """Tests for the create_sample_data management command."""

    def test_creates_parties_bills_and_payments(self):
        out = StringIO()
        call_command('create_sample_data', stdout=out)

        assert User.objects.filter(email='clerk@example.com').exists()
        assert Party.objects.count() == 5
        assert Bill.objects.count() == 13
        assert PaymentReceipt.objects.count() == 4
        assert 'Sample data created successfully!' in out.getvalue()

        for bill in Bill.objects.all():
            verify_bill_integrity(bill.bill_number)

    def test_payments_posted_to_bank_and_cash(self):
        call_command('create_sample_data', stdout=StringIO())

        assert BankTransaction.objects.count() == 4
        cash = BankAccount.objects.get(account_number='CASH-01')
        bank = BankAccount.objects.get(account_number='50200012345678')
        assert cash.current_balance == Decimal('-5000.00')
        assert bank.current_balance == Decimal('13900.00')

    def test_running_twice_does_not_pay_twice(self):
        call_command('create_sample_data', stdout=StringIO())
        out = StringIO()
        call_command('create_sample_data', stdout=out)

        assert Bill.objects.count() == 13
        assert PaymentReceipt.objects.count() == 4
        assert 'Kept receipt' in out.getvalue()
        assert BankTransaction.objects.count() == 4
