"""
Management command to create sample data for trying out the ledger API.

Usage:
    python manage.py create_sample_data

This creates:
- 2 operators (admin, clerk)
- 3 suppliers and 2 customers
- Purchase and sales bills for each party
- A bank account and a cash drawer
- A few payments and receipts spread over several bills, posted to them

Running it again is safe: existing parties keep their bills and the
sample payments are replayed through their idempotency keys.
"""

from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.parties.models import Party, PartyType
from apps.ledger.models import BankAccount, Bill, BillKind, PaymentMode
from apps.ledger.services import record_payment


PARTIES = [
    ('Fresh Farm Vegetables', PartyType.SUPPLIER, [Decimal('4200.00'), Decimal('3150.50'), Decimal('980.00')]),
    ('Coastal Seafood Traders', PartyType.SUPPLIER, [Decimal('12500.00'), Decimal('7600.00')]),
    ('Sunrise Dairy', PartyType.SUPPLIER, [Decimal('1850.00'), Decimal('1850.00'), Decimal('2100.00')]),
    ('Hotel Grand Banquets', PartyType.CUSTOMER, [Decimal('18000.00'), Decimal('9500.00')]),
    ('City Corporate Canteen', PartyType.CUSTOMER, [Decimal('6400.00'), Decimal('5200.00'), Decimal('3000.00')]),
]


class Command(BaseCommand):
    help = 'Create sample parties, bills and payments'

    def handle(self, *args, **options):
        self.stdout.write('Creating sample data...')

        with transaction.atomic():
            users = self.create_users()
            parties = self.create_parties()
            accounts = self.create_bank_accounts()

        self.create_payments(users['clerk'], parties, accounts)

        self.stdout.write(self.style.SUCCESS('Sample data created successfully!'))
        self.stdout.write('')
        self.stdout.write('Test accounts:')
        self.stdout.write('  admin@example.com / admin123 (superuser)')
        self.stdout.write('  clerk@example.com / password123')

    def create_users(self):
        """Create operator accounts."""
        self.stdout.write('  Creating operators...')

        admin, _ = User.objects.get_or_create(
            email='admin@example.com',
            defaults={
                'display_name': 'Admin User',
                'is_staff': True,
                'is_superuser': True,
            }
        )
        admin.set_password('admin123')
        admin.save()

        clerk, _ = User.objects.get_or_create(
            email='clerk@example.com',
            defaults={
                'display_name': 'Front Office Clerk',
                'counter_name': 'Counter 1',
            }
        )
        clerk.set_password('password123')
        clerk.save()

        return {'admin': admin, 'clerk': clerk}

    def create_parties(self):
        """Create suppliers and customers with their bills."""
        self.stdout.write('  Creating parties and bills...')

        today = timezone.localdate()
        parties = {}
        for name, party_type, amounts in PARTIES:
            party, created = Party.objects.get_or_create(
                display_name=name,
                defaults={'party_type': party_type}
            )
            parties[name] = party
            if not created and party.bills.exists():
                continue

            kind = BillKind.PURCHASE if party_type == PartyType.SUPPLIER else BillKind.SALES
            for offset, net_amount in enumerate(amounts):
                Bill.objects.create(
                    party=party,
                    kind=kind,
                    net_amount=net_amount,
                    bill_date=today - timedelta(days=10 * (len(amounts) - offset)),
                    reference_number=f"INV-{party.pk:03d}-{offset + 1:02d}",
                )

        return parties

    def create_bank_accounts(self):
        """Create the bank account and cash drawer payments move through."""
        self.stdout.write('  Creating bank accounts...')

        bank, _ = BankAccount.objects.get_or_create(
            account_number='50200012345678',
            defaults={'bank_name': 'HDFC Bank', 'branch_name': 'MG Road', 'ifsc': 'HDFC0000123'},
        )
        cash, _ = BankAccount.objects.get_or_create(
            account_number='CASH-01',
            defaults={'bank_name': 'Cash drawer', 'is_cash': True},
        )
        return {'bank': bank, 'cash': cash}

    def create_payments(self, clerk, parties, accounts):
        """Record sample payments through the payment engine."""
        self.stdout.write('  Recording payments...')

        payments = [
            ('Fresh Farm Vegetables', Decimal('5000.00'), PaymentMode.CASH, ''),
            ('Coastal Seafood Traders', Decimal('12500.00'), PaymentMode.CHEQUE, 'CHQ-004512'),
            ('Hotel Grand Banquets', Decimal('20000.00'), PaymentMode.BANK_TRANSFER, 'NEFT-88213'),
            ('City Corporate Canteen', Decimal('6400.00'), PaymentMode.UPI, 'UPI-7781'),
        ]

        for index, (name, amount, mode, reference) in enumerate(payments, start=1):
            party = parties[name]
            result = record_payment(
                party_id=party.pk,
                amount=amount,
                payment_mode=mode,
                bank_reference=reference,
                bill_numbers=list(
                    party.bills.order_by('bill_number').values_list('bill_number', flat=True)
                ),
                remarks='Sample payment',
                recorded_by=clerk,
                idempotency_key=f"sample-payment-{index}",
                bank_account_id=accounts['cash' if mode == PaymentMode.CASH else 'bank'].pk,
            )
            verb = 'Recorded' if result.created else 'Kept'
            self.stdout.write(
                f"    {verb} receipt #{result.receipt.receipt_number}: "
                f"{amount} {result.receipt.get_direction_display().lower()} {name}"
            )
