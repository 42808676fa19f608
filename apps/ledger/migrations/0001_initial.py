# Generated manually for the ledger app

from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


PAYMENT_MODE_CHOICES = [
    ('CASH', 'Cash'),
    ('BANK_TRANSFER', 'Bank transfer'),
    ('CHEQUE', 'Cheque'),
    ('UPI', 'UPI'),
    ('CARD', 'Card'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('parties', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Bill',
            fields=[
                ('bill_number', models.BigAutoField(primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('PURCHASE', 'Purchase bill'), ('SALES', 'Sales bill')], max_length=20)),
                ('bill_date', models.DateField(default=django.utils.timezone.localdate)),
                ('reference_number', models.CharField(blank=True, max_length=50)),
                ('remarks', models.CharField(blank=True, max_length=255)),
                ('net_amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[MinValueValidator(Decimal('0.00'))])),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('balance_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('PARTIALLY_PAID', 'Partially paid'), ('PAID', 'Paid'), ('CREDIT', 'Credit')], default='PENDING', max_length=20)),
                ('version', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('party', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='bills', to='parties.party')),
            ],
            options={
                'db_table': 'bills',
                'ordering': ['bill_number'],
                'indexes': [
                    models.Index(fields=['party', 'status'], name='bills_party_status_idx'),
                    models.Index(fields=['party', 'balance_amount'], name='bills_party_balance_idx'),
                    models.Index(fields=['bill_date'], name='bills_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PaymentReceipt',
            fields=[
                ('receipt_number', models.BigAutoField(primary_key=True, serialize=False)),
                ('direction', models.CharField(choices=[('PAYMENT', 'Paid to supplier'), ('RECEIPT', 'Received from customer')], max_length=20)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[MinValueValidator(Decimal('0.01'))])),
                ('payment_mode', models.CharField(choices=PAYMENT_MODE_CHOICES, max_length=20)),
                ('bank_reference', models.CharField(blank=True, max_length=100)),
                ('remarks', models.CharField(blank=True, max_length=500)),
                ('payment_date', models.DateField(default=django.utils.timezone.localdate)),
                ('bills_count', models.PositiveIntegerField(default=1)),
                ('idempotency_key', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('party', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payment_receipts', to='parties.party')),
                ('recorded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payment_receipts', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'payment_receipts',
                'ordering': ['-payment_date', '-receipt_number'],
                'indexes': [
                    models.Index(fields=['payment_date', 'direction'], name='receipts_date_direction_idx'),
                    models.Index(fields=['party', 'payment_date'], name='receipts_party_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PaymentAllocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[MinValueValidator(Decimal('0.01'))])),
                ('payment_mode', models.CharField(choices=PAYMENT_MODE_CHOICES, max_length=20)),
                ('bank_reference', models.CharField(blank=True, max_length=100)),
                ('remarks', models.CharField(blank=True, max_length=500)),
                ('payment_date', models.DateField(default=django.utils.timezone.localdate)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('bill', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='ledger.bill')),
                ('receipt', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocations', to='ledger.paymentreceipt')),
            ],
            options={
                'db_table': 'payment_allocations',
                'ordering': ['receipt_id', 'bill_id'],
                'indexes': [
                    models.Index(fields=['bill', 'payment_date'], name='allocations_bill_date_idx'),
                    models.Index(fields=['payment_date'], name='allocations_date_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=['receipt', 'bill'], name='unique_allocation_per_receipt_bill'),
                ],
            },
        ),
    ]
