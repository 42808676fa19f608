from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal

from .integrity import invariant_violation


class BillKind(models.TextChoices):
    PURCHASE = 'PURCHASE', 'Purchase bill'
    SALES = 'SALES', 'Sales bill'


class BillStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    PARTIALLY_PAID = 'PARTIALLY_PAID', 'Partially paid'
    PAID = 'PAID', 'Paid'
    CREDIT = 'CREDIT', 'Credit'


class PaymentDirection(models.TextChoices):
    PAYMENT = 'PAYMENT', 'Paid to supplier'
    RECEIPT = 'RECEIPT', 'Received from customer'


class PaymentMode(models.TextChoices):
    CASH = 'CASH', 'Cash'
    BANK_TRANSFER = 'BANK_TRANSFER', 'Bank transfer'
    CHEQUE = 'CHEQUE', 'Cheque'
    UPI = 'UPI', 'UPI'
    CARD = 'CARD', 'Card'


class BankTransactionType(models.TextChoices):
    DEPOSIT = 'DEPOSIT', 'Deposit'
    WITHDRAWAL = 'WITHDRAWAL', 'Withdrawal'


class Bill(models.Model):
    """
    Purchase bill owed to a supplier, or sales bill owed by a customer.

    ``paid_amount``, ``balance_amount``, ``status`` and ``version`` are only
    written by the payment recorder once the bill exists.
    """

    bill_number = models.BigAutoField(primary_key=True)

    party = models.ForeignKey(
        'parties.Party',
        on_delete=models.PROTECT,
        related_name='bills'
    )
    kind = models.CharField(max_length=20, choices=BillKind.choices)

    bill_date = models.DateField(default=timezone.localdate)
    reference_number = models.CharField(max_length=50, blank=True)
    remarks = models.CharField(max_length=255, blank=True)

    # Financial details
    net_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    paid_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )
    balance_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )
    status = models.CharField(
        max_length=20,
        choices=BillStatus.choices,
        default=BillStatus.PENDING
    )

    # Row stamp, bumped on every payment applied to the bill
    version = models.PositiveIntegerField(default=1)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bills'
        indexes = [
            models.Index(fields=['party', 'status'], name='bills_party_status_idx'),
            models.Index(fields=['party', 'balance_amount'], name='bills_party_balance_idx'),
            models.Index(fields=['bill_date'], name='bills_date_idx'),
        ]
        ordering = ['bill_number']

    def __str__(self):
        return f"Bill #{self.bill_number} - {self.net_amount} ({self.status})"

    @property
    def unpaid_status(self):
        """Status of a bill with nothing paid yet: sales bills start on credit."""
        if self.kind == BillKind.SALES:
            return BillStatus.CREDIT
        return BillStatus.PENDING

    def save(self, *args, **kwargs):
        """Derive balance and status when the bill is first entered."""
        if self._state.adding:
            from .services.balance import calculate_balance

            result = calculate_balance(
                self.net_amount,
                self.paid_amount,
                unpaid_status=self.unpaid_status,
            )
            self.balance_amount = result.balance_amount
            self.status = result.status
        super().save(*args, **kwargs)


class BankAccount(models.Model):
    """
    Bank account or cash drawer that payments are drawn from or paid into.

    ``current_balance`` is only moved by the payment recorder, together with
    the BankTransaction row that explains the movement.
    """

    bank_name = models.CharField(max_length=100)
    account_number = models.CharField(max_length=50, unique=True)
    branch_name = models.CharField(max_length=100, blank=True)
    ifsc = models.CharField(max_length=20, blank=True)

    # Cash drawers are kept as accounts too, so cash moves are reconciled the same way
    is_cash = models.BooleanField(default=False)

    current_balance = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0.00')
    )
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bank_accounts'
        ordering = ['bank_name', 'account_number']

    def __str__(self):
        return f"{self.bank_name} ({self.account_number})"


class AppendOnlyModel(models.Model):
    """Ledger rows that can be inserted but never changed or removed."""

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise invariant_violation(
                f"{type(self).__name__} rows are append-only",
                pk=self.pk,
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise invariant_violation(
            f"{type(self).__name__} rows cannot be deleted",
            pk=self.pk,
        )


class PaymentReceipt(AppendOnlyModel):
    """
    One payment event: money paid to a supplier or received from a customer.

    Groups the per-bill allocations created by a single commit. The
    ``total_amount`` always equals the sum of its allocations.
    """

    receipt_number = models.BigAutoField(primary_key=True)

    party = models.ForeignKey(
        'parties.Party',
        on_delete=models.PROTECT,
        related_name='payment_receipts'
    )
    direction = models.CharField(max_length=20, choices=PaymentDirection.choices)

    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )

    # Payment metadata
    payment_mode = models.CharField(max_length=20, choices=PaymentMode.choices)
    bank_reference = models.CharField(max_length=100, blank=True)
    remarks = models.CharField(max_length=500, blank=True)

    payment_date = models.DateField(default=timezone.localdate)
    bills_count = models.PositiveIntegerField(default=1)

    bank_account = models.ForeignKey(
        BankAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='payment_receipts'
    )

    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payment_receipts'
    )

    # Client-supplied token that de-duplicates retried submissions
    idempotency_key = models.CharField(
        max_length=64,
        unique=True,
        null=True,
        blank=True
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'payment_receipts'
        indexes = [
            models.Index(fields=['payment_date', 'direction'], name='receipts_date_direction_idx'),
            models.Index(fields=['party', 'payment_date'], name='receipts_party_date_idx'),
        ]
        ordering = ['-payment_date', '-receipt_number']

    def __str__(self):
        return f"Receipt #{self.receipt_number} - {self.total_amount} ({self.get_direction_display()})"

    @property
    def party_name(self):
        return self.party.display_name if self.party_id else ''

    @property
    def bills_summary(self):
        """Short bill range for listings, e.g. ``#12`` or ``#12 - #19``."""
        bill_numbers = sorted(a.bill_id for a in self.allocations.all())
        if not bill_numbers:
            return ''
        if len(bill_numbers) == 1:
            return f"#{bill_numbers[0]}"
        return f"#{bill_numbers[0]} - #{bill_numbers[-1]}"


class PaymentAllocation(AppendOnlyModel):
    """Portion of one payment receipt applied to one bill."""

    receipt = models.ForeignKey(
        PaymentReceipt,
        on_delete=models.CASCADE,
        related_name='allocations'
    )
    bill = models.ForeignKey(
        Bill,
        on_delete=models.PROTECT,
        related_name='allocations'
    )

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )

    # Copied from the receipt so a bill's own history reads standalone
    payment_mode = models.CharField(max_length=20, choices=PaymentMode.choices)
    bank_reference = models.CharField(max_length=100, blank=True)
    remarks = models.CharField(max_length=500, blank=True)

    payment_date = models.DateField(default=timezone.localdate)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'payment_allocations'
        constraints = [
            models.UniqueConstraint(fields=['receipt', 'bill'], name='unique_allocation_per_receipt_bill'),
        ]
        indexes = [
            models.Index(fields=['bill', 'payment_date'], name='allocations_bill_date_idx'),
            models.Index(fields=['payment_date'], name='allocations_date_idx'),
        ]
        ordering = ['receipt_id', 'bill_id']

    def __str__(self):
        return f"{self.amount} to bill #{self.bill_id} (receipt #{self.receipt_id})"


class BankTransaction(AppendOnlyModel):
    """
    Money moving in or out of a bank account because of one payment receipt.

    Customer receipts are deposits, supplier payments are withdrawals.
    ``balance_after`` is the account balance once this row was applied.
    """

    bank_account = models.ForeignKey(
        BankAccount,
        on_delete=models.PROTECT,
        related_name='transactions'
    )
    receipt = models.OneToOneField(
        PaymentReceipt,
        on_delete=models.PROTECT,
        related_name='bank_transaction'
    )

    transaction_type = models.CharField(max_length=20, choices=BankTransactionType.choices)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    balance_after = models.DecimalField(max_digits=14, decimal_places=2)

    particulars = models.CharField(max_length=255)
    cheque_number = models.CharField(max_length=100, blank=True)
    transaction_date = models.DateField(default=timezone.localdate)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='bank_transactions'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'bank_transactions'
        indexes = [
            models.Index(fields=['bank_account', 'transaction_date'], name='bank_txn_account_date_idx'),
        ]
        ordering = ['transaction_date', 'id']

    def __str__(self):
        return f"{self.get_transaction_type_display()} {self.amount} on {self.bank_account}"

    @property
    def signed_amount(self):
        """Deposits are positive, withdrawals negative."""
        if self.transaction_type == BankTransactionType.WITHDRAWAL:
            return -self.amount
        return self.amount
