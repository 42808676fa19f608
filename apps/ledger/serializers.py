from rest_framework import serializers

from apps.accounts.models import User

from .models import (
    BankAccount,
    BankTransaction,
    Bill,
    PaymentAllocation,
    PaymentDirection,
    PaymentMode,
    PaymentReceipt,
)


# =============================================================================
# Input Serializers
# =============================================================================

class RecordPaymentInputSerializer(serializers.Serializer):
    """
    Validate a payment submission.

    Fields:
        party_id (int): Supplier paid or customer paying
        amount (decimal): Payment amount, at most 2 decimal places
        payment_mode (str): CASH, BANK_TRANSFER, CHEQUE, UPI or CARD
        bank_reference (str): Cheque number / transfer reference
        remarks (str): Optional free text
        bill_numbers (list[int]): Bills to settle, any order
        idempotency_key (str): Optional client token
        bank_account_id (int): Optional bank or cash account the money moves through
    """

    party_id = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    payment_mode = serializers.ChoiceField(choices=PaymentMode.choices)
    bank_reference = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    remarks = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    bill_numbers = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False
    )
    idempotency_key = serializers.CharField(max_length=64, required=False, allow_blank=True)
    bank_account_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class PreviewPaymentInputSerializer(serializers.Serializer):
    """Validate a request to preview a payment split."""

    party_id = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    bill_numbers = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False
    )


class HistoryFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for payment history.

    Query Parameters:
        date_from (date): First payment date, defaults to start of month
        date_to (date): Last payment date, defaults to today
        search (str): Party name fragment (case-insensitive)
        direction (str): PAYMENT or RECEIPT
        party (int): Filter by party ID
    """

    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    search = serializers.CharField(max_length=100, required=False, allow_blank=True)
    direction = serializers.ChoiceField(choices=PaymentDirection.choices, required=False)
    party = serializers.IntegerField(min_value=1, required=False)

    def validate(self, attrs):
        """Validate date range."""
        date_from = attrs.get('date_from')
        date_to = attrs.get('date_to')

        if date_from and date_to:
            if date_from > date_to:
                raise serializers.ValidationError({
                    'date_to': 'End date must be after start date'
                })

        return attrs


class StatementQuerySerializer(serializers.Serializer):
    """Optional date range for a bank account statement."""

    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        date_from = attrs.get('date_from')
        date_to = attrs.get('date_to')
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({
                'date_to': 'End date must be after start date'
            })
        return attrs


class TotalsQuerySerializer(HistoryFilterSerializer):
    """Totals take either a full date range or none (today / this month)."""

    search = None

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if bool(attrs.get('date_from')) != bool(attrs.get('date_to')):
            raise serializers.ValidationError(
                'Provide both date_from and date_to, or neither'
            )
        return attrs


# =============================================================================
# Output Serializers
# =============================================================================

class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal operator info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name', 'counter_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class BillSerializer(serializers.ModelSerializer):
    """Bill with its current payment state."""

    party_name = serializers.CharField(source='party.display_name', read_only=True)

    class Meta:
        model = Bill
        fields = [
            'bill_number',
            'party',
            'party_name',
            'kind',
            'bill_date',
            'reference_number',
            'remarks',
            'net_amount',
            'paid_amount',
            'balance_amount',
            'status',
            'version',
        ]
        read_only_fields = fields


class AllocationSerializer(serializers.ModelSerializer):
    """One bill's share of a payment."""

    bill_number = serializers.IntegerField(source='bill_id', read_only=True)
    receipt_number = serializers.IntegerField(source='receipt_id', read_only=True)

    class Meta:
        model = PaymentAllocation
        fields = [
            'id',
            'receipt_number',
            'bill_number',
            'amount',
            'payment_mode',
            'bank_reference',
            'remarks',
            'payment_date',
            'created_at',
        ]
        read_only_fields = fields


class BankAccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = BankAccount
        fields = [
            'id',
            'bank_name',
            'account_number',
            'branch_name',
            'is_cash',
            'current_balance',
        ]
        read_only_fields = fields


class BankTransactionSerializer(serializers.ModelSerializer):
    """One posting on a bank account statement."""

    bank_account_name = serializers.CharField(source='bank_account.bank_name', read_only=True)
    receipt_number = serializers.IntegerField(source='receipt_id', read_only=True)

    class Meta:
        model = BankTransaction
        fields = [
            'id',
            'bank_account',
            'bank_account_name',
            'receipt_number',
            'transaction_type',
            'amount',
            'balance_after',
            'particulars',
            'cheque_number',
            'transaction_date',
            'created_at',
        ]
        read_only_fields = fields


class ReceiptSerializer(serializers.ModelSerializer):
    """Payment receipt with its allocations."""

    party_name = serializers.CharField(read_only=True)
    bills_summary = serializers.CharField(read_only=True)
    recorded_by = UserMinimalSerializer(read_only=True)
    allocations = AllocationSerializer(many=True, read_only=True)
    bank_transaction = BankTransactionSerializer(read_only=True, allow_null=True)

    class Meta:
        model = PaymentReceipt
        fields = [
            'receipt_number',
            'party',
            'party_name',
            'direction',
            'total_amount',
            'payment_mode',
            'bank_reference',
            'remarks',
            'payment_date',
            'bills_count',
            'bills_summary',
            'recorded_by',
            'idempotency_key',
            'bank_account',
            'bank_transaction',
            'allocations',
            'created_at',
        ]
        read_only_fields = fields


class PreviewLineSerializer(serializers.Serializer):
    bill_number = serializers.IntegerField()
    current_balance = serializers.DecimalField(max_digits=12, decimal_places=2)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    balance_after = serializers.DecimalField(max_digits=12, decimal_places=2)
    status_after = serializers.CharField()


class PartyBalanceSummarySerializer(serializers.Serializer):
    party_id = serializers.IntegerField()
    party_name = serializers.CharField()
    party_type = serializers.CharField()
    total_net = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_pending = serializers.DecimalField(max_digits=14, decimal_places=2)
    bill_count = serializers.IntegerField()
    outstanding_count = serializers.IntegerField()


class OutstandingResponseSerializer(serializers.Serializer):
    summary = PartyBalanceSummarySerializer()
    bills = BillSerializer(many=True)


class TotalsResponseSerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    direction = serializers.CharField(allow_null=True)
    total = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    today = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    this_month = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)


class BankStatementResponseSerializer(serializers.Serializer):
    account = BankAccountSerializer()
    transactions = BankTransactionSerializer(many=True)


class ErrorSerializer(serializers.Serializer):
    error = serializers.CharField()
    code = serializers.CharField()
    detail = serializers.DictField()
