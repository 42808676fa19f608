# ==========================================
# apps/ledger/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html
from .models import (
    BankAccount,
    BankTransaction,
    Bill,
    BillStatus,
    PaymentAllocation,
    PaymentReceipt,
)


STATUS_COLORS = {
    BillStatus.PENDING: ('#E5C49A', '#2C1810'),
    BillStatus.CREDIT: ('#A47449', 'white'),
    BillStatus.PARTIALLY_PAID: ('#D9A441', '#2C1810'),
    BillStatus.PAID: ('#6B8E5E', 'white'),
}


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    """
    Admin interface for bills.

    Payment state (paid, balance, status, version) is maintained only by
    the payment engine and is read-only here.
    """

    list_display = [
        'bill_number',
        'party',
        'kind',
        'bill_date',
        'net_amount',
        'paid_amount',
        'balance_amount',
        'status_badge',
    ]
    list_filter = ['kind', 'status', 'bill_date']
    search_fields = ['party__display_name', 'reference_number']
    ordering = ['-bill_number']
    readonly_fields = [
        'paid_amount',
        'balance_amount',
        'status',
        'version',
        'created_at',
        'updated_at',
    ]

    def get_readonly_fields(self, request, obj=None):
        """Party, kind and net amount are fixed once the bill exists."""
        if obj is not None:
            return self.readonly_fields + ['party', 'kind', 'net_amount']
        return self.readonly_fields

    def status_badge(self, obj):
        """Display bill status as colored badge."""
        bg, fg = STATUS_COLORS.get(obj.status, ('#ccc', '#666'))
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, obj.get_status_display()
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'

    def has_delete_permission(self, request, obj=None):
        return False


class PaymentAllocationInline(admin.TabularInline):
    """Read-only allocations within a receipt."""
    model = PaymentAllocation
    extra = 0
    fields = ['bill', 'amount', 'payment_date']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        """Allocations are created by the payment recorder only."""
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PaymentReceipt)
class PaymentReceiptAdmin(admin.ModelAdmin):
    """Read-only view of the payment ledger."""

    list_display = [
        'receipt_number',
        'party',
        'direction',
        'total_amount',
        'payment_mode',
        'payment_date',
        'bills_count',
        'bank_account',
        'recorded_by',
    ]
    list_filter = ['direction', 'payment_mode', 'payment_date']
    search_fields = ['party__display_name', 'bank_reference', 'idempotency_key']
    ordering = ['-receipt_number']
    inlines = [PaymentAllocationInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(BankAccount)
class BankAccountAdmin(admin.ModelAdmin):
    """Bank accounts and cash drawers. The balance moves with payments only."""

    list_display = ['bank_name', 'account_number', 'is_cash', 'current_balance', 'is_active']
    list_filter = ['is_cash', 'is_active']
    search_fields = ['bank_name', 'account_number']
    readonly_fields = ['current_balance', 'created_at', 'updated_at']

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(BankTransaction)
class BankTransactionAdmin(admin.ModelAdmin):
    """Read-only bank postings made by recorded payments."""

    list_display = [
        'transaction_date',
        'bank_account',
        'transaction_type',
        'amount',
        'balance_after',
        'particulars',
        'receipt',
    ]
    list_filter = ['transaction_type', 'bank_account', 'transaction_date']
    search_fields = ['particulars', 'cheque_number']
    ordering = ['-transaction_date', '-id']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
