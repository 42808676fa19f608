from django.contrib import admin
from .models import Party


@admin.register(Party)
class PartyAdmin(admin.ModelAdmin):
    """Admin interface for suppliers and customers."""

    list_display = ['display_name', 'party_type', 'phone', 'is_active', 'created_at']
    list_filter = ['party_type', 'is_active']
    search_fields = ['display_name', 'phone']
    ordering = ['display_name']
    readonly_fields = ['created_at', 'updated_at']

    def has_delete_permission(self, request, obj=None):
        """Parties with bills are deactivated, never deleted."""
        return False
