from django.contrib import admin
from .models import FinancialNote


@admin.register(FinancialNote)
class FinancialNoteAdmin(admin.ModelAdmin):
    """Read-only: notes are issued by return approval and settled via the API."""
    list_display = ['note_number', 'note_type', 'status', 'counterparty', 'total_amount', 'refund_amount', 'issued_date']
    list_filter = ['note_type', 'status', 'organization']
    search_fields = ['note_number', 'source_return__return_number', 'counterparty__name']
    readonly_fields = [f.name for f in FinancialNote._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
