from django.contrib import admin
from .models import Organization, DocumentSequence


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ['name', 'default_currency', 'is_active', 'created_at']
    list_filter = ['is_active', 'default_currency']
    search_fields = ['name']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(DocumentSequence)
class DocumentSequenceAdmin(admin.ModelAdmin):
    list_display = ['organization', 'prefix', 'current_value', 'updated_at']
    list_filter = ['prefix']
    readonly_fields = ['organization', 'prefix', 'current_value', 'updated_at']

    def has_add_permission(self, request):
        return False
