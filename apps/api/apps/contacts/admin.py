from django.contrib import admin
from .models import Contact


@admin.register(Contact)
class ContactAdmin(admin.ModelAdmin):
    list_display = ['name', 'kind', 'organization', 'is_active', 'created_at']
    list_filter = ['kind', 'is_active', 'organization']
    search_fields = ['name']
    readonly_fields = ['id', 'created_at', 'updated_at']
