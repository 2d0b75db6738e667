from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['sku', 'name', 'organization', 'price', 'stock_quantity', 'defective_quantity', 'is_active']
    list_filter = ['is_active', 'category', 'organization']
    search_fields = ['name', 'sku']
    # Counters change only through the inventory ledger
    readonly_fields = ['stock_quantity', 'defective_quantity', 'created_at', 'updated_at']
