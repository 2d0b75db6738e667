"""Purchases app configuration."""
from django.apps import AppConfig


class PurchasesConfig(AppConfig):
    """Configuration for purchases app."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.purchases'
    verbose_name = 'Purchase Orders'
