"""Finance app configuration."""
from django.apps import AppConfig


class FinanceConfig(AppConfig):
    """Configuration for finance app."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.finance'
    verbose_name = 'Credit & Debit Notes'
