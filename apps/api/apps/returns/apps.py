"""Returns app configuration."""
from django.apps import AppConfig


class ReturnsConfig(AppConfig):
    """Configuration for returns app."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.returns'
    verbose_name = 'Sale & Purchase Returns'
