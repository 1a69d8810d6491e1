from django.apps import AppConfig


class LinkstatsConfig(AppConfig):
    """Configuration for the linkstats Django app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'linkstats'
    verbose_name = 'Link statistics'
