"""
DrCarCold application configuration.
"""

from django.apps import AppConfig


class DrcarcoldConfig(AppConfig):
    """Configuration for the drcarcold Django application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "drcarcold"
    verbose_name = "DrCarCold"

    def ready(self):
        # Import signals to register handlers
        from drcarcold import signals  # noqa: F401
