"""
Core App Configuration
======================

Validates configuration once Django is ready. The persistence backend
itself is built lazily by ``core.repositories.get_repository()``.
"""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    name = "core"
    verbose_name = "Bhabo core"

    def ready(self):
        from core.config import validate_config_on_startup
        validate_config_on_startup()
