"""
Configuration Validators
========================

Startup validation for the Bhabo configuration layer.

Called automatically via core.apps.CoreConfig.ready().
"""

import logging
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
}


def validate_config_on_startup(app_config=None):
    """
    Validate configuration when Django initializes.

    An unknown persistence backend is always fatal since no repository can
    be built for it. Other CRITICAL issues are fatal only in production;
    everything else is logged.
    """
    if app_config is None:
        from bhabo.config import config as app_config

    issues = app_config.validate()
    for issue in issues:
        level = _LOG_LEVELS.get(issue.split(":", 1)[0], logging.INFO)
        logger.log(level, issue)

    critical_issues = [i for i in issues if i.startswith("CRITICAL")]
    backend_issues = [i for i in critical_issues if "USED_DB" in i]

    if backend_issues or (app_config.is_production and critical_issues):
        raise ImproperlyConfigured(
            "Configuration validation failed:\n"
            + "\n".join(f"  • {i}" for i in critical_issues)
        )

    if not issues:
        logger.info("Configuration validated, no issues found")
    app_config.log_status()
