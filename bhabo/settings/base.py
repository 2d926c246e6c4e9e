"""
Base Django Settings - Shared across all environments
"""

from pathlib import Path

# Import centralized config
from bhabo.config import config, get_allowed_hosts, get_debug, get_secret_key

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = get_secret_key()
DEBUG = get_debug()
ALLOWED_HOSTS = get_allowed_hosts()

# Application definition
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    # Third-party apps
    "rest_framework",
    # Local apps
    "core.apps.CoreConfig",
]

# Persistence is handled by core.repositories (MongoDB or JSON files),
# so no Django database is configured.
DATABASES = {}

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.PBKDF2PasswordHasher",
    "django.contrib.auth.hashers.PBKDF2SHA1PasswordHasher",
]

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Media files (posts, chat attachments, profile pictures)
MEDIA_URL = "images/"
MEDIA_ROOT = config.media.root

# Persistence backend (read by core.repositories.get_repository)
BHABO_DATABASE = {
    "BACKEND": config.database.backend,
    "MONGO_URI": config.database.mongo_uri,
    "MONGO_DB_NAME": config.database.mongo_db_name,
    "LOCAL_DIR": config.database.local_dir,
}

# Session tokens
BHABO_JWT = {
    "SIGNING_KEY": config.security.signing_key,
    "ALGORITHM": config.security.jwt_algorithm,
    "ACCESS_TOKEN_LIFETIME": config.auth.session_lifetime,
    "REMEMBER_ME_LIFETIME": config.auth.remember_me_lifetime,
}

# Logging Configuration
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "INFO",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "core": {
            "handlers": ["console"],
            "level": "DEBUG",
            "propagate": False,
        },
        "users": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "profiles": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "posts": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "chats": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "search": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "bhabo.config": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}

# =============================================================================
# EMAIL CONFIGURATION (from config)
# =============================================================================
EMAIL_BACKEND = config.email.backend
EMAIL_HOST = config.email.host
EMAIL_PORT = config.email.port
EMAIL_USE_TLS = config.email.use_tls
EMAIL_HOST_USER = config.email.user
EMAIL_HOST_PASSWORD = config.email.password
DEFAULT_FROM_EMAIL = config.email.sender
