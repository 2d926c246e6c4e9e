"""
Test Settings

Fast hasher, in-memory mail outbox, and a throwaway file-store root.
"""

import tempfile

from .base import *

DEBUG = False

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
DEFAULT_FROM_EMAIL = "Bhabo App <noreply@bhabo.test>"

MEDIA_ROOT = tempfile.mkdtemp(prefix="bhabo-media-")

BHABO_DATABASE = {
    **BHABO_DATABASE,
    "BACKEND": "local",
    "LOCAL_DIR": tempfile.mkdtemp(prefix="bhabo-db-"),
}

BHABO_JWT = {
    **BHABO_JWT,
    "SIGNING_KEY": "test-signing-key",
}

# Application records propagate to the root logger, where pytest captures them
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "null": {"class": "logging.NullHandler"},
    },
    "root": {
        "handlers": ["null"],
        "level": "INFO",
    },
}
