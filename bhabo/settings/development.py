"""
Development Settings
"""

from dotenv import load_dotenv

load_dotenv()

from .base import *  # noqa: E402

DEBUG = True

# Print one-time codes to the console unless SMTP credentials are present
if not config.email.is_configured:
    EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"
