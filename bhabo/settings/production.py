"""
Production Settings - Security Hardened
"""

from .base import *
from bhabo.config import config

DEBUG = False
SECRET_KEY = config.security.secret_key
ALLOWED_HOSTS = config.security.allowed_hosts

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.PBKDF2PasswordHasher",
]

LOGGING["root"]["level"] = "WARNING"
LOGGING["loggers"]["core"]["level"] = "INFO"
