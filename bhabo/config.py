"""
Configuration Layer
===================

Centralized, type-safe configuration management for all environment variables.
Settings modules, repositories and services read from here instead of calling
os.getenv() directly.

Usage:
    from bhabo.config import config

    # Which persistence backend is active
    if config.database.uses_mongo:
        ...

    # Code lifetimes for the verification flow
    ttl = config.auth.verification_code_ttl
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import List
import logging

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent

SUPPORTED_BACKENDS = ("mongo", "local")


# =============================================================================
# Configuration Classes
# =============================================================================

@dataclass(frozen=True)
class DatabaseConfig:
    """Persistence backend selection and connection settings."""
    backend: str = field(default_factory=lambda: os.getenv("USED_DB", "mongo").lower())
    mongo_uri: str = field(default_factory=lambda: os.getenv("MONGO_URI", "mongodb://localhost:27017/bhabo_db"))
    mongo_db_name: str = field(default_factory=lambda: os.getenv("MONGO_DB_NAME", ""))
    local_dir: str = field(default_factory=lambda: os.getenv("LOCAL_DB_DIR", str(BASE_DIR / "database")))

    @property
    def uses_mongo(self) -> bool:
        return self.backend == "mongo"


@dataclass(frozen=True)
class SecurityConfig:
    """Security-related settings."""
    secret_key: str = field(default_factory=lambda: os.getenv("SECRET_KEY", "django-insecure-dev-key-change-in-production"))
    jwt_secret: str = field(default_factory=lambda: os.getenv("JWT_SECRET", ""))
    jwt_algorithm: str = field(default_factory=lambda: os.getenv("JWT_ALGORITHM", "HS256"))
    allowed_hosts: List[str] = field(default_factory=lambda: os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(","))

    @property
    def is_secure_key(self) -> bool:
        """Check if using a proper secret key."""
        return "insecure" not in self.secret_key.lower() and len(self.secret_key) >= 50

    @property
    def signing_key(self) -> str:
        """Key used for session tokens; falls back to SECRET_KEY."""
        return self.jwt_secret or self.secret_key


@dataclass(frozen=True)
class EmailConfig:
    """Outgoing mail for one-time codes."""
    backend: str = field(default_factory=lambda: os.getenv("EMAIL_BACKEND", "django.core.mail.backends.smtp.EmailBackend"))
    host: str = field(default_factory=lambda: os.getenv("EMAIL_HOST", "smtp.gmail.com"))
    port: int = field(default_factory=lambda: int(os.getenv("EMAIL_PORT", "587")))
    use_tls: bool = field(default_factory=lambda: os.getenv("EMAIL_USE_TLS", "True").lower() == "true")
    user: str = field(default_factory=lambda: os.getenv("EMAIL_USER", ""))
    password: str = field(default_factory=lambda: os.getenv("EMAIL_PASS", ""))
    from_email: str = field(default_factory=lambda: os.getenv("DEFAULT_FROM_EMAIL", ""))

    @property
    def sender(self) -> str:
        return self.from_email or f'"Bhabo App" <{self.user}>'

    @property
    def is_configured(self) -> bool:
        return bool(self.user and self.password)


@dataclass(frozen=True)
class AuthConfig:
    """One-time codes and session lifetimes."""
    verification_code_length: int = 6
    verification_code_ttl: timedelta = timedelta(minutes=1)
    reset_code_length: int = 8
    reset_code_ttl: timedelta = timedelta(minutes=2)
    session_lifetime: timedelta = timedelta(hours=1)
    remember_me_lifetime: timedelta = timedelta(days=7)


@dataclass(frozen=True)
class MediaConfig:
    """Where uploaded media lives on disk."""
    root: str = field(default_factory=lambda: os.getenv("MEDIA_ROOT", str(BASE_DIR)))
    default_profile_picture: str = "/images/default_profile.png"


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration - aggregates all config sections."""

    # Environment
    environment: str = field(default_factory=lambda: os.getenv("DJANGO_ENV", "development"))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "True").lower() == "true")

    # Sub-configurations
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    media: MediaConfig = field(default_factory=MediaConfig)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    def validate(self) -> List[str]:
        """
        Validate configuration and return list of warnings/errors.
        Call this on startup to catch misconfigurations early.
        """
        issues = []

        if self.database.backend not in SUPPORTED_BACKENDS:
            issues.append(
                f"CRITICAL: Unknown USED_DB '{self.database.backend}' "
                f"(expected one of {', '.join(SUPPORTED_BACKENDS)})"
            )

        if self.is_production:
            if not self.security.is_secure_key:
                issues.append("CRITICAL: Using insecure SECRET_KEY in production!")
            if not self.security.jwt_secret:
                issues.append("CRITICAL: JWT_SECRET is not set in production!")
            if self.debug:
                issues.append("WARNING: DEBUG=True in production!")

        if not self.email.is_configured:
            issues.append("INFO: EMAIL_USER/EMAIL_PASS not configured (verification mail will fail over SMTP)")

        return issues

    def log_status(self) -> None:
        """Log configuration status on startup."""
        logger.info("Environment: %s", self.environment)
        logger.info("Debug: %s", self.debug)
        if self.database.uses_mongo:
            logger.info("Using MongoDB as the database.")
        else:
            logger.info("Using local file system as the database (%s).", self.database.local_dir)


# =============================================================================
# Singleton Instance
# =============================================================================

@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """
    Get the singleton configuration instance.
    Uses lru_cache to ensure single instance across the application.
    """
    return AppConfig()


# Convenience alias
config = get_config()


# =============================================================================
# Django Settings Helpers
# =============================================================================

def get_secret_key() -> str:
    """Get Django SECRET_KEY from config."""
    return config.security.secret_key


def get_allowed_hosts() -> List[str]:
    """Get ALLOWED_HOSTS from config."""
    return config.security.allowed_hosts


def get_debug() -> bool:
    """Get DEBUG setting from config."""
    return config.debug
