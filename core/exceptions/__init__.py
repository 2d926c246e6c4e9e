"""
core.exceptions: re-exports for convenient imports.

Usage::

    from core.exceptions import ValidationError, NotFoundError, ConflictError
"""

from .base import (
    BhaboError,
    ServiceError,
    ValidationError,
    NotFoundError,
    AuthenticationError,
    VerificationRequiredError,
    AuthorizationError,
    BlockedError,
    ConflictError,
    ConfigurationError,
)

__all__ = [
    # Base
    "BhaboError",
    # Service
    "ServiceError",
    # Client
    "ValidationError",
    "NotFoundError",
    "AuthenticationError",
    "VerificationRequiredError",
    "AuthorizationError",
    "BlockedError",
    "ConflictError",
    # Config
    "ConfigurationError",
]
