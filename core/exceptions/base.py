"""
Bhabo Exception Hierarchy
=========================

Domain-specific exceptions raised by the service layer. The HTTP collaborator
maps ``status_code`` / ``to_dict()`` onto its responses.

Usage::

    from core.exceptions import ConflictError, NotFoundError

    # In a service:
    raise ConflictError("Username already taken.", field="username")

    # Not-found at the repository level is a ``None`` return, services turn
    # it into:
    raise NotFoundError("Post not found.", resource="post")
"""

from rest_framework import status


# =============================================================================
# Base Exception
# =============================================================================

class BhaboError(Exception):
    """Base exception for all Bhabo application errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "server_error"

    def __init__(self, message="An unexpected error occurred", **kwargs):
        self.message = message
        self.details = kwargs
        super().__init__(message)

    def to_dict(self):
        result = {
            "success": False,
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["detail"] = self.details
        return result


# =============================================================================
# Service Errors (external dependencies)
# =============================================================================

class ServiceError(BhaboError):
    """External service call failed (mail dispatch)."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "service_error"

    def __init__(self, message="External service unavailable", service=None, **kwargs):
        if service:
            kwargs["service"] = service
        super().__init__(message, **kwargs)


# =============================================================================
# Client Errors
# =============================================================================

class ValidationError(BhaboError):
    """Invalid input or a broken domain rule."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "validation_error"

    def __init__(self, message="Invalid request data", field=None, **kwargs):
        if field:
            kwargs["field"] = field
        super().__init__(message, **kwargs)


class NotFoundError(BhaboError):
    """Requested resource does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"

    def __init__(self, message="Resource not found", resource=None, **kwargs):
        if resource:
            kwargs["resource"] = resource
        super().__init__(message, **kwargs)


class AuthenticationError(BhaboError):
    """Authentication failed."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "authentication_error"

    def __init__(self, message="Invalid credentials.", **kwargs):
        super().__init__(message, **kwargs)


class VerificationRequiredError(BhaboError):
    """Credentials were right but the account has not been verified yet."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "verification_required"

    def __init__(self, message="Account not verified.", user_id=None, **kwargs):
        if user_id:
            kwargs["user_id"] = user_id
        super().__init__(message, **kwargs)

    @property
    def user_id(self):
        return self.details.get("user_id")


class AuthorizationError(BhaboError):
    """User lacks permission for this action."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "permission_denied"

    def __init__(self, message="You do not have permission", **kwargs):
        super().__init__(message, **kwargs)


class BlockedError(AuthorizationError):
    """One side of a conversation has blocked the other."""

    error_code = "blocked"

    def __init__(self, message="You are blocked by this user.", **kwargs):
        super().__init__(message, **kwargs)


class ConflictError(BhaboError):
    """Resource conflict (duplicate handle or email)."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "conflict"

    def __init__(self, message="Resource conflict", field=None, **kwargs):
        if field:
            kwargs["field"] = field
        super().__init__(message, **kwargs)


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(BhaboError):
    """Missing or invalid configuration (env vars, settings)."""

    error_code = "configuration_error"

    def __init__(self, message="Configuration error", setting=None, **kwargs):
        if setting:
            kwargs["setting"] = setting
        super().__init__(message, **kwargs)
