"""
Session tokens.

Signed JWTs carrying the user's id and handle. Lifetimes come from
``settings.BHABO_JWT``.
"""

from datetime import timedelta

import jwt
from django.conf import settings
from django.utils import timezone

from core.exceptions import AuthenticationError


def _jwt_settings() -> dict:
    return settings.BHABO_JWT


def session_lifetime(remember_me: bool = False) -> timedelta:
    options = _jwt_settings()
    return options["REMEMBER_ME_LIFETIME"] if remember_me else options["ACCESS_TOKEN_LIFETIME"]


def issue_session_token(user: dict, remember_me: bool = False) -> str:
    options = _jwt_settings()
    issued_at = timezone.now()
    payload = {
        "userId": user["id"],
        "username": user["username"],
        "iat": issued_at,
        "exp": issued_at + session_lifetime(remember_me),
    }
    return jwt.encode(payload, options["SIGNING_KEY"], algorithm=options["ALGORITHM"])


def decode_session_token(token: str) -> dict:
    """
    Verify ``token`` and return its payload.

    Raises:
        AuthenticationError: for expired, tampered or malformed tokens
    """
    if not token:
        raise AuthenticationError("Not authenticated.")
    options = _jwt_settings()
    try:
        return jwt.decode(token, options["SIGNING_KEY"], algorithms=[options["ALGORITHM"]])
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Session expired. Please log in again.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid session token.") from exc
