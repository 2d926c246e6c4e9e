"""
User Services
=============

Credential flows: signup, email verification, login, password reset and
password change. Storage goes through the persistence facade; codes are
mailed through ``users.notifications``.
"""

import secrets
from typing import Optional

from django.contrib.auth.hashers import check_password, make_password

from bhabo.config import config
from core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    VerificationRequiredError,
)
from core.repositories.documents import coerce_datetime, public_view
from core.services import BaseService

from . import notifications, tokens
from .serializers import (
    ChangePasswordSerializer,
    LoginSerializer,
    PasswordResetRequestSerializer,
    PasswordResetSerializer,
    SignupSerializer,
    VerifySerializer,
)

VERIFY_SUBJECT = "Verify your Bhabo account"
VERIFY_BODY = "Welcome to Bhabo! Use the code below to verify your account."
NEW_CODE_SUBJECT = "Your new Bhabo verification code"
NEW_CODE_BODY = "Here is a new code to verify your Bhabo account."
RESET_SUBJECT = "Reset your Bhabo password"
RESET_BODY = "Use the code below to reset your Bhabo password."


class UserService(BaseService):
    """
    Centralised credential logic.

    Every method takes and returns plain records; the HTTP collaborator is
    responsible for cookies and status codes.
    """

    @staticmethod
    def generate_code(length: int) -> str:
        """Random numeric one-time code of ``length`` digits."""
        return "".join(secrets.choice("0123456789") for _ in range(length))

    def _issue_verification_code(self, user: dict, subject: str, body: str) -> dict:
        code = self.generate_code(config.auth.verification_code_length)
        updated = self.repository.update_user(user["id"], {
            "verificationCode": code,
            "verificationCodeExpires": self.now() + config.auth.verification_code_ttl,
        })
        notifications.send_code_email(user["email"], code, subject, body)
        return updated

    # ── Signup & verification ─────────────────────────────────────────

    def signup(self, data: dict, today=None) -> str:
        """
        Register an unverified account and mail its verification code.

        Returns:
            the new user's id

        Raises:
            ValidationError: malformed payload
            ConflictError: handle or email already registered
            ServiceError: the code could not be mailed
        """
        context = {"today": today} if today else {}
        payload = self.validate(SignupSerializer, data, context=context)

        if self.repository.get_user(payload["username"]):
            raise ConflictError("Username already taken.", field="username")
        if self.repository.find_user_by_identifier(payload["email"]):
            raise ConflictError("Email already registered.", field="email")

        code = self.generate_code(config.auth.verification_code_length)
        user = self.repository.save_user({
            "username": payload["username"],
            "firstName": payload["firstName"],
            "lastName": payload["lastName"],
            "email": payload["email"],
            "birthday": coerce_datetime(payload["birthday"].isoformat()),
            "gender": payload["gender"],
            "password": make_password(payload["password"]),
            "isVerified": False,
            "verificationCode": code,
            "verificationCodeExpires": self.now() + config.auth.verification_code_ttl,
            "resetPasswordCode": None,
            "resetPasswordCodeExpires": None,
        })
        self.logger.info("New user registered: %s", user["username"])

        notifications.send_code_email(user["email"], code, VERIFY_SUBJECT, VERIFY_BODY)
        return user["id"]

    def verify(self, user_id: str, code: str) -> str:
        """
        Check a verification code and log the user in for seven days.

        An expired code is replaced and re-sent; the caller still gets a
        ``ValidationError`` (with ``code_resent=True``) for this attempt.
        """
        payload = self.validate(VerifySerializer, {"userId": user_id, "code": code})
        user = self.repository.get_user_by_id(payload["userId"])
        if not user:
            raise NotFoundError("User not found.", resource="user")
        if user.get("isVerified"):
            raise ValidationError("Account already verified.")
        if payload["code"] != user.get("verificationCode"):
            raise ValidationError("Invalid verification code.", field="code")

        expires = user.get("verificationCodeExpires")
        if expires is None or self.now() > expires:
            self._issue_verification_code(user, NEW_CODE_SUBJECT, NEW_CODE_BODY)
            raise ValidationError(
                "Verification code expired. A new code has been sent to your email.",
                field="code",
                code_resent=True,
            )

        user = self.repository.update_user(user["id"], {
            "isVerified": True,
            "verificationCode": None,
            "verificationCodeExpires": None,
        })
        self.logger.info("User %s verified", user["username"])
        return tokens.issue_session_token(user, remember_me=True)

    # ── Login & sessions ──────────────────────────────────────────────

    def login(self, identifier: str, password: str, remember_me: bool = False) -> str:
        """
        Resolve ``identifier`` (handle or email) and check the password.

        Raises:
            AuthenticationError: unknown identifier or wrong password
            VerificationRequiredError: account not yet verified; a fresh
                code has been mailed
        """
        payload = self.validate(LoginSerializer, {
            "identifier": identifier,
            "password": password,
            "rememberMe": remember_me,
        })
        user = self.repository.find_user_by_identifier(payload["identifier"])
        if not user or not check_password(payload["password"], user.get("password") or ""):
            raise AuthenticationError("Invalid credentials.")

        if not user.get("isVerified"):
            self._issue_verification_code(user, NEW_CODE_SUBJECT, NEW_CODE_BODY)
            raise VerificationRequiredError(
                "Account not verified. A new verification code has been sent to your email.",
                user_id=user["id"],
            )

        self.logger.info("User %s logged in", user["username"])
        return tokens.issue_session_token(user, remember_me=payload["rememberMe"])

    def authenticate_token(self, token: str) -> dict:
        """Decode a session token and return the public view of its user."""
        payload = tokens.decode_session_token(token)
        user = self.repository.get_user_by_id(payload.get("userId"))
        if not user:
            raise AuthenticationError("User not found.")
        return public_view(user)

    # ── Passwords ─────────────────────────────────────────────────────

    def request_password_reset(self, identifier: str) -> Optional[str]:
        """
        Mail a reset code; returns the user id, or None for an unknown
        identifier so callers can answer both cases the same way.
        """
        payload = self.validate(PasswordResetRequestSerializer, {"identifier": identifier})
        user = self.repository.find_user_by_identifier(payload["identifier"])
        if not user:
            self.logger.info("Password reset requested for unknown identifier")
            return None

        code = self.generate_code(config.auth.reset_code_length)
        self.repository.update_user(user["id"], {
            "resetPasswordCode": code,
            "resetPasswordCodeExpires": self.now() + config.auth.reset_code_ttl,
        })
        notifications.send_code_email(user["email"], code, RESET_SUBJECT, RESET_BODY, valid_for="2 minutes")
        return user["id"]

    def reset_password(self, user_id: str, code: str, new_password: str, confirm_password: str) -> None:
        payload = self.validate(PasswordResetSerializer, {
            "userId": user_id,
            "code": code,
            "newPassword": new_password,
            "confirmNewPassword": confirm_password,
        })

        user = self.repository.get_user_by_id(payload["userId"])
        if not user:
            raise NotFoundError("User not found.", resource="user")
        if not user.get("resetPasswordCode") or payload["code"] != user["resetPasswordCode"]:
            raise ValidationError("Invalid reset code.", field="code")
        expires = user.get("resetPasswordCodeExpires")
        if expires is None or self.now() > expires:
            raise ValidationError("Reset code expired. Please request a new one.", field="code")

        self.repository.update_user(user["id"], {
            "password": make_password(payload["newPassword"]),
            "resetPasswordCode": None,
            "resetPasswordCodeExpires": None,
        })
        self.logger.info("Password reset for %s", user["username"])

    def change_password(self, user_id: str, current_password: str, new_password: str,
                        confirm_password: str) -> None:
        payload = self.validate(ChangePasswordSerializer, {
            "currentPassword": current_password,
            "newPassword": new_password,
            "confirmNewPassword": confirm_password,
        })

        user = self.repository.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User not found.", resource="user")
        if not check_password(payload["currentPassword"], user.get("password") or ""):
            raise AuthenticationError("Current password is incorrect.")

        self.repository.update_user(user["id"], {"password": make_password(payload["newPassword"])})
        self.logger.info("Password changed for %s", user["username"])
