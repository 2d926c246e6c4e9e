"""
One-time code mail.

Sends verification and password-reset codes through Django's mail
framework. Dispatch failures abort the calling flow.
"""

import logging
import smtplib

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils.html import escape, strip_tags

from core.exceptions import ServiceError

logger = logging.getLogger(__name__)


def render_code_email(code: str, body: str, valid_for: str = "1 minute") -> str:
    return (
        f"<p>{escape(body)}</p>"
        f"<p>Your code is: <strong>{escape(code)}</strong></p>"
        f"<p>This code is valid for {escape(valid_for)}.</p>"
    )


def send_code_email(email: str, code: str, subject: str, body: str, valid_for: str = "1 minute") -> None:
    """
    Mail ``code`` to ``email``.

    Raises:
        ServiceError: if the mail backend rejects the message
    """
    html_content = render_code_email(code, body, valid_for)
    msg = EmailMultiAlternatives(
        subject=subject,
        body=strip_tags(html_content),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[email],
    )
    msg.attach_alternative(html_content, "text/html")
    try:
        msg.send()
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send code email to %s: %s", email, exc)
        raise ServiceError(
            "Failed to send verification email. Please check your email configuration.",
            service="email",
        ) from exc
    logger.info("Code email sent to %s: %s", email, subject)
