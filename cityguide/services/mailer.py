from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from cityguide.core.config import settings

logger = logging.getLogger(__name__)


class MailError(Exception):
    pass


def _otp_message(to: str, name: str, otp: str) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = "Your CityGuide verification code"
    msg["From"] = settings.mail_from
    msg["To"] = to
    msg.set_content(
        f"Hi {name},\n\n"
        f"Your verification code is {otp}.\n"
        f"It expires in {settings.otp_ttl_minutes} minutes.\n\n"
        "If you did not sign up for CityGuide, ignore this email.\n"
    )
    return msg


def send_otp_email(to: str, name: str, otp: str) -> None:
    """Deliver an OTP code. Without SMTP_HOST the code is only logged (dev mode)."""
    if not settings.smtp_host:
        logger.info("SMTP not configured; OTP for %s is %s", to, otp)
        return

    msg = _otp_message(to, name, otp)
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
            smtp.starttls()
            if settings.smtp_user:
                smtp.login(settings.smtp_user, settings.smtp_password)
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        raise MailError(f"Failed to send OTP email to {to}") from exc
    logger.info("OTP email sent to %s", to)
