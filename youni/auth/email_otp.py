"""
youni/auth/email_otp.py

Passwordless sign-in codes for AI Youni.

A student asks for a code, receives it by e-mail through SendGrid, and
trades it for a session token.  Only the newest code of a user is ever
valid: issuing a new one burns every earlier unused code.
"""

import logging
import os
from datetime import datetime, timedelta

import pyotp
from dotenv import load_dotenv
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from sqlalchemy.orm import Session

from youni.database.models import OTPCode, User

load_dotenv()

logger = logging.getLogger(__name__)

SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
SENDGRID_FROM_EMAIL = os.getenv("SENDGRID_FROM_EMAIL")
OTP_DIGITS = 6
OTP_EXPIRY_MINUTES = int(os.getenv("OTP_EXPIRY_MINUTES", 10))

EMAIL_SUBJECT = "Your AI Youni sign-in code"


def generate_otp() -> str:
    """A random numeric code of OTP_DIGITS digits."""
    return pyotp.TOTP(pyotp.random_base32(), digits=OTP_DIGITS).now()


def issue_otp(db: Session, user_id: int, code: str) -> OTPCode:
    """Store *code* as the user's only valid sign-in code."""
    (
        db.query(OTPCode)
        .filter(OTPCode.user_id == user_id, OTPCode.is_used.is_(False))
        .update({"is_used": True}, synchronize_session=False)
    )
    otp = OTPCode(
        user_id=user_id,
        code=code,
        expires_at=datetime.utcnow() + timedelta(minutes=OTP_EXPIRY_MINUTES),
        is_used=False,
    )
    db.add(otp)
    db.commit()
    db.refresh(otp)
    return otp


def render_otp_email(code: str, full_name: str | None = None) -> str:
    greeting = f"Hi {full_name}," if full_name else "Hi,"
    return (
        f"<p>{greeting}</p>"
        f"<p>Here is your code to continue exploring careers with AI Youni:</p>"
        f"<h2 style='letter-spacing: 4px;'>{code}</h2>"
        f"<p>It expires in {OTP_EXPIRY_MINUTES} minutes and works only once.</p>"
        f"<p>Didn't ask for a code? You can safely ignore this email.</p>"
    )


def send_otp_email(recipient_email: str, code: str, full_name: str | None = None) -> bool:
    """Deliver the code through SendGrid. Returns False on any delivery error."""
    message = Mail(
        from_email=SENDGRID_FROM_EMAIL,
        to_emails=recipient_email,
        subject=EMAIL_SUBJECT,
        html_content=render_otp_email(code, full_name),
    )
    try:
        response = SendGridAPIClient(SENDGRID_API_KEY).send(message)
    except Exception as exc:
        logger.error("Failed to send OTP email to %s: %s", recipient_email, exc)
        return False
    if response.status_code not in (200, 202):
        logger.error("SendGrid rejected OTP email to %s: HTTP %s", recipient_email, response.status_code)
        return False
    return True


def consume_otp(db: Session, user_id: int, code: str) -> bool:
    """Mark *code* used if it is the user's current, unexpired code."""
    otp = (
        db.query(OTPCode)
        .filter(
            OTPCode.user_id == user_id,
            OTPCode.code == code,
            OTPCode.is_used.is_(False),
            OTPCode.expires_at > datetime.utcnow(),
        )
        .first()
    )
    if otp is None:
        return False
    otp.is_used = True
    db.commit()
    return True


def generate_and_send_otp(db: Session, user: User) -> bool:
    code = generate_otp()
    issue_otp(db, user.id, code)
    return send_otp_email(user.email, code, user.full_name)
