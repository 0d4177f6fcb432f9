# app/services/email_service.py
import logging
import smtplib
from email.message import EmailMessage

from app.config import CLIENT_URL, EMAIL_HOST, EMAIL_PASS, EMAIL_PORT, EMAIL_USER

logger = logging.getLogger(__name__)


def build_reset_url(token: str) -> str:
    return f"{CLIENT_URL}/reset-password/{token}"


def send_password_reset_email(email: str, token: str, first_name: str) -> None:
    """
    Send the reset link over SMTP (STARTTLS). Raises on any delivery failure.
    """
    reset_url = build_reset_url(token)

    msg = EmailMessage()
    msg["Subject"] = "Password Reset Request"
    msg["From"] = f"Workflow Management <{EMAIL_USER}>"
    msg["To"] = email
    msg.set_content(
        f"Hello {first_name},\n\n"
        "You have requested to reset your password for your Workflow Management account.\n"
        f"Open this link to choose a new password:\n{reset_url}\n\n"
        "This link will expire in 1 hour.\n"
        "If you didn't request this password reset, please ignore this email.\n"
    )
    msg.add_alternative(
        f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2>Password Reset Request</h2>
          <p>Hello {first_name},</p>
          <p>You have requested to reset your password for your Workflow Management account.</p>
          <p><a href="{reset_url}">Reset Password</a></p>
          <p><strong>This link will expire in 1 hour.</strong></p>
          <p>If you didn't request this password reset, please ignore this email.</p>
        </div>
        """,
        subtype="html",
    )

    with smtplib.SMTP(EMAIL_HOST, EMAIL_PORT, timeout=30) as server:
        server.starttls()
        if EMAIL_USER and EMAIL_PASS:
            server.login(EMAIL_USER, EMAIL_PASS)
        server.send_message(msg)
    logger.info(f"Password reset email sent to {email}")
