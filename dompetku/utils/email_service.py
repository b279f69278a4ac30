"""
Email Service
Sends account emails (sign-up verification, password recovery, email change
confirmation) over SMTP.
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from urllib.parse import urlencode

from dompetku.core.config import settings

logger = logging.getLogger(__name__)


def send_email(
    to_email: str,
    subject: str,
    body_html: str,
    body_text: Optional[str] = None,
) -> bool:
    """
    Send an email using the configured SMTP server.

    Returns:
        bool: True if email sent successfully, False otherwise
    """
    msg = MIMEMultipart("alternative")
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = subject

    if body_text:
        msg.attach(MIMEText(body_text, "plain"))
    msg.attach(MIMEText(body_html, "html"))

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as server:
            if settings.SMTP_STARTTLS:
                server.starttls()
            if settings.SMTP_USERNAME:
                server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
            server.send_message(msg)
    except smtplib.SMTPAuthenticationError as e:
        logger.error(f"SMTP authentication failed: {str(e)}")
        return False
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Error sending email to {to_email}: {str(e)}")
        return False

    logger.info(f"Email '{subject}' sent to {to_email}")
    return True


def build_link(base_url: str, token: str) -> str:
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'token': token})}"


def _action_email(to_email: str, subject: str, intro: str, link: str, action: str) -> bool:
    body_html = f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #333;">
        <h2>{settings.PROJECT_NAME}</h2>
        <p>{intro}</p>
        <p><a href="{link}" style="background:#2563eb;color:#fff;padding:10px 16px;
           border-radius:6px;text-decoration:none;">{action}</a></p>
        <p style="font-size: 12px; color: #888;">If you did not request this, you can ignore this email.</p>
      </body>
    </html>
    """
    body_text = f"{intro}\n\n{action}: {link}\n"
    return send_email(to_email, subject, body_html, body_text)


def send_signup_confirmation(to_email: str, link: str) -> bool:
    return _action_email(
        to_email,
        f"Confirm your {settings.PROJECT_NAME} account",
        "Thanks for signing up. Confirm your email address to start tracking.",
        link,
        "Confirm email",
    )


def send_password_recovery(to_email: str, link: str) -> bool:
    return _action_email(
        to_email,
        f"Reset your {settings.PROJECT_NAME} password",
        "We received a request to reset your password.",
        link,
        "Choose a new password",
    )


def send_email_change_confirmation(to_email: str, link: str) -> bool:
    return _action_email(
        to_email,
        f"Confirm your new {settings.PROJECT_NAME} email",
        "Confirm this address to finish changing the email on your account.",
        link,
        "Confirm new email",
    )
