import smtplib
from email.message import EmailMessage
from typing import Optional

from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)


class EmailService:
    """Sends account emails over SMTP. With notifications disabled the links are only logged."""

    def __init__(self, enabled: Optional[bool] = None) -> None:
        self.enabled = settings.enable_email_notifications if enabled is None else enabled

    def send_email(self, to: str, subject: str, html: str, text: str) -> bool:
        if not self.enabled:
            logger.info("Email notifications disabled; skipped '%s' to %s", subject, to)
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = f"{settings.smtp_from_name} <{settings.smtp_from_email}>"
        message["To"] = to
        message.set_content(text)
        message.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
                smtp.starttls()
                if settings.smtp_username and settings.smtp_password:
                    smtp.login(settings.smtp_username, settings.smtp_password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Error sending email to %s: %s", to, exc)
            return False
        logger.info("Email '%s' sent to %s", subject, to)
        return True

    def send_verification_email(self, to: str, token: str) -> bool:
        verification_url = f"{settings.frontend_url}/verify-email?token={token}"
        logger.info("Verification link for %s: %s", to, verification_url)
        html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2>Verify Your Email Address</h2>
          <p>Thank you for registering with our Library API. Please verify your email address.</p>
          <p><a href="{verification_url}">Verify Email</a></p>
          <p>If the link doesn't work, copy and paste this URL into your browser:</p>
          <p>{verification_url}</p>
          <p>This verification link will expire in {settings.verification_expiry_hours} hours.</p>
        </div>
        """
        text = (
            "Thank you for registering with our Library API.\n"
            f"Verify your email address: {verification_url}\n"
            f"This link will expire in {settings.verification_expiry_hours} hours."
        )
        return self.send_email(to, "Email Verification - Library API", html, text)
