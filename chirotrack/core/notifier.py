"""
Outbound notification of password-reset codes.

Delivery goes over SMTP with a bounded retry loop. ``deliver`` never raises;
the caller decides what a failed delivery means for the request.
"""
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from typing import Optional, Protocol
import logging
import smtplib
import socket
import ssl
import time

from ..config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    delivered: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class Notifier(Protocol):
    def deliver(self, destination: str, code: str) -> DeliveryResult: ...


def render_reset_code_text(code: str, expire_minutes: int, max_attempts: int) -> str:
    return (
        "Hello,\n\n"
        "We received a request to reset your ChiroTrack password.\n\n"
        f"Your verification code is: {code}\n\n"
        f"The code expires in {expire_minutes} minutes and allows {max_attempts} attempts.\n"
        "If you did not request a password reset, please ignore this email.\n"
    )


def render_reset_code_email(code: str, expire_minutes: int, max_attempts: int) -> str:
    """Build the HTML body of the reset code email."""
    return f"""
    <html>
        <head>
            <title>ChiroTrack - Password Reset</title>
            <style>
                body {{ font-family: Arial, sans-serif; line-height: 1.6; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
                .header {{ background-color: #2563eb; color: white; padding: 10px; text-align: center; }}
                .content {{ padding: 20px; border: 1px solid #ddd; }}
                .code {{ font-size: 28px; font-weight: bold; text-align: center; letter-spacing: 6px;
                        margin: 20px 0; padding: 10px; background-color: #f5f5f5; }}
                .footer {{ text-align: center; margin-top: 20px; font-size: 12px; color: #777; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>ChiroTrack</h1>
                </div>
                <div class="content">
                    <p>Hello,</p>
                    <p>We received a request to reset your password. Use the following verification code:</p>
                    <div class="code">{code}</div>
                    <p>This code expires in {expire_minutes} minutes. You have {max_attempts} attempts to enter it.</p>
                    <p>If you did not request a password reset, please ignore this email.</p>
                    <p>Best regards,<br>ChiroTrack Team</p>
                </div>
                <div class="footer">
                    &copy; {datetime.now().year} ChiroTrack. All rights reserved.
                </div>
            </div>
        </body>
    </html>
    """


class EmailNotifier:
    """
    Sends reset codes by email.

    Args:
        settings: Application settings with the SMTP configuration
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def is_configured(self) -> bool:
        required = {
            "MAIL_SERVER": self.settings.mail_server,
            "MAIL_USERNAME": self.settings.mail_username,
            "MAIL_PASSWORD": self.settings.mail_password,
            "MAIL_FROM": self.settings.mail_from,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            logger.warning(f"Missing email configuration: {', '.join(missing)}")
            return False
        return True

    def _build_message(self, destination: str, code: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self.settings.mail_from_name, self.settings.mail_from))
        msg["To"] = destination
        msg["Subject"] = "ChiroTrack - Password Reset Code"
        msg["Message-ID"] = make_msgid(domain=self.settings.mail_from.rpartition("@")[2] or None)
        expire_minutes = max(1, self.settings.otp_expire_seconds // 60)
        max_attempts = self.settings.otp_max_attempts
        msg.attach(MIMEText(render_reset_code_text(code, expire_minutes, max_attempts), "plain"))
        msg.attach(MIMEText(render_reset_code_email(code, expire_minutes, max_attempts), "html"))
        return msg

    def _send(self, msg: MIMEMultipart) -> None:
        settings = self.settings
        with smtplib.SMTP(settings.mail_server, settings.mail_port, timeout=settings.mail_timeout) as server:
            server.ehlo()
            if settings.mail_starttls:
                server.starttls(context=ssl.create_default_context())
                server.ehlo()
            server.login(settings.mail_username, settings.mail_password)
            server.send_message(msg)

    def deliver(self, destination: str, code: str) -> DeliveryResult:
        """
        Send a reset code, retrying transient SMTP failures.

        Args:
            destination: Recipient email address
            code: The reset code

        Returns:
            DeliveryResult: Whether the message was accepted by the server
        """
        if not self.is_configured():
            return DeliveryResult(delivered=False, error="Email configuration is incomplete")

        msg = self._build_message(destination, code)
        max_retries = max(1, self.settings.mail_max_retries)
        retry_delay = self.settings.mail_retry_delay
        last_error = None

        for attempt in range(1, max_retries + 1):
            try:
                logger.info(f"Reset code email attempt {attempt}/{max_retries} to {destination}")
                self._send(msg)
                logger.info(f"Reset code email sent to {destination} on attempt {attempt}")
                return DeliveryResult(delivered=True, message_id=msg.get("Message-ID"))

            except smtplib.SMTPAuthenticationError as e:
                logger.error(f"SMTP authentication failed: {e}")
                last_error = e
                break  # credentials won't fix themselves

            except smtplib.SMTPRecipientsRefused as e:
                logger.error(f"SMTP recipient refused: {e}")
                last_error = e
                break

            except (smtplib.SMTPException, socket.timeout, socket.gaierror, OSError) as e:
                logger.warning(f"SMTP error on attempt {attempt}: {e}")
                last_error = e
                if attempt < max_retries:
                    logger.info(f"Retrying in {retry_delay} seconds...")
                    time.sleep(retry_delay)

        logger.error(f"Failed to send reset code email after {attempt} attempt(s): {last_error}")
        return DeliveryResult(delivered=False, error=str(last_error))
