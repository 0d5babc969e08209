"""
Outgoing email

Senders implement send(to, template, context) and raise DeliveryFailed when
the message could not be handed to the mail server. The auth workflow
decides which failures matter.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate
from typing import Protocol

from pg_finder.core.config import Settings
from pg_finder.core.exceptions import DeliveryFailed

logger = logging.getLogger(__name__)

REGISTRATION_OTP = "registration_otp"
WELCOME = "welcome"
PASSWORD_RESET_OTP = "password_reset_otp"
PASSWORD_RESET_CONFIRMATION = "password_reset_confirmation"


class NotificationSender(Protocol):
    def send(self, to: str, template: str, context: dict) -> None:
        ...


def _layout(title: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <title>{title}</title>
        <style>
            body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #2d3748; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f8f9fa; }}
            .header {{ background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; border-radius: 10px; text-align: center; }}
            .content {{ background: white; padding: 30px; border-radius: 10px; margin-top: 20px; }}
            .code {{ font-size: 36px; font-weight: bold; text-align: center; letter-spacing: 5px;
                    padding: 20px; background-color: #edf2f7; border-radius: 10px; margin: 25px 0; }}
            .footer {{ color: #718096; font-size: 14px; border-top: 1px solid #e2e8f0; padding-top: 20px; margin-top: 30px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h1>PG Finder</h1>
                <p>{title}</p>
            </div>
            <div class="content">
                {body}
                <div class="footer">
                    <p>Best regards,<br>The PG Finder Team</p>
                </div>
            </div>
        </div>
    </body>
    </html>
    """


def render(template: str, context: dict) -> tuple:
    """Returns (subject, html) for one of the known templates."""
    name = context.get("name") or "there"
    if template == REGISTRATION_OTP:
        return "PG Finder - Email Verification OTP", _layout("Email Verification", f"""
                <h2>Hello {name}!</h2>
                <p>Thank you for registering with PG Finder! To complete your registration, please use the verification code below:</p>
                <div class="code">{context["code"]}</div>
                <p>This code will expire in {context["expiry_minutes"]} minutes. If you didn't request this code, please ignore this email.</p>
        """)
    if template == WELCOME:
        return "Welcome to PG Finder!", _layout("Welcome aboard!", f"""
                <h2>Welcome to PG Finder, {name}!</h2>
                <p>Your email has been successfully verified! You can now browse and search PG accommodations,
                contact PG owners directly, or become an owner and list your own PG.</p>
                <p><a href="{context.get("frontend_url", "")}">Start Exploring</a></p>
        """)
    if template == PASSWORD_RESET_OTP:
        return "PG Finder - Password Reset OTP", _layout("Password Reset", f"""
                <h2>Hello {name}!</h2>
                <p>You requested a password reset for your PG Finder account. Please use the verification code below to reset your password:</p>
                <div class="code">{context["code"]}</div>
                <p>This code will expire in {context["expiry_minutes"]} minutes. If you didn't request this password reset,
                please ignore this email and your password will remain unchanged.</p>
        """)
    if template == PASSWORD_RESET_CONFIRMATION:
        return "PG Finder - Password Reset Successful", _layout("Password Changed", f"""
                <h2>Hello {name}!</h2>
                <p>Your PG Finder password has been reset successfully. You can now log in with your new password.</p>
                <p>If you did not make this change, please reset your password again immediately.</p>
        """)
    raise ValueError(f"Unknown email template: {template}")


class SmtpEmailSender:
    """Sends HTML email through an SMTP server"""

    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.sender = settings.EMAIL_FROM

    def send(self, to: str, template: str, context: dict) -> None:
        subject, html_content = render(template, context)

        msg = MIMEMultipart()
        msg['From'] = self.sender
        msg['To'] = to
        msg['Subject'] = subject
        msg['Date'] = formatdate(localtime=True)
        msg.attach(MIMEText(html_content, 'html'))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as server:
                if self.use_tls:
                    server.starttls()
                if self.user:
                    server.login(self.user, self.password)
                server.sendmail(self.sender, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send '{template}' email to {to}: {e}")
            raise DeliveryFailed(f"Failed to send {template} email") from e

        logger.info(f"Sent '{template}' email to {to}")


class LoggingEmailSender:
    """Development sender: writes the message to the log instead of mailing it"""

    def send(self, to: str, template: str, context: dict) -> None:
        subject, _ = render(template, context)
        logger.info(f"[DEV EMAIL] to={to} subject={subject!r} context={context}")


def build_notification_sender(settings: Settings) -> NotificationSender:
    if settings.SMTP_HOST:
        return SmtpEmailSender(settings)
    logger.warning("SMTP_HOST is not set, outgoing email will only be logged")
    return LoggingEmailSender()
