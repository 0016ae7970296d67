"""
Outgoing email.
"""
import html
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from goal_tracker.config import Settings, logger
from goal_tracker.errors import MailerError


def reset_password_html(name: str, url: str) -> str:
    return f"""
<html>
<body>
    <p>Hi {html.escape(name)},</p>
    <p>You are receiving this email because you (or someone else) has requested the reset of a password.</p>
    <p>Please, click the link below to reset your password</p>
    <a href="{html.escape(url)}">Reset Password</a>
</body>
</html>
"""


def send_reset_email(settings: Settings, to: str, name: str, url: str) -> None:
    """
    Send the password reset link to ``to``.

    Raises:
        MailerError: SMTP settings are incomplete or delivery failed
    """
    if not settings.SMTP_HOST or not settings.SMTP_EMAIL or not settings.SMTP_PASSWORD:
        logger.error("Email configuration is incomplete - missing SMTP_HOST, SMTP_EMAIL, or SMTP_PASSWORD")
        raise MailerError("Email could not be sent")

    message = MIMEMultipart()
    message["From"] = f'"Goal Tracker" <{settings.SMTP_EMAIL}>'
    message["To"] = to
    message["Subject"] = "Password Reset Request"
    message.attach(MIMEText(reset_password_html(name, url), "html"))

    try:
        with smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.login(settings.SMTP_EMAIL, settings.SMTP_PASSWORD)
            server.send_message(message)
    except smtplib.SMTPAuthenticationError as e:
        logger.error(f"SMTP authentication failed: {str(e)}")
        raise MailerError("Email could not be sent") from e
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"SMTP error while sending email: {str(e)}")
        raise MailerError("Email could not be sent") from e

    logger.info(f"Password reset email sent to {to}")
