"""Email utility service for sending notifications via SMTP."""

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from src.core.config import settings

logger = logging.getLogger(__name__)


def build_message(
    recipient_email: str, subject: str, body: str, is_html: bool = False
) -> MIMEMultipart:
    """Assemble a MIME message with the configured sender."""
    message = MIMEMultipart()
    message["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
    message["To"] = recipient_email
    message["Subject"] = subject
    message.attach(MIMEText(body, "html" if is_html else "plain"))
    return message


async def send_email(
    recipient_email: str,
    subject: str,
    body: str,
    is_html: bool = False,
) -> bool:
    """
    Send an email asynchronously.

    Delivery is best-effort: failures are logged and reported as False so a
    notification can never undo the operation that triggered it.

    Returns:
        True if success, False otherwise.
    """
    message = build_message(recipient_email, subject, body, is_html)

    try:
        await aiosmtplib.send(
            message,
            hostname=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_tls=False,
        )
        logger.info("Email sent to %s: %s", recipient_email, subject)
        return True
    except (aiosmtplib.SMTPException, OSError) as e:
        logger.warning("Failed to send email to %s: %s", recipient_email, e)
        return False


async def send_invitation_email(
    recipient_email: str,
    inviter_name: str,
    collaboration_title: str,
    role: str,
    message: str = "",
) -> bool:
    """Tell a user they were invited to a collaboration."""
    if not settings.INVITE_EMAILS_ENABLED:
        return False

    lines = [
        f"{inviter_name} invited you to join \"{collaboration_title}\" as {role}.",
    ]
    if message:
        lines.append("")
        lines.append(f"Message: {message}")
    lines.append("")
    lines.append("Open MemeStack to accept or decline the invitation.")

    return await send_email(
        recipient_email=recipient_email,
        subject=f"Invitation to collaborate on {collaboration_title}",
        body="\n".join(lines),
    )
