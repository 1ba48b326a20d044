import logging
import os
import smtplib
from email.message import EmailMessage

from sqlalchemy.orm import Session

from . import models
from .rbac import PermissionResolver

logger = logging.getLogger(__name__)

EMAIL_OUTBOX: list[tuple[str, str, str]] = []


def send_email(to_email: str, subject: str, message: str):
    if os.getenv("TESTING") == "1":
        EMAIL_OUTBOX.append((to_email, subject, message))
        return
    server = os.getenv("SMTP_SERVER")
    if not server:
        return
    from_addr = os.getenv("EMAIL_FROM", "noreply@example.com")
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = from_addr
    msg["To"] = to_email
    msg.set_content(message)
    with smtplib.SMTP(server) as s:
        s.send_message(msg)


def permitted_recipients(
    db: Session,
    resolver: PermissionResolver,
    resource: str,
    action: str,
) -> list[str]:
    """Emails of active users whose role holds ``resource:action``."""

    users = db.query(models.User).filter(models.User.is_active.is_(True)).all()
    return [
        user.email
        for user in users
        if user.email and resolver.has_permission(user.role, resource, action)
    ]


def dispatch(recipients: list[str], subject: str, message: str):
    """Deliver to each recipient; one failing address does not stop the rest."""
    for email in recipients:
        try:
            send_email(email, subject, message)
        except (OSError, smtplib.SMTPException):
            logger.exception("Failed to deliver %r to %s", subject, email)
