"""Outgoing email. Fire-and-forget: failures are logged, never raised."""

import asyncio
import logging
import smtplib
import ssl
from datetime import datetime
from email.message import EmailMessage
from functools import lru_cache
from typing import Any, Optional

from editorial.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Mailer:
    """SMTP mailer for workflow emails."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def send_email(self, to_email: str, subject: str, body: str) -> bool:
        """Send an email without blocking the event loop.

        Returns:
            True if the message was handed to the SMTP server
        """
        if not self.settings.smtp_configured:
            logger.warning(f"SMTP not configured, skipping email to {to_email}: {subject}")
            return False

        return await asyncio.to_thread(self._send, to_email, subject, body)

    def _send(self, to_email: str, subject: str, body: str) -> bool:
        settings = self.settings
        try:
            msg = EmailMessage()
            msg.set_content(body)
            msg["Subject"] = subject
            msg["From"] = settings.smtp_from_email
            msg["To"] = to_email

            if settings.smtp_port == 465:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, context=context) as server:
                    if settings.smtp_user:
                        server.login(settings.smtp_user, settings.smtp_password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
                    if settings.smtp_port == 587:
                        server.starttls()
                    if settings.smtp_user:
                        server.login(settings.smtp_user, settings.smtp_password)
                    server.send_message(msg)
            logger.info(f"Email sent to {to_email}: {subject}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

    async def send_review_invitation(
        self,
        reviewer_email: str,
        reviewer_name: str,
        article_title: str,
        article_abstract: str,
        deadline: datetime,
        review_id: Optional[str] = None,
    ) -> bool:
        """Invite a reviewer to review an article."""
        journal = self.settings.journal_name
        link = f"{self.settings.site_url}/reviewer/reviews/{review_id}" if review_id else self.settings.site_url
        body = (
            f"Dear {reviewer_name},\n\n"
            f"You are invited to review the following manuscript for {journal}:\n\n"
            f"{article_title}\n\n"
            f"{article_abstract}\n\n"
            f"Please submit your review by {deadline:%B %d, %Y}.\n"
            f"{link}\n"
        )
        return await self.send_email(reviewer_email, f"[{journal}] Review invitation: {article_title}", body)

    async def send_workflow_notification(
        self,
        to_email: str,
        to_name: str,
        subject: str,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Notify a participant about a workflow event."""
        journal = self.settings.journal_name
        body = f"Dear {to_name},\n\n{message}\n"
        if context:
            body += "\n" + "\n".join(f"{key}: {value}" for key, value in context.items()) + "\n"
        return await self.send_email(to_email, f"[{journal}] {subject}", body)


@lru_cache
def get_mailer() -> Mailer:
    """Get cached mailer instance."""
    return Mailer()
