"""Tests for outgoing email and in-app notifications."""

import smtplib
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from conftest import make_user
from sqlalchemy import select

from editorial.config import Settings
from editorial.database.models import Notification
from editorial.notifications import inbox
from editorial.notifications.email import Mailer
from editorial.notifications.inbox import create_system_notification
from editorial.workflow.base import WorkflowService


def smtp_settings(**overrides) -> Settings:
    fields = {"smtp_host": "smtp.example", "smtp_port": 587, "smtp_user": "mailer", "smtp_password": "secret"}
    fields.update(overrides)
    return Settings(_env_file=None, **fields)


class TestMailer:
    """Tests for the SMTP mailer."""

    @pytest.mark.asyncio
    async def test_skips_when_smtp_not_configured(self, settings):
        mailer = Mailer(settings)

        with patch("editorial.notifications.email.smtplib.SMTP") as smtp:
            sent = await mailer.send_email("ada@uni.example", "Hello", "Body")

        assert sent is False
        smtp.assert_not_called()

    def test_send_uses_starttls_and_login(self):
        mailer = Mailer(smtp_settings())

        with patch("editorial.notifications.email.smtplib.SMTP") as smtp:
            server = smtp.return_value.__enter__.return_value
            sent = mailer._send("ada@uni.example", "Hello", "Body")

        assert sent is True
        smtp.assert_called_once_with("smtp.example", 587)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "secret")
        message = server.send_message.call_args.args[0]
        assert message["To"] == "ada@uni.example"
        assert message["Subject"] == "Hello"

    def test_send_failure_returns_false(self):
        mailer = Mailer(smtp_settings(smtp_user=""))

        with patch("editorial.notifications.email.smtplib.SMTP") as smtp:
            server = smtp.return_value.__enter__.return_value
            server.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
            sent = mailer._send("ada@uni.example", "Hello", "Body")

        assert sent is False
        server.login.assert_not_called()

    @pytest.mark.asyncio
    async def test_review_invitation_content(self):
        mailer = Mailer(smtp_settings(journal_name="Journal of Examples", site_url="https://journal.example"))
        calls = []

        async def capture(to_email, subject, body):
            calls.append((to_email, subject, body))
            return True

        mailer.send_email = capture

        sent = await mailer.send_review_invitation(
            "rev@x.example", "Grace", "Protein folding", "Abstract text", datetime(2025, 7, 1, tzinfo=timezone.utc), "r-1"
        )

        assert sent is True
        to_email, subject, body = calls[0]
        assert to_email == "rev@x.example"
        assert subject == "[Journal of Examples] Review invitation: Protein folding"
        assert "July 01, 2025" in body
        assert "https://journal.example/reviewer/reviews/r-1" in body


class TestSystemNotifications:
    """Tests for in-app notifications."""

    @pytest.mark.asyncio
    async def test_create_system_notification(self, db_session):
        user = await make_user(db_session, "ada@uni.example")

        create_system_notification(
            db_session, user.id, inbox.STATUS_CHANGED, "Status Update", "Your article moved on", "article-1"
        )
        await db_session.commit()

        notification = (await db_session.execute(select(Notification))).scalar_one()
        assert notification.user_id == user.id
        assert notification.type == "STATUS_CHANGED"
        assert notification.related_id == "article-1"
        assert notification.is_read is False


class TestEmailOutbox:
    """Queued emails are only sent after a commit."""

    @pytest.mark.asyncio
    async def test_rollback_discards_queued_emails(self, db_session, mailer, settings):
        service = WorkflowService(db_session, mailer, settings)
        service.queue_email("hello", lambda: mailer.send_email("ada@uni.example", "Hi", "Body"))

        await service.rollback()
        await service.commit()

        mailer.send_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit_sends_and_tolerates_failures(self, db_session, mailer, settings):
        service = WorkflowService(db_session, mailer, settings)
        mailer.send_workflow_notification.side_effect = RuntimeError("smtp down")
        service.queue_email("broken", lambda: mailer.send_workflow_notification("a@x.example", "A", "S", "M"))
        service.queue_email("working", lambda: mailer.send_email("b@x.example", "S", "Body"))

        await service.commit()

        mailer.send_email.assert_awaited_once()
        assert await service.dispatch_emails() == 0
