"""Email and in-app notifications."""

from editorial.notifications.email import Mailer, get_mailer
from editorial.notifications.inbox import create_system_notification

__all__ = ["Mailer", "get_mailer", "create_system_notification"]
