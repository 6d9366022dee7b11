"""
Notification delivery channels.

EmailChannel sends through Django's configured email backend
(EMAIL_BACKEND and the EMAIL_* settings). SmsChannel writes the message
to the log; no SMS provider is wired in.
"""
import logging
from abc import ABC, abstractmethod
from typing import List

from django.conf import settings
from django.core.mail import send_mail

from .models import NotificationMethod

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    """A way of reaching a user. `send` raises on delivery failure."""

    name = ""

    @abstractmethod
    def send(self, user, subject: str, message: str) -> None:
        pass


class EmailChannel(NotificationChannel):
    name = "email"

    def send(self, user, subject: str, message: str) -> None:
        if not user.email:
            raise ValueError(f"User {user.id} has no email address")
        send_mail(
            subject,
            message,
            settings.DEFAULT_FROM_EMAIL,
            [user.email],
            fail_silently=False,
        )
        logger.info(f"[EMAIL] Sent '{subject}' to {user.email}")


class SmsChannel(NotificationChannel):
    name = "sms"

    def send(self, user, subject: str, message: str) -> None:
        if not user.phone:
            raise ValueError(f"User {user.id} has no phone number")
        logger.info(f"[SMS] To {user.phone}: {message}")


def method_for_user(user) -> str:
    """SMS and email when the user has a phone number, email otherwise."""
    if user.phone:
        return NotificationMethod.SMS_AND_EMAIL
    return NotificationMethod.EMAIL


def get_channels(method: str) -> List[NotificationChannel]:
    if method == NotificationMethod.EMAIL:
        return [EmailChannel()]
    elif method == NotificationMethod.SMS:
        return [SmsChannel()]
    elif method == NotificationMethod.SMS_AND_EMAIL:
        return [SmsChannel(), EmailChannel()]
    else:
        raise ValueError(f"Unknown notification method: {method}")
