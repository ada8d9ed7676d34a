"""
Constants for the notification system.

Import example:
    from notifications.constants import NOTIFICATION_CONFIG
"""

from typing import Final

from django.conf import settings


class NOTIFICATION_CONFIG:
    """Configuration for persisted notifications."""

    # Characters of message content copied into an offline notification.
    # Overridden by settings.NOTIFICATION_MESSAGE_PREVIEW_LENGTH.
    MESSAGE_PREVIEW_LENGTH: Final[int] = 100

    MAX_TITLE_LENGTH: Final[int] = 200
    MESSAGE_TITLE_TEMPLATE: Final[str] = "New message from {sender_name}"


def message_preview_length() -> int:
    return getattr(
        settings,
        "NOTIFICATION_MESSAGE_PREVIEW_LENGTH",
        NOTIFICATION_CONFIG.MESSAGE_PREVIEW_LENGTH,
    )
