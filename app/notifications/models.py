"""
Notification system models.

Models:
    Notification: A persisted, per-recipient notice (new message while
        offline, follow, like, comment, mention, project invite)

Design Decisions:
    - Notification inherits from BaseModel (timestamps, newest-first ordering)
    - sender uses SET_NULL (preserve notification when the sender is deleted)
    - The referenced entity is stored as a (kind, id) pair and exposed as a
      NotificationReference value; posts, comments and projects live in
      other services, so there is no foreign key to them
    - idempotency_key makes "one notification per (message, recipient)"
      a database guarantee

Usage:
    from notifications.models import Notification, NotificationReference

    notification = Notification.objects.create(
        recipient=bob,
        sender=alice,
        notification_type=NotificationType.MESSAGE,
        title="New message from Alice",
        content="hello",
        reference=NotificationReference(ReferenceKind.MESSAGE, message.id),
    )
"""

from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings
from django.db import models

from core.models import BaseModel

from .constants import NOTIFICATION_CONFIG


class NotificationType(models.TextChoices):
    FOLLOW = "follow", "Follow"
    LIKE = "like", "Like"
    COMMENT = "comment", "Comment"
    MENTION = "mention", "Mention"
    PROJECT_INVITE = "project_invite", "Project Invite"
    MESSAGE = "message", "Message"


class ReferenceKind(models.TextChoices):
    """Kinds of entity a notification can point at."""

    POST = "post", "Post"
    COMMENT = "comment", "Comment"
    PROJECT = "project", "Project"
    MESSAGE = "message", "Message"


@dataclass(frozen=True)
class NotificationReference:
    """
    Tagged reference to the entity a notification is about.

    Example:
        NotificationReference(ReferenceKind.POST, 42)
    """

    kind: str
    id: int

    def __post_init__(self):
        if self.kind not in ReferenceKind.values:
            raise ValueError(f"Unknown reference kind: {self.kind}")

    def to_dict(self) -> dict:
        return {"kind": str(self.kind), "id": self.id}


class Notification(BaseModel):
    """
    Individual notification record for a user.

    Fields:
        recipient: User receiving the notification
        sender: User whose action produced it (optional)
        notification_type: follow, like, comment, mention, project_invite, message
        title: Rendered title ("New message from Alice")
        content: Rendered body (message preview for MESSAGE notifications)
        data: Arbitrary JSON context ({"room_id": ..., "message_id": ...})
        reference_kind/reference_id: Referenced entity (see `reference`)
        is_read: Whether the recipient has read it
        idempotency_key: Optional key preventing duplicate creation
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="User receiving this notification",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sent_notifications",
        help_text="User who triggered this notification (optional)",
    )
    notification_type = models.CharField(
        max_length=20,
        choices=NotificationType.choices,
        db_index=True,
        help_text="Kind of event this notification reports",
    )
    title = models.CharField(
        max_length=NOTIFICATION_CONFIG.MAX_TITLE_LENGTH,
        blank=True,
        default="",
        help_text="Rendered notification title",
    )
    content = models.TextField(
        help_text="Rendered notification body",
    )
    data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary context data (room and message ids, deep links)",
    )
    reference_kind = models.CharField(
        max_length=20,
        choices=ReferenceKind.choices,
        null=True,
        blank=True,
        help_text="Kind of the referenced entity",
    )
    reference_id = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Id of the referenced entity",
    )
    is_read = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether recipient has read this notification",
    )
    idempotency_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Idempotency key to prevent duplicate notifications",
    )

    class Meta:
        db_table = "notifications_notification"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["recipient", "-created_at"],
                name="notif_recipient_created_idx",
            ),
            models.Index(
                fields=["recipient", "is_read"],
                name="notif_recipient_unread_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["idempotency_key"],
                name="notif_idempotency_key_unique",
                condition=models.Q(idempotency_key__isnull=False),
            ),
            # A reference is either fully present or fully absent
            models.CheckConstraint(
                condition=(
                    models.Q(reference_kind__isnull=True, reference_id__isnull=True)
                    | models.Q(reference_kind__isnull=False, reference_id__isnull=False)
                ),
                name="notif_reference_complete",
            ),
        ]

    def __init__(self, *args, reference: NotificationReference | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        if reference is not None:
            self.reference = reference

    def __str__(self) -> str:
        read_status = "read" if self.is_read else "unread"
        return f"Notification({self.notification_type}) -> User {self.recipient_id} [{read_status}]"

    @property
    def reference(self) -> NotificationReference | None:
        if self.reference_kind is None or self.reference_id is None:
            return None
        return NotificationReference(self.reference_kind, self.reference_id)

    @reference.setter
    def reference(self, value: NotificationReference | None) -> None:
        if value is None:
            self.reference_kind = None
            self.reference_id = None
        else:
            self.reference_kind = value.kind
            self.reference_id = value.id
