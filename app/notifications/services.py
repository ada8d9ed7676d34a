"""
Notification service layer.

Services:
    NotificationService: Notification creation and read status management
    NotificationDispatcher: Per-message choice between live delivery and a
        persisted notification

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Presence decides the delivery channel: a recipient in the connection
      registry gets the live event and no notification; a recipient absent
      from it gets exactly one persisted notification
    - Notification writes for offline recipients never fail the message
      that triggered them; errors are logged per recipient

Usage:
    from notifications.services import NotificationDispatcher, NotificationService

    plan = NotificationDispatcher.plan_deliveries(recipient_ids, registry)
    NotificationDispatcher.notify_offline(message, plan.offline)

    result = NotificationService.mark_as_read(notification_id, user)
    result = NotificationService.mark_all_as_read(user)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.apps import apps
from django.db import IntegrityError

from core.exceptions import BaseApplicationError, DependencyFailureError
from core.services import BaseService, ServiceResult

from notifications.constants import NOTIFICATION_CONFIG, message_preview_length
from notifications.models import (
    Notification,
    NotificationReference,
    NotificationType,
    ReferenceKind,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

    from authentication.models import User
    from chat.models import Message
    from chat.registry import ConnectionRegistry


class NotificationService(BaseService):
    """
    Service for notification operations.

    Methods:
        create_notification: Persist a notification
        notify_user: Persist a notification and push it to a connected user
        mark_as_read: Mark a single notification as read
        mark_all_as_read: Mark all user's unread notifications as read
        unread_count: Number of unread notifications
    """

    @classmethod
    def create_notification(
        cls,
        recipient: User | int,
        notification_type: str,
        content: str,
        title: str = "",
        sender: User | None = None,
        data: dict | None = None,
        reference: NotificationReference | None = None,
        idempotency_key: str | None = None,
    ) -> ServiceResult[Notification]:
        """
        Create a new notification for a user.

        Args:
            recipient: User (or user id) receiving the notification
            notification_type: One of NotificationType
            content: Rendered body
            title: Rendered title
            sender: User who triggered the notification (optional)
            data: Extra JSON context
            reference: Entity the notification is about (optional)
            idempotency_key: Optional key to prevent duplicate notifications

        Returns:
            ServiceResult with the created Notification

        Error codes:
            INVALID_TYPE: Unknown notification type
            DUPLICATE: Notification with this idempotency_key already exists

        Raises:
            DependencyFailureError: Storage failed
        """
        if notification_type not in NotificationType.values:
            return ServiceResult.failure(
                f"Unknown notification type: {notification_type}",
                error_code="INVALID_TYPE",
            )

        recipient_id = getattr(recipient, "pk", recipient)

        if idempotency_key and Notification.objects.filter(idempotency_key=idempotency_key).exists():
            cls.get_logger().info(f"Duplicate notification prevented: idempotency_key={idempotency_key}")
            return ServiceResult.failure(
                f"Notification with idempotency_key already exists: {idempotency_key}",
                error_code="DUPLICATE",
            )

        try:
            with cls.atomic():
                notification = Notification.objects.create(
                    recipient_id=recipient_id,
                    sender=sender,
                    notification_type=notification_type,
                    title=title[: NOTIFICATION_CONFIG.MAX_TITLE_LENGTH],
                    content=content,
                    data=data or {},
                    reference=reference,
                    idempotency_key=idempotency_key,
                )
        except DependencyFailureError as e:
            # Lost a race on the idempotency key
            if idempotency_key and isinstance(e.__cause__, IntegrityError):
                return ServiceResult.failure(
                    f"Notification with idempotency_key already exists: {idempotency_key}",
                    error_code="DUPLICATE",
                )
            raise

        cls.get_logger().info(
            f"Created notification {notification.id} of type {notification_type} for user {recipient_id}"
        )
        return ServiceResult.success(notification)

    @classmethod
    def notify_user(
        cls,
        recipient: User,
        notification_type: str,
        content: str,
        registry: ConnectionRegistry | None = None,
        **kwargs: Any,
    ) -> ServiceResult[Notification]:
        """
        Persist a notification and, if the recipient is connected, push it
        to them as a `new_notification` event.

        Takes the same keyword arguments as create_notification.
        """
        from chat.transport import send_to_user_sync
        from notifications.serializers import NotificationSerializer

        result = cls.create_notification(recipient, notification_type, content, **kwargs)
        if not result:
            return result

        if registry is None:
            registry = apps.get_app_config("chat").registry
        if registry.is_online(recipient.pk):
            send_to_user_sync(
                recipient.pk,
                "new_notification",
                {"notification": dict(NotificationSerializer(result.data).data)},
            )
        return result

    @classmethod
    def mark_as_read(cls, notification_id: Any, user: User) -> ServiceResult[Notification]:
        """
        Mark a single notification as read.

        Idempotent: marking an already-read notification succeeds.

        Error codes:
            INVALID_ID: notification_id is not an integer
            NOT_FOUND: Notification does not exist
            NOT_OWNER: User doesn't own the notification
        """
        try:
            notification_id = int(notification_id)
        except (TypeError, ValueError):
            return ServiceResult.failure("A valid notification id is required", error_code="INVALID_ID")

        notification = Notification.objects.filter(pk=notification_id).first()
        if notification is None:
            return ServiceResult.failure("Notification not found", error_code="NOT_FOUND")

        if notification.recipient_id != user.pk:
            cls.get_logger().warning(
                f"User {user.pk} attempted to mark notification {notification.id} "
                f"owned by user {notification.recipient_id}"
            )
            return ServiceResult.failure(
                "Cannot mark notification you don't own",
                error_code="NOT_OWNER",
            )

        if not notification.is_read:
            notification.is_read = True
            with cls.atomic():
                notification.save(update_fields=["is_read", "updated_at"])
            cls.get_logger().debug(f"Marked notification {notification.id} as read")

        return ServiceResult.success(notification)

    @classmethod
    def mark_all_as_read(cls, user: User) -> ServiceResult[int]:
        """Mark all user's unread notifications as read in one query."""
        with cls.atomic():
            count = Notification.objects.filter(recipient=user, is_read=False).update(is_read=True)

        cls.get_logger().info(f"Marked {count} notifications as read for user {user.pk}")
        return ServiceResult.success(count)

    @classmethod
    def unread_count(cls, user: User) -> int:
        return Notification.objects.filter(recipient=user, is_read=False).count()


@dataclass(frozen=True)
class DeliveryPlan:
    """
    Split of a message's recipients by delivery channel.

    `live` and `offline` are disjoint and together cover every recipient.
    """

    live: frozenset[int]
    offline: frozenset[int]


class NotificationDispatcher(BaseService):
    """
    Decides, per recipient, between live delivery and a persisted notification.

    Methods:
        plan_deliveries: Pure split of recipients by presence
        build_message_notification: Field values for a `message` notification
        notify_offline: Persist one notification per offline recipient
        dispatch_message: plan_deliveries followed by notify_offline
    """

    @classmethod
    def plan_deliveries(cls, recipient_ids: Iterable[int], registry: ConnectionRegistry) -> DeliveryPlan:
        live: set[int] = set()
        offline: set[int] = set()
        for recipient_id in recipient_ids:
            (live if registry.is_online(recipient_id) else offline).add(recipient_id)
        return DeliveryPlan(live=frozenset(live), offline=frozenset(offline))

    @classmethod
    def build_message_notification(cls, message: Message, recipient_id: int) -> dict[str, Any]:
        """
        Keyword arguments for NotificationService.create_notification.

        Example:
            {
                "recipient": 7,
                "notification_type": "message",
                "title": "New message from Alice",
                "content": "hello",
                "sender": <User alice>,
                "data": {"room_id": 3, "message_id": 42},
                "reference": NotificationReference("message", 42),
                "idempotency_key": "message:42:7",
            }
        """
        sender = message.sender
        sender_name = sender.display_name if sender is not None else "Unknown"
        return {
            "recipient": recipient_id,
            "notification_type": NotificationType.MESSAGE,
            "title": NOTIFICATION_CONFIG.MESSAGE_TITLE_TEMPLATE.format(sender_name=sender_name),
            "content": message.content[: message_preview_length()],
            "sender": sender,
            "data": {"room_id": message.room_id, "message_id": message.pk},
            "reference": NotificationReference(ReferenceKind.MESSAGE, message.pk),
            "idempotency_key": f"message:{message.pk}:{recipient_id}",
        }

    @classmethod
    def notify_offline(cls, message: Message, recipient_ids: Iterable[int]) -> list[Notification]:
        """
        Persist a `message` notification for each offline recipient.

        A failure for one recipient is logged and skipped; the others are
        still written.

        Returns:
            The notifications that were created
        """
        created = []
        for recipient_id in sorted(recipient_ids):
            try:
                result = NotificationService.create_notification(
                    **cls.build_message_notification(message, recipient_id)
                )
            except BaseApplicationError as e:
                cls.get_logger().error(
                    f"Failed to create notification for user {recipient_id} "
                    f"about message {message.pk}: {e}"
                )
                continue

            if result:
                created.append(result.data)
            else:
                cls.get_logger().warning(
                    f"Notification for user {recipient_id} about message {message.pk} "
                    f"not created: {result.error_code}"
                )
        return created

    @classmethod
    def dispatch_message(
        cls,
        message: Message,
        recipient_ids: Iterable[int],
        registry: ConnectionRegistry,
    ) -> DeliveryPlan:
        """Plan deliveries and persist notifications for the offline part."""
        plan = cls.plan_deliveries(recipient_ids, registry)
        if plan.offline:
            cls.notify_offline(message, plan.offline)
        return plan
