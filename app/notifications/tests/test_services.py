"""
Tests for NotificationService.

This module tests:
- create_notification: type validation, idempotency, storage failures
- notify_user: live push to connected recipients
- mark_as_read / mark_all_as_read / unread_count
"""

from unittest.mock import patch

import pytest
from django.db import DatabaseError

from core.exceptions import DependencyFailureError
from notifications.models import Notification, NotificationReference, NotificationType, ReferenceKind
from notifications.services import NotificationService
from notifications.tests.factories import NotificationFactory


class TestCreateNotification:
    def test_creates_notification(self, user, other_user):
        result = NotificationService.create_notification(
            recipient=user,
            notification_type=NotificationType.FOLLOW,
            content="Mallory followed you",
            title="New follower",
            sender=other_user,
            reference=NotificationReference(ReferenceKind.POST, 9),
        )

        assert result.success is True
        notification = result.data
        assert notification.recipient == user
        assert notification.sender == other_user
        assert notification.title == "New follower"
        assert notification.reference.kind == ReferenceKind.POST
        assert notification.is_read is False

    def test_accepts_recipient_id(self, user):
        result = NotificationService.create_notification(
            recipient=user.id, notification_type=NotificationType.LIKE, content="liked"
        )

        assert result.data.recipient_id == user.id

    def test_unknown_type(self, user):
        result = NotificationService.create_notification(
            recipient=user, notification_type="poke", content="hey"
        )

        assert result.success is False
        assert result.error_code == "INVALID_TYPE"
        assert Notification.objects.count() == 0

    def test_duplicate_idempotency_key(self, user):
        """
        A second create with the same idempotency key is refused.

        Why it matters: One message produces at most one notification per recipient.
        """
        first = NotificationService.create_notification(
            recipient=user, notification_type=NotificationType.MESSAGE, content="a", idempotency_key="k1"
        )
        second = NotificationService.create_notification(
            recipient=user, notification_type=NotificationType.MESSAGE, content="a", idempotency_key="k1"
        )

        assert first.success is True
        assert second.success is False
        assert second.error_code == "DUPLICATE"
        assert Notification.objects.count() == 1

    def test_title_is_truncated(self, user):
        result = NotificationService.create_notification(
            recipient=user, notification_type=NotificationType.MENTION, content="x", title="t" * 300
        )

        assert len(result.data.title) == 200

    def test_storage_failure_raises(self, user):
        with patch.object(Notification.objects, "create", side_effect=DatabaseError("down")):
            with pytest.raises(DependencyFailureError):
                NotificationService.create_notification(
                    recipient=user, notification_type=NotificationType.LIKE, content="x"
                )


class TestNotifyUser:
    def test_online_recipient_gets_live_push(self, user, registry):
        registry.register(user.id, "conn-1")

        with patch("chat.transport.send_to_user_sync") as mock_send:
            result = NotificationService.notify_user(
                user, NotificationType.PROJECT_INVITE, "Join my project", registry=registry
            )

        assert result.success is True
        mock_send.assert_called_once()
        user_id, event, payload = mock_send.call_args.args
        assert (user_id, event) == (user.id, "new_notification")
        assert payload["notification"]["id"] == result.data.id

    def test_offline_recipient_is_only_persisted(self, user, registry):
        with patch("chat.transport.send_to_user_sync") as mock_send:
            result = NotificationService.notify_user(
                user, NotificationType.COMMENT, "Nice post", registry=registry
            )

        assert result.success is True
        mock_send.assert_not_called()
        assert Notification.objects.filter(recipient=user).count() == 1


class TestMarkAsRead:
    def test_marks_read(self, user):
        notification = NotificationFactory(recipient=user)

        result = NotificationService.mark_as_read(notification.id, user)

        assert result.success is True
        notification.refresh_from_db()
        assert notification.is_read is True

    def test_idempotent(self, user):
        notification = NotificationFactory(recipient=user, is_read=True)

        result = NotificationService.mark_as_read(notification.id, user)

        assert result.success is True

    def test_not_owner(self, user, other_user):
        """
        Users cannot mark other users' notifications.

        Why it matters: Read state is private to the recipient.
        """
        notification = NotificationFactory(recipient=other_user)

        result = NotificationService.mark_as_read(notification.id, user)

        assert result.error_code == "NOT_OWNER"
        notification.refresh_from_db()
        assert notification.is_read is False

    def test_not_found(self, user):
        assert NotificationService.mark_as_read(999999, user).error_code == "NOT_FOUND"

    @pytest.mark.parametrize("notification_id", [None, "abc"])
    def test_invalid_id(self, user, notification_id):
        assert NotificationService.mark_as_read(notification_id, user).error_code == "INVALID_ID"


class TestMarkAllAsRead:
    def test_marks_only_my_unread(self, user, other_user):
        NotificationFactory.create_batch(3, recipient=user)
        NotificationFactory(recipient=user, is_read=True)
        NotificationFactory(recipient=other_user)

        result = NotificationService.mark_all_as_read(user)

        assert result.data == 3
        assert NotificationService.unread_count(user) == 0
        assert NotificationService.unread_count(other_user) == 1
