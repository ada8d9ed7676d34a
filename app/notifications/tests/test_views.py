"""
Tests for notification API endpoints.

This module tests:
- NotificationViewSet list, retrieve and filters
- unread-count, read and read-all actions
- Ownership: other users' notifications are invisible
"""

from rest_framework import status

from notifications.models import NotificationReference, NotificationType, ReferenceKind
from notifications.tests.factories import NotificationFactory

BASE_URL = "/api/v1/notifications/"


class TestNotificationList:
    def test_requires_authentication(self, api_client, db):
        response = api_client.get(BASE_URL)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_lists_only_my_notifications_newest_first(self, authenticated_client, user, other_user):
        older = NotificationFactory(recipient=user)
        newer = NotificationFactory(recipient=user)
        NotificationFactory(recipient=other_user)

        response = authenticated_client.get(BASE_URL)

        assert response.status_code == status.HTTP_200_OK
        assert [n["id"] for n in response.data["results"]] == [newer.id, older.id]

    def test_filters(self, authenticated_client, user):
        unread_message = NotificationFactory(recipient=user, notification_type=NotificationType.MESSAGE)
        NotificationFactory(recipient=user, notification_type=NotificationType.FOLLOW)
        NotificationFactory(recipient=user, notification_type=NotificationType.MESSAGE, is_read=True)

        response = authenticated_client.get(BASE_URL, {"type": "message", "is_read": "false"})

        assert [n["id"] for n in response.data["results"]] == [unread_message.id]

    def test_shape(self, authenticated_client, user, other_user):
        notification = NotificationFactory(
            recipient=user,
            sender=other_user,
            reference=NotificationReference(ReferenceKind.MESSAGE, 12),
        )

        response = authenticated_client.get(f"{BASE_URL}{notification.id}/")

        assert response.data["sender_id"] == other_user.id
        assert response.data["sender_name"] == "Mallory"
        assert response.data["reference"] == {"kind": "message", "id": 12}

    def test_other_users_notification_is_404(self, authenticated_client, other_user):
        notification = NotificationFactory(recipient=other_user)

        response = authenticated_client.get(f"{BASE_URL}{notification.id}/")

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestNotificationActions:
    def test_unread_count(self, authenticated_client, user):
        NotificationFactory.create_batch(2, recipient=user)
        NotificationFactory(recipient=user, is_read=True)

        response = authenticated_client.get(f"{BASE_URL}unread-count/")

        assert response.data == {"unread_count": 2}

    def test_mark_read(self, authenticated_client, user):
        notification = NotificationFactory(recipient=user)

        response = authenticated_client.post(f"{BASE_URL}{notification.id}/read/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["is_read"] is True

    def test_mark_read_of_other_user_is_404(self, authenticated_client, other_user):
        """
        Marking someone else's notification looks like a missing notification.

        Why it matters: Notification ids of other users must not be confirmable.
        """
        notification = NotificationFactory(recipient=other_user)

        response = authenticated_client.post(f"{BASE_URL}{notification.id}/read/")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["success"] is False
        assert response.data == {"success": False, "error": "Notification not found", "error_code": "NOT_FOUND"}
        notification.refresh_from_db()
        assert notification.is_read is False

    def test_read_all(self, authenticated_client, user):
        NotificationFactory.create_batch(3, recipient=user)

        response = authenticated_client.post(f"{BASE_URL}read-all/")

        assert response.data == {"marked_count": 3}
