"""
Serializers for notification API.

Serializers:
    NotificationSerializer: Read-only serializer for notification details
    UnreadCountSerializer: Response for unread count endpoint
    MarkAllReadResponseSerializer: Response for mark all read endpoint

Usage:
    from notifications.serializers import NotificationSerializer

    serializer = NotificationSerializer(notification)
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers

from notifications.models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """
    Serializer for Notification model.

    Also used as the `notification` field of the realtime
    `new_notification` event.

    Example output:
        {
            "id": 9,
            "notification_type": "message",
            "title": "New message from Alice",
            "content": "hello",
            "data": {"room_id": 3, "message_id": 42},
            "reference": {"kind": "message", "id": 42},
            "sender_id": 1,
            "sender_name": "Alice",
            "is_read": false,
            "created_at": "2024-01-15T10:30:00Z"
        }
    """

    sender_id = serializers.IntegerField(read_only=True, allow_null=True)
    sender_name = serializers.SerializerMethodField()
    reference = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = [
            "id",
            "notification_type",
            "title",
            "content",
            "data",
            "reference",
            "sender_id",
            "sender_name",
            "is_read",
            "created_at",
        ]
        read_only_fields = fields

    def get_sender_name(self, obj: Notification) -> str | None:
        """None for system notifications or when the sender was deleted."""
        if obj.sender is None:
            return None
        return obj.sender.display_name

    def get_reference(self, obj: Notification) -> dict | None:
        reference = obj.reference
        return reference.to_dict() if reference is not None else None


class UnreadCountSerializer(serializers.Serializer):
    unread_count = serializers.IntegerField()


class MarkAllReadResponseSerializer(serializers.Serializer):
    marked_count = serializers.IntegerField()
