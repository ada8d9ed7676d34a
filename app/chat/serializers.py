"""
Serializers for chat API and realtime payloads.

Serializer Hierarchy:
    MessageSerializer: Message with sender summary and soft-delete handling
    DirectMessageCreateSerializer: Body of POST direct/{user_id}/messages/

    ParticipantSerializer: Participant with user summary

    ChatRoomSerializer: Room list/detail with last message preview
    ChatRoomCreateSerializer: Body of POST rooms/
    InviteSerializer: Body of POST rooms/{id}/invite/

Design Decisions:
    - Read and write serializers are separate for clarity
    - MessageSerializer output is also the `message` field of the
      realtime `new_message` event, so REST history and live events share
      one shape
    - Soft-deleted message content is replaced with a placeholder
    - Write serializers only check shape; business rules (membership,
      limits, invitations) stay in chat.services
"""

from __future__ import annotations

from rest_framework import serializers

from authentication.serializers import UserSummarySerializer
from chat.constants import MESSAGE_CONFIG, ROOM_CONFIG
from chat.models import ChatRoom, Message, RoomParticipant, RoomType


# =============================================================================
# Message Serializers
# =============================================================================


class MessageSerializer(serializers.ModelSerializer):
    """
    Full message serializer.

    Example output:
        {
            "id": 42,
            "room_id": 3,
            "receiver_id": null,
            "sender": {"id": 1, "name": "Alice", "avatar": ""},
            "content": "hello",
            "message_type": "text",
            "attachments": [],
            "reply_to_id": null,
            "is_read": false,
            "is_deleted": false,
            "created_at": "2024-01-15T10:30:00Z"
        }
    """

    sender = UserSummarySerializer(read_only=True, allow_null=True)
    room_id = serializers.IntegerField(read_only=True, allow_null=True)
    receiver_id = serializers.IntegerField(read_only=True, allow_null=True)
    reply_to_id = serializers.IntegerField(read_only=True, allow_null=True)
    content = serializers.SerializerMethodField(help_text="Message content (replaced if deleted)")

    class Meta:
        model = Message
        fields = [
            "id",
            "room_id",
            "receiver_id",
            "sender",
            "content",
            "message_type",
            "attachments",
            "reply_to_id",
            "is_read",
            "is_deleted",
            "created_at",
        ]
        read_only_fields = fields

    def get_content(self, obj: Message) -> str:
        return obj.get_display_content()


class MessagePreviewSerializer(serializers.ModelSerializer):
    """Minimal message serializer for the room list preview."""

    sender_name = serializers.SerializerMethodField()
    content = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = ["id", "sender_name", "content", "message_type", "created_at"]
        read_only_fields = fields

    def get_sender_name(self, obj: Message) -> str | None:
        return obj.sender.display_name if obj.sender else None

    def get_content(self, obj: Message) -> str:
        return obj.get_display_content()


class DirectMessageCreateSerializer(serializers.Serializer):
    content = serializers.CharField(
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
        help_text="Message content (max 10,000 characters)",
    )
    attachments = serializers.ListField(
        child=serializers.URLField(),
        required=False,
        max_length=MESSAGE_CONFIG.MAX_ATTACHMENTS_PER_MESSAGE,
    )


# =============================================================================
# Participant Serializers
# =============================================================================


class ParticipantSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = RoomParticipant
        fields = ["id", "user", "role", "joined_at", "last_read_at"]
        read_only_fields = fields


# =============================================================================
# Room Serializers
# =============================================================================


class ChatRoomSerializer(serializers.ModelSerializer):
    """
    Room serializer for list and detail views.

    Includes computed fields:
    - participant_count: Number of participants
    - online_count: Live connections subscribed to the room (from context)
    - last_message: Preview of the most recent message
    """

    creator = UserSummarySerializer(read_only=True, allow_null=True)
    participants = ParticipantSerializer(many=True, read_only=True)
    participant_count = serializers.SerializerMethodField()
    online_count = serializers.SerializerMethodField()
    last_message = MessagePreviewSerializer(read_only=True, allow_null=True)

    class Meta:
        model = ChatRoom
        fields = [
            "id",
            "name",
            "description",
            "room_type",
            "creator",
            "participants",
            "participant_count",
            "online_count",
            "last_message",
            "last_activity_at",
            "allow_uploads",
            "max_members",
            "is_archived",
            "tags",
            "created_at",
        ]
        read_only_fields = fields

    def get_participant_count(self, obj: ChatRoom) -> int:
        return obj.participants.count()

    def get_online_count(self, obj: ChatRoom) -> int:
        registry = self.context.get("registry")
        return registry.count_in_room(obj.pk) if registry is not None else 0


class ChatRoomCreateSerializer(serializers.Serializer):
    name = serializers.CharField(
        max_length=ROOM_CONFIG.MAX_NAME_LENGTH,
        help_text="Room display name",
    )
    description = serializers.CharField(
        max_length=ROOM_CONFIG.MAX_DESCRIPTION_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )
    room_type = serializers.ChoiceField(
        choices=RoomType.choices,
        default=RoomType.PUBLIC,
    )
    participant_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        default=list,
        help_text="Initial participants besides the creator",
    )
    tags = serializers.ListField(
        child=serializers.CharField(max_length=50),
        required=False,
        default=list,
        max_length=ROOM_CONFIG.MAX_TAGS,
    )


class InviteSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(min_value=1, help_text="User to invite")
