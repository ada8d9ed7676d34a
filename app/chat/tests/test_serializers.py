"""
Tests for chat serializers.

MessageSerializer output doubles as the `message` field of the realtime
`new_message` event, so its shape is checked here once for both surfaces.
"""

import json

from chat.serializers import (
    ChatRoomCreateSerializer,
    ChatRoomSerializer,
    DirectMessageCreateSerializer,
    MessageSerializer,
)
from chat.tests.factories import ChatRoomFactory, MessageFactory


class TestMessageSerializer:
    def test_shape(self, alice, room):
        message = MessageFactory(room=room, sender=alice, content="hello")

        data = MessageSerializer(message).data

        assert data["id"] == message.id
        assert data["room_id"] == room.id
        assert data["receiver_id"] is None
        assert data["sender"] == {"id": alice.id, "name": "Alice", "avatar": ""}
        assert data["content"] == "hello"
        assert data["message_type"] == "text"
        assert data["is_deleted"] is False

    def test_payload_is_json_serializable(self, alice, room):
        """
        The serialized message can go over the channel layer as-is.

        Why it matters: The realtime transport sends this dict unchanged.
        """
        message = MessageFactory(room=room, sender=alice)

        json.dumps({"message": dict(MessageSerializer(message).data)})

    def test_deleted_content_replaced(self, alice, room):
        message = MessageFactory(room=room, sender=alice, content="oops")
        message.soft_delete()

        data = MessageSerializer(message).data

        assert data["content"] == "[Message deleted]"
        assert data["is_deleted"] is True


class TestChatRoomSerializer:
    def test_online_count_without_registry_is_zero(self, db):
        room = ChatRoomFactory()

        data = ChatRoomSerializer(room).data

        assert data["online_count"] == 0
        assert data["participant_count"] == 1
        assert data["last_message"] is None


class TestWriteSerializers:
    def test_create_room_defaults(self):
        serializer = ChatRoomCreateSerializer(data={"name": "general"})

        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data["room_type"] == "public"
        assert serializer.validated_data["participant_ids"] == []

    def test_create_room_rejects_unknown_type(self):
        serializer = ChatRoomCreateSerializer(data={"name": "general", "room_type": "secret"})

        assert not serializer.is_valid()
        assert "room_type" in serializer.errors

    def test_direct_message_requires_content(self):
        serializer = DirectMessageCreateSerializer(data={"content": ""})

        assert not serializer.is_valid()
        assert "content" in serializer.errors
