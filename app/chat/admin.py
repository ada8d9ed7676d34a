"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Room management with participant inline
- Invitation viewing
- Message moderation (including soft-deleted messages)
"""

from django.contrib import admin

from chat.models import ChatRoom, Message, RoomInvitation, RoomParticipant


class RoomParticipantInline(admin.TabularInline):
    """Inline display of participants in room admin."""

    model = RoomParticipant
    extra = 0
    readonly_fields = ["joined_at", "last_read_at"]
    raw_id_fields = ["user"]


@admin.register(ChatRoom)
class ChatRoomAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "name",
        "room_type",
        "is_archived",
        "max_members",
        "last_activity_at",
        "created_at",
    ]
    list_filter = ["room_type", "is_archived", "created_at"]
    search_fields = ["name", "id"]
    readonly_fields = ["created_at", "updated_at", "last_message", "last_activity_at"]
    raw_id_fields = ["creator"]
    inlines = [RoomParticipantInline]
    ordering = ["-last_activity_at"]


@admin.register(RoomInvitation)
class RoomInvitationAdmin(admin.ModelAdmin):
    list_display = ["id", "room", "invitee", "invited_by", "accepted_at", "created_at"]
    list_filter = ["created_at"]
    search_fields = ["invitee__email", "room__name"]
    raw_id_fields = ["room", "invitee", "invited_by"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "room",
        "sender",
        "receiver",
        "message_type",
        "content_preview",
        "is_deleted",
        "created_at",
    ]
    list_filter = ["message_type", "is_deleted", "created_at"]
    search_fields = ["content", "sender__email"]
    readonly_fields = ["created_at", "updated_at", "deleted_at"]
    raw_id_fields = ["room", "sender", "receiver", "reply_to"]
    ordering = ["-created_at"]

    def get_queryset(self, request):
        return Message.all_objects.select_related("room", "sender", "receiver")

    @admin.display(description="Content Preview")
    def content_preview(self, obj: Message) -> str:
        """Return truncated content for list display."""
        max_length = 50
        if len(obj.content) > max_length:
            return obj.content[:max_length] + "..."
        return obj.content
