"""
Chat system models.

Models:
    ChatRoom: Named room (public, private or direct) that messages are posted to
    RoomParticipant: A user's membership in a room with role and read tracking
    RoomInvitation: Pending or accepted invitation to a private/direct room
    Message: A single chat message posted to a room (or to one receiver)

Design Decisions:
    - Membership is a set of (room, user) rows; joining twice is rejected and
      leaving deletes the row, so a leave/join round trip restores the
      original set.
    - The room creator is inserted first with role ADMIN, so the earliest
      participant is always the creator.
    - last_message/last_activity_at are written only by the message pipeline,
      with a conditional "only if newer" update so the timestamp never moves
      backward under concurrent sends.
    - Messages are immutable after creation except read/delivery flags and
      soft delete.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.managers import SoftDeleteManager
from core.model_mixins import SoftDeleteMixin
from core.models import BaseModel

from .constants import ROOM_CONFIG

if TYPE_CHECKING:
    from authentication.models import User


class RoomType(models.TextChoices):
    """
    Visibility of a chat room.

    PUBLIC: Anyone may join
    PRIVATE: Joining requires a prior invitation
    DIRECT: Two-person room; joining requires a prior invitation
    """

    PUBLIC = "public", "Public"
    PRIVATE = "private", "Private"
    DIRECT = "direct", "Direct"


class ParticipantRole(models.TextChoices):
    """
    Role within a room.

    Hierarchy: ADMIN > MODERATOR > MEMBER

    ADMIN: Room creator; may invite and moderate
    MODERATOR: May invite
    MEMBER: May read and post
    """

    ADMIN = "admin", "Admin"
    MODERATOR = "moderator", "Moderator"
    MEMBER = "member", "Member"


class MessageType(models.TextChoices):
    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    FILE = "file", "File"
    CODE = "code", "Code"


class ChatRoom(BaseModel):
    """
    A chat room with an ordered participant list.

    Fields:
        name: Display name (1-100 characters after trimming)
        description: Optional description
        room_type: public, private or direct
        creator: User who created the room (admin participant)
        last_message: Most recent message (written by the message pipeline)
        last_activity_at: created_at of the most recent message; never decreases
        allow_uploads: Whether attachments may be posted
        max_members: Participant cap enforced on join
        is_archived: Archived rooms accept no new members
        tags: Free-form list of labels

    Relationships:
        participants: RoomParticipant rows (ordered by joined_at)
        messages: Message rows
        invitations: RoomInvitation rows
    """

    name = models.CharField(
        max_length=ROOM_CONFIG.MAX_NAME_LENGTH,
        help_text="Room display name",
    )
    description = models.CharField(
        max_length=ROOM_CONFIG.MAX_DESCRIPTION_LENGTH,
        blank=True,
        default="",
        help_text="Optional room description",
    )
    room_type = models.CharField(
        max_length=10,
        choices=RoomType.choices,
        default=RoomType.PUBLIC,
        db_index=True,
        help_text="Room visibility (public, private or direct)",
    )
    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_rooms",
        help_text="User who created this room",
    )
    last_message = models.ForeignKey(
        "chat.Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent message posted to the room",
    )
    last_activity_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Timestamp of the most recent message (never moves backward)",
    )
    allow_uploads = models.BooleanField(
        default=True,
        help_text="Whether participants may post attachments",
    )
    max_members = models.PositiveIntegerField(
        default=ROOM_CONFIG.DEFAULT_MAX_MEMBERS,
        help_text="Maximum number of participants",
    )
    is_archived = models.BooleanField(
        default=False,
        help_text="Archived rooms accept no new members",
    )
    tags = models.JSONField(
        default=list,
        blank=True,
        help_text="List of free-form labels",
    )

    class Meta:
        db_table = "chat_room"
        ordering = ["-last_activity_at", "-created_at"]
        indexes = [
            models.Index(
                fields=["-last_activity_at"],
                name="chat_room_last_activity_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_room_type_display()}: {self.name}"

    @property
    def is_public(self) -> bool:
        return self.room_type == RoomType.PUBLIC

    @property
    def requires_invitation(self) -> bool:
        """Private and direct rooms can only be joined with an invitation."""
        return self.room_type in (RoomType.PRIVATE, RoomType.DIRECT)

    def get_participant(self, user: User | int) -> RoomParticipant | None:
        user_id = getattr(user, "pk", user)
        return self.participants.filter(user_id=user_id).first()

    def participant_ids(self) -> list[int]:
        """User ids in join order (creator first)."""
        return list(self.participants.order_by("joined_at", "id").values_list("user_id", flat=True))


class RoomParticipant(BaseModel):
    """
    A user's membership in a room.

    Fields:
        room: Room this membership belongs to
        user: Member
        role: admin, moderator or member
        joined_at: When the user joined
        last_read_at: Last time the user marked the room read

    Constraints:
        - UniqueConstraint(room, user): a user appears at most once per room
    """

    room = models.ForeignKey(
        ChatRoom,
        on_delete=models.CASCADE,
        related_name="participants",
        help_text="Room this membership belongs to",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="room_participations",
        help_text="Participating user",
    )
    role = models.CharField(
        max_length=10,
        choices=ParticipantRole.choices,
        default=ParticipantRole.MEMBER,
        help_text="Role within the room",
    )
    joined_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user joined this room",
    )
    last_read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last time user marked the room as read",
    )

    class Meta:
        db_table = "chat_room_participant"
        ordering = ["joined_at", "id"]
        indexes = [
            models.Index(
                fields=["user", "-joined_at"],
                name="chat_part_user_joined_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["room", "user"],
                name="unique_room_participant",
            ),
        ]

    def __str__(self) -> str:
        return f"Participant: {self.user_id} in {self.room_id} ({self.role})"

    @property
    def can_invite(self) -> bool:
        return self.role in (ParticipantRole.ADMIN, ParticipantRole.MODERATOR)


class RoomInvitation(BaseModel):
    """
    Invitation allowing a user to join a private or direct room.

    Fields:
        room: Room the invitation is for
        invitee: Invited user
        invited_by: Participant who issued the invitation
        accepted_at: Set when the invitee joins (null while pending)
    """

    room = models.ForeignKey(
        ChatRoom,
        on_delete=models.CASCADE,
        related_name="invitations",
        help_text="Room the invitation is for",
    )
    invitee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="room_invitations",
        help_text="Invited user",
    )
    invited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sent_room_invitations",
        help_text="User who issued the invitation",
    )
    accepted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the invitee joined (null while pending)",
    )

    class Meta:
        db_table = "chat_room_invitation"
        constraints = [
            models.UniqueConstraint(
                fields=["room", "invitee"],
                condition=Q(accepted_at__isnull=True),
                name="unique_pending_room_invitation",
            ),
        ]

    def __str__(self) -> str:
        state = "accepted" if self.accepted_at else "pending"
        return f"Invitation: {self.invitee_id} to {self.room_id} [{state}]"


class Message(SoftDeleteMixin, BaseModel):
    """
    A chat message.

    Room messages set `room`; one-to-one messages set `receiver` instead.
    Exactly one of the two is present.

    Fields:
        sender: Author
        room: Target room (null for one-to-one messages)
        receiver: Target user (null for room messages)
        content: Trimmed, non-empty text
        message_type: text, image, file or code
        attachments: List of attachment URLs
        reply_to: Message in the same room this one replies to
        is_read: Read flag (one-to-one messages)
        is_delivered: Whether at least one live connection received it
    """

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="sent_messages",
        help_text="User who sent this message",
    )
    room = models.ForeignKey(
        ChatRoom,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="messages",
        help_text="Room this message was posted to",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="received_messages",
        help_text="Recipient of a one-to-one message",
    )
    content = models.TextField(
        help_text="Message text",
    )
    message_type = models.CharField(
        max_length=10,
        choices=MessageType.choices,
        default=MessageType.TEXT,
        help_text="Type of message content",
    )
    attachments = models.JSONField(
        default=list,
        blank=True,
        help_text="List of attachment URLs",
    )
    reply_to = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="replies",
        help_text="Message this one replies to",
    )
    is_read = models.BooleanField(
        default=False,
        help_text="Whether the receiver has read this message",
    )
    is_delivered = models.BooleanField(
        default=False,
        help_text="Whether a live connection received this message",
    )

    objects = SoftDeleteManager()
    all_objects = models.Manager()

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["room", "created_at", "id"],
                name="chat_msg_room_created_idx",
            ),
            models.Index(
                fields=["sender", "receiver", "-created_at"],
                name="chat_msg_direct_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(room__isnull=False) | Q(receiver__isnull=False),
                name="chat_message_has_target",
            ),
        ]

    def __str__(self) -> str:
        preview = self.content[:50] + "..." if len(self.content) > 50 else self.content
        deleted = " [deleted]" if self.is_deleted else ""
        return f"User {self.sender_id}: {preview}{deleted}"

    @property
    def is_direct(self) -> bool:
        return self.room_id is None

    def get_display_content(self) -> str:
        if self.is_deleted:
            return "[Message deleted]"
        return self.content
