"""
Chat system service layer.

Services:
    RoomService: Room membership authority (create, join, leave, invite,
        membership checks)
    MessageService: Message pipeline (validate, persist, update room
        activity) plus history and one-to-one messages

Design Principles:
    - Services are stateless (use class methods)
    - Failures raise core.exceptions; the websocket consumer turns them into
      `error` events for the originating connection and DRF views turn them
      into HTTP responses
    - Every write runs inside BaseService.atomic(), so storage failures
      surface as DependencyFailureError and leave nothing half-written

Usage:
    from chat.services import MessageService, RoomService

    room = RoomService.create_room(creator=alice, name="general")
    RoomService.join(room.id, bob)
    message = MessageService.submit(sender=alice, room_id=room.id, content="hello")
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from core.exceptions import (
    AlreadyMemberError,
    NotFoundError,
    NotFoundOrForbiddenError,
    PermissionDeniedError,
    ValidationError,
)
from core.services import BaseService

from chat.constants import MESSAGE_CONFIG, ROOM_CONFIG
from chat.models import (
    ChatRoom,
    Message,
    MessageType,
    ParticipantRole,
    RoomInvitation,
    RoomParticipant,
    RoomType,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any

    from django.db.models import QuerySet

    from authentication.models import User


def coerce_id(value: Any, field: str) -> int:
    """
    Convert a client-supplied identifier to an int.

    Raises:
        ValidationError: If the value is missing or not an integer
    """
    if isinstance(value, bool):
        value = None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"A valid {field} is required",
            error_code="INVALID_ID",
            details={"field": field},
        ) from None


@dataclass
class HistoryPage:
    """One page of message history, oldest first within the page."""

    messages: list[Message]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class RoomService(BaseService):
    """
    Room membership authority.

    Membership is the set of RoomParticipant rows for a room. Every
    realtime operation that touches a room goes through assert_member.

    Methods:
        create_room: Create a room with the creator as admin
        join: Add the caller to a room
        leave: Remove the caller from a room (idempotent)
        assert_member: Return the room or raise a uniform not-found error
        invite: Invite a user to a private or direct room
        get_user_rooms: Rooms the user participates in, newest activity first
        mark_read: Update the caller's last_read_at
    """

    @classmethod
    def create_room(
        cls,
        creator: User,
        name: str,
        room_type: str = RoomType.PUBLIC,
        participant_ids: Iterable[int] | None = None,
        description: str = "",
        tags: list[str] | None = None,
    ) -> ChatRoom:
        """
        Create a room. The creator becomes the first participant with role ADMIN.

        Duplicate ids (including the creator's own id) collapse to a single
        participant; unknown user ids raise NotFoundError.

        Raises:
            ValidationError: Blank/oversized name, unknown room type, or more
                initial participants than the member cap
            NotFoundError: An initial participant id does not exist
        """
        name = name.strip() if name else ""
        if not name:
            raise ValidationError("Room name is required", error_code="NAME_REQUIRED")
        if len(name) > ROOM_CONFIG.MAX_NAME_LENGTH:
            raise ValidationError(
                f"Room name cannot exceed {ROOM_CONFIG.MAX_NAME_LENGTH} characters",
                error_code="NAME_TOO_LONG",
            )
        if room_type not in RoomType.values:
            raise ValidationError(
                f"Unknown room type '{room_type}'",
                error_code="INVALID_ROOM_TYPE",
                details={"allowed": list(RoomType.values)},
            )

        description = (description or "").strip()
        if len(description) > ROOM_CONFIG.MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Description cannot exceed {ROOM_CONFIG.MAX_DESCRIPTION_LENGTH} characters",
                error_code="DESCRIPTION_TOO_LONG",
            )
        tags = [str(tag).strip() for tag in (tags or []) if str(tag).strip()][: ROOM_CONFIG.MAX_TAGS]

        member_ids: list[int] = []
        for raw_id in participant_ids or []:
            user_id = coerce_id(raw_id, "participant id")
            if user_id != creator.pk and user_id not in member_ids:
                member_ids.append(user_id)

        User = get_user_model()
        found = set(User.objects.filter(pk__in=member_ids).values_list("pk", flat=True))
        missing = [user_id for user_id in member_ids if user_id not in found]
        if missing:
            raise NotFoundError(
                "One or more participants do not exist",
                error_code="USER_NOT_FOUND",
                details={"user_ids": missing},
            )

        max_members = getattr(settings, "CHAT_ROOM_DEFAULT_MAX_MEMBERS", ROOM_CONFIG.DEFAULT_MAX_MEMBERS)
        if 1 + len(member_ids) > max_members:
            raise ValidationError(
                f"A room cannot have more than {max_members} members",
                error_code="TOO_MANY_MEMBERS",
            )

        with cls.atomic():
            room = ChatRoom.objects.create(
                name=name,
                description=description,
                room_type=room_type,
                creator=creator,
                max_members=max_members,
                tags=tags,
            )
            RoomParticipant.objects.create(room=room, user=creator, role=ParticipantRole.ADMIN)
            for user_id in member_ids:
                RoomParticipant.objects.create(room=room, user_id=user_id, role=ParticipantRole.MEMBER)

        cls.get_logger().info(
            f"Created {room_type} room {room.id} '{name}' with {1 + len(member_ids)} participants"
        )
        return room

    @classmethod
    def join(cls, room_id: Any, user: User) -> RoomParticipant:
        """
        Add the user to a room as a MEMBER.

        Checks run in order: existence, existing membership, invitation
        requirement, archive flag, member cap.

        Raises:
            NotFoundError: Room does not exist
            AlreadyMemberError: User already participates
            PermissionDeniedError: Private/direct room without a pending
                invitation, archived room, or full room
        """
        room_id = coerce_id(room_id, "room id")
        with cls.atomic():
            room = ChatRoom.objects.filter(pk=room_id).first()
            if room is None:
                raise NotFoundError(
                    "Chat room not found",
                    error_code="ROOM_NOT_FOUND",
                    details={"room_id": room_id},
                )
            if room.participants.filter(user_id=user.pk).exists():
                raise AlreadyMemberError(details={"room_id": room_id})

            invitation = None
            if room.requires_invitation:
                invitation = room.invitations.filter(invitee_id=user.pk, accepted_at__isnull=True).first()
                if invitation is None:
                    raise PermissionDeniedError(
                        "Cannot join private room without invitation",
                        error_code="INVITATION_REQUIRED",
                        details={"room_id": room_id},
                    )
            if room.is_archived:
                raise PermissionDeniedError("Room is archived", error_code="ROOM_ARCHIVED")
            if room.participants.count() >= room.max_members:
                raise PermissionDeniedError("Room is full", error_code="ROOM_FULL")

            try:
                with transaction.atomic():
                    participant = RoomParticipant.objects.create(
                        room=room,
                        user=user,
                        role=ParticipantRole.MEMBER,
                    )
            except IntegrityError as e:
                # Concurrent join by the same user won the unique constraint
                raise AlreadyMemberError(details={"room_id": room_id}) from e

            if invitation is not None:
                invitation.accepted_at = timezone.now()
                invitation.save(update_fields=["accepted_at", "updated_at"])

        cls.get_logger().info(f"User {user.pk} joined room {room_id}")
        return participant

    @classmethod
    def leave(cls, room_id: Any, user: User) -> bool:
        """
        Remove the user from a room.

        Idempotent: leaving a room you are not in (or that does not exist)
        is a no-op. Empty rooms are kept.

        Returns:
            True if a membership was removed
        """
        room_id = coerce_id(room_id, "room id")
        with cls.atomic():
            deleted, _ = RoomParticipant.objects.filter(room_id=room_id, user_id=user.pk).delete()

        if deleted:
            cls.get_logger().info(f"User {user.pk} left room {room_id}")
        return deleted > 0

    @classmethod
    def assert_member(cls, room_id: Any, user_id: int) -> ChatRoom:
        """
        Return the room if user_id participates in it.

        Raises:
            NotFoundOrForbiddenError: Same message whether the room is
                missing or the user is not a participant
        """
        room_id = coerce_id(room_id, "room id")
        room = ChatRoom.objects.filter(pk=room_id, participants__user_id=user_id).first()
        if room is None:
            raise NotFoundOrForbiddenError(details={"room_id": room_id})
        return room

    @classmethod
    def invite(cls, room_id: Any, inviter: User, invitee_id: Any) -> RoomInvitation:
        """
        Invite a user to a room. Only admins and moderators may invite.

        Re-inviting a user with a pending invitation returns the existing one.

        Raises:
            NotFoundOrForbiddenError: Inviter is not a participant
            PermissionDeniedError: Inviter is a plain member
            NotFoundError: Invitee does not exist
            AlreadyMemberError: Invitee already participates
        """
        room = cls.assert_member(room_id, inviter.pk)
        invitee_id = coerce_id(invitee_id, "user id")

        participant = room.get_participant(inviter)
        if participant is None or not participant.can_invite:
            raise PermissionDeniedError(
                "Only admins and moderators can invite",
                error_code="INVITE_NOT_ALLOWED",
            )
        if not get_user_model().objects.filter(pk=invitee_id).exists():
            raise NotFoundError("User not found", error_code="USER_NOT_FOUND", details={"user_id": invitee_id})
        if room.participants.filter(user_id=invitee_id).exists():
            raise AlreadyMemberError(details={"room_id": room.pk, "user_id": invitee_id})

        with cls.atomic():
            invitation, created = RoomInvitation.objects.get_or_create(
                room=room,
                invitee_id=invitee_id,
                accepted_at=None,
                defaults={"invited_by": inviter},
            )

        if created:
            cls.get_logger().info(f"User {inviter.pk} invited user {invitee_id} to room {room.pk}")
        return invitation

    @classmethod
    def get_user_rooms(cls, user: User) -> QuerySet[ChatRoom]:
        """Rooms the user participates in, most recently active first."""
        return (
            ChatRoom.objects.filter(participants__user=user)
            .select_related("creator", "last_message", "last_message__sender")
            .order_by("-last_activity_at", "-created_at")
            .distinct()
        )

    @classmethod
    def mark_read(cls, room_id: Any, user: User) -> RoomParticipant:
        room = cls.assert_member(room_id, user.pk)
        participant = room.get_participant(user)
        participant.last_read_at = timezone.now()
        with cls.atomic():
            participant.save(update_fields=["last_read_at", "updated_at"])

        cls.get_logger().debug(f"User {user.pk} marked room {room.pk} as read")
        return participant


class MessageService(BaseService):
    """
    Message pipeline and history.

    Methods:
        submit: Validate, persist and record room activity for a room message
        record_activity: Conditional "only if newer" room activity update
        send_direct: Persist a one-to-one message
        get_history: Paginated room history (members only)
        get_direct_history: Paginated one-to-one history; marks it read
        delete_message: Soft delete (sender only)
    """

    @classmethod
    def _clean_content(cls, content: Any) -> str:
        content = content.strip() if isinstance(content, str) else ""
        if not content:
            raise ValidationError("Message content cannot be empty", error_code="EMPTY_CONTENT")
        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            raise ValidationError(
                f"Message cannot exceed {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code="CONTENT_TOO_LONG",
            )
        return content

    @classmethod
    def _clean_attachments(cls, attachments: Any) -> list[str]:
        if not attachments:
            return []
        if not isinstance(attachments, list) or not all(isinstance(url, str) for url in attachments):
            raise ValidationError("Attachments must be a list of URLs", error_code="INVALID_ATTACHMENTS")
        if len(attachments) > MESSAGE_CONFIG.MAX_ATTACHMENTS_PER_MESSAGE:
            raise ValidationError(
                f"A message can carry at most {MESSAGE_CONFIG.MAX_ATTACHMENTS_PER_MESSAGE} attachments",
                error_code="TOO_MANY_ATTACHMENTS",
            )
        return [url.strip() for url in attachments]

    @classmethod
    def submit(
        cls,
        sender: User,
        room_id: Any,
        content: Any,
        message_type: str = MessageType.TEXT,
        reply_to_id: Any = None,
        attachments: list[str] | None = None,
    ) -> Message:
        """
        Submit a message to a room.

        Steps:
            1. Membership check (NotFoundOrForbiddenError propagates unchanged)
            2. Content and payload validation
            3. Persist the message and record room activity in one transaction

        Fan-out and notification dispatch are the caller's job and must only
        happen after this returns.

        Raises:
            NotFoundOrForbiddenError: Sender is not a participant
            ValidationError: Empty/oversized content, bad type, bad reply target
            DependencyFailureError: Storage failed; nothing was written
        """
        with cls.atomic():
            room = RoomService.assert_member(room_id, sender.pk)
            content = cls._clean_content(content)

            message_type = message_type or MessageType.TEXT
            if message_type not in MessageType.values:
                raise ValidationError(
                    f"Unknown message type '{message_type}'",
                    error_code="INVALID_MESSAGE_TYPE",
                    details={"allowed": list(MessageType.values)},
                )

            attachments = cls._clean_attachments(attachments)
            if attachments and not room.allow_uploads:
                raise PermissionDeniedError(
                    "Attachments are disabled in this room",
                    error_code="UPLOADS_DISABLED",
                )

            reply_to = None
            if reply_to_id is not None:
                reply_to = Message.objects.filter(pk=coerce_id(reply_to_id, "reply_to"), room=room).first()
                if reply_to is None:
                    raise ValidationError(
                        "Reply target not found in this room",
                        error_code="INVALID_REPLY_TO",
                    )

            message = Message.objects.create(
                room=room,
                sender=sender,
                content=content,
                message_type=message_type,
                attachments=attachments,
                reply_to=reply_to,
            )
            cls.record_activity(room.pk, message)

        cls.get_logger().debug(f"User {sender.pk} sent message {message.id} to room {room.pk}")
        return message

    @classmethod
    def record_activity(cls, room_id: int, message: Message) -> bool:
        """
        Point the room at `message` unless a newer message is already recorded.

        Returns:
            True if the room was updated
        """
        updated = (
            ChatRoom.objects.filter(pk=room_id)
            .filter(Q(last_activity_at__isnull=True) | Q(last_activity_at__lte=message.created_at))
            .update(last_message=message, last_activity_at=message.created_at)
        )
        return updated > 0

    @classmethod
    def mark_delivered(cls, message: Message) -> None:
        with cls.atomic():
            Message.objects.filter(pk=message.pk, is_delivered=False).update(is_delivered=True)
        message.is_delivered = True

    @classmethod
    def send_direct(
        cls,
        sender: User,
        receiver_id: Any,
        content: Any,
        attachments: list[str] | None = None,
    ) -> Message:
        """
        Persist a one-to-one message.

        Raises:
            ValidationError: Empty content or message to self
            NotFoundError: Receiver does not exist
        """
        receiver_id = coerce_id(receiver_id, "receiver id")
        if receiver_id == sender.pk:
            raise ValidationError("Cannot send a message to yourself", error_code="SELF_MESSAGE")
        content = cls._clean_content(content)
        attachments = cls._clean_attachments(attachments)

        receiver = get_user_model().objects.filter(pk=receiver_id, is_active=True).first()
        if receiver is None:
            raise NotFoundError("User not found", error_code="USER_NOT_FOUND", details={"user_id": receiver_id})

        with cls.atomic():
            message = Message.objects.create(
                sender=sender,
                receiver=receiver,
                content=content,
                attachments=attachments,
            )

        cls.get_logger().debug(f"User {sender.pk} sent direct message {message.id} to {receiver_id}")
        return message

    @classmethod
    def _paginate(cls, queryset: QuerySet[Message], page: Any, limit: Any) -> HistoryPage:
        try:
            page = max(int(page), 1)
        except (TypeError, ValueError):
            page = 1
        try:
            limit = min(max(int(limit), 1), MESSAGE_CONFIG.HISTORY_MAX_LIMIT)
        except (TypeError, ValueError):
            limit = MESSAGE_CONFIG.HISTORY_DEFAULT_LIMIT

        total = queryset.count()
        offset = (page - 1) * limit
        newest_first = list(queryset.order_by("-created_at", "-id")[offset : offset + limit])
        newest_first.reverse()
        return HistoryPage(messages=newest_first, page=page, limit=limit, total=total)

    @classmethod
    def get_history(
        cls,
        room_id: Any,
        user: User,
        page: Any = 1,
        limit: Any = MESSAGE_CONFIG.HISTORY_DEFAULT_LIMIT,
    ) -> HistoryPage:
        """
        Return one page of room history. Page 1 holds the newest messages;
        messages within a page are oldest first.

        Raises:
            NotFoundOrForbiddenError: Caller is not a participant
        """
        room = RoomService.assert_member(room_id, user.pk)
        queryset = Message.objects.filter(room=room).select_related("sender", "reply_to")
        return cls._paginate(queryset, page, limit)

    @classmethod
    def get_direct_history(
        cls,
        user: User,
        other_id: Any,
        page: Any = 1,
        limit: Any = MESSAGE_CONFIG.HISTORY_DEFAULT_LIMIT,
    ) -> HistoryPage:
        """Return one page of the conversation with another user and mark it read."""
        other_id = coerce_id(other_id, "user id")
        queryset = Message.objects.filter(
            Q(sender=user, receiver_id=other_id) | Q(sender_id=other_id, receiver=user)
        ).select_related("sender", "receiver")
        history = cls._paginate(queryset, page, limit)

        with cls.atomic():
            Message.objects.filter(sender_id=other_id, receiver=user, is_read=False).update(is_read=True)
        return history

    @classmethod
    def delete_message(cls, message_id: Any, user: User) -> Message:
        """
        Soft delete a message. Only the sender may delete.

        Raises:
            NotFoundError: Message missing or already deleted
            PermissionDeniedError: Caller is not the sender
        """
        message = Message.objects.filter(pk=coerce_id(message_id, "message id")).first()
        if message is None:
            raise NotFoundError("Message not found", error_code="MESSAGE_NOT_FOUND")
        if message.sender_id != user.pk:
            raise PermissionDeniedError("You can only delete your own messages", error_code="NOT_SENDER")

        with cls.atomic():
            message.soft_delete()

        cls.get_logger().info(f"User {user.pk} deleted message {message.pk}")
        return message
