"""
Realtime event handlers.

Each inbound websocket event kind maps to one handler in EVENT_HANDLERS.
A handler is a synchronous function of (connection context, payload) that
calls the services, updates the connection registry and returns a list of
effects for the consumer to apply, in order:

    Emit        - send an event to the origin connection, a room, a user,
                  a project or everyone
    GroupChange - add/discard the connection to/from a channel-layer group,
                  with an optional hook run once the change is applied
    Deferred    - work to run after the preceding emits went out (delivered
                  flags, offline notification writes)

Handlers never touch the transport themselves, so the fan-out and
notification decisions can be tested by inspecting the returned effects.

Handlers run inside database_sync_to_async; failures are raised as
core.exceptions and turned into an `error` event by the consumer.

Event payloads (inbound frames are {"type": <event>, ...payload}):
    join_room              {"room_id"}
    leave_room             {"room_id"}
    send_message           {"room_id", "content", "message_type"?, "reply_to"?, "attachments"?}
    typing / stop_typing   {"room_id"}
    update_presence        {"status"}
    post_interaction       {"post_id", "interaction_type", "action"}
    join_project           {"project_id"}
    project_update         {"project_id", "update"}
    mark_notification_read {"notification_id"}
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING

from django.utils import timezone

from core.exceptions import ValidationError
from notifications.services import NotificationDispatcher, NotificationService

from .constants import REALTIME_CONFIG
from .serializers import MessageSerializer
from .services import MessageService, RoomService, coerce_id
from .transport import project_group, room_group, user_group

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

    from authentication.models import User

    from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)

# Emit targets
ORIGIN = "origin"
ROOM = "room"
USER = "user"
PROJECT = "project"
ALL = "all"

INTERACTION_TYPES = ("like", "comment", "share")

# Post/project ids come from other services; only group-name-safe ids are accepted
EXTERNAL_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")


# =============================================================================
# Effects
# =============================================================================


@dataclass(frozen=True)
class Emit:
    """
    An outbound event.

    Attributes:
        target: ORIGIN, ROOM, USER, PROJECT or ALL
        event: Event name sent to the client as "type"
        payload: Event body
        key: Room, user or project id for scoped targets
        exclude: Connection that must not receive the event
    """

    target: str
    event: str
    payload: dict[str, Any]
    key: Any = None
    exclude: str | None = None

    @classmethod
    def reply(cls, event: str, payload: dict[str, Any]) -> Emit:
        return cls(ORIGIN, event, payload)

    @classmethod
    def to_room(cls, room_id: int, event: str, payload: dict[str, Any], exclude: str | None = None) -> Emit:
        return cls(ROOM, event, payload, key=room_id, exclude=exclude)

    @classmethod
    def to_user(cls, user_id: int, event: str, payload: dict[str, Any]) -> Emit:
        return cls(USER, event, payload, key=user_id)

    @classmethod
    def to_project(cls, project_id: Any, event: str, payload: dict[str, Any], exclude: str | None = None) -> Emit:
        return cls(PROJECT, event, payload, key=project_id, exclude=exclude)

    @classmethod
    def broadcast(cls, event: str, payload: dict[str, Any], exclude: str | None = None) -> Emit:
        return cls(ALL, event, payload, exclude=exclude)


@dataclass(frozen=True)
class GroupChange:
    action: str  # "add" or "discard"
    group: str
    # Runs once the channel layer confirmed the change
    on_applied: Callable[[], Any] | None = field(default=None, compare=False)

    @classmethod
    def add(cls, group: str, on_applied: Callable[[], Any] | None = None) -> GroupChange:
        return cls("add", group, on_applied)

    @classmethod
    def discard(cls, group: str) -> GroupChange:
        return cls("discard", group)


@dataclass(frozen=True)
class Deferred:
    callback: Callable[[], Any]
    description: str = ""


@dataclass
class ConnectionContext:
    """
    Per-connection state shared by the handlers.

    Attributes:
        user: Verified user owning the connection
        connection_id: Channel name of the consumer
        registry: Process-wide ConnectionRegistry
        projects: Project groups this connection joined
    """

    user: User
    connection_id: str
    registry: ConnectionRegistry
    projects: set[str] = field(default_factory=set)

    @property
    def user_id(self) -> int:
        return self.user.pk

    @property
    def identity(self) -> dict[str, Any]:
        return {
            "id": self.user.pk,
            "name": self.user.display_name,
            "avatar": self.user.avatar,
        }


def _now() -> str:
    return timezone.now().isoformat()


def _external_id(payload: dict[str, Any], field_name: str) -> str:
    value = payload.get(field_name)
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        value = ""
    value = str(value)
    if not EXTERNAL_ID_PATTERN.match(value):
        raise ValidationError(
            f"A valid {field_name} is required",
            error_code="INVALID_ID",
            details={"field": field_name},
        )
    return value


# =============================================================================
# Connection lifecycle
# =============================================================================


def handle_connect(ctx: ConnectionContext, payload: dict[str, Any] | None = None) -> list:
    """Register the connection and announce the user to everyone else."""
    record = ctx.registry.register(ctx.user_id, ctx.connection_id, identity=ctx.identity)
    logger.info(f"User {ctx.user_id} connected ({ctx.connection_id})")
    return [
        GroupChange.add(user_group(ctx.user_id)),
        GroupChange.add(REALTIME_CONFIG.PRESENCE_GROUP),
        Emit.broadcast(
            "user_online",
            {
                "user_id": ctx.user_id,
                "user_name": ctx.user.display_name,
                "avatar": ctx.user.avatar,
                "status": record.status,
            },
            exclude=ctx.connection_id,
        ),
    ]


def handle_disconnect(ctx: ConnectionContext, payload: dict[str, Any] | None = None) -> list:
    """
    Drop the connection's groups and registry entry.

    `user_offline` is emitted only when this was the user's last connection.
    """
    rooms = ctx.registry.rooms_for(ctx.connection_id)
    went_offline = ctx.registry.unregister(ctx.user_id, ctx.connection_id)

    effects: list = [GroupChange.discard(room_group(room_id)) for room_id in sorted(rooms)]
    effects += [GroupChange.discard(group) for group in sorted(ctx.projects)]
    effects += [
        GroupChange.discard(user_group(ctx.user_id)),
        GroupChange.discard(REALTIME_CONFIG.PRESENCE_GROUP),
    ]
    if went_offline:
        effects.append(
            Emit.broadcast(
                "user_offline",
                {"user_id": ctx.user_id, "last_seen": _now()},
                exclude=ctx.connection_id,
            )
        )
    logger.info(f"User {ctx.user_id} disconnected ({ctx.connection_id}), offline={went_offline}")
    return effects


# =============================================================================
# Rooms
# =============================================================================


def handle_join_room(ctx: ConnectionContext, payload: dict[str, Any]) -> list:
    """
    Subscribe the connection to a room the user participates in.

    The registry records the subscription only after the connection is in
    the room group; until then senders still reach it on the user group.
    """
    room = RoomService.assert_member(payload.get("room_id"), ctx.user_id)
    already_joined = room.pk in ctx.registry.rooms_for(ctx.connection_id)
    online_count = ctx.registry.count_in_room(room.pk) + (0 if already_joined else 1)

    return [
        GroupChange.add(
            room_group(room.pk),
            on_applied=partial(ctx.registry.subscribe, ctx.connection_id, room.pk),
        ),
        Emit.to_room(
            room.pk,
            "user_joined_room",
            {"user_id": ctx.user_id, "user_name": ctx.user.display_name, "room_id": room.pk},
            exclude=ctx.connection_id,
        ),
        Emit.reply(
            "room_joined",
            {"room_id": room.pk, "online_count": online_count},
        ),
    ]


def handle_leave_room(ctx: ConnectionContext, payload: dict[str, Any]) -> list:
    """
    Unsubscribe the connection from a room. Membership is untouched.

    A connection that never joined the room gets no broadcast.
    """
    room_id = coerce_id(payload.get("room_id"), "room id")
    was_subscribed = room_id in ctx.registry.rooms_for(ctx.connection_id)
    ctx.registry.unsubscribe(ctx.connection_id, room_id)

    effects: list = [GroupChange.discard(room_group(room_id))]
    if was_subscribed:
        effects.append(
            Emit.to_room(
                room_id,
                "user_left_room",
                {"user_id": ctx.user_id, "user_name": ctx.user.display_name, "room_id": room_id},
                exclude=ctx.connection_id,
            )
        )
    return effects


# =============================================================================
# Messages
# =============================================================================


def handle_send_message(ctx: ConnectionContext, payload: dict[str, Any]) -> list:
    """
    Persist a room message and fan it out.

    Delivery per participant other than the sender:
        - online and subscribed to the room: the room broadcast
        - online, no connection subscribed to the room: `new_message` on
          their user group
        - offline: one persisted `message` notification, written after the
          broadcasts went out
    """
    message = MessageService.submit(
        sender=ctx.user,
        room_id=payload.get("room_id"),
        content=payload.get("content"),
        message_type=payload.get("message_type"),
        reply_to_id=payload.get("reply_to"),
        attachments=payload.get("attachments"),
    )
    room_id = message.room_id
    event_payload = {"message": dict(MessageSerializer(message).data)}

    effects: list = [Emit.to_room(room_id, "new_message", event_payload)]
    if room_id not in ctx.registry.rooms_for(ctx.connection_id):
        # Sender's connection is not in the room group; confirm directly
        effects.append(Emit.reply("new_message", event_payload))

    recipient_ids = [user_id for user_id in message.room.participant_ids() if user_id != ctx.user_id]
    plan = NotificationDispatcher.plan_deliveries(recipient_ids, ctx.registry)

    for user_id in sorted(plan.live):
        if not ctx.registry.is_subscribed(user_id, room_id):
            effects.append(Emit.to_user(user_id, "new_message", event_payload))
    if plan.live:
        # Runs after the emits; the message is already committed
        effects.append(
            Deferred(
                partial(MessageService.mark_delivered, message),
                description=f"delivered flag for message {message.pk}",
            )
        )

    if plan.offline:
        effects.append(
            Deferred(
                partial(NotificationDispatcher.notify_offline, message, plan.offline),
                description=f"notifications for message {message.pk}",
            )
        )
    return effects


# =============================================================================
# Presence and typing
# =============================================================================


def handle_typing(ctx: ConnectionContext, payload: dict[str, Any]) -> list:
    room_id = coerce_id(payload.get("room_id"), "room id")
    return [
        Emit.to_room(
            room_id,
            "user_typing",
            {"user_id": ctx.user_id, "user_name": ctx.user.display_name, "room_id": room_id},
            exclude=ctx.connection_id,
        )
    ]


def handle_stop_typing(ctx: ConnectionContext, payload: dict[str, Any]) -> list:
    room_id = coerce_id(payload.get("room_id"), "room id")
    return [
        Emit.to_room(
            room_id,
            "user_stop_typing",
            {"user_id": ctx.user_id, "room_id": room_id},
            exclude=ctx.connection_id,
        )
    ]


def handle_update_presence(ctx: ConnectionContext, payload: dict[str, Any]) -> list:
    status = payload.get("status")
    if status not in REALTIME_CONFIG.PRESENCE_STATUSES:
        raise ValidationError(
            f"Unknown presence status '{status}'",
            error_code="INVALID_STATUS",
            details={"allowed": list(REALTIME_CONFIG.PRESENCE_STATUSES)},
        )
    if not ctx.registry.set_status(ctx.user_id, status):
        return []
    return [
        Emit.broadcast(
            "user_presence_updated",
            {"user_id": ctx.user_id, "status": status},
            exclude=ctx.connection_id,
        )
    ]


# =============================================================================
# Posts and projects
# =============================================================================


def handle_post_interaction(ctx: ConnectionContext, payload: dict[str, Any]) -> list:
    """Relay a like/comment/share on a post to everyone else."""
    post_id = _external_id(payload, "post_id")
    interaction_type = payload.get("interaction_type")
    if interaction_type not in INTERACTION_TYPES:
        raise ValidationError(
            f"Unknown interaction type '{interaction_type}'",
            error_code="INVALID_INTERACTION",
            details={"allowed": list(INTERACTION_TYPES)},
        )
    action = payload.get("action")
    if not isinstance(action, str) or not action:
        raise ValidationError("action is required", error_code="INVALID_ACTION")

    return [
        Emit.broadcast(
            "post_updated",
            {
                "post_id": post_id,
                "interaction_type": interaction_type,
                "action": action,
                "user": ctx.identity,
                "timestamp": _now(),
            },
            exclude=ctx.connection_id,
        )
    ]


def handle_join_project(ctx: ConnectionContext, payload: dict[str, Any]) -> list:
    project_id = _external_id(payload, "project_id")
    group = project_group(project_id)
    ctx.projects.add(group)
    return [
        GroupChange.add(group),
        Emit.reply("project_joined", {"project_id": project_id}),
    ]


def handle_project_update(ctx: ConnectionContext, payload: dict[str, Any]) -> list:
    project_id = _external_id(payload, "project_id")
    return [
        Emit.to_project(
            project_id,
            "project_updated",
            {
                "project_id": project_id,
                "update": payload.get("update"),
                "updated_by": ctx.identity,
                "timestamp": _now(),
            },
            exclude=ctx.connection_id,
        )
    ]


# =============================================================================
# Notifications
# =============================================================================


def handle_mark_notification_read(ctx: ConnectionContext, payload: dict[str, Any]) -> list:
    result = NotificationService.mark_as_read(payload.get("notification_id"), ctx.user).map(
        lambda notification: {"notification_id": notification.pk}
    )
    if not result:
        return [Emit.reply("error", {"message": result.error, "error_code": result.error_code})]
    return [Emit.reply("notification_marked_read", result.data)]


EVENT_HANDLERS: dict[str, Callable[[ConnectionContext, dict[str, Any]], list]] = {
    "join_room": handle_join_room,
    "leave_room": handle_leave_room,
    "send_message": handle_send_message,
    "typing": handle_typing,
    "stop_typing": handle_stop_typing,
    "update_presence": handle_update_presence,
    "post_interaction": handle_post_interaction,
    "join_project": handle_join_project,
    "project_update": handle_project_update,
    "mark_notification_read": handle_mark_notification_read,
}


def dispatch(ctx: ConnectionContext, event: str, payload: dict[str, Any]) -> list:
    """
    Route an inbound event to its handler.

    Raises:
        ValidationError: Unknown event type
    """
    handler = EVENT_HANDLERS.get(event)
    if handler is None:
        raise ValidationError(
            f"Unknown event type: {event}",
            error_code="UNKNOWN_EVENT",
            details={"allowed": sorted(EVENT_HANDLERS)},
        )
    return handler(ctx, payload)
