"""
Outbound transport for realtime events.

Wraps the Channels channel layer behind the four delivery scopes the
realtime handlers need:

    emit_to_connection - one consumer (by channel name)
    emit_to_room       - every connection subscribed to room_<id>
    emit_to_user       - every connection of user_<id>
    broadcast_all      - every connection (the presence group)

Every channel-layer message has the same shape and is handled by
RealtimeConsumer.realtime_event:

    {
        "type": "realtime.event",
        "event": "new_message",
        "payload": {"message": {...}},
        "exclude": "<channel name or None>",
    }

The consumer forwards it to the client as {"type": event, **payload}
unless its own channel name equals `exclude`.

Failures to reach the channel layer are logged and reported as False; a
broken fan-out never fails the operation that produced the event.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from asgiref.sync import async_to_sync
from channels.exceptions import ChannelFull
from channels.layers import get_channel_layer

from .constants import REALTIME_CONFIG

if TYPE_CHECKING:
    from typing import Any

    from channels.layers import BaseChannelLayer

logger = logging.getLogger(__name__)

EVENT_MESSAGE_TYPE = "realtime.event"


def room_group(room_id: int) -> str:
    return f"{REALTIME_CONFIG.ROOM_GROUP_PREFIX}{room_id}"


def user_group(user_id: int) -> str:
    return f"{REALTIME_CONFIG.USER_GROUP_PREFIX}{user_id}"


def project_group(project_id: Any) -> str:
    return f"{REALTIME_CONFIG.PROJECT_GROUP_PREFIX}{project_id}"


def build_event(event: str, payload: dict[str, Any], exclude: str | None = None) -> dict[str, Any]:
    return {
        "type": EVENT_MESSAGE_TYPE,
        "event": event,
        "payload": payload,
        "exclude": exclude,
    }


class ChannelLayerTransport:
    """
    Async delivery of realtime events through a channel layer.

    Usage:
        transport = ChannelLayerTransport(self.channel_layer)
        await transport.emit_to_room(room.id, "new_message", {"message": data})
    """

    def __init__(self, channel_layer: BaseChannelLayer | None = None):
        self.channel_layer = channel_layer or get_channel_layer()

    async def _group_send(self, group: str, message: dict[str, Any]) -> bool:
        try:
            await self.channel_layer.group_send(group, message)
        except (ChannelFull, OSError) as e:
            logger.error(f"Failed to send {message.get('event')} to group {group}: {e}")
            return False
        return True

    async def emit_to_connection(self, connection_id: str, event: str, payload: dict[str, Any]) -> bool:
        try:
            await self.channel_layer.send(connection_id, build_event(event, payload))
        except (ChannelFull, OSError) as e:
            logger.error(f"Failed to send {event} to connection {connection_id}: {e}")
            return False
        return True

    async def emit_to_room(
        self, room_id: int, event: str, payload: dict[str, Any], exclude: str | None = None
    ) -> bool:
        return await self._group_send(room_group(room_id), build_event(event, payload, exclude))

    async def emit_to_user(
        self, user_id: int, event: str, payload: dict[str, Any], exclude: str | None = None
    ) -> bool:
        return await self._group_send(user_group(user_id), build_event(event, payload, exclude))

    async def emit_to_project(
        self, project_id: Any, event: str, payload: dict[str, Any], exclude: str | None = None
    ) -> bool:
        return await self._group_send(project_group(project_id), build_event(event, payload, exclude))

    async def broadcast_all(self, event: str, payload: dict[str, Any], exclude: str | None = None) -> bool:
        return await self._group_send(REALTIME_CONFIG.PRESENCE_GROUP, build_event(event, payload, exclude))

    async def subscribe(self, group: str, connection_id: str) -> None:
        await self.channel_layer.group_add(group, connection_id)

    async def unsubscribe(self, group: str, connection_id: str) -> None:
        await self.channel_layer.group_discard(group, connection_id)


def send_to_user_sync(user_id: int, event: str, payload: dict[str, Any]) -> bool:
    """
    Push an event to every connection of a user from synchronous code
    (DRF views, services).
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning(f"No channel layer configured; dropping {event} for user {user_id}")
        return False
    return async_to_sync(ChannelLayerTransport(channel_layer).emit_to_user)(user_id, event, payload)
