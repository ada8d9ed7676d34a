"""
WebSocket consumer for the realtime API.

Consumers:
    RealtimeConsumer: One authenticated connection carrying every realtime
        event (rooms, messages, typing, presence, posts, projects,
        notifications)

Authentication:
    JWTAuthMiddleware attaches the user to self.scope["user"]. Connections
    without a verified user are closed with code 4001 before accept and
    never reach the registry.

Channel Groups:
    user_<id>     - every connection of one user (joined on connect)
    presence      - every connection (joined on connect)
    room_<id>     - connections that sent join_room for the room
    project_<id>  - connections that sent join_project

Message Types (from client):
    {"type": "<event>", ...payload}; see chat.handlers for the event list.

Message Types (to client):
    {"type": "<event>", ...payload}, including
    {"type": "error", "message": "...", "error_code": "..."}

Ordering:
    Channels processes one connection's frames sequentially, so a
    send_message received before the disconnect is persisted and fanned out
    before the disconnect handler runs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.apps import apps

from core.exceptions import BaseApplicationError, ValidationError

from .constants import REALTIME_CONFIG
from .handlers import (
    ALL,
    ORIGIN,
    PROJECT,
    ROOM,
    USER,
    ConnectionContext,
    Deferred,
    Emit,
    GroupChange,
    dispatch,
    handle_connect,
    handle_disconnect,
)
from .transport import ChannelLayerTransport

if TYPE_CHECKING:
    from typing import Any

    from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class RealtimeConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for realtime chat and presence.

    Attributes:
        registry: Process-wide ConnectionRegistry (injected via as_asgi)
        context: ConnectionContext, set once the connection is accepted
        transport: ChannelLayerTransport over this consumer's channel layer
    """

    def __init__(self, *args, registry: ConnectionRegistry | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.registry = registry
        self.context: ConnectionContext | None = None
        self.transport: ChannelLayerTransport | None = None
        self._closed = False

    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            logger.warning("Rejected unauthenticated websocket connection")
            await self.close(code=REALTIME_CONFIG.CLOSE_UNAUTHENTICATED)
            return

        if self.registry is None:
            self.registry = apps.get_app_config("chat").registry
        self.transport = ChannelLayerTransport(self.channel_layer)
        self.context = ConnectionContext(
            user=user,
            connection_id=self.channel_name,
            registry=self.registry,
        )

        # Browsers require the server to echo the subprotocol the token came in
        subprotocol = "jwt" if "jwt" in self.scope.get("subprotocols", []) else None
        await self.accept(subprotocol=subprotocol)
        await self.apply_effects(handle_connect(self.context))

    async def disconnect(self, close_code):
        if self.context is None or self._closed:
            return
        self._closed = True
        await self.apply_effects(handle_disconnect(self.context))

    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        if text_data is None:
            await self.send_error(ValidationError("Binary frames are not supported", error_code="INVALID_FRAME"))
            return
        try:
            content = await self.decode_json(text_data)
        except ValueError:
            await self.send_error(ValidationError("Malformed JSON", error_code="INVALID_JSON"))
            return
        await self.receive_json(content, **kwargs)

    async def receive_json(self, content, **kwargs):
        """
        Route one inbound event through the dispatch table.

        Expected message format:
            {"type": "send_message", "room_id": 3, "content": "Hello!"}
        """
        if not isinstance(content, dict) or not isinstance(content.get("type"), str):
            await self.send_error(ValidationError("Event type is required", error_code="INVALID_EVENT"))
            return

        event = content["type"]
        payload = {key: value for key, value in content.items() if key != "type"}

        try:
            effects = await database_sync_to_async(dispatch)(self.context, event, payload)
        except BaseApplicationError as e:
            logger.info(f"Event {event} from user {self.context.user_id} rejected: {e}")
            await self.send_error(e)
            return
        except Exception:
            logger.exception(f"Unhandled error processing {event} from user {self.context.user_id}")
            await self.send_json(
                {"type": "error", "message": "Internal server error", "error_code": "INTERNAL_ERROR"}
            )
            return

        await self.apply_effects(effects)

    # =========================================================================
    # Effects
    # =========================================================================

    async def apply_effects(self, effects: list) -> None:
        for effect in effects:
            if isinstance(effect, GroupChange):
                if effect.action == "add":
                    await self.transport.subscribe(effect.group, self.channel_name)
                else:
                    await self.transport.unsubscribe(effect.group, self.channel_name)
                if effect.on_applied is not None:
                    effect.on_applied()
            elif isinstance(effect, Emit):
                await self.deliver(effect)
            elif isinstance(effect, Deferred):
                try:
                    await database_sync_to_async(effect.callback)()
                except Exception:
                    # Already-sent events stand; only the deferred work is lost
                    logger.exception(f"Deferred work failed: {effect.description}")

    async def deliver(self, emit: Emit) -> None:
        if emit.target == ORIGIN:
            await self.send_json({"type": emit.event, **emit.payload})
        elif emit.target == ROOM:
            await self.transport.emit_to_room(emit.key, emit.event, emit.payload, exclude=emit.exclude)
        elif emit.target == USER:
            await self.transport.emit_to_user(emit.key, emit.event, emit.payload, exclude=emit.exclude)
        elif emit.target == PROJECT:
            await self.transport.emit_to_project(emit.key, emit.event, emit.payload, exclude=emit.exclude)
        elif emit.target == ALL:
            await self.transport.broadcast_all(emit.event, emit.payload, exclude=emit.exclude)
        else:
            logger.error(f"Unknown emit target {emit.target} for {emit.event}")

    async def send_error(self, error: BaseApplicationError) -> None:
        await self.send_json({"type": "error", "message": error.message, "error_code": error.error_code})

    # =========================================================================
    # Channel layer handlers
    # =========================================================================

    async def realtime_event(self, message: dict[str, Any]):
        """Forward a realtime.event from the channel layer to the client."""
        if message.get("exclude") == self.channel_name:
            return
        await self.send_json({"type": message["event"], **message["payload"]})
