"""
In-process registry of live websocket connections.

The registry is the single source of truth for "is this user online?".
The notification dispatcher consults it to decide between live delivery and
a persisted notification, and the connect/disconnect handlers use its return
values to emit user_online/user_offline exactly once per transition.

State:
    - presence: user_id -> ConnectionRecord for the user's most recently
      registered connection (last registration wins)
    - connections: user_id -> set of that user's live connection ids
    - subscriptions: connection_id -> set of room ids the connection joined

A user stays online until their LAST connection unregisters. Closing an
older tab while a newer one is open leaves the presence entry in place,
pointing at a remaining connection.

Concurrency:
    All reads and writes go through one threading.Lock. Consumers call the
    registry from the event loop and from database_sync_to_async worker
    threads, so a plain dict is not enough.

Usage:
    from chat.registry import ConnectionRegistry

    registry = ConnectionRegistry()
    registry.register(user.id, channel_name, identity={"name": user.name})
    registry.subscribe(channel_name, room_id)
    if registry.unregister(user.id, channel_name):
        ...  # user went offline; broadcast user_offline

Note:
    One instance exists per process (ChatConfig.registry). Horizontal
    scale-out of presence is out of scope.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING

from django.utils import timezone

from .constants import REALTIME_CONFIG

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionRecord:
    """
    Snapshot of one live connection.

    Attributes:
        user_id: Authenticated user owning the connection
        connection_id: Channel name of the consumer
        connected_at: When the connection registered
        status: Presence status (online, away, busy, ...)
        identity: Display fields (name, avatar) captured at connect time
    """

    user_id: int
    connection_id: str
    connected_at: datetime
    status: str = REALTIME_CONFIG.DEFAULT_PRESENCE_STATUS
    identity: dict[str, Any] = field(default_factory=dict)


class ConnectionRegistry:
    """Thread-safe presence table keyed by user id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._presence: dict[int, ConnectionRecord] = {}
        self._records: dict[str, ConnectionRecord] = {}
        self._connections: dict[int, set[str]] = {}
        self._subscriptions: dict[str, set[int]] = {}

    # =========================================================================
    # Registration
    # =========================================================================

    def register(
        self,
        user_id: int,
        connection_id: str,
        identity: dict[str, Any] | None = None,
    ) -> ConnectionRecord:
        """
        Register a connection and make it the user's presence record.

        Returns:
            The new ConnectionRecord
        """
        record = ConnectionRecord(
            user_id=user_id,
            connection_id=connection_id,
            connected_at=timezone.now(),
            identity=dict(identity or {}),
        )
        with self._lock:
            previous = self._presence.get(user_id)
            if previous is not None:
                record = replace(record, status=previous.status)
            self._presence[user_id] = record
            self._records[connection_id] = record
            self._connections.setdefault(user_id, set()).add(connection_id)
            self._subscriptions.setdefault(connection_id, set())

        logger.debug(f"Registered connection {connection_id} for user {user_id}")
        return record

    def unregister(self, user_id: int, connection_id: str | None = None) -> bool:
        """
        Remove a connection (or all of the user's connections).

        Idempotent: unknown users and already-removed connections are a no-op.

        Args:
            user_id: Owner of the connection
            connection_id: Connection to remove; None removes every connection

        Returns:
            True only when this call took the user from online to offline
        """
        with self._lock:
            live = self._connections.get(user_id)
            if not live:
                return False

            if connection_id is None:
                removed = set(live)
            elif connection_id in live:
                removed = {connection_id}
            else:
                return False

            for conn in removed:
                live.discard(conn)
                self._records.pop(conn, None)
                self._subscriptions.pop(conn, None)

            if live:
                current = self._presence.get(user_id)
                if current is None or current.connection_id in removed:
                    newest = max(
                        (self._records[conn] for conn in live),
                        key=lambda r: r.connected_at,
                    )
                    self._presence[user_id] = newest
                return False

            del self._connections[user_id]
            self._presence.pop(user_id, None)

        logger.debug(f"User {user_id} has no live connections left")
        return True

    # =========================================================================
    # Queries
    # =========================================================================

    def is_online(self, user_id: int) -> bool:
        with self._lock:
            return user_id in self._presence

    def get(self, user_id: int) -> ConnectionRecord | None:
        with self._lock:
            return self._presence.get(user_id)

    def count(self) -> int:
        """Number of distinct online users."""
        with self._lock:
            return len(self._presence)

    def connection_count(self) -> int:
        with self._lock:
            return len(self._records)

    def count_in_room(self, room_id: int) -> int:
        """Number of live connections subscribed to a room."""
        with self._lock:
            return sum(1 for rooms in self._subscriptions.values() if room_id in rooms)

    def online_user_ids(self) -> set[int]:
        with self._lock:
            return set(self._presence)

    def connections_for(self, user_id: int) -> set[str]:
        with self._lock:
            return set(self._connections.get(user_id, ()))

    # =========================================================================
    # Room subscriptions
    # =========================================================================

    def subscribe(self, connection_id: str, room_id: int) -> None:
        with self._lock:
            if connection_id in self._records:
                self._subscriptions.setdefault(connection_id, set()).add(room_id)

    def unsubscribe(self, connection_id: str, room_id: int) -> None:
        with self._lock:
            self._subscriptions.get(connection_id, set()).discard(room_id)

    def rooms_for(self, connection_id: str) -> set[int]:
        with self._lock:
            return set(self._subscriptions.get(connection_id, ()))

    def is_subscribed(self, user_id: int, room_id: int) -> bool:
        """Whether any of the user's live connections joined the room."""
        with self._lock:
            return any(
                room_id in self._subscriptions.get(conn, ())
                for conn in self._connections.get(user_id, ())
            )

    # =========================================================================
    # Status
    # =========================================================================

    def set_status(self, user_id: int, status: str) -> bool:
        """
        Update the presence status shown to other users.

        Returns:
            False if the user has no live connection
        """
        with self._lock:
            current = self._presence.get(user_id)
            if current is None:
                return False
            self._presence[user_id] = replace(current, status=status)
            for conn in self._connections.get(user_id, ()):
                self._records[conn] = replace(self._records[conn], status=status)
            return True

    def clear(self) -> None:
        """Drop every entry (process shutdown and test isolation)."""
        with self._lock:
            self._presence.clear()
            self._records.clear()
            self._connections.clear()
            self._subscriptions.clear()
