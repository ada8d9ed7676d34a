"""
Constants and configuration for chat module features.

This module centralizes configuration values for:
- Message operations (content limits, history paging)
- Room defaults (name/description limits, member cap)
- Realtime channel naming and close codes

Import example:
    from chat.constants import MESSAGE_CONFIG, ROOM_CONFIG, REALTIME_CONFIG
"""

from typing import Final


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits
    MAX_CONTENT_LENGTH: Final[int] = 10000  # Characters
    MAX_ATTACHMENTS_PER_MESSAGE: Final[int] = 10

    # History paging (GET rooms/{id}/messages/?page=&limit=)
    HISTORY_DEFAULT_LIMIT: Final[int] = 50
    HISTORY_MAX_LIMIT: Final[int] = 100


# =============================================================================
# Room Configuration
# =============================================================================


class ROOM_CONFIG:
    """Configuration for chat rooms. DEFAULT_MAX_MEMBERS is overridable in settings."""

    MAX_NAME_LENGTH: Final[int] = 100
    MAX_DESCRIPTION_LENGTH: Final[int] = 500
    MAX_TAGS: Final[int] = 20
    DEFAULT_MAX_MEMBERS: Final[int] = 100


# =============================================================================
# Realtime Configuration
# =============================================================================


class REALTIME_CONFIG:
    """Channel-layer group names and websocket close codes."""

    # Group name prefixes (group names must be ASCII alphanumerics, -, _ or .)
    ROOM_GROUP_PREFIX: Final[str] = "room_"
    USER_GROUP_PREFIX: Final[str] = "user_"
    PROJECT_GROUP_PREFIX: Final[str] = "project_"
    PRESENCE_GROUP: Final[str] = "presence"

    # Close codes (4000-4999 are application-defined)
    CLOSE_UNAUTHENTICATED: Final[int] = 4001

    # Statuses accepted by update_presence
    PRESENCE_STATUSES: Final[tuple] = ("online", "away", "busy", "offline")
    DEFAULT_PRESENCE_STATUS: Final[str] = "online"
