"""
Application exception hierarchy shared by the REST and realtime surfaces.

Every domain failure raised by a service is a BaseApplicationError subclass
carrying a human message, a machine-readable error code and optional details.
The websocket consumer converts these into ``error`` events addressed to the
originating connection; DRF views convert them into HTTP responses through
``http_status``.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed or empty input
    ├── NotFoundError - Resource does not exist
    │   └── NotFoundOrForbiddenError - Missing OR not visible to the caller
    ├── PermissionDeniedError - Caller may not perform the operation
    ├── UnauthenticatedError - No verified identity
    ├── ConflictError - Operation conflicts with current state
    │   └── AlreadyMemberError - Join on a room the user already belongs to
    └── ExternalServiceError - A collaborator failed
        └── DependencyFailureError - Persistent store unavailable

Usage:
    from core.exceptions import NotFoundOrForbiddenError

    if not RoomParticipant.objects.filter(room_id=room_id, user_id=user_id).exists():
        raise NotFoundOrForbiddenError()

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, ids, etc.)
        http_status: Status code used when surfaced through the REST API
    """

    default_error_code: str = "APPLICATION_ERROR"
    default_message: str = "An application error occurred"
    http_status: int = 400

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Room not found",
                "error_code": "ROOM_NOT_FOUND",
                "details": {"room_id": 12}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for empty or oversized message content, blank room names and
    unknown event payload shapes. DRF serializers keep their own validation.
    """

    default_error_code: str = "VALIDATION_ERROR"
    default_message: str = "Invalid input"


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource does not exist."""

    default_error_code: str = "NOT_FOUND"
    default_message: str = "Resource not found"
    http_status: int = 404


class NotFoundOrForbiddenError(NotFoundError):
    """
    Raised when a resource is missing or the caller is not allowed to see it.

    The two cases share one message and one error code so that a caller
    cannot probe for the existence of rooms they do not belong to.
    """

    default_error_code: str = "NOT_FOUND_OR_FORBIDDEN"
    default_message: str = "Chat room not found or access denied"


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when a user lacks permission for an operation.

    Example:
        if room.room_type != RoomType.PUBLIC and not invited:
            raise PermissionDeniedError(
                "Cannot join private room without invitation",
                error_code="INVITATION_REQUIRED",
            )
    """

    default_error_code: str = "PERMISSION_DENIED"
    default_message: str = "Permission denied"
    http_status: int = 403


class UnauthenticatedError(BaseApplicationError):
    """Raised when a connection or request carries no verifiable identity."""

    default_error_code: str = "UNAUTHENTICATED"
    default_message: str = "Authentication required"
    http_status: int = 401


class ConflictError(BaseApplicationError):
    """Raised when an operation conflicts with current resource state."""

    default_error_code: str = "CONFLICT"
    default_message: str = "Conflict with current state"
    http_status: int = 409


class AlreadyMemberError(ConflictError):
    """Raised when a user joins a room they already participate in."""

    default_error_code: str = "ALREADY_MEMBER"
    default_message: str = "Already a member of this room"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when a collaborator (database, channel layer) call fails.

    Note:
        Log the original error for debugging but don't expose
        internal details to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    default_message: str = "A dependent service failed"
    http_status: int = 502


class DependencyFailureError(ExternalServiceError):
    """Raised when the persistent store rejects or fails a write or read."""

    default_error_code: str = "DEPENDENCY_FAILURE"
    default_message: str = "Storage is temporarily unavailable"
    http_status: int = 503
