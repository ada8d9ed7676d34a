"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the chat and notifications apps.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Managers (import from core.managers):
    - SoftDeleteManager / SoftDeleteQuerySet

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError and its subclasses

Note:
    Models, mixins and managers are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

from .exceptions import (
    AlreadyMemberError,
    BaseApplicationError,
    ConflictError,
    DependencyFailureError,
    ExternalServiceError,
    NotFoundError,
    NotFoundOrForbiddenError,
    PermissionDeniedError,
    UnauthenticatedError,
    ValidationError,
)
from .services import BaseService, ServiceResult

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "NotFoundOrForbiddenError",
    "PermissionDeniedError",
    "UnauthenticatedError",
    "ConflictError",
    "AlreadyMemberError",
    "ExternalServiceError",
    "DependencyFailureError",
]
