"""
Custom managers and querysets shared across apps.

Usage:
    class Message(SoftDeleteMixin, BaseModel):
        objects = SoftDeleteManager()  # Excludes deleted by default
        all_objects = models.Manager()  # For admin access

    Message.objects.filter(room=room)          # Active only
    Message.objects.deleted()                  # Deleted only
    Message.objects.filter(room=room).delete() # Soft delete
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class SoftDeleteQuerySet(models.QuerySet):
    """
    QuerySet whose delete() marks rows deleted instead of removing them.

    The default filtering of deleted rows happens in SoftDeleteManager,
    so all_objects can share this QuerySet without filtering.
    """

    def delete(self) -> tuple[int, dict[str, int]]:
        """Soft delete all matching rows, mirroring Django's delete() return shape."""
        count = self.filter(is_deleted=False).update(is_deleted=True, deleted_at=timezone.now())
        return count, {self.model._meta.label: count}

    def hard_delete(self) -> tuple[int, dict[str, int]]:
        return super().delete()

    def restore(self) -> int:
        return self.filter(is_deleted=True).update(is_deleted=False, deleted_at=None)

    def deleted(self) -> SoftDeleteQuerySet:
        return self.filter(is_deleted=True)

    def active(self) -> SoftDeleteQuerySet:
        return self.filter(is_deleted=False)


class SoftDeleteManager(models.Manager):
    """Manager that filters out soft-deleted records by default."""

    def get_queryset(self) -> SoftDeleteQuerySet:
        return SoftDeleteQuerySet(self.model, using=self._db).filter(is_deleted=False)

    def deleted(self) -> SoftDeleteQuerySet:
        return SoftDeleteQuerySet(self.model, using=self._db).filter(is_deleted=True)

    def with_deleted(self) -> SoftDeleteQuerySet:
        return SoftDeleteQuerySet(self.model, using=self._db)
