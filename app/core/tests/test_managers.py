"""
Tests for SoftDeleteManager and SoftDeleteQuerySet in core/managers.py.

This module tests:
- Default manager hides soft-deleted rows
- deleted() / with_deleted() manager helpers
- QuerySet delete() soft deletes, hard_delete() removes, restore() revives
"""

import pytest

from chat.models import Message
from chat.tests.factories import ChatRoomFactory, MessageFactory


@pytest.fixture
def messages(db):
    room = ChatRoomFactory()
    return [MessageFactory(room=room, sender=room.creator) for _ in range(3)]


class TestSoftDeleteManagerFiltering:
    def test_objects_excludes_deleted(self, messages):
        """
        The default manager never returns soft-deleted rows.

        Why it matters: History and lookups must not leak deleted messages.
        """
        messages[0].soft_delete()

        assert Message.objects.count() == 2
        assert not Message.objects.filter(pk=messages[0].pk).exists()

    def test_get_raises_for_deleted(self, messages):
        messages[0].soft_delete()

        with pytest.raises(Message.DoesNotExist):
            Message.objects.get(pk=messages[0].pk)

    def test_all_objects_includes_deleted(self, messages):
        messages[0].soft_delete()

        assert Message.all_objects.count() == 3


class TestSoftDeleteManagerMethods:
    def test_deleted_returns_only_deleted(self, messages):
        messages[1].soft_delete()

        assert list(Message.objects.deleted()) == [messages[1]]

    def test_with_deleted_returns_everything(self, messages):
        messages[1].soft_delete()

        assert Message.objects.with_deleted().count() == 3


class TestSoftDeleteQuerySet:
    def test_delete_soft_deletes(self, messages):
        count, _ = Message.objects.filter(pk__in=[m.pk for m in messages[:2]]).delete()

        assert count == 2
        assert Message.objects.count() == 1
        assert Message.all_objects.filter(is_deleted=True, deleted_at__isnull=False).count() == 2

    def test_hard_delete_removes_rows(self, messages):
        Message.objects.filter(pk=messages[0].pk).hard_delete()

        assert Message.all_objects.count() == 2

    def test_restore_makes_rows_visible(self, messages):
        Message.objects.all().delete()

        restored = Message.objects.deleted().restore()

        assert restored == 3
        assert Message.objects.count() == 3

    def test_active_filter(self, messages):
        messages[0].soft_delete()

        assert Message.objects.with_deleted().active().count() == 2
