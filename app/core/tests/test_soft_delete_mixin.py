"""
Tests for SoftDeleteMixin in core/model_mixins.py.

This module tests:
- soft_delete() method sets is_deleted and deleted_at
- restore() method clears is_deleted and deleted_at
- hard_delete() permanently removes the record

Message is the soft-deletable model used throughout.
"""

import pytest
from django.utils import timezone

from chat.models import Message
from chat.tests.factories import MessageFactory


@pytest.fixture
def message(db):
    return MessageFactory(content="original text")


# =============================================================================
# soft_delete() Tests
# =============================================================================


class TestSoftDelete:
    def test_soft_delete_sets_flag_and_timestamp(self, message):
        before = timezone.now()

        message.soft_delete()

        assert message.is_deleted is True
        assert message.deleted_at is not None
        assert message.deleted_at >= before

    def test_soft_delete_persists_to_database(self, message):
        """
        Soft delete writes through to the row.

        Why it matters: The flag must survive a reload, not just live on the instance.
        """
        message.soft_delete()

        row = Message.all_objects.get(pk=message.pk)
        assert row.is_deleted is True
        assert row.deleted_at is not None

    def test_soft_delete_keeps_content(self, message):
        """
        The stored content is untouched; only the display content changes.

        Why it matters: Replies keep pointing at a real row.
        """
        message.soft_delete()

        row = Message.all_objects.get(pk=message.pk)
        assert row.content == "original text"
        assert row.get_display_content() == "[Message deleted]"


class TestRestore:
    def test_restore_clears_flag_and_timestamp(self, message):
        message.soft_delete()

        message.restore()

        row = Message.objects.get(pk=message.pk)
        assert row.is_deleted is False
        assert row.deleted_at is None
        assert row.get_display_content() == "original text"


class TestHardDelete:
    def test_hard_delete_removes_row(self, message):
        message.hard_delete()

        assert not Message.all_objects.filter(pk=message.pk).exists()

    def test_hard_delete_works_on_soft_deleted_record(self, message):
        message.soft_delete()

        message.hard_delete()

        assert not Message.all_objects.filter(pk=message.pk).exists()
