"""
Test configuration and fixtures for chat tests.

This module provides:
- Named users (alice, bob, carol)
- A public room with alice as admin and bob as member
- Connection contexts for driving the realtime handlers without a transport
- API client helpers for authenticated requests

Usage:
    def test_example(room, alice_client):
        response = alice_client.get(f"/api/v1/chat/rooms/{room.id}/")
        assert response.status_code == 200
"""

import itertools

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import UserFactory
from chat.handlers import ConnectionContext, GroupChange, handle_connect, handle_join_room
from chat.models import ParticipantRole, RoomParticipant
from chat.tests.factories import ChatRoomFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice(db):
    return UserFactory(name="Alice")


@pytest.fixture
def bob(db):
    return UserFactory(name="Bob")


@pytest.fixture
def carol(db):
    return UserFactory(name="Carol")


# =============================================================================
# Room Fixtures
# =============================================================================


@pytest.fixture
def room(db, alice, bob):
    """Public room R with participants [alice (admin), bob (member)]."""
    room = ChatRoomFactory(name="general", creator=alice)
    RoomParticipant.objects.create(room=room, user=bob, role=ParticipantRole.MEMBER)
    return room


# =============================================================================
# Realtime Fixtures
# =============================================================================


@pytest.fixture
def make_context(registry):
    """
    Build a ConnectionContext for a user, optionally registering it.

    Usage:
        ctx = make_context(alice)                  # connected
        ctx = make_context(bob, connected=False)   # not in the registry
    """
    counter = itertools.count(1)

    def _make(user, connected=True):
        ctx = ConnectionContext(
            user=user,
            connection_id=f"test.connection!{next(counter)}",
            registry=registry,
        )
        if connected:
            handle_connect(ctx)
        return ctx

    return _make


@pytest.fixture
def join_room():
    """
    Run join_room and apply its group changes the way the consumer does,
    so the registry records the subscription.

    Usage:
        effects = join_room(ctx, room.id)
    """

    def _join(ctx, room_id):
        effects = handle_join_room(ctx, {"room_id": room_id})
        for effect in effects:
            if isinstance(effect, GroupChange) and effect.on_applied is not None:
                effect.on_applied()
        return effects

    return _join


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def alice_client(alice):
    client = APIClient()
    client.force_authenticate(user=alice)
    return client


@pytest.fixture
def bob_client(bob):
    client = APIClient()
    client.force_authenticate(user=bob)
    return client


@pytest.fixture
def carol_client(carol):
    client = APIClient()
    client.force_authenticate(user=carol)
    return client
