"""
Tests for ConnectionRegistry.

The registry is pure in-process state, so these tests need no database.

Test Organization:
    - Registration and presence lookups
    - Offline transition reporting (gates the single user_offline broadcast)
    - Room subscriptions and counts
    - Presence status
"""

import threading

import pytest

from chat.registry import ConnectionRegistry


@pytest.fixture
def registry():
    return ConnectionRegistry()


class TestRegister:
    def test_registered_user_is_online(self, registry):
        """
        A registered user is reported online with their identity.

        Why it matters: The dispatcher uses is_online to choose between live
        delivery and a persisted notification.
        """
        record = registry.register(1, "conn-a", identity={"name": "Alice"})

        assert registry.is_online(1) is True
        assert registry.get(1) == record
        assert record.identity == {"name": "Alice"}
        assert record.status == "online"

    def test_unknown_user_is_offline(self, registry):
        assert registry.is_online(42) is False
        assert registry.get(42) is None

    def test_last_registration_wins(self, registry):
        """The newest connection becomes the user's presence record."""
        registry.register(1, "conn-a")
        registry.register(1, "conn-b")

        assert registry.get(1).connection_id == "conn-b"
        assert registry.count() == 1
        assert registry.connection_count() == 2

    def test_new_connection_keeps_previous_status(self, registry):
        registry.register(1, "conn-a")
        registry.set_status(1, "busy")

        record = registry.register(1, "conn-b")

        assert record.status == "busy"

    def test_count_is_distinct_users(self, registry):
        registry.register(1, "conn-a")
        registry.register(1, "conn-b")
        registry.register(2, "conn-c")

        assert registry.count() == 2
        assert registry.online_user_ids() == {1, 2}


class TestUnregister:
    def test_last_connection_reports_offline_transition(self, registry):
        """
        Removing the only connection returns True exactly once.

        Why it matters: The disconnect handler broadcasts user_offline only
        when unregister returns True.
        """
        registry.register(1, "conn-a")

        assert registry.unregister(1, "conn-a") is True
        assert registry.is_online(1) is False
        assert registry.unregister(1, "conn-a") is False

    def test_unknown_user_is_noop(self, registry):
        assert registry.unregister(99) is False
        assert registry.unregister(99, "conn-x") is False

    def test_unknown_connection_is_noop(self, registry):
        registry.register(1, "conn-a")

        assert registry.unregister(1, "conn-other") is False
        assert registry.is_online(1) is True

    def test_user_stays_online_while_another_connection_remains(self, registry):
        """
        Closing one of two tabs keeps the user online.

        Why it matters: Otherwise the user would be marked offline and
        start receiving notifications while still connected.
        """
        registry.register(1, "conn-a")
        registry.register(1, "conn-b")

        assert registry.unregister(1, "conn-b") is False
        assert registry.is_online(1) is True
        # Presence re-points at the remaining connection
        assert registry.get(1).connection_id == "conn-a"

        assert registry.unregister(1, "conn-a") is True
        assert registry.is_online(1) is False

    def test_unregister_without_connection_removes_all(self, registry):
        registry.register(1, "conn-a")
        registry.register(1, "conn-b")
        registry.subscribe("conn-a", 5)

        assert registry.unregister(1) is True
        assert registry.connection_count() == 0
        assert registry.count_in_room(5) == 0

    def test_concurrent_unregister_reports_offline_once(self, registry):
        """Only one of many racing unregister calls sees the transition."""
        registry.register(1, "conn-a")
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(registry.unregister(1, "conn-a"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1


class TestSubscriptions:
    def test_count_in_room_counts_subscribed_connections(self, registry):
        registry.register(1, "conn-a")
        registry.register(2, "conn-b")
        registry.register(2, "conn-c")
        registry.subscribe("conn-a", 7)
        registry.subscribe("conn-b", 7)
        registry.subscribe("conn-c", 8)

        assert registry.count_in_room(7) == 2
        assert registry.count_in_room(8) == 1
        assert registry.count_in_room(9) == 0

    def test_is_subscribed_checks_any_connection_of_the_user(self, registry):
        registry.register(2, "conn-b")
        registry.register(2, "conn-c")
        registry.subscribe("conn-c", 7)

        assert registry.is_subscribed(2, 7) is True
        assert registry.is_subscribed(2, 8) is False

    def test_unsubscribe(self, registry):
        registry.register(1, "conn-a")
        registry.subscribe("conn-a", 7)

        registry.unsubscribe("conn-a", 7)

        assert registry.rooms_for("conn-a") == set()
        assert registry.is_subscribed(1, 7) is False

    def test_subscribe_ignores_unregistered_connection(self, registry):
        registry.subscribe("ghost", 7)

        assert registry.count_in_room(7) == 0

    def test_unregister_drops_subscriptions(self, registry):
        registry.register(1, "conn-a")
        registry.subscribe("conn-a", 7)

        registry.unregister(1, "conn-a")

        assert registry.rooms_for("conn-a") == set()
        assert registry.count_in_room(7) == 0


class TestStatus:
    def test_set_status_updates_presence(self, registry):
        registry.register(1, "conn-a")

        assert registry.set_status(1, "away") is True
        assert registry.get(1).status == "away"

    def test_set_status_for_offline_user_returns_false(self, registry):
        assert registry.set_status(1, "away") is False

    def test_clear_empties_everything(self, registry):
        registry.register(1, "conn-a")
        registry.subscribe("conn-a", 7)

        registry.clear()

        assert registry.count() == 0
        assert registry.connection_count() == 0
        assert registry.count_in_room(7) == 0
