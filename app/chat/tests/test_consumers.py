"""
End-to-end tests for RealtimeConsumer over an in-memory channel layer.

Each test drives real websocket connections with WebsocketCommunicator
through JWTAuthMiddleware and the URL router, then checks the frames each
client received and the rows that were written.

The async client code runs inside async_to_sync so the tests stay plain
pytest functions; ORM checks happen outside the async block.
"""

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import UserFactory
from chat.middleware import JWTAuthMiddleware
from chat.models import Message, ParticipantRole, RoomParticipant
from chat.routing import websocket_urlpatterns
from chat.tests.factories import ChatRoomFactory
from notifications.models import Notification, NotificationType

pytestmark = pytest.mark.django_db(transaction=True)

application = JWTAuthMiddleware(URLRouter(websocket_urlpatterns))


def token_for(user):
    return str(AccessToken.for_user(user))


def communicator_for(user):
    return WebsocketCommunicator(application, f"/ws/realtime/?token={token_for(user)}")


@pytest.fixture(autouse=True)
def fresh_channel_layer():
    async_to_sync(get_channel_layer().flush)()
    yield
    async_to_sync(get_channel_layer().flush)()


@pytest.fixture
def users():
    return UserFactory(name="Alice"), UserFactory(name="Bob")


@pytest.fixture
def shared_room(users):
    alice, bob = users
    room = ChatRoomFactory(name="general", creator=alice)
    RoomParticipant.objects.create(room=room, user=bob, role=ParticipantRole.MEMBER)
    return room


class TestConnect:
    def test_missing_token_is_closed_4001(self, registry):
        """
        A connection without a token is closed before accept.

        Why it matters: Unauthenticated sockets must never reach the registry.
        """

        async def scenario():
            communicator = WebsocketCommunicator(application, "/ws/realtime/")
            return await communicator.connect()

        connected, code = async_to_sync(scenario)()

        assert connected is False
        assert code == 4001
        assert registry.count() == 0

    def test_invalid_token_is_closed_4001(self, registry):
        async def scenario():
            communicator = WebsocketCommunicator(application, "/ws/realtime/?token=garbage")
            return await communicator.connect()

        connected, code = async_to_sync(scenario)()

        assert connected is False
        assert code == 4001

    def test_subprotocol_token_is_accepted(self, users, registry):
        alice, _ = users
        token = token_for(alice)

        async def scenario():
            communicator = WebsocketCommunicator(
                application, "/ws/realtime/", subprotocols=["jwt", token]
            )
            result = await communicator.connect()
            online = registry.is_online(alice.id)
            await communicator.disconnect()
            return result, online

        (connected, subprotocol), online = async_to_sync(scenario)()

        assert connected is True
        assert subprotocol == "jwt"
        assert online is True
        assert registry.is_online(alice.id) is False


class TestPresence:
    def test_user_online_reaches_other_connections(self, users, registry):
        alice, bob = users

        async def scenario():
            alice_ws = communicator_for(alice)
            bob_ws = communicator_for(bob)
            await alice_ws.connect()
            await bob_ws.connect()

            announced = await alice_ws.receive_json_from()
            own_echo = await bob_ws.receive_nothing()

            await alice_ws.disconnect()
            await bob_ws.disconnect()
            return announced, own_echo

        announced, own_echo = async_to_sync(scenario)()

        assert announced["type"] == "user_online"
        assert announced["user_id"] == bob.id
        assert announced["user_name"] == "Bob"
        assert own_echo is True

    def test_user_offline_sent_once_after_last_connection(self, users, registry):
        """
        Closing one of two tabs is silent; closing the last emits user_offline once.

        Why it matters: Clients would flap presence on every tab close otherwise.
        """
        alice, bob = users

        async def scenario():
            bob_ws = communicator_for(bob)
            await bob_ws.connect()
            first_tab = communicator_for(alice)
            second_tab = communicator_for(alice)
            await first_tab.connect()
            await second_tab.connect()
            # user_online for each of alice's tabs
            await bob_ws.receive_json_from()
            await bob_ws.receive_json_from()

            await first_tab.disconnect()
            silent = await bob_ws.receive_nothing()

            await second_tab.disconnect()
            offline = await bob_ws.receive_json_from()
            nothing_more = await bob_ws.receive_nothing()

            await bob_ws.disconnect()
            return silent, offline, nothing_more

        silent, offline, nothing_more = async_to_sync(scenario)()

        assert silent is True
        assert offline["type"] == "user_offline"
        assert offline["user_id"] == alice.id
        assert nothing_more is True


class TestMessaging:
    def test_live_delivery_to_room(self, users, shared_room, registry):
        """
        Both participants connected and in the room: both see new_message,
        nobody gets a notification.
        """
        alice, bob = users
        room_id = shared_room.id

        async def scenario():
            alice_ws = communicator_for(alice)
            bob_ws = communicator_for(bob)
            await alice_ws.connect()
            await bob_ws.connect()
            await alice_ws.receive_json_from()  # user_online(bob)

            await alice_ws.send_json_to({"type": "join_room", "room_id": room_id})
            alice_joined = await alice_ws.receive_json_from()
            await bob_ws.send_json_to({"type": "join_room", "room_id": room_id})
            bob_joined = await bob_ws.receive_json_from()
            await alice_ws.receive_json_from()  # user_joined_room(bob)

            await alice_ws.send_json_to({"type": "send_message", "room_id": room_id, "content": "hello"})
            alice_copy = await alice_ws.receive_json_from()
            bob_copy = await bob_ws.receive_json_from()

            await alice_ws.disconnect()
            await bob_ws.disconnect()
            return alice_joined, bob_joined, alice_copy, bob_copy

        alice_joined, bob_joined, alice_copy, bob_copy = async_to_sync(scenario)()

        assert alice_joined == {"type": "room_joined", "room_id": room_id, "online_count": 1}
        assert bob_joined == {"type": "room_joined", "room_id": room_id, "online_count": 2}
        assert alice_copy["type"] == bob_copy["type"] == "new_message"
        assert bob_copy["message"]["content"] == "hello"
        assert bob_copy["message"]["sender"]["id"] == alice.id
        assert Message.objects.filter(room_id=room_id).count() == 1
        assert Notification.objects.count() == 0

    def test_offline_participant_gets_one_notification(self, users, shared_room, registry):
        """
        Bob is offline: the message is stored and bob gets exactly one notification.

        Why it matters: This is the only way an offline user learns about the message.
        """
        alice, bob = users
        room_id = shared_room.id

        async def scenario():
            alice_ws = communicator_for(alice)
            await alice_ws.connect()
            await alice_ws.send_json_to({"type": "join_room", "room_id": room_id})
            await alice_ws.receive_json_from()

            await alice_ws.send_json_to({"type": "send_message", "room_id": room_id, "content": "ping"})
            delivered = await alice_ws.receive_json_from()

            # Frames are handled in order; this reply means the send finished
            await alice_ws.send_json_to({"type": "noop"})
            await alice_ws.receive_json_from()

            await alice_ws.disconnect()
            return delivered

        delivered = async_to_sync(scenario)()

        assert delivered["type"] == "new_message"
        [notification] = Notification.objects.all()
        assert notification.recipient_id == bob.id
        assert notification.notification_type == NotificationType.MESSAGE
        assert notification.reference.id == delivered["message"]["id"]

    def test_non_member_gets_error_and_nothing_is_written(self, users, shared_room, registry):
        alice, _ = users
        outsider = UserFactory()
        room_id = shared_room.id

        async def scenario():
            ws = communicator_for(outsider)
            await ws.connect()
            await ws.send_json_to({"type": "send_message", "room_id": room_id, "content": "hi"})
            error = await ws.receive_json_from()
            await ws.disconnect()
            return error

        error = async_to_sync(scenario)()

        assert error["type"] == "error"
        assert error["error_code"] == "NOT_FOUND_OR_FORBIDDEN"
        assert Message.objects.count() == 0
        assert Notification.objects.count() == 0


class TestMalformedFrames:
    def test_bad_frames_get_errors_and_connection_survives(self, users, registry):
        alice, _ = users

        async def scenario():
            ws = communicator_for(alice)
            await ws.connect()
            replies = []

            await ws.send_to(text_data="{not json")
            replies.append(await ws.receive_json_from())
            await ws.send_to(bytes_data=b"\x00\x01")
            replies.append(await ws.receive_json_from())
            await ws.send_json_to({"room_id": 1})
            replies.append(await ws.receive_json_from())
            await ws.send_json_to({"type": "document_edit"})
            replies.append(await ws.receive_json_from())
            await ws.send_json_to({"type": "update_presence", "status": "away"})
            still_open = await ws.receive_nothing()

            await ws.disconnect()
            return replies, still_open

        replies, still_open = async_to_sync(scenario)()

        assert [r["error_code"] for r in replies] == [
            "INVALID_JSON",
            "INVALID_FRAME",
            "INVALID_EVENT",
            "UNKNOWN_EVENT",
        ]
        assert all(r["type"] == "error" for r in replies)
        assert still_open is True
