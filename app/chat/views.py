"""
Views for chat API.

ViewSets/Views:
    ChatRoomViewSet: Rooms the user participates in, plus join/leave/invite,
        history and read actions
    DirectMessageView: One-to-one message history and sending
    MessageDetailView: Soft delete of the caller's own message
    PresenceStatsView: Live connection counts from the registry

Error responses:
    Service exceptions are rendered as {"error", "error_code", "details"?}
    with the status carried by the exception (400, 403, 404, 409, 503).
"""

from __future__ import annotations

import logging

from django.apps import apps
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError
from notifications.services import NotificationDispatcher

from chat.constants import MESSAGE_CONFIG
from chat.models import ChatRoom
from chat.serializers import (
    ChatRoomCreateSerializer,
    ChatRoomSerializer,
    DirectMessageCreateSerializer,
    InviteSerializer,
    MessageSerializer,
)
from chat.services import MessageService, RoomService, coerce_id
from chat.transport import send_to_user_sync

logger = logging.getLogger(__name__)


def error_response(error: BaseApplicationError) -> Response:
    return Response(error.to_dict(), status=error.http_status)


def get_registry():
    return apps.get_app_config("chat").registry


def history_response(history) -> Response:
    return Response(
        {
            "results": MessageSerializer(history.messages, many=True).data,
            "pagination": {
                "page": history.page,
                "limit": history.limit,
                "total": history.total,
                "pages": history.pages,
            },
        }
    )


HISTORY_PARAMETERS = [
    OpenApiParameter(name="page", type=int, location=OpenApiParameter.QUERY, required=False),
    OpenApiParameter(
        name="limit",
        type=int,
        location=OpenApiParameter.QUERY,
        required=False,
        description=f"Messages per page (default {MESSAGE_CONFIG.HISTORY_DEFAULT_LIMIT}, "
        f"max {MESSAGE_CONFIG.HISTORY_MAX_LIMIT})",
    ),
]


@extend_schema_view(
    list=extend_schema(
        operation_id="list_chat_rooms",
        summary="List chat rooms",
        description="Rooms the current user participates in, most recently active first.",
        tags=["Chat - Rooms"],
    ),
    retrieve=extend_schema(
        operation_id="get_chat_room",
        summary="Get chat room",
        tags=["Chat - Rooms"],
    ),
)
class ChatRoomViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for chat room operations.

    list:
        Rooms the user participates in, newest activity first.

    create:
        Create a room; the caller becomes its admin.

    join / leave:
        Membership changes. Leave is idempotent.

    invite:
        Invite a user to the room (admins and moderators).

    messages:
        Paginated history, oldest first within a page.

    read:
        Update the caller's last_read_at.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ChatRoomSerializer

    def get_queryset(self):
        if not self.request.user.is_authenticated:
            return ChatRoom.objects.none()
        return RoomService.get_user_rooms(self.request.user).prefetch_related("participants__user")

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["registry"] = get_registry()
        return context

    @extend_schema(
        operation_id="create_chat_room",
        summary="Create chat room",
        request=ChatRoomCreateSerializer,
        responses={201: ChatRoomSerializer},
        tags=["Chat - Rooms"],
    )
    def create(self, request):
        serializer = ChatRoomCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            room = RoomService.create_room(creator=request.user, **serializer.validated_data)
        except BaseApplicationError as e:
            return error_response(e)

        output_serializer = ChatRoomSerializer(room, context=self.get_serializer_context())
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="join_chat_room",
        summary="Join chat room",
        request=None,
        responses={
            200: ChatRoomSerializer,
            403: OpenApiResponse(description="Invitation required, room archived or full"),
            404: OpenApiResponse(description="Room not found"),
            409: OpenApiResponse(description="Already a member"),
        },
        tags=["Chat - Rooms"],
    )
    @action(detail=True, methods=["post"])
    def join(self, request, pk=None):
        try:
            participant = RoomService.join(pk, request.user)
        except BaseApplicationError as e:
            return error_response(e)

        serializer = ChatRoomSerializer(participant.room, context=self.get_serializer_context())
        return Response(serializer.data)

    @extend_schema(
        operation_id="leave_chat_room",
        summary="Leave chat room",
        request=None,
        tags=["Chat - Rooms"],
    )
    @action(detail=True, methods=["post"])
    def leave(self, request, pk=None):
        try:
            left = RoomService.leave(pk, request.user)
        except BaseApplicationError as e:
            return error_response(e)
        return Response({"room_id": int(pk), "left": left})

    @extend_schema(
        operation_id="invite_to_chat_room",
        summary="Invite user to chat room",
        request=InviteSerializer,
        tags=["Chat - Rooms"],
    )
    @action(detail=True, methods=["post"])
    def invite(self, request, pk=None):
        serializer = InviteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            invitation = RoomService.invite(pk, request.user, serializer.validated_data["user_id"])
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {
                "invitation_id": invitation.pk,
                "room_id": invitation.room_id,
                "user_id": invitation.invitee_id,
            },
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="list_chat_room_messages",
        summary="Get room message history",
        parameters=HISTORY_PARAMETERS,
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["get"])
    def messages(self, request, pk=None):
        try:
            history = MessageService.get_history(
                pk,
                request.user,
                page=request.query_params.get("page", 1),
                limit=request.query_params.get("limit", MESSAGE_CONFIG.HISTORY_DEFAULT_LIMIT),
            )
        except BaseApplicationError as e:
            return error_response(e)
        return history_response(history)

    @extend_schema(
        operation_id="mark_chat_room_read",
        summary="Mark room as read",
        request=None,
        tags=["Chat - Rooms"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        try:
            participant = RoomService.mark_read(pk, request.user)
        except BaseApplicationError as e:
            return error_response(e)
        return Response({"status": "read", "last_read_at": participant.last_read_at})


class DirectMessageView(APIView):
    """
    One-to-one messages with another user.

    GET: Paginated conversation history; marks the other user's messages read.
    POST: Send a message. A connected receiver gets `new_message` on their
        user group; an offline receiver gets a `message` notification.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_direct_messages",
        summary="Get direct message history",
        parameters=HISTORY_PARAMETERS,
        tags=["Chat - Messages"],
    )
    def get(self, request, user_id):
        try:
            history = MessageService.get_direct_history(
                request.user,
                user_id,
                page=request.query_params.get("page", 1),
                limit=request.query_params.get("limit", MESSAGE_CONFIG.HISTORY_DEFAULT_LIMIT),
            )
        except BaseApplicationError as e:
            return error_response(e)
        return history_response(history)

    @extend_schema(
        operation_id="send_direct_message",
        summary="Send direct message",
        request=DirectMessageCreateSerializer,
        responses={201: MessageSerializer},
        tags=["Chat - Messages"],
    )
    def post(self, request, user_id):
        serializer = DirectMessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            message = MessageService.send_direct(
                sender=request.user,
                receiver_id=user_id,
                content=serializer.validated_data["content"],
                attachments=serializer.validated_data.get("attachments"),
            )
        except BaseApplicationError as e:
            return error_response(e)

        data = MessageSerializer(message).data
        plan = NotificationDispatcher.dispatch_message(message, [message.receiver_id], get_registry())
        if plan.live:
            send_to_user_sync(message.receiver_id, "new_message", {"message": dict(data)})
            try:
                MessageService.mark_delivered(message)
            except BaseApplicationError:
                # The message is stored and sent; only the flag is stale
                logger.warning(f"Could not mark message {message.pk} delivered", exc_info=True)

        return Response(data, status=status.HTTP_201_CREATED)


class MessageDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        description="Soft delete one of your own messages.",
        responses={204: None},
        tags=["Chat - Messages"],
    )
    def delete(self, request, message_id):
        try:
            MessageService.delete_message(message_id, request.user)
        except BaseApplicationError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PresenceStatsView(APIView):
    """
    Live connection statistics.

    GET ?room_id=<id> additionally reports the connections subscribed to a
    room the caller participates in.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_presence_stats",
        summary="Get presence statistics",
        parameters=[OpenApiParameter(name="room_id", type=int, location=OpenApiParameter.QUERY, required=False)],
        tags=["Chat - Presence"],
    )
    def get(self, request):
        registry = get_registry()
        data = {
            "online_users": registry.count(),
            "connections": registry.connection_count(),
        }

        room_id = request.query_params.get("room_id")
        if room_id is not None:
            try:
                room = RoomService.assert_member(coerce_id(room_id, "room id"), request.user.pk)
            except BaseApplicationError as e:
                return error_response(e)
            data["room_id"] = room.pk
            data["online_in_room"] = registry.count_in_room(room.pk)

        return Response(data)
