"""
URL configuration for chat API.

URL Structure:
    Rooms:
        /rooms/                     GET, POST
        /rooms/{id}/                GET
        /rooms/{id}/join/           POST
        /rooms/{id}/leave/          POST
        /rooms/{id}/invite/         POST
        /rooms/{id}/messages/       GET
        /rooms/{id}/read/           POST

    Direct messages:
        /direct/{user_id}/messages/ GET, POST

    Messages:
        /messages/{message_id}/     DELETE

    Presence:
        /presence/stats/            GET

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import path
from rest_framework.routers import DefaultRouter

from chat.views import (
    ChatRoomViewSet,
    DirectMessageView,
    MessageDetailView,
    PresenceStatsView,
)

router = DefaultRouter()
router.register(r"rooms", ChatRoomViewSet, basename="room")

app_name = "chat"

urlpatterns = router.urls + [
    path("direct/<int:user_id>/messages/", DirectMessageView.as_view(), name="direct-messages"),
    path("messages/<int:message_id>/", MessageDetailView.as_view(), name="message-detail"),
    path("presence/stats/", PresenceStatsView.as_view(), name="presence-stats"),
]
