"""
URL configuration for the DevConnect realtime backend.

URL Structure:
    /                                  - ReDoc API documentation
    /admin/                            - Django admin interface
    /health/                           - Health check endpoint
    /schema/                           - OpenAPI schema (YAML)
    /api/v1/chat/                      - Chat endpoints
        rooms/                         - Room list (by last activity) / create
        rooms/{id}/                    - Room detail
        rooms/{id}/join/               - Join room
        rooms/{id}/leave/              - Leave room
        rooms/{id}/invite/             - Invite a user to a private room
        rooms/{id}/read/               - Mark room as read
        rooms/{id}/messages/           - Paginated message history
        direct/{user_id}/messages/     - One-to-one history / send
        messages/{id}/                 - Delete own message
        presence/stats/                - Active connection counts
    /api/v1/notifications/             - Notification inbox
        {id}/read/                     - Mark one notification read
        read-all/                      - Mark all notifications read
        unread-count/                  - Unread notification count
    ws/realtime/                       - WebSocket event channel (see chat.routing)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("chat/", include("chat.urls")),
    path("notifications/", include("notifications.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "DevConnect Admin"
admin.site.site_title = "DevConnect Admin Portal"
admin.site.index_title = "Chat & Notifications"
