"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/realtime/ - The single realtime connection per client tab

Authentication:
    JWT token should be passed as query parameter: ?token=<jwt_access_token>
    or as the subprotocol pair ["jwt", <token>]. JWTAuthMiddleware validates
    it and attaches the user to the consumer's scope.
"""

from django.apps import apps
from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path(
        "ws/realtime/",
        consumers.RealtimeConsumer.as_asgi(registry=apps.get_app_config("chat").registry),
    ),
]
