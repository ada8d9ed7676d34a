"""
Chat application configuration.

This app provides the realtime chat system with:
- Public, private and direct rooms with role-based participants
- Message persistence with reply threading and soft deletion
- The in-process connection registry used for presence and for choosing
  between live delivery and offline notifications
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """
    Configuration for the chat application.

    Attributes:
        registry: The process-wide ConnectionRegistry
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"

    def ready(self):
        from chat.registry import ConnectionRegistry

        self.registry = ConnectionRegistry()
