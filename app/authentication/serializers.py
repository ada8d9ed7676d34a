"""
Serializers for authentication models.

Related files:
    - models.py: User model
    - chat/serializers.py: Embeds UserSummarySerializer as message sender
    - chat/handlers.py: Identity snapshot attached to realtime events
"""

from rest_framework import serializers

from authentication.models import User


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model (read operations)."""

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "name",
            "avatar",
            "date_joined",
        ]
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    """
    Public identity fields shown to other users.

    Used for message senders, room participants and presence events; the
    email address is never exposed here.
    """

    name = serializers.CharField(source="display_name", read_only=True)

    class Meta:
        model = User
        fields = ["id", "name", "avatar"]
        read_only_fields = fields
