"""
Tests for user serializers.

UserSummarySerializer is the identity block embedded in chat messages and
notifications; UserSerializer is the full read-only profile.
"""

from authentication.serializers import UserSerializer, UserSummarySerializer


class TestUserSummarySerializer:
    def test_shape(self, user):
        data = UserSummarySerializer(user).data

        assert data == {"id": user.id, "name": "Ada Lovelace", "avatar": ""}

    def test_name_falls_back_to_email(self, user):
        user.name = ""

        assert UserSummarySerializer(user).data["name"] == user.email.split("@")[0]


class TestUserSerializer:
    def test_fields(self, user):
        data = UserSerializer(user).data

        assert set(data) == {"id", "email", "name", "avatar", "date_joined"}
        assert data["email"] == user.email
