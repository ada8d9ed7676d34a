"""
Tests for websocket JWT authentication.

Covers token extraction from the handshake and verification of the token
into an active user.
"""

from datetime import timedelta

import pytest
from asgiref.sync import async_to_sync
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import UserFactory
from chat.middleware import (
    get_token_from_query,
    get_token_from_subprotocol,
    get_user_for_token,
    verify_token,
)
from core.exceptions import UnauthenticatedError


def token_for(user, lifetime=None):
    token = AccessToken.for_user(user)
    if lifetime is not None:
        token.set_exp(lifetime=lifetime)
    return str(token)


class TestTokenExtraction:
    def test_query_string(self):
        scope = {"query_string": b"token=abc.def&other=1"}

        assert get_token_from_query(scope) == "abc.def"

    def test_missing_query_token(self):
        assert get_token_from_query({"query_string": b""}) is None
        assert get_token_from_query({}) is None

    def test_subprotocol_pair(self):
        assert get_token_from_subprotocol({"subprotocols": ["jwt", "abc.def"]}) == "abc.def"

    @pytest.mark.parametrize("subprotocols", [[], ["jwt"], ["graphql-ws", "abc"]])
    def test_other_subprotocols_ignored(self, subprotocols):
        assert get_token_from_subprotocol({"subprotocols": subprotocols}) is None


class TestVerifyToken:
    def test_valid_token_returns_user(self, alice):
        assert verify_token(token_for(alice)) == alice

    def test_garbage_token(self, db):
        """
        A token that does not parse is rejected.

        Why it matters: Only a verified identity may register a connection.
        """
        with pytest.raises(UnauthenticatedError) as exc_info:
            verify_token("not-a-jwt")

        assert exc_info.value.error_code == "INVALID_TOKEN"

    def test_expired_token(self, alice):
        with pytest.raises(UnauthenticatedError) as exc_info:
            verify_token(token_for(alice, lifetime=-timedelta(minutes=1)))

        assert exc_info.value.error_code == "INVALID_TOKEN"

    def test_deleted_user(self, db):
        user = UserFactory()
        token = token_for(user)
        user.delete()

        with pytest.raises(UnauthenticatedError) as exc_info:
            verify_token(token)

        assert exc_info.value.error_code == "USER_NOT_FOUND"

    def test_inactive_user(self, db):
        user = UserFactory(is_active=False)

        with pytest.raises(UnauthenticatedError) as exc_info:
            verify_token(token_for(user))

        assert exc_info.value.error_code == "USER_INACTIVE"


@pytest.mark.django_db(transaction=True)
class TestGetUserForToken:
    def test_valid_token(self):
        user = UserFactory()

        assert async_to_sync(get_user_for_token)(token_for(user)) == user

    def test_invalid_token_is_anonymous(self):
        result = async_to_sync(get_user_for_token)("not-a-jwt")

        assert isinstance(result, AnonymousUser)
