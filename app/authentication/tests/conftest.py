"""Fixtures for authentication tests."""

import pytest
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import UserFactory


@pytest.fixture
def user(db):
    return UserFactory(name="Ada Lovelace")


@pytest.fixture
def access_token(user):
    """A valid JWT access token string for `user`."""
    return str(AccessToken.for_user(user))
