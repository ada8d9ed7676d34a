"""Fixtures for notification tests."""

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import UserFactory


@pytest.fixture
def user(db):
    return UserFactory(name="Bob")


@pytest.fixture
def other_user(db):
    return UserFactory(name="Mallory")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def authenticated_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client
