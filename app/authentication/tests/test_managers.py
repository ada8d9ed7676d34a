"""
Tests for UserManager.

The UserManager provides:
- create_user(): Creates regular users with optional password
- create_superuser(): Creates admin users with elevated privileges

Related files:
    - managers.py: Implementation under test
    - models.py: User model that uses this manager
"""

import pytest

from authentication.models import User


class TestUserManagerCreateUser:
    """Tests for UserManager.create_user() method."""

    def test_creates_user_with_email_and_password(self, db):
        """
        Given valid email and password
        When create_user is called
        Then a user is created with those credentials
        """
        user = User.objects.create_user(email="ada@example.com", password="SecurePass123!")

        assert user.pk is not None
        assert user.email == "ada@example.com"
        assert user.check_password("SecurePass123!") is True

    def test_normalizes_email_domain_to_lowercase(self, db):
        user = User.objects.create_user(email="Test.User@EXAMPLE.COM", password="TestPass123!")

        assert user.email == "Test.User@example.com"

    @pytest.mark.parametrize("email", ["", None])
    def test_raises_valueerror_without_email(self, db, email):
        with pytest.raises(ValueError) as exc_info:
            User.objects.create_user(email=email, password="TestPass123!")

        assert "Email field must be set" in str(exc_info.value)

    def test_without_password_sets_unusable_password(self, db):
        """
        Given no password
        When create_user is called
        Then the user cannot log in with a password

        Why it matters: Accounts provisioned by the identity service never
        get a local password.
        """
        user = User.objects.create_user(email="sso@example.com")

        assert user.has_usable_password() is False

    def test_sets_default_flags_for_regular_user(self, db):
        user = User.objects.create_user(email="regular@example.com", password="TestPass123!")

        assert user.is_active is True
        assert user.is_staff is False
        assert user.is_superuser is False

    def test_profile_fields_are_passed_to_model(self, db):
        user = User.objects.create_user(
            email="grace@example.com",
            name="Grace Hopper",
            avatar="https://cdn.example.com/grace.png",
        )

        assert user.name == "Grace Hopper"
        assert user.avatar == "https://cdn.example.com/grace.png"
        assert user.display_name == "Grace Hopper"


class TestUserManagerCreateSuperuser:
    def test_creates_superuser_with_correct_flags(self, db):
        admin = User.objects.create_superuser(email="admin@example.com", password="AdminPass123!")

        assert admin.is_staff is True
        assert admin.is_superuser is True
        assert admin.check_password("AdminPass123!") is True

    @pytest.mark.parametrize("flag", ["is_staff", "is_superuser"])
    def test_raises_valueerror_when_flag_is_false(self, db, flag):
        with pytest.raises(ValueError) as exc_info:
            User.objects.create_superuser(email="admin@example.com", password="pw", **{flag: False})

        assert f"{flag}=True" in str(exc_info.value)


class TestUserDisplayName:
    def test_falls_back_to_email_local_part(self, db):
        user = User.objects.create_user(email="linus@example.com")

        assert user.display_name == "linus"
        assert str(user) == "linus@example.com"
