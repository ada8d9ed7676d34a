"""
Tests for authentication app.

This package contains test modules for:
- test_managers.py: UserManager tests
- test_serializers.py: User serializer tests

Usage:
    pytest authentication/tests/
"""
