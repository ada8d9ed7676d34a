"""
Tests for chat app.

This package contains test modules for:
- test_models.py: ChatRoom, RoomParticipant, RoomInvitation, Message model tests
- test_services.py: RoomService and MessageService tests
- test_registry.py: ConnectionRegistry tests
- test_handlers.py: Realtime event handler tests (effects, notifications)
- test_consumers.py: WebSocket consumer tests
- test_middleware.py: JWT handshake authentication tests
- test_views.py: REST API endpoint tests

Usage:
    pytest chat/tests/
    pytest chat/tests/test_consumers.py
"""
