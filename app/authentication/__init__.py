"""
Authentication application.

Provides the email-identified User model that chat rooms, messages and
notifications reference. JWT verification for websocket handshakes lives in
chat.middleware; REST requests use simplejwt's JWTAuthentication.

Usage:
    from authentication.models import User
"""
