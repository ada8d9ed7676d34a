# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, URL routing and the ASGI application (HTTP + websocket).
# =============================================================================
