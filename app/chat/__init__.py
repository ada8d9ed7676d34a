"""
Chat app for real-time messaging and presence.

This app handles:
- Rooms (public, private and direct) and their participants
- Message sending, history and soft deletion
- WebSocket real-time updates (messages, typing, presence, posts, projects)
- The in-process connection registry used for presence

Related apps:
    - authentication: User model for participants
    - notifications: Offline message notifications

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for the websocket consumer, handlers.py for the event
    handlers and routing.py for the websocket URL pattern.

Usage:
    from chat.services import MessageService, RoomService

    # Create a room
    room = RoomService.create_room(creator=user, name="general")

    # Send a message
    message = MessageService.submit(sender=user, room_id=room.id, content="Hello!")
"""
