"""
Notifications app for persisted, per-user notifications.

This app provides:
- Notification model with a tagged (kind, id) reference to the entity it
  is about
- NotificationService for creation and read status management
- NotificationDispatcher, which decides per message recipient between live
  delivery and a persisted notification
- REST API for listing and managing notifications

Usage:
    from notifications.services import NotificationService

    result = NotificationService.create_notification(
        recipient=user,
        notification_type=NotificationType.FOLLOW,
        title="New follower",
        content=f"{follower.display_name} started following you",
        sender=follower,
    )

    if result.success:
        notification = result.data
"""
