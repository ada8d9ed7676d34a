"""
Factory Boy factories for notification models.

Usage:
    from notifications.tests.factories import NotificationFactory

    # Create an unread notification for a user
    notification = NotificationFactory(recipient=user)

    # Create a read follow notification
    notification = NotificationFactory(
        recipient=user,
        notification_type=NotificationType.FOLLOW,
        is_read=True,
    )
"""

import factory

from authentication.tests.factories import UserFactory
from notifications.models import Notification, NotificationType


class NotificationFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Notification

    recipient = factory.SubFactory(UserFactory)
    sender = factory.SubFactory(UserFactory)
    notification_type = NotificationType.MESSAGE
    title = factory.Sequence(lambda n: f"Notification {n}")
    content = factory.Faker("sentence")
    data = factory.LazyFunction(dict)
    is_read = False
