import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True, db_index=True, help_text="Timestamp when this record was created"
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified"),
                ),
                (
                    "notification_type",
                    models.CharField(
                        choices=[
                            ("follow", "Follow"),
                            ("like", "Like"),
                            ("comment", "Comment"),
                            ("mention", "Mention"),
                            ("project_invite", "Project Invite"),
                            ("message", "Message"),
                        ],
                        db_index=True,
                        help_text="Kind of event this notification reports",
                        max_length=20,
                    ),
                ),
                (
                    "title",
                    models.CharField(blank=True, default="", help_text="Rendered notification title", max_length=200),
                ),
                ("content", models.TextField(help_text="Rendered notification body")),
                (
                    "data",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Arbitrary context data (room and message ids, deep links)",
                    ),
                ),
                (
                    "reference_kind",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("post", "Post"),
                            ("comment", "Comment"),
                            ("project", "Project"),
                            ("message", "Message"),
                        ],
                        help_text="Kind of the referenced entity",
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "reference_id",
                    models.PositiveBigIntegerField(blank=True, help_text="Id of the referenced entity", null=True),
                ),
                (
                    "is_read",
                    models.BooleanField(
                        db_index=True, default=False, help_text="Whether recipient has read this notification"
                    ),
                ),
                (
                    "idempotency_key",
                    models.CharField(
                        blank=True,
                        help_text="Idempotency key to prevent duplicate notifications",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "recipient",
                    models.ForeignKey(
                        help_text="User receiving this notification",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who triggered this notification (optional)",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sent_notifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "notifications_notification",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["recipient", "-created_at"], name="notif_recipient_created_idx"),
                    models.Index(fields=["recipient", "is_read"], name="notif_recipient_unread_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("idempotency_key__isnull", False)),
                        fields=("idempotency_key",),
                        name="notif_idempotency_key_unique",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("reference_id__isnull", True), ("reference_kind__isnull", True)),
                            models.Q(("reference_id__isnull", False), ("reference_kind__isnull", False)),
                            _connector="OR",
                        ),
                        name="notif_reference_complete",
                    ),
                ],
            },
        ),
    ]
