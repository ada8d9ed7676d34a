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
            name="ChatRoom",
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
                ("name", models.CharField(help_text="Room display name", max_length=100)),
                (
                    "description",
                    models.CharField(blank=True, default="", help_text="Optional room description", max_length=500),
                ),
                (
                    "room_type",
                    models.CharField(
                        choices=[("public", "Public"), ("private", "Private"), ("direct", "Direct")],
                        db_index=True,
                        default="public",
                        help_text="Room visibility (public, private or direct)",
                        max_length=10,
                    ),
                ),
                (
                    "last_activity_at",
                    models.DateTimeField(
                        blank=True,
                        db_index=True,
                        help_text="Timestamp of the most recent message (never moves backward)",
                        null=True,
                    ),
                ),
                (
                    "allow_uploads",
                    models.BooleanField(default=True, help_text="Whether participants may post attachments"),
                ),
                (
                    "max_members",
                    models.PositiveIntegerField(default=100, help_text="Maximum number of participants"),
                ),
                (
                    "is_archived",
                    models.BooleanField(default=False, help_text="Archived rooms accept no new members"),
                ),
                ("tags", models.JSONField(blank=True, default=list, help_text="List of free-form labels")),
                (
                    "creator",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who created this room",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_rooms",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_room",
                "ordering": ["-last_activity_at", "-created_at"],
                "indexes": [models.Index(fields=["-last_activity_at"], name="chat_room_last_activity_idx")],
            },
        ),
        migrations.CreateModel(
            name="Message",
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
                    "is_deleted",
                    models.BooleanField(
                        db_index=True, default=False, help_text="Whether this record has been soft deleted"
                    ),
                ),
                (
                    "deleted_at",
                    models.DateTimeField(
                        blank=True, help_text="Timestamp when this record was soft deleted", null=True
                    ),
                ),
                ("content", models.TextField(help_text="Message text")),
                (
                    "message_type",
                    models.CharField(
                        choices=[("text", "Text"), ("image", "Image"), ("file", "File"), ("code", "Code")],
                        default="text",
                        help_text="Type of message content",
                        max_length=10,
                    ),
                ),
                ("attachments", models.JSONField(blank=True, default=list, help_text="List of attachment URLs")),
                (
                    "is_read",
                    models.BooleanField(default=False, help_text="Whether the receiver has read this message"),
                ),
                (
                    "is_delivered",
                    models.BooleanField(default=False, help_text="Whether a live connection received this message"),
                ),
                (
                    "receiver",
                    models.ForeignKey(
                        blank=True,
                        help_text="Recipient of a one-to-one message",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="received_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "reply_to",
                    models.ForeignKey(
                        blank=True,
                        help_text="Message this one replies to",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="replies",
                        to="chat.message",
                    ),
                ),
                (
                    "room",
                    models.ForeignKey(
                        blank=True,
                        help_text="Room this message was posted to",
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="chat.chatroom",
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        help_text="User who sent this message",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sent_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_message",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["room", "created_at", "id"], name="chat_msg_room_created_idx"),
                    models.Index(fields=["sender", "receiver", "-created_at"], name="chat_msg_direct_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("room__isnull", False), ("receiver__isnull", False), _connector="OR"),
                        name="chat_message_has_target",
                    ),
                ],
            },
        ),
        migrations.AddField(
            model_name="chatroom",
            name="last_message",
            field=models.ForeignKey(
                blank=True,
                help_text="Most recent message posted to the room",
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="chat.message",
            ),
        ),
        migrations.CreateModel(
            name="RoomParticipant",
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
                    "role",
                    models.CharField(
                        choices=[("admin", "Admin"), ("moderator", "Moderator"), ("member", "Member")],
                        default="member",
                        help_text="Role within the room",
                        max_length=10,
                    ),
                ),
                ("joined_at", models.DateTimeField(auto_now_add=True, help_text="When the user joined this room")),
                (
                    "last_read_at",
                    models.DateTimeField(blank=True, help_text="Last time user marked the room as read", null=True),
                ),
                (
                    "room",
                    models.ForeignKey(
                        help_text="Room this membership belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="participants",
                        to="chat.chatroom",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Participating user",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="room_participations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_room_participant",
                "ordering": ["joined_at", "id"],
                "indexes": [models.Index(fields=["user", "-joined_at"], name="chat_part_user_joined_idx")],
                "constraints": [models.UniqueConstraint(fields=("room", "user"), name="unique_room_participant")],
            },
        ),
        migrations.CreateModel(
            name="RoomInvitation",
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
                    "accepted_at",
                    models.DateTimeField(blank=True, help_text="When the invitee joined (null while pending)", null=True),
                ),
                (
                    "invited_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who issued the invitation",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sent_room_invitations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "invitee",
                    models.ForeignKey(
                        help_text="Invited user",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="room_invitations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "room",
                    models.ForeignKey(
                        help_text="Room the invitation is for",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="invitations",
                        to="chat.chatroom",
                    ),
                ),
            ],
            options={
                "db_table": "chat_room_invitation",
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("accepted_at__isnull", True)),
                        fields=("room", "invitee"),
                        name="unique_pending_room_invitation",
                    )
                ],
            },
        ),
    ]
