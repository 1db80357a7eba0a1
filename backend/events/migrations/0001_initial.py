import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("date", models.DateTimeField(db_index=True)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("category", models.CharField(
                    choices=[
                        ("technology", "Technology"),
                        ("business", "Business"),
                        ("education", "Education"),
                        ("health", "Health"),
                        ("sports", "Sports"),
                        ("entertainment", "Entertainment"),
                        ("food", "Food"),
                        ("travel", "Travel"),
                        ("art", "Art"),
                        ("music", "Music"),
                        ("networking", "Networking"),
                        ("workshop", "Workshop"),
                        ("conference", "Conference"),
                        ("meetup", "Meetup"),
                        ("other", "Other"),
                    ],
                    db_index=True,
                    default="other",
                    max_length=20,
                )),
                ("banner", models.FileField(blank=True, upload_to="event_banners/")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("max_attendees", models.PositiveIntegerField(blank=True, null=True)),
                ("registration_count", models.PositiveIntegerField(default=0)),
                ("is_public", models.BooleanField(default=True)),
                ("is_paid", models.BooleanField(default=False)),
                ("price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("created_by", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_events", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["date"],
                "indexes": [models.Index(fields=["category", "date"], name="events_category_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="Registration",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("display_name", models.CharField(blank=True, max_length=150)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("registered_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("event", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="registrations", to="events.event")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="registrations", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["registered_at"],
                "constraints": [models.UniqueConstraint(fields=("event", "user"), name="uniq_registration_event_user")],
            },
        ),
    ]
