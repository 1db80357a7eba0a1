from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="EventMirror",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_id", models.UUIDField(unique=True)),
                ("title", models.CharField(max_length=200)),
                ("date", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("category", models.CharField(blank=True, max_length=20)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("max_attendees", models.PositiveIntegerField(blank=True, null=True)),
                ("registration_count", models.PositiveIntegerField(default=0)),
                ("data", models.JSONField(default=dict)),
                ("synced_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["date"],
            },
        ),
        migrations.CreateModel(
            name="RegistrationMirror",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_id", models.UUIDField(db_index=True)),
                ("user_id", models.UUIDField()),
                ("display_name", models.CharField(blank=True, max_length=150)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("registered_at", models.DateTimeField(blank=True, null=True)),
                ("synced_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["registered_at"],
            },
        ),
        migrations.AddConstraint(
            model_name="registrationmirror",
            constraint=models.UniqueConstraint(fields=("event_id", "user_id"), name="uniq_mirror_registration_event_user"),
        ),
    ]
