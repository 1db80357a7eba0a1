from rest_framework import serializers

from .models import Event, Registration


ORDERING_CHOICES = (
    "date",
    "-date",
    "created_at",
    "-created_at",
    "title",
    "-title",
    "registration_count",
    "-registration_count",
)


class EventSerializer(serializers.ModelSerializer):
    id = serializers.UUIDField(source="public_id", read_only=True)
    created_by = serializers.SerializerMethodField()
    organizer_name = serializers.SerializerMethodField()
    banner = serializers.SerializerMethodField()
    is_full = serializers.BooleanField(read_only=True)
    is_registered = serializers.SerializerMethodField()

    class Meta:
        model = Event
        fields = (
            "id",
            "title",
            "description",
            "date",
            "location",
            "category",
            "banner",
            "created_by",
            "organizer_name",
            "max_attendees",
            "registration_count",
            "is_full",
            "is_public",
            "is_paid",
            "price",
            "tags",
            "is_registered",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_created_by(self, obj):
        return str(obj.created_by.public_id) if obj.created_by_id else None

    def get_organizer_name(self, obj):
        return obj.created_by.display_name if obj.created_by_id else ""

    def get_banner(self, obj):
        if not obj.banner:
            return None
        request = self.context.get("request")
        url = obj.banner.url
        return request.build_absolute_uri(url) if request else url

    def get_is_registered(self, obj):
        registered_ids = self.context.get("registered_event_ids")
        if registered_ids is None:
            return None
        return obj.pk in registered_ids


class EventWriteSerializer(serializers.Serializer):
    """Input for create (all required fields) and PATCH (partial=True)."""

    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True)
    date = serializers.DateTimeField()
    location = serializers.CharField(max_length=255, required=False, allow_blank=True)
    category = serializers.ChoiceField(choices=Event.Category.choices, required=False)
    banner = serializers.FileField(required=False, allow_empty_file=False)
    max_attendees = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    is_public = serializers.BooleanField(required=False)
    is_paid = serializers.BooleanField(required=False)
    price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True,
    )
    tags = serializers.ListField(
        child=serializers.CharField(max_length=50), required=False, allow_empty=True,
    )

    def validate_tags(self, value):
        seen = []
        for tag in value:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class RegistrantSerializer(serializers.Serializer):
    display_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)


class RegistrationSerializer(serializers.ModelSerializer):
    user_id = serializers.UUIDField(source="user.public_id", read_only=True)

    class Meta:
        model = Registration
        fields = ("user_id", "display_name", "email", "registered_at")
        read_only_fields = fields


class MyRegistrationSerializer(serializers.ModelSerializer):
    event = EventSerializer(read_only=True)

    class Meta:
        model = Registration
        fields = ("event", "registered_at")
        read_only_fields = fields


class EventListQuerySerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=Event.Category.choices, required=False)
    date_from = serializers.DateTimeField(required=False)
    date_to = serializers.DateTimeField(required=False)
    location = serializers.CharField(required=False, allow_blank=True)
    ordering = serializers.ChoiceField(choices=ORDERING_CHOICES, required=False, default="date")
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False, default=20)

    def validate(self, attrs):
        date_from = attrs.get("date_from")
        date_to = attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({"date_to": "date_to must not be before date_from."})
        return attrs
