from rest_framework import serializers

from .models import Feedback


class FeedbackSerializer(serializers.ModelSerializer):
    user_id = serializers.SerializerMethodField()

    class Meta:
        model = Feedback
        fields = (
            "id",
            "user_id",
            "name",
            "email",
            "phone",
            "category",
            "subject",
            "message",
            "status",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_user_id(self, obj):
        return str(obj.user.public_id) if obj.user_id else None


class FeedbackSubmitSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=150)
    email = serializers.EmailField()
    phone = serializers.RegexField(r"^\+?[0-9 ()\-]{10,32}$", max_length=32)
    category = serializers.ChoiceField(choices=Feedback.Category.choices)
    subject = serializers.CharField(min_length=5, max_length=200)
    message = serializers.CharField(min_length=10)


class FeedbackStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Feedback.Status.choices)
