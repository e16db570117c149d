from django.conf import settings
from rest_framework import serializers

from .models import Meeting
from .services import audio_url


class MeetingSerializer(serializers.ModelSerializer):
    userId = serializers.CharField(source="owner_id", read_only=True)
    audioUrl = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Meeting
        fields = ["id", "userId", "audioUrl", "transcription", "summary", "title", "createdAt"]
        read_only_fields = fields

    def get_audioUrl(self, obj):
        return audio_url(obj, self.context.get("request"))


class MeetingListQuerySerializer(serializers.Serializer):
    lastId = serializers.UUIDField(required=False)
    cursor = serializers.CharField(required=False, allow_blank=True)
    pageSize = serializers.IntegerField(required=False, min_value=1)

    def validate_pageSize(self, value):
        return min(value, settings.MEETINGS_MAX_PAGE_SIZE)
