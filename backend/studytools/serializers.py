from rest_framework import serializers

from .models import StudySession


class StudySessionSerializer(serializers.ModelSerializer):
    title = serializers.CharField(read_only=True)

    class Meta:
        model = StudySession
        fields = ['id', 'type', 'title', 'source_text', 'content', 'model_name', 'created_at']
        read_only_fields = fields


class StudySessionSummarySerializer(serializers.ModelSerializer):
    title = serializers.CharField(read_only=True)

    class Meta:
        model = StudySession
        fields = ['id', 'type', 'title', 'model_name', 'created_at']
        read_only_fields = fields
