import json

from django.core.exceptions import ObjectDoesNotExist
from rest_framework import serializers

from .models import Question, Subject


class SubjectSerializer(serializers.ModelSerializer):
    name = serializers.CharField(
        max_length=255,
        min_length=2,
        error_messages={'min_length': 'Subject name must be at least 2 characters.'},
    )
    owner_username = serializers.CharField(source='owner.user.username', read_only=True)
    is_owner = serializers.SerializerMethodField()
    question_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Subject
        fields = ['id', 'name', 'description', 'owner', 'owner_username', 'is_owner', 'question_count', 'created_at']
        read_only_fields = ['owner', 'created_at']

    def get_is_owner(self, obj):
        request = self.context.get('request')
        if not request:
            return False
        user = getattr(request, 'user', None)
        if not user or not user.is_authenticated:
            return False
        try:
            teacher = user.teacher
        except ObjectDoesNotExist:
            return False
        return bool(teacher and obj.owner_id == teacher.id)


class QuestionSerializer(serializers.ModelSerializer):
    subject = serializers.PrimaryKeyRelatedField(read_only=True)
    author_username = serializers.CharField(source='author.username', read_only=True, default=None)
    difficulty = serializers.FloatField(min_value=0, max_value=10, required=False, allow_null=True)

    class Meta:
        model = Question
        fields = [
            'id',
            'subject',
            'author_username',
            'question_text',
            'type',
            'difficulty',
            'answers',
            'correct_answer',
            'explanation',
            'metadata',
            'created_at',
        ]
        read_only_fields = ['created_at']

    def validate_question_text(self, value):
        value = value.strip()
        if len(value) < 5:
            raise serializers.ValidationError('Question text must be at least 5 characters.')
        return value


class QuestionPublicSerializer(serializers.ModelSerializer):
    """Question as shown to a student during an attempt: no answer key."""

    class Meta:
        model = Question
        fields = ['id', 'question_text', 'type', 'difficulty', 'answers']


class QuestionRowSerializer(serializers.Serializer):
    """One row of a question upload (CSV or spreadsheet)."""

    ALLOWED_TYPES = [
        Question.QuestionType.MULTIPLE_CHOICE,
        Question.QuestionType.OPEN_ANSWER,
        Question.QuestionType.TRUE_FALSE,
    ]

    question_text = serializers.CharField(min_length=5)
    type = serializers.ChoiceField(choices=ALLOWED_TYPES)
    difficulty = serializers.FloatField(min_value=0, max_value=10)
    answers = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    correct_answer = serializers.CharField()
    explanation = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        answers = attrs.get('answers')
        try:
            attrs['correct_answer'] = json.loads(attrs['correct_answer'])
            attrs['answers'] = json.loads(answers) if answers else None
        except ValueError as exc:
            raise serializers.ValidationError('Invalid JSON in answers or correct_answer column.') from exc
        attrs['explanation'] = attrs.get('explanation') or ''
        return attrs
