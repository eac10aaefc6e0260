"""Expected shapes of model output, checked before anything is stored or returned."""
from rest_framework import serializers

from .exceptions import InvalidResponseError

GENERATED_QUESTION_TYPES = ['multiple_choice', 'true_false', 'open_answer']


class GradeSchema(serializers.Serializer):
    grade = serializers.ChoiceField(choices=['correct', 'incorrect', 'partially_correct'])
    explanation = serializers.CharField()


class HintSchema(serializers.Serializer):
    hint = serializers.CharField()


class ExplanationSchema(serializers.Serializer):
    explanation = serializers.CharField()


class SummarySchema(serializers.Serializer):
    summary = serializers.CharField()


class AnswerSchema(serializers.Serializer):
    answer = serializers.CharField()


class FlashcardSchema(serializers.Serializer):
    front = serializers.CharField()
    back = serializers.CharField()
    explanation = serializers.CharField(required=False, allow_blank=True, default='')


class FlashcardDeckSchema(serializers.Serializer):
    cards = FlashcardSchema(many=True, allow_empty=False)


class SummaryQuestionSchema(serializers.Serializer):
    question = serializers.CharField()
    correctAnswer = serializers.CharField()
    explanation = serializers.CharField(required=False, allow_blank=True, default='')


class SummaryQuizSchema(serializers.Serializer):
    questions = SummaryQuestionSchema(many=True, allow_empty=False)


class GeneratedQuestionSchema(serializers.Serializer):
    question_text = serializers.CharField(min_length=5)
    type = serializers.ChoiceField(choices=GENERATED_QUESTION_TYPES)
    difficulty = serializers.FloatField(min_value=0, max_value=10, required=False, allow_null=True)
    answers = serializers.JSONField(required=False, allow_null=True)
    correct_answer = serializers.JSONField()
    explanation = serializers.CharField(required=False, allow_blank=True, default='')


class GeneratedQuestionSetSchema(serializers.Serializer):
    questions = GeneratedQuestionSchema(many=True, allow_empty=False)


def validate_payload(schema_class, payload) -> dict:
    serializer = schema_class(data=payload)
    if not serializer.is_valid():
        raise InvalidResponseError(f'{schema_class.__name__} mismatch: {serializer.errors}')
    return _plain(serializer.validated_data)


def _plain(value):
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value
