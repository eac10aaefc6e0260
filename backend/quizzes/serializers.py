from rest_framework import serializers

from subjects.models import Subject
from subjects.serializers import QuestionPublicSerializer, QuestionSerializer

from .models import Quiz, QuizAttempt


class QuizSerializer(serializers.ModelSerializer):
    mode = serializers.CharField(read_only=True)
    subject_name = serializers.CharField(source='subject.name', read_only=True, default=None)
    question_count = serializers.SerializerMethodField()

    class Meta:
        model = Quiz
        fields = [
            'id',
            'title',
            'description',
            'subject',
            'subject_name',
            'question_ids',
            'question_count',
            'settings',
            'mode',
            'created_at',
        ]
        read_only_fields = fields

    def get_question_count(self, obj):
        return len(obj.question_ids or [])


class StartQuizSerializer(serializers.Serializer):
    subject_id = serializers.PrimaryKeyRelatedField(queryset=Subject.objects.all(), source='subject')
    mode = serializers.ChoiceField(choices=Quiz.Mode.choices, default=Quiz.Mode.CLASSIC)
    question_count = serializers.IntegerField(min_value=1, max_value=100, default=10)


class QuizAttemptSerializer(serializers.ModelSerializer):
    quiz_title = serializers.CharField(source='quiz.title', read_only=True)
    subject = serializers.IntegerField(source='quiz.subject_id', read_only=True)
    total_questions = serializers.SerializerMethodField()
    questions = serializers.SerializerMethodField()

    class Meta:
        model = QuizAttempt
        fields = [
            'id',
            'quiz',
            'quiz_title',
            'subject',
            'mode',
            'status',
            'score',
            'total_questions',
            'answers',
            'questions',
            'started_at',
            'completed_at',
        ]
        read_only_fields = fields

    def get_total_questions(self, obj):
        return len(obj.quiz.question_ids or [])

    def get_questions(self, obj):
        questions = obj.quiz.ordered_questions()
        # The answer key is only revealed once the attempt is over.
        serializer_class = QuestionSerializer if obj.is_completed else QuestionPublicSerializer
        return serializer_class(questions, many=True).data


class QuizAttemptSummarySerializer(serializers.ModelSerializer):
    quiz_title = serializers.CharField(source='quiz.title', read_only=True)

    class Meta:
        model = QuizAttempt
        fields = ['id', 'quiz', 'quiz_title', 'mode', 'status', 'score', 'started_at', 'completed_at']
        read_only_fields = fields


class AnswerSubmissionSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    answer = serializers.JSONField(allow_null=True)
    ai = serializers.JSONField(required=False, allow_null=True)


class QuestionHelpSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    answer = serializers.JSONField(required=False, allow_null=True)
    ai = serializers.JSONField(required=False, allow_null=True)
