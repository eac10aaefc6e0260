import logging

from django.conf import settings
from rest_framework import serializers, status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from assistant import agents
from assistant.config import available_models, config_from_payload
from assistant.exceptions import AIError
from studytools.models import StudySession
from studytools.serializers import StudySessionSerializer, StudySessionSummarySerializer

from .common import ai_error_response

logger = logging.getLogger(__name__)

MAX_SOURCE_LENGTH = 100_000


class TextInputSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=MAX_SOURCE_LENGTH)
    ai = serializers.JSONField(required=False, allow_null=True)


class SummaryQuizInputSerializer(serializers.Serializer):
    summary = serializers.CharField(max_length=MAX_SOURCE_LENGTH)
    question_count = serializers.IntegerField(min_value=1, max_value=agents.MAX_SUMMARY_QUESTIONS, default=5)
    difficulty = serializers.ChoiceField(choices=['easy', 'medium', 'hard'], default='medium')
    ai = serializers.JSONField(required=False, allow_null=True)


class HistoryMessageSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=['user', 'ai'])
    content = serializers.CharField()


class AnswerInputSerializer(serializers.Serializer):
    text = serializers.CharField(max_length=MAX_SOURCE_LENGTH)
    question = serializers.CharField(max_length=5000)
    history = HistoryMessageSerializer(many=True, required=False, default=list)
    ai = serializers.JSONField(required=False, allow_null=True)


class CardHintInputSerializer(serializers.Serializer):
    front = serializers.CharField(max_length=5000)
    back = serializers.CharField(max_length=5000)
    ai = serializers.JSONField(required=False, allow_null=True)


class GradeInputSerializer(serializers.Serializer):
    question = serializers.CharField(max_length=5000)
    correct_answer = serializers.JSONField()
    user_answer = serializers.JSONField()
    ai = serializers.JSONField(required=False, allow_null=True)


class StudyToolView(APIView):
    """Validate input, run one AI tool, and keep the result as a study session."""

    input_serializer_class = TextInputSerializer
    session_type = None
    tool = None

    def post(self, request):
        serializer = self.input_serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        config = config_from_payload(data.get('ai'))

        try:
            result = self.run(config, data)
        except AIError as exc:
            return ai_error_response(exc)

        session = StudySession.objects.create(
            user=request.user,
            type=self.session_type,
            source_text=self.source_text(data),
            content=result,
            model_name=config.for_tool(self.tool),
        )
        logger.info('Stored %s session %s for user %s', self.session_type, session.id, request.user.pk)
        return Response({'session_id': session.id, **result}, status=status.HTTP_201_CREATED)

    def run(self, config, data):
        raise NotImplementedError

    def source_text(self, data):
        return data.get('text', '')


class SummaryView(StudyToolView):
    session_type = StudySession.Kind.SUMMARY
    tool = 'summary'

    def run(self, config, data):
        return agents.generate_summary(config, data['text'])


class FlashcardsView(StudyToolView):
    session_type = StudySession.Kind.FLASHCARDS
    tool = 'flashcards'

    def run(self, config, data):
        return agents.generate_flashcards(config, data['text'])


class SummaryQuizView(StudyToolView):
    input_serializer_class = SummaryQuizInputSerializer
    session_type = StudySession.Kind.QUIZ
    tool = 'quiz'

    def run(self, config, data):
        return agents.generate_quiz_from_summary(
            config, data['summary'], data['question_count'], data['difficulty']
        )

    def source_text(self, data):
        return data['summary']


class AnswerView(StudyToolView):
    input_serializer_class = AnswerInputSerializer
    session_type = StudySession.Kind.ANSWER
    tool = 'answer'

    def run(self, config, data):
        history = [dict(message) for message in data.get('history', [])]
        history.append({'role': 'user', 'content': data['question']})
        result = agents.generate_answer(config, data['text'], history)
        result['question'] = data['question']
        return result


class CardHintView(StudyToolView):
    input_serializer_class = CardHintInputSerializer
    session_type = StudySession.Kind.CARD_HINT
    tool = 'hint'

    def run(self, config, data):
        return agents.generate_card_hint(config, data['front'], data['back'])

    def source_text(self, data):
        return data['front']


class GradeView(StudyToolView):
    input_serializer_class = GradeInputSerializer
    session_type = StudySession.Kind.GRADE
    tool = 'grade'

    def run(self, config, data):
        # grade_answer does not raise; failures come back flagged.
        return agents.grade_answer(config, data['question'], data['correct_answer'], data['user_answer'])

    def source_text(self, data):
        return data['question']


class StudySessionViewSet(viewsets.ReadOnlyModelViewSet):
    def get_queryset(self):
        sessions = StudySession.objects.filter(user=self.request.user)
        session_type = self.request.query_params.get('type')
        if session_type:
            sessions = sessions.filter(type=session_type)
        return sessions

    def get_serializer_class(self):
        if self.action == 'list':
            return StudySessionSummarySerializer
        return StudySessionSerializer


class ModelListView(APIView):
    def get(self, request):
        return Response({'default': settings.STUDYGENIUS_DEFAULT_MODEL, 'models': available_models()})
