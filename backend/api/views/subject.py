import logging

from django.db import transaction
from django.db.models import Count
from django.shortcuts import get_object_or_404
from rest_framework import generics, mixins, parsers, serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.models import ensure_teacher, is_teacher
from accounts.permissions import IsTeacher
from assistant import agents
from assistant.config import config_from_payload
from assistant.exceptions import AIError
from subjects import csv_import
from subjects.csv_import import QuestionFileError, QuestionImportError
from subjects.difficulty import score_difficulty as estimate_difficulty
from subjects.models import Question, Subject
from subjects.serializers import QuestionSerializer, SubjectSerializer

from .common import ai_error_response

logger = logging.getLogger(__name__)


class GenerateQuestionsSerializer(serializers.Serializer):
    topic = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    question_count = serializers.IntegerField(min_value=1, max_value=agents.MAX_GENERATED_QUESTIONS, default=5)
    ai = serializers.JSONField(required=False, allow_null=True)


def ensure_subject_owner(user, subject):
    teacher = ensure_teacher(user)
    if subject.owner_id != teacher.id:
        raise PermissionDenied('You do not own this subject.')


class SubjectViewSet(viewsets.ModelViewSet):
    serializer_class = SubjectSerializer

    def get_permissions(self):
        # Students browse subjects to start quizzes; only teachers change them.
        if self.action in ('list', 'retrieve'):
            return [IsAuthenticated()]
        return [IsTeacher()]

    def get_queryset(self):
        queryset = (
            Subject.objects.select_related('owner__user')
            .annotate(question_count=Count('questions'))
        )
        show_all = self.request.query_params.get('all') in {'1', 'true', 'yes'}
        if self.action == 'list' and is_teacher(self.request.user) and not show_all:
            queryset = queryset.filter(owner__user=self.request.user)
        return queryset

    def perform_create(self, serializer):
        serializer.save(owner=ensure_teacher(self.request.user))

    def perform_update(self, serializer):
        ensure_subject_owner(self.request.user, serializer.instance)
        serializer.save()

    def perform_destroy(self, instance):
        ensure_subject_owner(self.request.user, instance)
        logger.info('Deleting subject %s with %d questions', instance.pk, instance.questions.count())
        instance.delete()

    @action(detail=True, methods=['post'], parser_classes=[parsers.MultiPartParser, parsers.FormParser])
    def import_questions(self, request, *args, **kwargs):
        subject = self.get_object()
        ensure_subject_owner(request.user, subject)

        file_obj = request.FILES.get('file')
        if not file_obj:
            return Response({'detail': 'No file provided.'}, status=status.HTTP_400_BAD_REQUEST)

        is_preview = str(request.data.get('preview', '')).lower() == 'true'

        try:
            headers, rows, line_numbers = csv_import.read_question_file(file_obj)
        except QuestionFileError as exc:
            return Response({'detail': str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        if is_preview:
            return Response({
                'preview': True,
                'headers': headers,
                'rows': rows[:csv_import.PREVIEW_ROWS],
                'total_rows': len(rows),
            })

        missing = csv_import.missing_columns(headers)
        if missing:
            return Response(
                {'detail': f"Missing required column(s): {', '.join(missing)}."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            questions = csv_import.import_questions(subject, request.user, rows, line_numbers)
        except QuestionFileError as exc:
            return Response({'detail': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except QuestionImportError as exc:
            return Response(
                {'detail': 'No questions were imported. Fix the listed rows and upload again.', 'errors': exc.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response({'inserted_count': len(questions)}, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def generate_questions(self, request, *args, **kwargs):
        subject = self.get_object()
        ensure_subject_owner(request.user, subject)

        serializer = GenerateQuestionsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        config = config_from_payload(serializer.validated_data.get('ai'))
        topic = serializer.validated_data.get('topic') or subject.name

        try:
            result = agents.generate_questions(config, topic, serializer.validated_data['question_count'])
        except AIError as exc:
            return ai_error_response(exc)

        model_name = config.for_tool('questions')
        with transaction.atomic():
            questions = []
            for data in result['questions']:
                difficulty = data.get('difficulty')
                if difficulty is None:
                    difficulty = estimate_difficulty(data['type'], data['question_text'], data.get('explanation'))
                questions.append(Question.objects.create(
                    subject=subject,
                    author=request.user,
                    question_text=data['question_text'],
                    type=data['type'],
                    difficulty=difficulty,
                    answers=data.get('answers'),
                    correct_answer=data['correct_answer'],
                    explanation=data.get('explanation') or '',
                    metadata={'source': Question.Source.AI_GENERATED.value, 'model': model_name, 'topic': topic},
                ))
        logger.info('Generated %d questions for subject %s with %s', len(questions), subject.pk, model_name)
        return Response(
            {'inserted_count': len(questions), 'questions': QuestionSerializer(questions, many=True).data},
            status=status.HTTP_201_CREATED,
        )


class SubjectQuestionListCreate(generics.ListCreateAPIView):
    serializer_class = QuestionSerializer
    permission_classes = [IsTeacher]

    def get_queryset(self):
        subject = self._get_subject()
        ensure_subject_owner(self.request.user, subject)
        return Question.objects.filter(subject=subject).select_related('author')

    def perform_create(self, serializer):
        subject = self._get_subject()
        ensure_subject_owner(self.request.user, subject)
        metadata = dict(serializer.validated_data.get('metadata') or {})
        metadata.setdefault('source', Question.Source.MANUAL.value)
        serializer.save(subject=subject, author=self.request.user, metadata=metadata)

    def _get_subject(self):
        if not hasattr(self, '_subject_cache'):
            self._subject_cache = get_object_or_404(Subject, id=self.kwargs['subject_id'])
        return self._subject_cache


class QuestionViewSet(
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = QuestionSerializer
    permission_classes = [IsTeacher]

    def get_queryset(self):
        return Question.objects.select_related('subject', 'author').all()

    def get_object(self):
        question = super().get_object()
        ensure_subject_owner(self.request.user, question.subject)
        return question

    @action(detail=True, methods=['post'])
    def score_difficulty(self, request, *args, **kwargs):
        question = self.get_object()
        question.difficulty = question.estimate_difficulty()
        question.save(update_fields=['difficulty'])
        return Response(self.get_serializer(question).data)
