from datetime import timedelta

from django.db.models import Count
from django.db.models.functions import TruncDate
from django.shortcuts import get_object_or_404
from django.urls import reverse
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import Teacher, is_teacher
from quizzes.models import Quiz, QuizAttempt, start_attempt
from quizzes.serializers import QuizAttemptSummarySerializer, QuizSerializer, StartQuizSerializer
from subjects.models import Question, Subject


class QuizViewSet(viewsets.ReadOnlyModelViewSet):
    """Quizzes the current user has started. Quizzes are built per attempt and never edited."""

    serializer_class = QuizSerializer

    def get_queryset(self):
        return Quiz.objects.filter(owner=self.request.user).select_related('subject')


class StartQuizView(APIView):
    def post(self, request):
        serializer = StartQuizSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        subject = serializer.validated_data['subject']
        attempt = start_attempt(
            request.user,
            subject,
            serializer.validated_data['mode'],
            serializer.validated_data['question_count'],
        )
        if attempt is None:
            return Response(
                {'detail': f'Subject "{subject.name}" has no questions yet.'},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return Response(
            {
                'attempt_id': attempt.id,
                'quiz_id': attempt.quiz_id,
                'mode': attempt.mode,
                'redirect_url': reverse('attempt-detail', args=[attempt.id]),
            },
            status=status.HTTP_201_CREATED,
        )


def attempts_over_last_week(attempt_qs):
    attempts_by_date = (
        attempt_qs.annotate(date=TruncDate('started_at'))
        .values('date')
        .annotate(count=Count('id'))
        .order_by('-date')
    )
    today = timezone.now().date()
    date_window = [today - timedelta(days=i) for i in range(6, -1, -1)]
    attempts_by_date_map = {entry['date']: entry['count'] for entry in attempts_by_date}
    return [{'date': day.isoformat(), 'count': attempts_by_date_map.get(day, 0)} for day in date_window]


class DashboardStatsView(APIView):
    def get(self, request):
        own_attempts = QuizAttempt.objects.filter(user=request.user)
        student_stats = {
            'attempts': own_attempts.count(),
            'completed_attempts': own_attempts.filter(status=QuizAttempt.Status.COMPLETED).count(),
            'recent_attempts': QuizAttemptSummarySerializer(
                own_attempts.select_related('quiz')[:5], many=True
            ).data,
        }

        teacher_stats = None
        if is_teacher(request.user):
            subject_qs = Subject.objects.filter(owner__user=request.user)
            question_qs = Question.objects.filter(subject__owner__user=request.user)
            attempt_qs = QuizAttempt.objects.filter(quiz__subject__owner__user=request.user)

            questions_by_source = {}
            for question in question_qs.only('metadata'):
                source = question.source or 'unknown'
                questions_by_source[source] = questions_by_source.get(source, 0) + 1

            subject_total = subject_qs.count()
            question_total = question_qs.count()
            teacher_stats = {
                'subjects': subject_total,
                'questions': question_total,
                'avg_questions_per_subject': round(question_total / subject_total, 1) if subject_total else 0,
                'questions_by_source': questions_by_source,
                'attempts': attempt_qs.count(),
                'completed_attempts': attempt_qs.filter(status=QuizAttempt.Status.COMPLETED).count(),
                'attempts_today': attempt_qs.filter(started_at__date=timezone.now().date()).count(),
                'attempts_over_time': attempts_over_last_week(attempt_qs),
                'attempts_by_subject': list(
                    attempt_qs.values('quiz__subject_id', 'quiz__subject__name')
                    .annotate(total=Count('id'))
                    .order_by('-total')[:3]
                ),
            }

        super_admin_stats = None
        if request.user.is_superuser:
            super_admin_stats = {
                'total_teachers': Teacher.objects.count(),
                'admin_teachers': Teacher.objects.filter(is_admin_teacher=True).count(),
                'total_subjects': Subject.objects.count(),
                'total_questions': Question.objects.count(),
            }

        return Response({
            'student': student_stats,
            'teacher': teacher_stats,
            'super_admin': super_admin_stats,
        })


class AttemptListView(APIView):
    def get(self, request):
        attempts = QuizAttempt.objects.filter(user=request.user).select_related('quiz')
        mode = request.query_params.get('mode')
        if mode:
            attempts = attempts.filter(mode=mode)
        return Response(QuizAttemptSummarySerializer(attempts, many=True).data)


def get_own_attempt(request, attempt_id):
    return get_object_or_404(QuizAttempt.objects.select_related('quiz', 'quiz__subject'), id=attempt_id, user=request.user)
