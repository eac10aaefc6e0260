from collections import defaultdict

from django.shortcuts import get_object_or_404
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsTeacher
from quizzes.models import QuizAttempt
from subjects.models import Subject

from ..subject import ensure_subject_owner
from .utils import mean_or_none, spearman_or_none


class SubjectAnalyticsView(APIView):
    """Per-question accuracy for a subject, and how well stored difficulty predicts it.

    Answers whose AI grading was unavailable are counted separately and left
    out of every accuracy figure.
    """

    permission_classes = [IsTeacher]

    def get(self, request, subject_id):
        subject = get_object_or_404(Subject, id=subject_id)
        ensure_subject_owner(request.user, subject)

        questions = {question.id: question for question in subject.questions.all()}
        attempts = QuizAttempt.objects.filter(quiz__subject=subject).only('answers', 'status')

        tallies = defaultdict(lambda: {'answered': 0, 'correct': 0})
        ungraded = 0
        attempt_count = 0
        completed_count = 0
        for attempt in attempts:
            attempt_count += 1
            if attempt.status == QuizAttempt.Status.COMPLETED:
                completed_count += 1
            for entry in attempt.answers or []:
                question_id = entry.get('question_id')
                if question_id not in questions:
                    continue
                if entry.get('grading_status') == QuizAttempt.GradingStatus.UNAVAILABLE:
                    ungraded += 1
                    continue
                tallies[question_id]['answered'] += 1
                if entry.get('is_correct'):
                    tallies[question_id]['correct'] += 1

        rows = []
        difficulties = []
        error_rates = []
        for question_id, question in questions.items():
            tally = tallies.get(question_id, {'answered': 0, 'correct': 0})
            accuracy = tally['correct'] / tally['answered'] if tally['answered'] else None
            rows.append({
                'question_id': question_id,
                'question_text': question.question_text,
                'type': question.type,
                'difficulty': question.difficulty,
                'answered': tally['answered'],
                'correct': tally['correct'],
                'accuracy': round(accuracy, 4) if accuracy is not None else None,
            })
            if accuracy is not None:
                difficulties.append(question.difficulty)
                error_rates.append(1 - accuracy)

        rows.sort(key=lambda row: (row['accuracy'] is None, row['accuracy'] if row['accuracy'] is not None else 0))

        return Response({
            'subject_id': subject.id,
            'subject_name': subject.name,
            'attempt_count': attempt_count,
            'completed_attempt_count': completed_count,
            'ungraded_answer_count': ungraded,
            'mean_accuracy': mean_or_none([1 - rate for rate in error_rates]),
            'difficulty_error_correlation': spearman_or_none(difficulties, error_rates),
            'questions': rows,
        })
