import random

from django.conf import settings
from django.db import models, transaction
from django.utils import timezone

from subjects.models import Question, Subject


class Quiz(models.Model):
    class Mode(models.TextChoices):
        CLASSIC = 'classic', 'Classic'
        PRACTICE = 'practice', 'Practice'
        SURVIVAL = 'survival', 'Survival'

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='quizzes')
    subject = models.ForeignKey(Subject, on_delete=models.SET_NULL, null=True, blank=True, related_name='quizzes')
    question_ids = models.JSONField(default=list, blank=True)
    settings = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'quizzes'

    def __str__(self) -> str:
        return self.title

    @property
    def mode(self) -> str:
        return (self.settings or {}).get('mode', self.Mode.CLASSIC)

    def ordered_questions(self):
        """Questions in quiz order; ids whose question has been deleted are skipped."""
        ids = list(self.question_ids or [])
        by_id = Question.objects.in_bulk(ids)
        return [by_id[question_id] for question_id in ids if question_id in by_id]

    def append_question(self, question):
        self.question_ids = list(self.question_ids or []) + [question.id]
        self.save(update_fields=['question_ids'])


class QuizAttempt(models.Model):
    class Status(models.TextChoices):
        IN_PROGRESS = 'in_progress', 'In progress'
        COMPLETED = 'completed', 'Completed'

    class GradingStatus(models.TextChoices):
        EXACT = 'exact', 'Exact match'
        AI = 'ai', 'AI graded'
        UNAVAILABLE = 'unavailable', 'Grader unavailable'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='quiz_attempts')
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name='attempts')
    mode = models.CharField(max_length=16, choices=Quiz.Mode.choices, default=Quiz.Mode.CLASSIC)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.IN_PROGRESS)
    answers = models.JSONField(default=list, blank=True)
    score = models.IntegerField(default=0)
    started_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-started_at', '-id']

    def __str__(self) -> str:
        return f"Attempt {self.id} on {self.quiz.title}"

    @property
    def is_completed(self) -> bool:
        return self.status == self.Status.COMPLETED

    def answer_for(self, question_id):
        for entry in self.answers or []:
            if entry.get('question_id') == question_id:
                return entry
        return None

    def record_answer(self, question_id, answer, is_correct, **extra) -> dict:
        """Store the answer for ``question_id``, replacing any earlier one, and rescore."""
        entry = {'question_id': question_id, 'answer': answer, 'is_correct': bool(is_correct)}
        entry.update(extra)
        kept = [item for item in (self.answers or []) if item.get('question_id') != question_id]
        self.answers = kept + [entry]
        self.score = sum(1 for item in self.answers if item.get('is_correct'))
        self.save(update_fields=['answers', 'score'])
        return entry

    def complete(self):
        if self.is_completed:
            return
        self.status = self.Status.COMPLETED
        self.completed_at = timezone.now()
        self.save(update_fields=['status', 'completed_at'])


def start_attempt(user, subject, mode=Quiz.Mode.CLASSIC, question_count=10) -> QuizAttempt:
    """Build a one-off quiz from up to ``question_count`` questions of ``subject`` and open an attempt.

    Returns None when the subject has no questions.
    """
    available = list(Question.objects.filter(subject=subject).values_list('id', flat=True))
    if not available:
        return None
    chosen = random.sample(available, min(question_count, len(available)))
    with transaction.atomic():
        quiz = Quiz.objects.create(
            title=f'Quiz for {subject.name}',
            owner=user,
            subject=subject,
            question_ids=chosen,
            settings={'mode': mode},
        )
        return QuizAttempt.objects.create(user=user, quiz=quiz, mode=mode)
