from django.conf import settings
from django.db import models


class StudySession(models.Model):
    class Kind(models.TextChoices):
        SUMMARY = 'summary', 'Summary'
        QUIZ = 'quiz', 'Quiz from summary'
        FLASHCARDS = 'flashcards', 'Flashcards'
        ANSWER = 'answer', 'Question answering'
        CARD_HINT = 'card_hint', 'Flashcard hint'
        GRADE = 'grade', 'Answer grading'

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='study_sessions')
    type = models.CharField(max_length=16, choices=Kind.choices)
    source_text = models.TextField(blank=True)
    content = models.JSONField(default=dict, blank=True)
    model_name = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:
        return f"{self.get_type_display()} by {self.user} ({self.created_at:%Y-%m-%d})"

    @property
    def title(self) -> str:
        text = ' '.join((self.source_text or '').split())
        return text if len(text) <= 60 else f'{text[:57]}...'
