from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from accounts.models import Teacher

from .difficulty import score_difficulty


class Subject(models.Model):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    owner = models.ForeignKey(Teacher, on_delete=models.CASCADE, related_name='subjects')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:
        return self.name


class Question(models.Model):
    class QuestionType(models.TextChoices):
        MULTIPLE_CHOICE = 'multiple_choice', 'Multiple choice'
        OPEN_ANSWER = 'open_answer', 'Open answer'
        FILL_IN_THE_BLANK = 'fill_in_the_blank', 'Fill in the blank'
        TRUE_FALSE = 'true_false', 'True / false'
        DRAG_AND_DROP = 'drag_and_drop', 'Drag and drop'
        MATCH_PAIRS = 'match_pairs', 'Match pairs'
        IMAGE_LABELING = 'image_labeling', 'Image labeling'
        AUDIO_TO_TEXT = 'audio_to_text', 'Audio to text'
        TEXT_TO_AUDIO = 'text_to_audio', 'Text to audio'
        CODE_OUTPUT = 'code_output', 'Code output'
        WHITEBOARD = 'whiteboard', 'Whiteboard'

    class Source(models.TextChoices):
        CSV_UPLOAD = 'csv_upload', 'CSV upload'
        AI_GENERATED = 'ai_generated', 'AI generated'
        SURVIVAL_PENALTY = 'survival_penalty', 'Survival penalty'
        MANUAL = 'manual', 'Manual'

    # Answers to these are free text and can be graded by the AI grader.
    OPEN_ENDED_TYPES = frozenset({
        QuestionType.OPEN_ANSWER,
        QuestionType.AUDIO_TO_TEXT,
        QuestionType.WHITEBOARD,
    })

    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='questions')
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='authored_questions',
    )
    question_text = models.TextField()
    type = models.CharField(max_length=32, choices=QuestionType.choices)
    difficulty = models.FloatField(
        blank=True,
        validators=[MinValueValidator(0.0), MaxValueValidator(10.0)],
    )
    answers = models.JSONField(null=True, blank=True)
    correct_answer = models.JSONField(null=True, blank=True)
    explanation = models.TextField(blank=True, default='')
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:
        text = self.question_text if len(self.question_text) <= 60 else f'{self.question_text[:57]}...'
        return f'{text} ({self.get_type_display()})'

    @property
    def source(self) -> str:
        return (self.metadata or {}).get('source', '')

    @property
    def is_open_ended(self) -> bool:
        return self.type in self.OPEN_ENDED_TYPES

    def estimate_difficulty(self) -> float:
        return score_difficulty(self.type, self.question_text, self.explanation)

    def save(self, *args, **kwargs):
        if self.difficulty is None:
            self.difficulty = self.estimate_difficulty()
        super().save(*args, **kwargs)
