from django.contrib import admin

from .models import Quiz, QuizAttempt


class QuizAttemptInline(admin.TabularInline):
    model = QuizAttempt
    fields = ('user', 'mode', 'status', 'score', 'completed_at')
    readonly_fields = fields
    extra = 0


@admin.register(Quiz)
class QuizAdmin(admin.ModelAdmin):
    list_display = ('title', 'owner', 'subject', 'created_at')
    list_filter = ('subject',)
    inlines = [QuizAttemptInline]


@admin.register(QuizAttempt)
class QuizAttemptAdmin(admin.ModelAdmin):
    list_display = ('quiz', 'user', 'mode', 'status', 'score', 'started_at', 'completed_at')
    list_filter = ('mode', 'status')
