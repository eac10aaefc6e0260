from django.contrib import admin
from .models import Subject, Question


class QuestionInline(admin.TabularInline):
    model = Question
    fields = ('question_text', 'type', 'difficulty')
    extra = 0


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ('name', 'owner', 'created_at')
    search_fields = ('name',)
    inlines = [QuestionInline]


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('question_text', 'subject', 'type', 'difficulty', 'created_at')
    list_filter = ('type', 'subject')
    search_fields = ('question_text',)
