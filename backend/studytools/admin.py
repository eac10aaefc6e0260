from django.contrib import admin
from .models import StudySession


@admin.register(StudySession)
class StudySessionAdmin(admin.ModelAdmin):
    list_display = ('user', 'type', 'model_name', 'created_at')
    list_filter = ('type', 'model_name')
    search_fields = ('user__username', 'source_text')
