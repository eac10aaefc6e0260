from django.contrib import admin
from .models import Teacher


@admin.register(Teacher)
class TeacherAdmin(admin.ModelAdmin):
    list_display = ('user', 'institution', 'is_admin_teacher')
    search_fields = ('user__username', 'user__email', 'institution')
    list_filter = ('is_admin_teacher',)
