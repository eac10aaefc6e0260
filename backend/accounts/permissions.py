from rest_framework.permissions import BasePermission

from .models import is_teacher


class IsTeacher(BasePermission):
    message = 'Only teachers can manage subjects and questions.'

    def has_permission(self, request, view):
        return is_teacher(request.user)


class IsAdminTeacher(BasePermission):
    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and (
                request.user.is_superuser
                or (
                    hasattr(request.user, 'teacher')
                    and request.user.teacher.is_admin_teacher
                )
            )
        )


class IsSelfOrAdmin(BasePermission):
    def has_permission(self, request, view):
        return is_teacher(request.user)

    def has_object_permission(self, request, view, obj):
        if request.user.is_superuser:
            return True

        if hasattr(request.user, 'teacher') and request.user.teacher.is_admin_teacher:
            return True

        # Teachers may edit their own profile
        return obj.user == request.user
