from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import models


class Teacher(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    is_admin_teacher = models.BooleanField(default=False)
    institution = models.CharField(max_length=255, blank=True)

    def __str__(self) -> str:
        return self.user.get_username()

    @property
    def username(self) -> str:
        return self.user.get_username()

    @property
    def display_name(self) -> str:
        first_name = self.user.first_name or ''
        last_name = self.user.last_name or ''
        name = f"{first_name} {last_name}".strip()
        return name or self.username


User = get_user_model()


def ensure_teacher(user: User) -> 'Teacher':
    teacher, _ = Teacher.objects.get_or_create(user=user)
    return teacher


def is_teacher(user) -> bool:
    return bool(
        user
        and user.is_authenticated
        and (user.is_superuser or hasattr(user, 'teacher'))
    )
