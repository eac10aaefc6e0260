from django.contrib.auth import get_user_model
from django.test import TestCase

from .models import Teacher, ensure_teacher, is_teacher

User = get_user_model()


class TeacherModelTests(TestCase):
    def test_create_teacher(self):
        user = User.objects.create_user(username='testuser', password='password')
        teacher = Teacher.objects.create(user=user)
        self.assertEqual(teacher.user, user)
        self.assertEqual(str(teacher), 'testuser')
        self.assertEqual(teacher.username, 'testuser')
        self.assertEqual(teacher.display_name, 'testuser')

    def test_display_name_with_names(self):
        user = User.objects.create_user(username='nameduser', password='password', first_name='Ada', last_name='Lovelace')
        teacher = Teacher.objects.create(user=user)
        self.assertEqual(teacher.display_name, 'Ada Lovelace')

    def test_ensure_teacher_creates_new(self):
        user = User.objects.create_user(username='newuser', password='password')
        teacher = ensure_teacher(user)
        self.assertTrue(Teacher.objects.filter(user=user).exists())
        self.assertEqual(teacher.user, user)

    def test_ensure_teacher_returns_existing(self):
        user = User.objects.create_user(username='existinguser', password='password')
        existing = Teacher.objects.create(user=user)
        teacher = ensure_teacher(user)
        self.assertEqual(teacher, existing)
        self.assertEqual(Teacher.objects.filter(user=user).count(), 1)

    def test_is_teacher(self):
        student = User.objects.create_user(username='student', password='password')
        self.assertFalse(is_teacher(student))
        Teacher.objects.create(user=student)
        student.refresh_from_db()
        self.assertTrue(is_teacher(student))

    def test_superuser_counts_as_teacher(self):
        root = User.objects.create_superuser(username='root', password='password', email='root@example.com')
        self.assertTrue(is_teacher(root))
