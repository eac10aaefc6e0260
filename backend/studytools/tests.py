from django.contrib.auth import get_user_model
from django.test import TestCase

from .models import StudySession

User = get_user_model()


class StudySessionModelTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='student', password='password')

    def test_title_is_shortened_source(self):
        session = StudySession.objects.create(
            user=self.user,
            type=StudySession.Kind.SUMMARY,
            source_text='Photosynthesis   converts light\n' + 'x' * 100,
            content={'summary': 'Plants make sugar.'},
        )
        self.assertTrue(session.title.startswith('Photosynthesis converts light'))
        self.assertEqual(len(session.title), 60)

    def test_newest_first(self):
        first = StudySession.objects.create(user=self.user, type='summary', source_text='a')
        second = StudySession.objects.create(user=self.user, type='flashcards', source_text='b')
        self.assertEqual(list(StudySession.objects.all()), [second, first])
