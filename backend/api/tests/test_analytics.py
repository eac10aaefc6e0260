from django.contrib.auth.models import User
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from accounts.models import Teacher
from api.views.analytics.utils import spearman_or_none
from quizzes.models import Quiz, QuizAttempt
from subjects.models import Question, Subject


class SubjectAnalyticsTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(username='teacher', password='x')
        self.teacher = Teacher.objects.create(user=self.user)
        self.client.force_authenticate(user=self.user)
        self.subject = Subject.objects.create(name='Math', owner=self.teacher)
        self.questions = [
            Question.objects.create(
                subject=self.subject,
                question_text=f'Question number {i}',
                type='open_answer',
                correct_answer=str(i),
                difficulty=difficulty,
            )
            for i, difficulty in enumerate([1, 4, 7, 9])
        ]
        self.student = User.objects.create_user(username='student', password='x')
        self.url = reverse('subject-analytics', args=[self.subject.id])

    def record(self, outcomes, status_value=QuizAttempt.Status.COMPLETED):
        quiz = Quiz.objects.create(
            title='Quiz for Math',
            owner=self.student,
            subject=self.subject,
            question_ids=[q.id for q in self.questions],
        )
        answers = [
            {'question_id': question.id, 'answer': 'x', 'is_correct': outcome, 'grading_status': 'exact'}
            for question, outcome in zip(self.questions, outcomes)
        ]
        return QuizAttempt.objects.create(
            user=self.student, quiz=quiz, answers=answers, status=status_value,
            score=sum(1 for outcome in outcomes if outcome),
        )

    def test_harder_questions_have_more_errors(self):
        self.record([True, True, True, False])
        self.record([True, True, False, False])
        self.record([True, False, False, False], status_value=QuizAttempt.Status.IN_PROGRESS)

        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['attempt_count'], 3)
        self.assertEqual(response.data['completed_attempt_count'], 2)
        self.assertAlmostEqual(response.data['difficulty_error_correlation']['rho'], 1.0)

        by_id = {row['question_id']: row for row in response.data['questions']}
        self.assertEqual(by_id[self.questions[0].id]['accuracy'], 1.0)
        self.assertEqual(by_id[self.questions[3].id]['accuracy'], 0.0)
        self.assertEqual(response.data['questions'][0]['question_id'], self.questions[3].id)
        self.assertEqual(response.data['mean_accuracy'], 0.5)

    def test_unavailable_grades_are_excluded(self):
        attempt = self.record([True, True, True, True])
        attempt.answers[3]['grading_status'] = QuizAttempt.GradingStatus.UNAVAILABLE.value
        attempt.answers[3]['is_correct'] = False
        attempt.save()

        response = self.client.get(self.url)
        self.assertEqual(response.data['ungraded_answer_count'], 1)
        last = next(row for row in response.data['questions'] if row['question_id'] == self.questions[3].id)
        self.assertEqual(last['answered'], 0)
        self.assertIsNone(last['accuracy'])

    def test_no_attempts(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['mean_accuracy'])
        self.assertEqual(response.data['difficulty_error_correlation'], {'rho': None, 'p_value': None})

    def test_constant_accuracy_has_no_correlation(self):
        self.record([True, True, True, True])
        response = self.client.get(self.url)
        self.assertIsNone(response.data['difficulty_error_correlation']['rho'])

    def test_other_teacher_forbidden(self):
        other = User.objects.create_user(username='other', password='x')
        Teacher.objects.create(user=other)
        self.client.force_authenticate(user=other)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_403_FORBIDDEN)

    def test_student_forbidden(self):
        self.client.force_authenticate(user=self.student)
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_403_FORBIDDEN)


class DashboardStatsTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.url = reverse('dashboard-stats')
        self.user = User.objects.create_user(username='teacher', password='x')
        self.teacher = Teacher.objects.create(user=self.user)
        self.subject = Subject.objects.create(name='Art', owner=self.teacher)
        Question.objects.create(
            subject=self.subject, question_text='Who painted it?', type='open_answer',
            correct_answer='x', metadata={'source': 'csv_upload'},
        )
        Question.objects.create(
            subject=self.subject, question_text='Which colour is warm?', type='open_answer',
            correct_answer='red', metadata={'source': 'ai_generated'},
        )
        self.student = User.objects.create_user(username='student', password='x')
        quiz = Quiz.objects.create(title='Quiz for Art', owner=self.student, subject=self.subject, question_ids=[])
        QuizAttempt.objects.create(user=self.student, quiz=quiz)

    def test_student_sections(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['student']['attempts'], 1)
        self.assertEqual(response.data['student']['completed_attempts'], 0)
        self.assertIsNone(response.data['teacher'])
        self.assertIsNone(response.data['super_admin'])

    def test_teacher_sections(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get(self.url)
        teacher = response.data['teacher']
        self.assertEqual(teacher['subjects'], 1)
        self.assertEqual(teacher['questions'], 2)
        self.assertEqual(teacher['avg_questions_per_subject'], 2.0)
        self.assertEqual(teacher['questions_by_source'], {'csv_upload': 1, 'ai_generated': 1})
        self.assertEqual(teacher['attempts'], 1)
        self.assertEqual(teacher['attempts_today'], 1)
        self.assertEqual(len(teacher['attempts_over_time']), 7)
        self.assertEqual(teacher['attempts_over_time'][-1]['count'], 1)
        self.assertEqual(teacher['attempts_by_subject'][0]['quiz__subject__name'], 'Art')
        self.assertIsNone(response.data['super_admin'])

    def test_superuser_sections(self):
        admin = User.objects.create_superuser(username='root', password='x', email='root@example.com')
        self.client.force_authenticate(user=admin)
        response = self.client.get(self.url)
        self.assertEqual(response.data['super_admin']['total_subjects'], 1)
        self.assertEqual(response.data['super_admin']['total_questions'], 2)

    def test_superuser_without_profile_gets_empty_teacher_section(self):
        admin = User.objects.create_superuser(username='root', password='x', email='root@example.com')
        self.client.force_authenticate(user=admin)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['teacher']['subjects'], 0)
        self.assertEqual(response.data['teacher']['attempts'], 0)
        self.assertFalse(Teacher.objects.filter(user=admin).exists())
        self.assertEqual(response.data['super_admin']['total_teachers'], 1)


class SpearmanHelperTests(SimpleTestCase):
    def test_undefined_correlation_keeps_both_keys(self):
        self.assertEqual(spearman_or_none([1, 2], [0.5, 0.1]), {'rho': None, 'p_value': None})
        self.assertEqual(spearman_or_none([1, 2, 3], [0.2, 0.2, 0.2]), {'rho': None, 'p_value': None})

    def test_monotonic_data(self):
        result = spearman_or_none([1, 2, 3, 4], [0.1, 0.2, 0.4, 0.8])
        self.assertEqual(result['rho'], 1.0)
        self.assertIsNotNone(result['p_value'])
