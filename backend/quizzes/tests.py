from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase

from accounts.models import Teacher
from subjects.models import Question, Subject
from .grading import answers_match
from .models import Quiz, QuizAttempt, start_attempt

User = get_user_model()


class AnswersMatchTests(SimpleTestCase):
    def test_identical_values_match(self):
        self.assertTrue(answers_match('Paris', 'Paris'))
        self.assertTrue(answers_match(['a', 'b'], ['a', 'b']))
        self.assertTrue(answers_match({'left': 1, 'right': 2}, {'left': 1, 'right': 2}))
        self.assertTrue(answers_match(True, True))
        self.assertTrue(answers_match(None, None))

    def test_no_type_coercion(self):
        self.assertFalse(answers_match('5', 5))
        self.assertFalse(answers_match(True, 1))
        self.assertFalse(answers_match('true', True))

    def test_order_matters(self):
        self.assertFalse(answers_match(['a', 'b'], ['b', 'a']))
        self.assertFalse(answers_match({'x': 1, 'y': 2}, {'y': 2, 'x': 1}))

    def test_no_whitespace_or_case_tolerance(self):
        self.assertFalse(answers_match('Paris ', 'Paris'))
        self.assertFalse(answers_match('paris', 'Paris'))

    def test_unserializable_values_do_not_match(self):
        self.assertFalse(answers_match(object(), object()))
        self.assertFalse(answers_match(float('nan'), float('nan')))


class QuizAttemptModelTests(TestCase):
    def setUp(self):
        self.teacher_user = User.objects.create_user(username='teacher', password='password')
        self.teacher = Teacher.objects.create(user=self.teacher_user)
        self.student = User.objects.create_user(username='student', password='password')
        self.subject = Subject.objects.create(name='Chemistry', owner=self.teacher)
        self.questions = [
            Question.objects.create(
                subject=self.subject,
                question_text=f'What is element {i}?',
                type=Question.QuestionType.OPEN_ANSWER,
                correct_answer=f'element {i}',
            )
            for i in range(3)
        ]

    def test_start_attempt_builds_quiz(self):
        attempt = start_attempt(self.student, self.subject, Quiz.Mode.PRACTICE, question_count=2)
        self.assertEqual(attempt.mode, 'practice')
        self.assertEqual(attempt.status, QuizAttempt.Status.IN_PROGRESS)
        self.assertEqual(attempt.quiz.owner, self.student)
        self.assertEqual(attempt.quiz.settings, {'mode': 'practice'})
        self.assertEqual(len(attempt.quiz.question_ids), 2)
        self.assertTrue(set(attempt.quiz.question_ids) <= {q.id for q in self.questions})

    def test_start_attempt_caps_at_available_questions(self):
        attempt = start_attempt(self.student, self.subject, question_count=10)
        self.assertEqual(len(attempt.quiz.question_ids), 3)

    def test_start_attempt_without_questions(self):
        empty = Subject.objects.create(name='Empty', owner=self.teacher)
        self.assertIsNone(start_attempt(self.student, empty))
        self.assertEqual(Quiz.objects.count(), 0)

    def test_each_start_creates_a_new_quiz(self):
        first = start_attempt(self.student, self.subject)
        second = start_attempt(self.student, self.subject)
        self.assertNotEqual(first.quiz_id, second.quiz_id)

    def test_record_answer_replaces_previous_entry(self):
        attempt = start_attempt(self.student, self.subject)
        question_id = attempt.quiz.question_ids[0]
        attempt.record_answer(question_id, 'wrong', False)
        attempt.record_answer(question_id, 'right', True)
        attempt.refresh_from_db()
        self.assertEqual(len(attempt.answers), 1)
        self.assertEqual(attempt.answers[0], {'question_id': question_id, 'answer': 'right', 'is_correct': True})
        self.assertEqual(attempt.score, 1)

    def test_score_counts_correct_entries(self):
        attempt = start_attempt(self.student, self.subject)
        ids = attempt.quiz.question_ids
        attempt.record_answer(ids[0], 'a', True)
        attempt.record_answer(ids[1], 'b', False, grading_status='exact')
        attempt.record_answer(ids[2], 'c', True)
        self.assertEqual(attempt.score, 2)
        self.assertEqual(attempt.answer_for(ids[1])['grading_status'], 'exact')

    def test_complete(self):
        attempt = start_attempt(self.student, self.subject)
        attempt.complete()
        attempt.refresh_from_db()
        self.assertTrue(attempt.is_completed)
        self.assertIsNotNone(attempt.completed_at)

    def test_ordered_questions_skip_deleted(self):
        attempt = start_attempt(self.student, self.subject)
        ids = attempt.quiz.question_ids
        Question.objects.filter(id=ids[0]).delete()
        self.assertEqual([q.id for q in attempt.quiz.ordered_questions()], ids[1:])

    def test_append_question(self):
        attempt = start_attempt(self.student, self.subject, question_count=1)
        extra = Question.objects.create(
            subject=self.subject, question_text='A penalty question', type='open_answer', correct_answer='x'
        )
        attempt.quiz.append_question(extra)
        attempt.quiz.refresh_from_db()
        self.assertEqual(attempt.quiz.question_ids[-1], extra.id)
