from unittest import mock

from django.contrib.auth.models import User
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from accounts.models import Teacher
from assistant.exceptions import InvalidResponseError, MissingAPIKeyError
from quizzes.models import Quiz, QuizAttempt
from subjects.models import Question, Subject


class AttemptTestMixin:
    def setUp(self):
        owner = Teacher.objects.create(user=User.objects.create_user(username='teacher', password='x'))
        self.subject = Subject.objects.create(name='Chemistry', owner=owner)
        self.choice = Question.objects.create(
            subject=self.subject,
            question_text='Which element has symbol O?',
            type='multiple_choice',
            answers=['Oxygen', 'Gold'],
            correct_answer='Oxygen',
        )
        self.open = Question.objects.create(
            subject=self.subject,
            question_text='Why does ice float on water?',
            type='open_answer',
            correct_answer='Ice is less dense than liquid water.',
        )
        self.student = User.objects.create_user(username='student', password='x')
        self.client.force_authenticate(user=self.student)

    def make_attempt(self, mode='classic', user=None):
        user = user or self.student
        quiz = Quiz.objects.create(
            title='Quiz for Chemistry',
            owner=user,
            subject=self.subject,
            question_ids=[self.choice.id, self.open.id],
            settings={'mode': mode},
        )
        return QuizAttempt.objects.create(user=user, quiz=quiz, mode=mode)

    def answer(self, attempt, question, answer, **extra):
        return self.client.post(
            reverse('attempt-answer', args=[attempt.id]),
            {'question_id': question.id, 'answer': answer, **extra},
            format='json',
        )


class StartQuizTests(AttemptTestMixin, APITestCase):
    def test_start_quiz(self):
        response = self.client.post(
            reverse('quiz-start'), {'subject_id': self.subject.id, 'mode': 'practice', 'question_count': 5}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        attempt = QuizAttempt.objects.get(id=response.data['attempt_id'])
        self.assertEqual(attempt.user, self.student)
        self.assertEqual(attempt.mode, 'practice')
        self.assertEqual(attempt.quiz.mode, 'practice')
        self.assertEqual(sorted(attempt.quiz.question_ids), sorted([self.choice.id, self.open.id]))
        self.assertEqual(response.data['redirect_url'], reverse('attempt-detail', args=[attempt.id]))

    def test_question_count_limits_quiz(self):
        response = self.client.post(
            reverse('quiz-start'), {'subject_id': self.subject.id, 'question_count': 1}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        attempt = QuizAttempt.objects.get(id=response.data['attempt_id'])
        self.assertEqual(len(attempt.quiz.question_ids), 1)
        self.assertEqual(attempt.mode, 'classic')

    def test_subject_without_questions(self):
        empty = Subject.objects.create(name='Empty', owner=self.subject.owner)
        response = self.client.post(reverse('quiz-start'), {'subject_id': empty.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(QuizAttempt.objects.count(), 0)

    def test_unknown_subject_and_mode(self):
        response = self.client.post(reverse('quiz-start'), {'subject_id': 9999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(
            reverse('quiz-start'), {'subject_id': self.subject.id, 'mode': 'endless'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AttemptDetailTests(AttemptTestMixin, APITestCase):
    def test_answer_key_hidden_until_completed(self):
        attempt = self.make_attempt()
        response = self.client.get(reverse('attempt-detail', args=[attempt.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['questions']), 2)
        self.assertNotIn('correct_answer', response.data['questions'][0])

        response = self.client.post(reverse('attempt-complete', args=[attempt.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertIsNotNone(response.data['completed_at'])
        self.assertIn('correct_answer', response.data['questions'][0])

    def test_deleted_question_is_skipped(self):
        attempt = self.make_attempt()
        self.choice.delete()
        response = self.client.get(reverse('attempt-detail', args=[attempt.id]))
        self.assertEqual([q['id'] for q in response.data['questions']], [self.open.id])
        self.assertEqual(response.data['total_questions'], 2)

    def test_other_users_attempt_is_hidden(self):
        other = User.objects.create_user(username='other', password='x')
        attempt = self.make_attempt(user=other)
        response = self.client.get(reverse('attempt-detail', args=[attempt.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_attempt_list_filters_by_mode(self):
        self.make_attempt('classic')
        self.make_attempt('survival')
        response = self.client.get(reverse('attempt-list'))
        self.assertEqual(len(response.data), 2)
        response = self.client.get(reverse('attempt-list'), {'mode': 'survival'})
        self.assertEqual([row['mode'] for row in response.data], ['survival'])


class AnswerTests(AttemptTestMixin, APITestCase):
    def test_correct_answer_scores(self):
        attempt = self.make_attempt()
        response = self.answer(attempt, self.choice, 'Oxygen')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_correct'])
        self.assertEqual(response.data['score'], 1)
        self.assertEqual(response.data['answer_entry']['grading_status'], 'exact')

    def test_answer_replaces_earlier_answer(self):
        attempt = self.make_attempt()
        self.answer(attempt, self.choice, 'Oxygen')
        response = self.answer(attempt, self.choice, 'Gold')
        self.assertFalse(response.data['is_correct'])
        self.assertEqual(response.data['score'], 0)
        attempt.refresh_from_db()
        self.assertEqual(len(attempt.answers), 1)
        self.assertEqual(attempt.answers[0]['answer'], 'Gold')

    def test_exact_match_is_strict(self):
        attempt = self.make_attempt()
        response = self.answer(attempt, self.choice, 'oxygen')
        self.assertFalse(response.data['is_correct'])

    def test_question_outside_quiz(self):
        stray = Question.objects.create(
            subject=self.subject, question_text='Not in this quiz', type='open_answer', correct_answer='x'
        )
        attempt = self.make_attempt()
        response = self.answer(attempt, stray, 'x')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['detail'], 'Question is not part of this quiz.')

    def test_completed_attempt_rejects_answers(self):
        attempt = self.make_attempt()
        attempt.complete()
        response = self.answer(attempt, self.choice, 'Oxygen')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_open_answer_without_ai_uses_exact_match(self):
        attempt = self.make_attempt()
        with mock.patch('api.views.attempt.agents.grade_answer') as grade:
            response = self.answer(attempt, self.open, 'Ice is less dense than liquid water.')
        grade.assert_not_called()
        self.assertTrue(response.data['is_correct'])

    def test_open_answer_graded_by_ai(self):
        attempt = self.make_attempt()
        result = {'grade': 'correct', 'explanation': 'Right idea.', 'fallback': False}
        with mock.patch('api.views.attempt.agents.grade_answer', return_value=result) as grade:
            response = self.answer(attempt, self.open, 'It is lighter', ai={'model': 'gpt-4o'})
        self.assertTrue(response.data['is_correct'])
        entry = response.data['answer_entry']
        self.assertEqual(entry['grading_status'], 'ai')
        self.assertEqual(entry['feedback'], 'Right idea.')
        config, question_text, correct_answer, user_answer = grade.call_args.args
        self.assertEqual(config.model, 'gpt-4o')
        self.assertEqual(user_answer, 'It is lighter')

    def test_grading_fallback_is_marked_unavailable(self):
        attempt = self.make_attempt()
        result = {'grade': 'incorrect', 'explanation': 'Sorry', 'fallback': True}
        with mock.patch('api.views.attempt.agents.grade_answer', return_value=result):
            response = self.answer(attempt, self.open, 'It is lighter', ai={})
        self.assertFalse(response.data['is_correct'])
        self.assertEqual(response.data['answer_entry']['grading_status'], 'unavailable')

    def test_invalid_ai_config(self):
        attempt = self.make_attempt()
        response = self.answer(attempt, self.open, 'x', ai={'overrides': {'poetry': 'gpt-4o'}})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        attempt.refresh_from_db()
        self.assertEqual(attempt.answers, [])


class SurvivalTests(AttemptTestMixin, APITestCase):
    penalty = {
        'question_text': 'Which element has symbol Au?',
        'type': 'multiple_choice',
        'difficulty': 4,
        'answers': ['Silver', 'Gold'],
        'correct_answer': 'Gold',
        'explanation': 'Au comes from aurum.',
    }

    def test_wrong_answer_adds_penalty_question(self):
        attempt = self.make_attempt('survival')
        with mock.patch('api.views.attempt.agents.generate_penalty_question', return_value=self.penalty) as generate:
            response = self.answer(attempt, self.choice, 'Gold')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        generate.assert_called_once()
        self.assertEqual(generate.call_args.kwargs['subject_name'], 'Chemistry')

        penalty = Question.objects.get(question_text='Which element has symbol Au?')
        self.assertEqual(penalty.source, 'survival_penalty')
        self.assertEqual(penalty.metadata['penalty_for'], self.choice.id)
        self.assertEqual(response.data['penalty_question']['id'], penalty.id)
        self.assertNotIn('correct_answer', response.data['penalty_question'])
        attempt.quiz.refresh_from_db()
        self.assertEqual(attempt.quiz.question_ids[-1], penalty.id)

    def test_correct_answer_adds_nothing(self):
        attempt = self.make_attempt('survival')
        with mock.patch('api.views.attempt.agents.generate_penalty_question') as generate:
            response = self.answer(attempt, self.choice, 'Oxygen')
        generate.assert_not_called()
        self.assertNotIn('penalty_question', response.data)

    def test_penalty_failure_keeps_answer(self):
        attempt = self.make_attempt('survival')
        with mock.patch(
            'api.views.attempt.agents.generate_penalty_question', side_effect=InvalidResponseError('bad json')
        ):
            response = self.answer(attempt, self.choice, 'Gold')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['penalty_question'])
        self.assertIn('penalty_error', response.data)
        attempt.refresh_from_db()
        self.assertEqual(len(attempt.answers), 1)
        self.assertEqual(len(attempt.quiz.question_ids), 2)

    def test_unavailable_grading_adds_no_penalty(self):
        attempt = self.make_attempt('survival')
        result = {'grade': 'incorrect', 'explanation': 'Sorry', 'fallback': True}
        with mock.patch('api.views.attempt.agents.grade_answer', return_value=result), \
                mock.patch('api.views.attempt.agents.generate_penalty_question') as generate:
            self.answer(attempt, self.open, 'Because', ai={})
        generate.assert_not_called()

    def test_classic_mode_has_no_penalty(self):
        attempt = self.make_attempt('classic')
        with mock.patch('api.views.attempt.agents.generate_penalty_question') as generate:
            self.answer(attempt, self.choice, 'Gold')
        generate.assert_not_called()


class PracticeHelpTests(AttemptTestMixin, APITestCase):
    def test_hint_in_practice_mode(self):
        attempt = self.make_attempt('practice')
        with mock.patch('api.views.attempt.agents.generate_hint', return_value={'hint': 'Think of air.'}) as hint:
            response = self.client.post(
                reverse('attempt-hint', args=[attempt.id]), {'question_id': self.choice.id}, format='json'
            )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'question_id': self.choice.id, 'hint': 'Think of air.'})
        self.assertEqual(hint.call_args.args[1:], (self.choice.question_text, 'multiple_choice', ['Oxygen', 'Gold']))

    def test_hint_outside_practice_mode(self):
        attempt = self.make_attempt('classic')
        response = self.client.post(
            reverse('attempt-hint', args=[attempt.id]), {'question_id': self.choice.id}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['detail'], 'Hints are only available in practice mode.')

    def test_explanation_uses_recorded_answer(self):
        attempt = self.make_attempt('practice')
        self.answer(attempt, self.choice, 'Gold')
        result = {'explanation': 'O is oxygen.'}
        with mock.patch('api.views.attempt.agents.generate_explanation', return_value=result) as explain:
            response = self.client.post(
                reverse('attempt-explanation', args=[attempt.id]), {'question_id': self.choice.id}, format='json'
            )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['explanation'], 'O is oxygen.')
        self.assertEqual(explain.call_args.args[2:], ('Oxygen', 'Gold', False))

    def test_explanation_outside_practice_mode(self):
        attempt = self.make_attempt('survival')
        response = self.client.post(
            reverse('attempt-explanation', args=[attempt.id]), {'question_id': self.choice.id}, format='json'
        )
        self.assertEqual(response.data['detail'], 'Explanations are only available in practice mode.')

    def test_missing_key_reported(self):
        attempt = self.make_attempt('practice')
        with mock.patch(
            'api.views.attempt.agents.generate_hint', side_effect=MissingAPIKeyError('No valid API keys were available for google.')
        ):
            response = self.client.post(
                reverse('attempt-hint', args=[attempt.id]), {'question_id': self.choice.id}, format='json'
            )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_provider_failure_reported(self):
        attempt = self.make_attempt('practice')
        with mock.patch('api.views.attempt.agents.generate_hint', side_effect=InvalidResponseError('nope')):
            response = self.client.post(
                reverse('attempt-hint', args=[attempt.id]), {'question_id': self.choice.id}, format='json'
            )
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['detail'], InvalidResponseError.user_message)
