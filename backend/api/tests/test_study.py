from unittest import mock

from django.contrib.auth.models import User
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from assistant.exceptions import MissingAPIKeyError, ProviderError
from assistant.providers import Provider
from studytools.models import StudySession

TEXT = 'Mitochondria are organelles that produce most of the chemical energy used by a cell.'


class StudyToolTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='learner', password='x')
        self.client.force_authenticate(user=self.user)

    def test_summary_creates_session(self):
        with mock.patch('api.views.study.agents.generate_summary', return_value={'summary': 'Cells make energy.'}):
            response = self.client.post(reverse('study-summary'), {'text': TEXT}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['summary'], 'Cells make energy.')
        session = StudySession.objects.get(id=response.data['session_id'])
        self.assertEqual(session.type, 'summary')
        self.assertEqual(session.source_text, TEXT)
        self.assertEqual(session.content, {'summary': 'Cells make energy.'})
        self.assertEqual(session.user, self.user)

    @override_settings(GEMINI_API_KEYS=['server-gemini-key-1'], STUDYGENIUS_DEFAULT_MODEL='gemini-1.5-flash-latest')
    def test_summary_through_provider(self):
        with mock.patch('assistant.providers.call_provider', return_value='{"summary": "Energy."}') as call:
            response = self.client.post(reverse('study-summary'), {'text': TEXT}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        provider, api_key, model = call.call_args.args[:3]
        self.assertEqual((provider, api_key, model), (Provider.GOOGLE, 'server-gemini-key-1', 'gemini-1.5-flash-latest'))
        self.assertEqual(StudySession.objects.get().model_name, 'gemini-1.5-flash-latest')

    def test_flashcards(self):
        cards = {'cards': [{'front': 'Mitochondria', 'back': 'Energy organelle', 'explanation': ''}]}
        with mock.patch('api.views.study.agents.generate_flashcards', return_value=cards):
            response = self.client.post(reverse('study-flashcards'), {'text': TEXT}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['cards']), 1)
        self.assertEqual(StudySession.objects.get().type, 'flashcards')

    def test_quiz_from_summary(self):
        quiz = {'questions': [{'question': 'What do mitochondria do?', 'correctAnswer': 'Make energy', 'explanation': ''}]}
        with mock.patch('api.views.study.agents.generate_quiz_from_summary', return_value=quiz) as generate:
            response = self.client.post(
                reverse('study-quiz'),
                {'summary': 'Cells make energy.', 'question_count': 3, 'difficulty': 'hard'},
                format='json',
            )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(generate.call_args.args[1:], ('Cells make energy.', 3, 'hard'))
        session = StudySession.objects.get()
        self.assertEqual(session.type, 'quiz')
        self.assertEqual(session.source_text, 'Cells make energy.')

    def test_quiz_count_is_bounded(self):
        response = self.client.post(reverse('study-quiz'), {'summary': 'x', 'question_count': 21}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_answer_appends_question_to_history(self):
        history = [{'role': 'user', 'content': 'What is a cell?'}, {'role': 'ai', 'content': 'A unit of life.'}]
        with mock.patch('api.views.study.agents.generate_answer', return_value={'answer': 'They make ATP.'}) as answer:
            response = self.client.post(
                reverse('study-answer'),
                {'text': TEXT, 'question': 'What do mitochondria make?', 'history': history},
                format='json',
            )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['question'], 'What do mitochondria make?')
        sent_history = answer.call_args.args[2]
        self.assertEqual(len(sent_history), 3)
        self.assertEqual(sent_history[-1], {'role': 'user', 'content': 'What do mitochondria make?'})

    def test_answer_rejects_unknown_role(self):
        response = self.client.post(
            reverse('study-answer'),
            {'text': TEXT, 'question': 'Why?', 'history': [{'role': 'system', 'content': 'x'}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_card_hint_uses_hint_override(self):
        with mock.patch('api.views.study.agents.generate_card_hint', return_value={'hint': 'Powerhouse'}) as hint:
            response = self.client.post(
                reverse('study-card-hint'),
                {'front': 'Mitochondria', 'back': 'Energy organelle', 'ai': {'model': 'gpt-4o', 'overrides': {'hint': 'gpt-4o-mini'}}},
                format='json',
            )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(hint.call_args.args[0].for_tool('hint'), 'gpt-4o-mini')
        session = StudySession.objects.get()
        self.assertEqual(session.type, 'card_hint')
        self.assertEqual(session.model_name, 'gpt-4o-mini')

    def test_grade_returns_fallback_without_error(self):
        result = {'grade': 'incorrect', 'explanation': 'Sorry', 'fallback': True}
        with mock.patch('api.views.study.agents.grade_answer', return_value=result):
            response = self.client.post(
                reverse('study-grade'),
                {'question': 'Capital of Peru?', 'correct_answer': 'Lima', 'user_answer': 'Lima'},
                format='json',
            )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['fallback'])

    def test_missing_key_is_client_error(self):
        error = MissingAPIKeyError('No valid API keys were available for openai.')
        with mock.patch('api.views.study.agents.generate_summary', side_effect=error):
            response = self.client.post(reverse('study-summary'), {'text': TEXT}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['detail'], 'No valid API keys were available for openai.')
        self.assertEqual(StudySession.objects.count(), 0)

    def test_provider_error_is_bad_gateway(self):
        with mock.patch('api.views.study.agents.generate_flashcards', side_effect=ProviderError('timeout')):
            response = self.client.post(reverse('study-flashcards'), {'text': TEXT}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(StudySession.objects.count(), 0)

    def test_blank_text_rejected(self):
        response = self.client.post(reverse('study-summary'), {'text': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_requires_login(self):
        self.client.force_authenticate(user=None)
        response = self.client.post(reverse('study-summary'), {'text': TEXT}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class StudySessionTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='learner', password='x')
        self.other = User.objects.create_user(username='other', password='x')
        self.client.force_authenticate(user=self.user)
        self.summary = StudySession.objects.create(
            user=self.user, type='summary', source_text=TEXT, content={'summary': 'Energy.'}
        )
        self.cards = StudySession.objects.create(user=self.user, type='flashcards', source_text='Cells', content={})
        StudySession.objects.create(user=self.other, type='summary', source_text='Theirs', content={})

    def test_lists_own_sessions(self):
        response = self.client.get(reverse('study-session-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual({row['id'] for row in response.data}, {self.summary.id, self.cards.id})
        self.assertNotIn('content', response.data[0])

    def test_filter_by_type(self):
        response = self.client.get(reverse('study-session-list'), {'type': 'flashcards'})
        self.assertEqual([row['id'] for row in response.data], [self.cards.id])

    def test_detail_has_content(self):
        response = self.client.get(reverse('study-session-detail', args=[self.summary.id]))
        self.assertEqual(response.data['content'], {'summary': 'Energy.'})
        self.assertTrue(response.data['title'].endswith('...'))

    def test_other_users_session_hidden(self):
        theirs = StudySession.objects.get(user=self.other)
        response = self.client.get(reverse('study-session-detail', args=[theirs.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ModelListTests(APITestCase):
    @override_settings(STUDYGENIUS_DEFAULT_MODEL='gpt-4o')
    def test_lists_models(self):
        self.client.force_authenticate(user=User.objects.create_user(username='learner', password='x'))
        response = self.client.get(reverse('study-models'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['default'], 'gpt-4o')
        providers = {model['provider'] for model in response.data['models']}
        self.assertEqual(providers, {'openai', 'google'})
