from unittest import mock

import httpx
import openai
from django.test import SimpleTestCase, override_settings
from rest_framework.exceptions import ValidationError

from . import agents
from .config import ModelConfig, available_models, config_from_payload
from .exceptions import InvalidResponseError, MissingAPIKeyError, ProviderError
from .providers import (
    Provider,
    classify_model,
    collect_api_keys,
    generate_json,
    parse_json_response,
)

USER_KEY = 'sk-user-0123456789'
SERVER_KEYS = dict(OPENAI_API_KEYS=['sk-server-aaaaaaaaaa', 'sk-server-bbbbbbbbbb'], GEMINI_API_KEYS=['gm-server-cccccccccc'])


class ClassifyModelTests(SimpleTestCase):
    def test_gemini_prefix_routes_to_google(self):
        self.assertIs(classify_model('gemini-1.5-flash-latest'), Provider.GOOGLE)
        self.assertIs(classify_model('gemini-anything'), Provider.GOOGLE)

    def test_everything_else_routes_to_openai(self):
        for name in ['gpt-4o', 'gpt-4', 'claude-3', 'my-local-model', '', None]:
            self.assertIs(classify_model(name), Provider.OPENAI)

    def test_prefix_is_case_sensitive(self):
        self.assertIs(classify_model('Gemini-1.5-pro'), Provider.OPENAI)

    def test_available_models(self):
        models = {entry['id']: entry['provider'] for entry in available_models()}
        self.assertEqual(models['gpt-4o'], 'openai')
        self.assertEqual(models['gemini-1.5-pro-latest'], 'google')


@override_settings(**SERVER_KEYS)
class CollectApiKeysTests(SimpleTestCase):
    def test_user_key_comes_first(self):
        keys = collect_api_keys(Provider.OPENAI, USER_KEY)
        self.assertEqual(keys, [USER_KEY, 'sk-server-aaaaaaaaaa', 'sk-server-bbbbbbbbbb'])

    def test_placeholder_and_short_keys_are_ignored(self):
        self.assertEqual(collect_api_keys(Provider.GOOGLE, 'YOUR_GEMINI_KEY_HERE'), ['gm-server-cccccccccc'])
        self.assertEqual(collect_api_keys(Provider.GOOGLE, '0123456789'), ['gm-server-cccccccccc'])

    def test_duplicates_removed(self):
        keys = collect_api_keys(Provider.OPENAI, 'sk-server-aaaaaaaaaa')
        self.assertEqual(keys, ['sk-server-aaaaaaaaaa', 'sk-server-bbbbbbbbbb'])

    @override_settings(OPENAI_API_KEYS=[])
    def test_no_keys(self):
        self.assertEqual(collect_api_keys(Provider.OPENAI, None), [])


class ParseJsonResponseTests(SimpleTestCase):
    def test_plain_json(self):
        self.assertEqual(parse_json_response('{"hint": "think"}'), {'hint': 'think'})

    def test_fenced_json(self):
        self.assertEqual(parse_json_response('```json\n{"hint": "think"}\n```'), {'hint': 'think'})

    def test_not_json(self):
        with self.assertRaises(InvalidResponseError):
            parse_json_response('Sure! Here is your hint.')

    def test_not_an_object(self):
        with self.assertRaises(InvalidResponseError):
            parse_json_response('[1, 2]')


@override_settings(**SERVER_KEYS)
class GenerateJsonTests(SimpleTestCase):
    @override_settings(OPENAI_API_KEYS=[])
    def test_missing_keys_raise_before_any_call(self):
        with mock.patch('assistant.providers.call_provider') as call:
            with self.assertRaises(MissingAPIKeyError) as ctx:
                generate_json('gpt-4o', 'system', 'user')
        call.assert_not_called()
        self.assertIn('No valid API keys were available for openai', str(ctx.exception))

    def test_routes_gemini_models_to_google_keys(self):
        with mock.patch('assistant.providers.call_provider', return_value='{"ok": true}') as call:
            self.assertEqual(generate_json('gemini-1.5-pro-latest', 'system', 'user'), {'ok': True})
        provider, key = call.call_args.args[:2]
        self.assertIs(provider, Provider.GOOGLE)
        self.assertEqual(key, 'gm-server-cccccccccc')

    def test_falls_back_to_next_key_on_rejected_key(self):
        side_effect = [ProviderError('rate limited', try_next_key=True, status_code=429), '{"ok": true}']
        with mock.patch('assistant.providers.call_provider', side_effect=side_effect) as call:
            result = generate_json('gpt-4o', 'system', 'user', user_key=USER_KEY)
        self.assertEqual(result, {'ok': True})
        self.assertEqual([c.args[1] for c in call.call_args_list], [USER_KEY, 'sk-server-aaaaaaaaaa'])

    def test_other_errors_stop_immediately(self):
        with mock.patch(
            'assistant.providers.call_provider',
            side_effect=ProviderError('server error', status_code=500),
        ) as call:
            with self.assertRaises(ProviderError):
                generate_json('gpt-4o', 'system', 'user')
        self.assertEqual(call.call_count, 1)

    def test_raises_last_error_when_every_key_fails(self):
        errors = [
            ProviderError('first', try_next_key=True),
            ProviderError('second', try_next_key=True),
        ]
        with mock.patch('assistant.providers.call_provider', side_effect=errors):
            with self.assertRaisesMessage(ProviderError, 'second'):
                generate_json('gpt-4o', 'system', 'user')


@override_settings(OPENAI_API_KEYS=['sk-server-aaaaaaaaaa'], GEMINI_API_KEYS=['gm-server-cccccccccc'])
class ProviderClientTests(SimpleTestCase):
    def test_openai_sends_one_request_per_key(self):
        requests = []

        def handler(request):
            requests.append(request.headers['authorization'])
            return httpx.Response(429, json={'error': {'message': 'Rate limit reached', 'type': 'requests'}})

        real_client = openai.OpenAI

        def client_with_transport(**kwargs):
            return real_client(http_client=httpx.Client(transport=httpx.MockTransport(handler)), **kwargs)

        with mock.patch('assistant.providers.openai.OpenAI', side_effect=client_with_transport):
            with self.assertRaises(ProviderError) as ctx:
                generate_json('gpt-4o', 'system', 'user', user_key=USER_KEY)

        self.assertEqual(requests, [f'Bearer {USER_KEY}', 'Bearer sk-server-aaaaaaaaaa'])
        self.assertEqual(ctx.exception.status_code, 429)

    def test_gemini_call_disables_retry(self):
        with mock.patch('assistant.providers.genai') as genai:
            genai.GenerativeModel.return_value.generate_content.return_value.text = '{"ok": true}'
            self.assertEqual(generate_json('gemini-1.5-flash-latest', 'system', 'user'), {'ok': True})

        genai.configure.assert_called_once_with(api_key='gm-server-cccccccccc')
        generate_content = genai.GenerativeModel.return_value.generate_content
        generate_content.assert_called_once_with('user', request_options={'retry': None})


class ModelConfigTests(SimpleTestCase):
    def test_tool_override(self):
        config = ModelConfig(model='gpt-4o', overrides={'summary': 'gemini-1.5-pro-latest'})
        self.assertEqual(config.for_tool('summary'), 'gemini-1.5-pro-latest')
        self.assertEqual(config.for_tool('flashcards'), 'gpt-4o')

    @override_settings(STUDYGENIUS_DEFAULT_MODEL='gemini-1.5-flash-latest')
    def test_empty_payload_uses_default(self):
        self.assertEqual(config_from_payload(None).model, 'gemini-1.5-flash-latest')

    def test_payload_is_validated(self):
        config = config_from_payload({
            'model': 'gpt-4o-mini',
            'overrides': {'quiz': 'gpt-4o', 'answer': ''},
            'api_keys': {'openai': USER_KEY},
        })
        self.assertEqual(config.overrides, {'quiz': 'gpt-4o'})
        self.assertEqual(config.api_key_for(Provider.OPENAI), USER_KEY)
        self.assertIsNone(config.api_key_for(Provider.GOOGLE))

    def test_unknown_tool_rejected(self):
        with self.assertRaises(ValidationError):
            config_from_payload({'overrides': {'essay': 'gpt-4o'}})

    def test_unknown_provider_rejected(self):
        with self.assertRaises(ValidationError):
            config_from_payload({'api_keys': {'anthropic': USER_KEY}})


class AgentTests(SimpleTestCase):
    def setUp(self):
        self.config = ModelConfig(model='gpt-4o', api_keys={'openai': USER_KEY})

    def test_grade_answer(self):
        payload = {'grade': 'partially_correct', 'explanation': 'Close, but incomplete.'}
        with mock.patch('assistant.providers.generate_json', return_value=payload) as call:
            result = agents.grade_answer(self.config, 'What is osmosis?', 'Diffusion of water', 'Water moving')
        self.assertEqual(result['grade'], 'partially_correct')
        self.assertFalse(result['fallback'])
        self.assertEqual(call.call_args.kwargs['user_key'], USER_KEY)
        self.assertIn("User's Answer: Water moving", call.call_args.args[2])

    def test_grade_answer_falls_back_when_provider_raises(self):
        with mock.patch('assistant.providers.generate_json', side_effect=ProviderError('boom')):
            result = agents.grade_answer(self.config, 'Q', 'A', 'B')
        self.assertEqual(result['grade'], 'incorrect')
        self.assertEqual(result['explanation'], agents.GRADING_FALLBACK_EXPLANATION)
        self.assertTrue(result['fallback'])

    def test_grade_answer_falls_back_on_bad_shape(self):
        with mock.patch('assistant.providers.generate_json', return_value={'grade': 'excellent'}):
            result = agents.grade_answer(self.config, 'Q', 'A', 'B')
        self.assertTrue(result['fallback'])

    @override_settings(OPENAI_API_KEYS=[])
    def test_grade_answer_falls_back_without_keys(self):
        result = agents.grade_answer(ModelConfig(model='gpt-4o'), 'Q', 'A', 'B')
        self.assertTrue(result['fallback'])

    def test_flashcards_validated(self):
        payload = {'cards': [{'front': 'ATP', 'back': 'Energy currency'}]}
        with mock.patch('assistant.providers.generate_json', return_value=payload):
            result = agents.generate_flashcards(self.config, 'Cells make ATP.')
        self.assertEqual(result['cards'][0]['explanation'], '')

    def test_flashcards_bad_shape_raises(self):
        with mock.patch('assistant.providers.generate_json', return_value={'cards': []}):
            with self.assertRaises(InvalidResponseError):
                agents.generate_flashcards(self.config, 'Cells make ATP.')

    def test_tool_override_selects_model(self):
        config = ModelConfig(model='gpt-4o', overrides={'summary': 'gemini-1.5-pro-latest'})
        with mock.patch('assistant.providers.generate_json', return_value={'summary': 'Short.'}) as call:
            agents.generate_summary(config, 'Long text')
        self.assertEqual(call.call_args.args[0], 'gemini-1.5-pro-latest')

    def test_generate_questions_caps_count(self):
        questions = [
            {'question_text': f'Question {i}?', 'type': 'open_answer', 'correct_answer': 'x'}
            for i in range(5)
        ]
        with mock.patch('assistant.providers.generate_json', return_value={'questions': questions}):
            result = agents.generate_questions(self.config, 'Cells', question_count=2)
        self.assertEqual(len(result['questions']), 2)

    def test_generate_questions_rejects_unknown_type(self):
        questions = [{'question_text': 'Draw a cell', 'type': 'whiteboard', 'correct_answer': 'x'}]
        with mock.patch('assistant.providers.generate_json', return_value={'questions': questions}):
            with self.assertRaises(InvalidResponseError):
                agents.generate_questions(self.config, 'Cells')

    def test_answer_includes_history(self):
        history = [{'role': 'user', 'content': 'What is ATP?'}, {'role': 'ai', 'content': 'Energy.'}]
        with mock.patch('assistant.providers.generate_json', return_value={'answer': 'Yes.'}) as call:
            agents.generate_answer(self.config, 'Cells make ATP.', history)
        prompt = call.call_args.args[2]
        self.assertIn('Student: What is ATP?', prompt)
        self.assertIn('Assistant: Energy.', prompt)
