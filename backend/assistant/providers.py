"""Calls to the hosted language models.

Every call sends a system instruction and a user message and asks for a JSON
object back. The model name decides the provider: ``gemini-*`` goes to Google,
anything else to OpenAI.
"""
import enum
import json
import logging

import google.generativeai as genai
import openai
from django.conf import settings
from google.api_core import exceptions as google_exceptions

from .exceptions import InvalidResponseError, MissingAPIKeyError, ProviderError

logger = logging.getLogger(__name__)


class Provider(str, enum.Enum):
    OPENAI = 'openai'
    GOOGLE = 'google'


GOOGLE_PREFIX = 'gemini-'

# Models offered to clients. Names outside this table are still accepted.
AI_MODELS = {
    'gpt-4o': ('GPT-4o', Provider.OPENAI),
    'gpt-4o-mini': ('GPT-4o mini', Provider.OPENAI),
    'gpt-4-turbo': ('GPT-4 Turbo', Provider.OPENAI),
    'gpt-4': ('GPT-4', Provider.OPENAI),
    'gemini-1.5-pro-latest': ('Gemini 1.5 Pro', Provider.GOOGLE),
    'gemini-1.5-flash-latest': ('Gemini 1.5 Flash', Provider.GOOGLE),
}

# Client-side placeholders such as "YOUR_API_KEY" and short junk are ignored.
PLACEHOLDER_MARKER = 'YOUR_'
MIN_KEY_LENGTH = 11

# OpenAI statuses after which another key may succeed.
OPENAI_KEY_STATUSES = frozenset({401, 429})


def classify_model(model_name) -> Provider:
    if str(model_name or '').startswith(GOOGLE_PREFIX):
        return Provider.GOOGLE
    return Provider.OPENAI


def is_usable_key(key) -> bool:
    return bool(key) and PLACEHOLDER_MARKER not in key and len(key) >= MIN_KEY_LENGTH


def server_keys(provider: Provider):
    if provider is Provider.GOOGLE:
        return list(settings.GEMINI_API_KEYS)
    return list(settings.OPENAI_API_KEYS)


def collect_api_keys(provider: Provider, user_key=None):
    """Candidate keys in the order they are tried: the client's own key first."""
    candidates = []
    if user_key and is_usable_key(user_key.strip()):
        candidates.append(user_key.strip())
    candidates.extend(key.strip() for key in server_keys(provider) if key and key.strip())

    seen = set()
    keys = []
    for key in candidates:
        if key not in seen:
            seen.add(key)
            keys.append(key)
    return keys


def call_openai(api_key, model, system_prompt, user_prompt, temperature) -> str:
    # Each key is tried once; the SDK must not retry on its own.
    client = openai.OpenAI(api_key=api_key, max_retries=0)
    try:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {'role': 'system', 'content': system_prompt},
                {'role': 'user', 'content': user_prompt},
            ],
            response_format={'type': 'json_object'},
            temperature=temperature,
        )
    except openai.APIStatusError as exc:
        raise ProviderError(
            f'OpenAI returned {exc.status_code}: {exc.message}',
            try_next_key=exc.status_code in OPENAI_KEY_STATUSES,
            status_code=exc.status_code,
        ) from exc
    except openai.OpenAIError as exc:
        raise ProviderError(f'OpenAI request failed: {exc}') from exc

    if not response.choices:
        raise InvalidResponseError('OpenAI returned no choices.')
    return response.choices[0].message.content or ''


def call_google(api_key, model, system_prompt, user_prompt, temperature) -> str:
    # The SDK keeps its credentials module-wide.
    genai.configure(api_key=api_key)
    generative_model = genai.GenerativeModel(
        model_name=model,
        system_instruction=system_prompt,
        generation_config={
            'response_mime_type': 'application/json',
            'temperature': temperature,
        },
    )
    try:
        response = generative_model.generate_content(user_prompt, request_options={'retry': None})
        # .text raises ValueError when the candidate was blocked.
        return response.text or ''
    except (google_exceptions.GoogleAPIError, ValueError) as exc:
        raise ProviderError(f'Gemini request failed: {exc}', try_next_key=True) from exc


def call_provider(provider: Provider, api_key, model, system_prompt, user_prompt, temperature) -> str:
    if provider is Provider.GOOGLE:
        return call_google(api_key, model, system_prompt, user_prompt, temperature)
    return call_openai(api_key, model, system_prompt, user_prompt, temperature)


def parse_json_response(content) -> dict:
    text = (content or '').strip()
    # Some models wrap JSON in ``` blocks; strip if present
    if text.startswith('```'):
        text = text.split('\n', 1)[1] if '\n' in text else ''
        if text.rstrip().endswith('```'):
            text = text.rstrip()[:-3]
    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise InvalidResponseError(f'Model returned non-JSON content: {text[:200]!r}') from exc
    if not isinstance(payload, dict):
        raise InvalidResponseError('Model returned JSON that is not an object.')
    return payload


def generate_json(model, system_prompt, user_prompt, *, user_key=None, temperature=0.7) -> dict:
    """Send one prompt and return the decoded JSON object.

    Keys are tried in turn, each once. For OpenAI only a rejected or
    rate-limited key moves on to the next one; for Google any failure does.
    """
    provider = classify_model(model)
    keys = collect_api_keys(provider, user_key)
    if not keys:
        raise MissingAPIKeyError(
            f'No valid API keys were available for {provider.value}. '
            'Add a key in your settings or ask the administrator to configure one.'
        )

    logger.info('Calling %s model %s with %d candidate key(s)', provider.value, model, len(keys))
    last_error = None
    for position, key in enumerate(keys, start=1):
        try:
            content = call_provider(provider, key, model, system_prompt, user_prompt, temperature)
        except ProviderError as exc:
            if not exc.try_next_key:
                raise
            last_error = exc
            logger.warning('%s key %d/%d failed: %s', provider.value, position, len(keys), exc)
            continue
        return parse_json_response(content)
    raise last_error
