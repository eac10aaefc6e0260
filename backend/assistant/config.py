from dataclasses import dataclass, field

from django.conf import settings
from rest_framework import serializers

from .providers import AI_MODELS, Provider

TOOLS = ('summary', 'quiz', 'flashcards', 'answer', 'hint', 'explanation', 'grade', 'questions')


@dataclass(frozen=True)
class ModelConfig:
    """Model selection and credentials for one request.

    ``overrides`` maps a tool name to a model that replaces ``model`` for that
    tool only. ``api_keys`` maps a provider value (``openai``/``google``) to a
    key supplied by the client.
    """

    model: str
    overrides: dict = field(default_factory=dict)
    api_keys: dict = field(default_factory=dict)

    @classmethod
    def default(cls) -> 'ModelConfig':
        return cls(model=settings.STUDYGENIUS_DEFAULT_MODEL)

    def for_tool(self, tool: str) -> str:
        return self.overrides.get(tool) or self.model

    def api_key_for(self, provider: Provider):
        return self.api_keys.get(Provider(provider).value)


class ModelConfigSerializer(serializers.Serializer):
    model = serializers.CharField(required=False, allow_blank=True, max_length=100)
    overrides = serializers.DictField(
        child=serializers.CharField(allow_blank=True, max_length=100),
        required=False,
    )
    api_keys = serializers.DictField(
        child=serializers.CharField(allow_blank=True, max_length=512),
        required=False,
    )

    def validate_overrides(self, value):
        unknown = sorted(set(value) - set(TOOLS))
        if unknown:
            raise serializers.ValidationError(f"Unknown tool(s): {', '.join(unknown)}.")
        return {tool: model for tool, model in value.items() if model}

    def validate_api_keys(self, value):
        providers = {provider.value for provider in Provider}
        unknown = sorted(set(value) - providers)
        if unknown:
            raise serializers.ValidationError(f"Unknown provider(s): {', '.join(unknown)}.")
        return {provider: key for provider, key in value.items() if key}

    def to_config(self) -> ModelConfig:
        data = self.validated_data
        return ModelConfig(
            model=data.get('model') or settings.STUDYGENIUS_DEFAULT_MODEL,
            overrides=dict(data.get('overrides') or {}),
            api_keys=dict(data.get('api_keys') or {}),
        )


def config_from_payload(payload) -> ModelConfig:
    """Build a config from the ``ai`` object of a request body; raises ValidationError."""
    if not payload:
        return ModelConfig.default()
    serializer = ModelConfigSerializer(data=payload)
    serializer.is_valid(raise_exception=True)
    return serializer.to_config()


def available_models():
    return [
        {'id': model_id, 'name': name, 'provider': provider.value}
        for model_id, (name, provider) in AI_MODELS.items()
    ]
