class AIError(Exception):
    """Base class for failures talking to an AI provider."""

    user_message = 'The AI service is unavailable right now. Please try again later.'


class MissingAPIKeyError(AIError):
    """No usable API key exists for the provider the model belongs to."""

    @property
    def user_message(self):
        return str(self)


class ProviderError(AIError):
    """The provider call itself failed."""

    def __init__(self, message, *, try_next_key=False, status_code=None):
        super().__init__(message)
        self.try_next_key = try_next_key
        self.status_code = status_code


class InvalidResponseError(AIError):
    """The provider answered, but not with the JSON shape that was asked for."""

    user_message = 'The AI service returned an unexpected response. Please try again.'
