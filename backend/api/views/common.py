import logging

from rest_framework import status
from rest_framework.response import Response

from assistant.exceptions import MissingAPIKeyError

logger = logging.getLogger(__name__)


def ai_error_response(exc):
    """Turn an assistant failure into an API error response."""
    if isinstance(exc, MissingAPIKeyError):
        return Response({'detail': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    logger.warning('AI request failed: %s', exc)
    return Response({'detail': exc.user_message}, status=status.HTTP_502_BAD_GATEWAY)
