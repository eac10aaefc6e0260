import logging

from django.db import connections
from django.db.utils import InterfaceError, OperationalError

logger = logging.getLogger(__name__)
SAFE_METHODS = frozenset({'GET', 'HEAD', 'OPTIONS'})


class RetryDatabaseConnectionMiddleware:
    """Replay a read-only request once after the database connection drops.

    Writes are never replayed: an answer submission or an AI generation call
    may already have committed rows (or spent provider quota) before the
    connection failed.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        try:
            return self.get_response(request)
        except (OperationalError, InterfaceError) as exc:
            if request.method not in SAFE_METHODS:
                raise
            logger.warning(
                'Lost database connection on %s %s; closing connections and replaying',
                request.method,
                request.path,
                exc_info=exc,
            )
            connections.close_all()
            return self.get_response(request)
