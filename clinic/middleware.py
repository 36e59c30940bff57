import logging
import time

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    """Log one line per API request with status and duration."""
    PREFIXES = ('/api/',)

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path or ''
        if not any(path.startswith(p) for p in self.PREFIXES):
            return self.get_response(request)
        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000
        user = getattr(request, 'user', None)
        username = user.username if user is not None and user.is_authenticated else '-'
        logger.info(f"{request.method} {path} {response.status_code} {elapsed_ms:.1f}ms user={username}")
        return response
