import logging

from rest_framework import status
from rest_framework.exceptions import APIException, NotFound
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class Conflict(APIException):
    """The request clashes with current state, e.g. an occupied bed."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Conflict with current state.'
    default_code = 'conflict'


def api_error(code: str, message, http_status: int) -> Response:
    return Response({'ok': False, 'error': {'code': code, 'message': message}}, status=http_status)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception(f"Unhandled API error: {exc}")
        return api_error('server_error', str(exc), 500)
    # normalize response
    if isinstance(resp.data, dict):
        message = resp.data.get('detail') or resp.data
    else:
        message = resp.data
    code = getattr(exc, 'default_code', None) or 'api_error'
    return api_error(code, message, resp.status_code)


class UpstreamError(APIException):
    """An external service (lab, messaging gateway) failed or is not configured."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'Upstream service failed.'
    default_code = 'upstream_error'


def get_or_404(qs, message: str = 'Not found.', **lookup):
    """First row of ``qs`` matching ``lookup`` or a DRF ``NotFound``."""
    obj = qs.filter(**lookup).first()
    if obj is None:
        raise NotFound(message)
    return obj
