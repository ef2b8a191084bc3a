"""
Workflow error taxonomy and the project-wide DRF exception handler.

Services raise these exceptions directly; because they are DRF
``APIException`` subclasses they reach clients with the right HTTP status
without any per-view translation.  Every error response uses the same
envelope: ``{"ok": false, "error": {"code": ..., "message": ...}}``.
"""
import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class WorkflowError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Workflow error.'
    default_code = 'workflow_error'


class NotFound(WorkflowError):
    """A referenced patient, case, report, payment or department is missing."""
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class InvalidArgument(WorkflowError):
    """A value is outside its allowed set or a required field is missing."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid argument.'
    default_code = 'invalid_argument'


class PreconditionFailed(WorkflowError):
    """The entity exists but is not in a state that allows the operation."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Precondition failed.'
    default_code = 'precondition_failed'


class StorageFailure(WorkflowError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'File storage failed.'
    default_code = 'storage_failure'


class PersistenceFailure(WorkflowError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Database write failed.'
    default_code = 'persistence_failure'


def _code_for(exc) -> str:
    if isinstance(exc, APIException):
        return getattr(exc, 'default_code', None) or 'api_error'
    return 'api_error'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        if isinstance(exc, DatabaseError):
            logger.error('api.persistence_failure', exc_info=exc)
            return Response(
                {'ok': False, 'error': {'code': PersistenceFailure.default_code, 'message': str(exc)}},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        logger.exception('api.unhandled_error', exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    return Response({'ok': False, 'error': {'code': _code_for(exc), 'message': detail}}, status=resp.status_code)
