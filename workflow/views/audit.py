"""Audit trail for administrators."""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from workflow.exceptions import InvalidArgument
from workflow.permissions import IsAdminRole
from workflow.services.audit import list_actions
from workflow.services.formatting import format_audit_event


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def audit_log(request):
    params = request.query_params
    object_id = params.get('objectId')
    if object_id not in (None, ''):
        try:
            object_id = int(object_id)
        except ValueError:
            raise InvalidArgument('objectId must be an integer')
    else:
        object_id = None
    events = list_actions(
        object_type=params.get('objectType') or None,
        object_id=object_id,
        action=params.get('action') or None,
    )
    return Response([format_audit_event(e) for e in events])
