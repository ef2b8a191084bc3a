from typing import Optional, Any, Dict
from django.contrib.auth import get_user_model
from workflow.models import AuditEvent

User = get_user_model()

def log_action(*, user: Optional[User], action: str, object_type: Optional[str]=None, object_id: Optional[int]=None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    """Append an audit row; runs inside the caller's transaction."""
    return AuditEvent.objects.create(
        user=user if getattr(user, 'pk', None) else None,
        action=action,
        object_type=object_type, object_id=object_id,
        detail=detail or {},
    )

def list_actions(*, object_type: Optional[str]=None, object_id: Optional[int]=None, action: Optional[str]=None, limit: int=200):
    qs = AuditEvent.objects.select_related('user')
    if object_type:
        qs = qs.filter(object_type=object_type)
    if object_id is not None:
        qs = qs.filter(object_id=object_id)
    if action:
        qs = qs.filter(action=action)
    return list(qs.order_by('-created_at', '-id')[:limit])
