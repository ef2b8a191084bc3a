"""Polling fallback for clients that missed real-time pushes."""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from workflow.services import notifications as notification_service
from workflow.services.formatting import format_notification


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_notifications(request):
    unread = request.query_params.get('unread', '').lower() in {'1', 'true', 'yes'}
    try:
        page = int(request.query_params.get('page') or 1)
        page_size = int(request.query_params.get('pageSize') or 20)
    except ValueError:
        page, page_size = 1, 20
    items, total = notification_service.list_for_user(
        request.user, unread_only=unread, page=page, page_size=page_size,
    )
    return Response({'items': items, 'total': total, 'page': page})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_read(request, notification_id: int):
    note = notification_service.mark_read(request.user, notification_id)
    return Response(format_notification(note))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_all_read(request):
    updated = notification_service.mark_all_read(request.user)
    return Response({'ok': True, 'updated': updated})
