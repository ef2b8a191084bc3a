from django.db import DatabaseError, connections
from django.http import JsonResponse

from workflow.realtime.router import get_router


def healthz(request):
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
    except DatabaseError as e:
        return JsonResponse({'ok': False, 'error': str(e)}, status=500)
    return JsonResponse({
        'ok': True,
        'db': bool(row and row[0] == 1),
        'realtime': get_router() is not None,
    })
