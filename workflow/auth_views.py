"""
Authentication views.

Login hands back both a DRF token (``Authorization: Token ...``) and a
SimpleJWT pair (``Authorization: Bearer ...``); the SPA uses the JWT pair
and refreshes it through ``/api/auth/refresh``.  Failed and successful
attempts are written to the audit log.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from workflow.serializers.auth import LoginSerializer, RefreshSerializer
from workflow.services.audit import log_action

logger = logging.getLogger(__name__)


def _user_payload(user) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'name': user.get_full_name() or user.username,
        'email': user.email,
        'role': user.role,
        'department': user.department_id,
        'phone': user.phone,
    }


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([ScopedRateThrottle])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']

    user = authenticate(request, username=username, password=password)
    if not user:
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'username': username, 'ip': request.META.get('REMOTE_ADDR')})
        logger.info('auth.login_failed', extra={'username': username})
        return Response({'ok': False, 'error': {'code': 'invalid_credentials', 'message': 'Invalid credentials'}},
                        status=400)

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return Response({
        'ok': True,
        'token': token_obj.key,
        'access': str(refresh.access_token),
        'refresh': str(refresh),
        'user': _user_payload(user),
    }, status=200)

login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_view(request):
    s = RefreshSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        refresh = RefreshToken(s.validated_data['refresh'])
    except TokenError as e:
        return Response({'ok': False, 'error': {'code': 'invalid_token', 'message': str(e)}}, status=401)
    return Response({'ok': True, 'access': str(refresh.access_token)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({'ok': True, 'user': _user_payload(request.user)})
