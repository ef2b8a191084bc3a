"""
User administration: staff accounts, department users and portal patients.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from workflow.exceptions import InvalidArgument
from workflow.models import User
from workflow.permissions import IsAdminRole
from workflow.serializers.user import ROLES, RegisterSerializer, UserWriteSerializer
from workflow.services import users as user_service
from workflow.services.formatting import format_user


def _flag(value):
    if value in (None, ''):
        return None
    if value in ('1', 'true'):
        return True
    if value in ('0', 'false'):
        return False
    raise InvalidArgument('active must be true or false')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def users(request):
    if request.method == 'GET':
        role = request.query_params.get('role') or None
        if role and role not in ROLES:
            raise InvalidArgument(f'Unknown role: {role}')
        items = user_service.list_users(
            role=role,
            department=request.query_params.get('department') or None,
            active=_flag(request.query_params.get('active')),
        )
        return Response([format_user(u) for u in items])

    s = UserWriteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = user_service.create_user(s.to_model_fields(), s.validated_data['password'], actor=request.user)
    return Response(format_user(user), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_detail(request, user_id: int):
    if request.method == 'GET':
        return Response(format_user(user_service.get_user(user_id)))

    # password is write-once here
    data = {k: v for k, v in request.data.items() if k != 'password'}
    s = UserWriteSerializer(data=data, partial=True)
    s.is_valid(raise_exception=True)
    user = user_service.update_user(user_id, s.to_model_fields(), actor=request.user)
    return Response(format_user(user))


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminRole])
def activate_user(request, user_id: int):
    user = user_service.set_active(user_id, True, actor=request.user)
    return Response({'ok': True, 'message': 'User activated', 'user': format_user(user)})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminRole])
def deactivate_user(request, user_id: int):
    user = user_service.set_active(user_id, False, actor=request.user)
    return Response({'ok': True, 'message': 'User deactivated', 'user': format_user(user)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def register(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user: User = user_service.create_user(s.to_model_fields(), s.validated_data['password'], actor=request.user)
    return Response(
        {'ok': True, 'message': 'User created',
         'user': {'id': user.id, 'name': user.get_full_name() or user.username, 'role': user.role}},
        status=status.HTTP_201_CREATED,
    )
