"""
Staff and portal account management.

Only administrators reach these functions (see ``workflow.views.users``).
Passwords are set on creation only; ``update_user`` never touches them and
``seed_admin --reset-password`` is the recovery path.  Only a super admin
may create, edit or toggle another super admin.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from rest_framework.exceptions import PermissionDenied

from workflow.exceptions import InvalidArgument, NotFound, PreconditionFailed
from workflow.models import Department, User
from workflow.services.audit import log_action

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('username', 'first_name', 'last_name', 'email', 'phone', 'role', 'department_id')


def get_user(user_id) -> User:
    try:
        return User.objects.select_related('department').get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'User {user_id} not found')


def _guard_super_admin(actor: Optional[User], *roles) -> None:
    if User.ROLE_SUPER_ADMIN in roles and getattr(actor, 'role', None) != User.ROLE_SUPER_ADMIN:
        raise PermissionDenied('Only a super admin may manage super admin accounts')


def _validate(user: User) -> None:
    clash = User.objects.exclude(pk=user.pk)
    if clash.filter(username__iexact=user.username).exists():
        raise InvalidArgument(f'Username {user.username} already exists')
    if user.email and clash.filter(email__iexact=user.email).exists():
        raise InvalidArgument(f'Email {user.email} already exists')
    if user.department_id and not Department.objects.filter(pk=user.department_id).exists():
        raise NotFound(f'Department {user.department_id} not found')
    if user.role == User.ROLE_DEPARTMENT_USER and not user.department_id:
        raise InvalidArgument('A department user needs a department')


@transaction.atomic
def create_user(fields: dict, password: str, actor: Optional[User] = None) -> User:
    _guard_super_admin(actor, fields.get('role'))
    user = User(**{k: v for k, v in fields.items() if k in EDITABLE_FIELDS})
    _validate(user)
    user.set_password(password)
    user.save()
    log_action(user=actor, action='user_create', object_type='user', object_id=user.id,
               detail={'username': user.username, 'role': user.role})
    logger.info('user.created', extra={'username': user.username, 'role': user.role})
    return user


@transaction.atomic
def update_user(user_id, fields: dict, actor: Optional[User] = None) -> User:
    user = get_user(user_id)
    _guard_super_admin(actor, user.role, fields.get('role'))
    changed = []
    for name in EDITABLE_FIELDS:
        if name in fields:
            setattr(user, name, fields[name])
            changed.append(name)
    if changed:
        _validate(user)
        user.save(update_fields=changed)
        log_action(user=actor, action='user_update', object_type='user', object_id=user.id,
                   detail={'fields': changed})
    return get_user(user.id)


@transaction.atomic
def set_active(user_id, active: bool, actor: Optional[User] = None) -> User:
    user = get_user(user_id)
    _guard_super_admin(actor, user.role)
    if not active and actor is not None and actor.pk == user.pk:
        raise PreconditionFailed('You cannot deactivate your own account')
    if user.is_active != active:
        user.is_active = active
        user.save(update_fields=['is_active'])
        log_action(user=actor, action='user_activate' if active else 'user_deactivate',
                   object_type='user', object_id=user.id)
        logger.info('user.active_changed', extra={'username': user.username, 'active': active})
    return user


def list_users(*, role: Optional[str] = None, department=None, active: Optional[bool] = None) -> list:
    qs = User.objects.select_related('department')
    if role:
        qs = qs.filter(role=role)
    if department:
        qs = qs.filter(department_id=department)
    if active is not None:
        qs = qs.filter(is_active=active)
    return list(qs.order_by('username'))
