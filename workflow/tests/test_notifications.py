from types import SimpleNamespace
from unittest import mock

import pytest

from workflow.exceptions import NotFound
from workflow.models import Notification
from workflow.realtime.router import (
    ADMIN_ROOM,
    ChannelRouter,
    can_join,
    department_room,
    get_router,
    patient_room,
    user_room,
)
from workflow.realtime import router as router_module
from workflow.services import notifications
from workflow.services.notifications import Notifier


def test_room_names():
    assert department_room(7) == 'department_7'
    assert patient_room(12) == 'patient_12'
    assert user_room(3) == 'user_3'
    assert ADMIN_ROOM == 'admin_room'


@pytest.mark.django_db
def test_notify_persists_then_publishes_after_commit(router, admin_user, django_capture_on_commit_callbacks):
    notifier = Notifier(router)
    with django_capture_on_commit_callbacks(execute=False) as callbacks:
        note = notifier.notify('Hello', 'World', room='department_1', to=admin_user, data={'k': 1})
        assert router.published == []
    for cb in callbacks:
        cb()

    stored = Notification.objects.get(pk=note.pk)
    assert (stored.title, stored.message, stored.room, stored.to_id, stored.is_read, stored.data) == (
        'Hello', 'World', 'department_1', admin_user.id, False, {'k': 1},
    )
    assert [(room, event) for room, event, _ in router.published] == [
        ('department_1', 'notification'), (user_room(admin_user.id), 'notification'),
    ]
    payload = router.published[0][2]
    assert payload['title'] == 'Hello'
    assert payload['isRead'] is False
    assert payload['createdAt']


@pytest.mark.django_db
def test_notify_without_router_still_persists(django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        Notifier(None).notify('t', 'm', room='admin_room')
    assert Notification.objects.filter(room='admin_room').count() == 1


class _RecordingLayer:
    def __init__(self):
        self.calls = []

    async def group_add(self, group, channel):
        self.calls.append(('add', group, channel))

    async def group_discard(self, group, channel):
        self.calls.append(('discard', group, channel))

    async def group_send(self, group, message):
        self.calls.append(('send', group, message))


def test_router_maps_onto_channel_groups():
    layer = _RecordingLayer()
    router = ChannelRouter(layer)
    router.join('chan.1', 'department_3')
    router.publish('department_3', 'new_report', {'id': 9})
    router.publish_global('maintenance', {'at': 'now'})
    router.leave('chan.1', 'department_3')

    assert layer.calls == [
        ('add', 'department_3', 'chan.1'),
        ('send', 'department_3', {'type': 'workflow.event', 'event': 'new_report', 'payload': {'id': 9}}),
        ('send', 'broadcast', {'type': 'workflow.event', 'event': 'maintenance', 'payload': {'at': 'now'}}),
        ('discard', 'department_3', 'chan.1'),
    ]


class _BrokenLayer:
    async def group_send(self, group, message):
        raise RuntimeError('redis down')


def test_publish_failures_are_swallowed():
    with mock.patch.object(router_module, 'logger') as logger:
        ChannelRouter(_BrokenLayer()).publish('department_1', 'status_changed', {'id': 1})
    logger.warning.assert_called_once()
    assert logger.warning.call_args[0][0] == 'realtime.publish_failed'


def test_get_router_is_none_without_channel_layer(settings, fresh_channel_layer):
    settings.CHANNEL_LAYERS = {}
    assert get_router() is None


def test_get_router_with_in_memory_layer(fresh_channel_layer):
    assert isinstance(get_router(), ChannelRouter)


@pytest.mark.parametrize('role,dept,room,allowed', [
    ('admin', None, 'admin_room', True),
    ('super_admin', None, 'department_9', True),
    ('reception', None, 'admin_room', False),
    ('reception', None, 'patient_4', True),
    ('department_user', 2, 'department_2', True),
    ('department_user', 2, 'department_3', False),
    ('department_user', 2, 'patient_4', True),
    ('patient', None, 'user_5', True),
    ('patient', None, 'user_6', False),
    ('patient', None, 'patient_4', False),
    ('admin', None, 'bad room!', False),
])
def test_room_access_policy(role, dept, room, allowed):
    user = SimpleNamespace(id=5, role=role, department_id=dept, is_authenticated=True)
    assert can_join(user, room) is allowed


def test_anonymous_cannot_join_anything():
    assert not can_join(SimpleNamespace(is_authenticated=False), 'user_1')
    assert not can_join(None, 'user_1')


# ---------------------------------------------------------------------------
# Polling fallback
# ---------------------------------------------------------------------------

@pytest.mark.django_db
def test_polling_sees_direct_and_room_notifications(dept_user, department, other_department):
    notifier = Notifier(None)
    mine = notifier.notify('direct', 'm', to=dept_user)
    dept = notifier.notify('dept', 'm', room=department_room(department.id))
    notifier.notify('other dept', 'm', room=department_room(other_department.id))
    notifier.notify('admins', 'm', room=ADMIN_ROOM)

    items, total = notifications.list_for_user(dept_user)
    assert total == 2
    assert {i['id'] for i in items} == {mine.id, dept.id}


@pytest.mark.django_db
def test_admin_polling_sees_admin_and_department_rooms(admin_user, department):
    notifier = Notifier(None)
    notifier.notify('admins', 'm', room=ADMIN_ROOM)
    notifier.notify('dept', 'm', room=department_room(department.id))
    _, total = notifications.list_for_user(admin_user)
    assert total == 2


@pytest.mark.django_db
def test_mark_read_and_mark_all_read(dept_user, department):
    notifier = Notifier(None)
    first = notifier.notify('a', 'm', to=dept_user)
    notifier.notify('b', 'm', room=department_room(department.id))
    notifier.notify('c', 'm', room=department_room(department.id))

    notifications.mark_read(dept_user, first.id)
    first.refresh_from_db()
    assert first.is_read

    _, unread = notifications.list_for_user(dept_user, unread_only=True)
    assert unread == 2
    assert notifications.mark_all_read(dept_user) == 2
    _, unread = notifications.list_for_user(dept_user, unread_only=True)
    assert unread == 0


@pytest.mark.django_db
def test_cannot_mark_someone_elses_notification(dept_user, reception_user):
    note = Notifier(None).notify('private', 'm', to=reception_user)
    with pytest.raises(NotFound):
        notifications.mark_read(dept_user, note.id)
    assert not Notification.objects.get(pk=note.id).is_read
