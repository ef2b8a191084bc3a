import pytest
from channels.layers import channel_layers

from workflow.models import Department, Patient, User
from workflow.services.workflow import WorkflowEngine


class RecordingRouter:
    """Stands in for ChannelRouter and remembers every publish."""

    def __init__(self):
        self.published = []

    def join(self, channel_name, room):
        pass

    def leave(self, channel_name, room):
        pass

    def publish(self, room, event, payload):
        self.published.append((room, event, payload))

    def publish_global(self, event, payload):
        self.publish('broadcast', event, payload)

    def rooms_for(self, event):
        return [room for room, ev, _ in self.published if ev == event]


@pytest.fixture
def router():
    return RecordingRouter()


@pytest.fixture
def engine(router):
    return WorkflowEngine(router)


@pytest.fixture
def fresh_channel_layer():
    channel_layers.backends = {}
    yield
    channel_layers.backends = {}


@pytest.fixture
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    return tmp_path


@pytest.fixture
def department(db):
    return Department.objects.create(name='MRI', code='mri')


@pytest.fixture
def other_department(db):
    return Department.objects.create(name='CT Scan', code='ct')


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='admin1', password='adminpass', role=User.ROLE_ADMIN)


@pytest.fixture
def reception_user(db):
    return User.objects.create_user(username='desk1', password='deskpass', role=User.ROLE_RECEPTION)


@pytest.fixture
def dept_user(db, department):
    return User.objects.create_user(
        username='mri1', password='mripass', role=User.ROLE_DEPARTMENT_USER, department=department,
    )


@pytest.fixture
def patient(db, reception_user):
    return Patient.objects.create(
        first_name='Asha', last_name='Rao', phone='9000000001', case_type='Routine',
        created_by=reception_user,
        selected_tests=[{'testId': 't1', 'name': 'MRI Brain', 'mrp': 4000, 'offerRate': 3500,
                         'code': 'MRB', 'deptid': 'mri'}],
    )


@pytest.fixture
def paid_patient(patient, engine, reception_user):
    return engine.record_payment(patient.id, actor=reception_user)
