"""
End-to-end behaviour of the workflow engine: intake through approval.

The engine gets a recording router; publishes only happen once the
surrounding transaction commits, so tests that assert on publishes run
inside ``django_capture_on_commit_callbacks(execute=True)``.
"""
import re

import pytest
from django.db import DatabaseError

from workflow.exceptions import InvalidArgument, NotFound, PersistenceFailure, PreconditionFailed
from workflow.models import AuditEvent, Case, Notification, Patient, Report, User
from workflow.realtime.router import ADMIN_ROOM, department_room, patient_room
from workflow.services.workflow import WorkflowEngine

pytestmark = pytest.mark.django_db

UPLOAD = {'url': 'http://x/f.pdf', 'filename': 'f.pdf'}


@pytest.fixture
def assigned_patient(paid_patient, engine, department, reception_user):
    return engine.assign_department(paid_patient.id, department.id, 'MRI', actor=reception_user)


@pytest.fixture
def case(assigned_patient, engine, department, dept_user):
    return engine.create_case(assigned_patient.id, department.id, actor=dept_user)


@pytest.fixture
def report(case, engine, dept_user):
    return engine.create_report_from_case(case.id, actor=dept_user)


# ---------------------------------------------------------------------------
# Intake to approval
# ---------------------------------------------------------------------------

def test_payment_then_assignment(patient, engine, department, reception_user):
    assert patient.payment_status == Patient.PAYMENT_PENDING

    engine.record_payment(patient.id, actor=reception_user)
    patient.refresh_from_db()
    assert patient.status == Patient.STATUS_IN_PROGRESS
    assert patient.payment_status == Patient.PAYMENT_PAID

    engine.assign_department(patient.id, department.id, 'MRI', actor=reception_user)
    patient.refresh_from_db()
    assert patient.status == Patient.STATUS_SENT_TO_DEPARTMENT
    assert patient.assigned_department == 'mri'
    assert patient.department_assigned_to_id == department.id
    assert patient.department_assigned_by_id == reception_user.id
    assert patient.department_assigned_at is not None


def test_case_creation_copies_tests_and_starts_pending(assigned_patient, engine, department):
    case = engine.create_case(assigned_patient.id, department.id)
    assert re.fullmatch(r'CASE-\d+', case.case_number)
    assert case.status == Case.STATUS_PENDING
    assert case.report_id is None
    assert case.selected_tests == assigned_patient.selected_tests


def test_quick_create_links_both_sides(case, engine, router, department,
                                      django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        report = engine.create_report_from_case(case.id)

    case.refresh_from_db()
    assert report.case_number == case.case_number
    assert report.status == Report.STATUS_PENDING
    assert case.report_id == report.id
    assert report.case_id == case.id
    assert router.rooms_for('new_report') == [department_room(department.id)]


def test_upload_notifies_three_rooms(report, engine, router, dept_user, department,
                                    django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        engine.upload_report_file(report.id, UPLOAD, actor=dept_user)

    report.refresh_from_db()
    assert report.status == Report.STATUS_REPORT_UPLOADED
    assert report.file_url == 'http://x/f.pdf'
    assert report.file_name == 'f.pdf'
    assert report.file_uploaded_by_id == dept_user.id

    expected = {department_room(department.id), patient_room(report.patient_id), ADMIN_ROOM}
    rooms = set(
        Notification.objects.filter(data__reportId=report.id, title='Report uploaded').values_list('room', flat=True)
    )
    assert rooms == expected
    assert set(router.rooms_for('report_uploaded')) == expected


def test_approval_completes_patient(report, engine, router, dept_user, department,
                                    django_capture_on_commit_callbacks):
    engine.upload_report_file(report.id, UPLOAD, actor=dept_user)

    with django_capture_on_commit_callbacks(execute=True):
        engine.change_report_status(report.id, 'approved', actor=dept_user)

    report.refresh_from_db()
    patient = Patient.objects.get(pk=report.patient_id)
    assert report.status == Report.STATUS_APPROVED
    assert patient.status == Patient.STATUS_COMPLETED

    notes = Notification.objects.filter(title='Status changed to approved')
    assert notes.count() == 1
    assert notes.get().room == department_room(department.id)
    assert notes.get().message == f'Case {report.case_number} is now approved'
    assert set(router.rooms_for('status_changed')) == {
        department_room(department.id), patient_room(report.patient_id),
    }
    assert Case.objects.get(pk=report.case_id).status == Case.STATUS_APPROVED


def test_delete_case_cascades(report, engine):
    case_id = report.case_id
    engine.delete_case(case_id)
    assert not Case.objects.filter(pk=case_id).exists()
    assert not Report.objects.filter(pk=report.id).exists()


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

def test_unpaid_patient_cannot_get_a_case(patient, engine, department):
    with pytest.raises(PreconditionFailed):
        engine.create_case(patient.id, department.id)
    assert not Case.objects.exists()


def test_unpaid_patient_cannot_be_assigned(patient, engine, department):
    with pytest.raises(PreconditionFailed):
        engine.assign_department(patient.id, department.id, 'MRI')
    patient.refresh_from_db()
    assert patient.status == Patient.STATUS_PENDING_PAYMENT
    assert patient.department_assigned_to_id is None


def test_record_payment_is_idempotent(patient, engine):
    engine.record_payment(patient.id)
    again = engine.record_payment(patient.id)
    assert again.payment_status == Patient.PAYMENT_PAID


def test_repeat_payment_does_not_regress_status(assigned_patient, engine):
    engine.record_payment(assigned_patient.id)
    assigned_patient.refresh_from_db()
    assert assigned_patient.status == Patient.STATUS_SENT_TO_DEPARTMENT


def test_approval_via_review_path(report, engine, dept_user):
    engine.upload_report_file(report.id, UPLOAD, actor=dept_user)
    engine.change_report_status(report.id, 'reviewed', actor=dept_user)
    engine.approve_report(report.id, actor=dept_user)
    assert Patient.objects.get(pk=report.patient_id).status == Patient.STATUS_COMPLETED


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_missing_entities_raise_not_found(engine, department, paid_patient):
    with pytest.raises(NotFound):
        engine.record_payment(999999)
    with pytest.raises(NotFound):
        engine.assign_department(paid_patient.id, 999999, 'x')
    with pytest.raises(NotFound):
        engine.create_case(999999, department.id)
    with pytest.raises(NotFound):
        engine.create_report_from_case(999999)
    with pytest.raises(NotFound):
        engine.upload_report_file(999999, UPLOAD)
    with pytest.raises(NotFound):
        engine.change_report_status(999999, 'approved')
    with pytest.raises(NotFound):
        engine.delete_case(999999)
    with pytest.raises(NotFound):
        engine.delete_report(999999)


def test_invalid_status_value_is_rejected(report, engine):
    with pytest.raises(InvalidArgument):
        engine.change_report_status(report.id, 'done')
    report.refresh_from_db()
    assert report.status == Report.STATUS_PENDING
    assert not Notification.objects.filter(title__startswith='Status changed').exists()


def test_backward_move_needs_override(report, engine, admin_user):
    engine.change_report_status(report.id, 'in_progress')
    engine.change_report_status(report.id, 'cancelled')
    with pytest.raises(PreconditionFailed):
        engine.change_report_status(report.id, 'in_progress')
    engine.change_report_status(report.id, 'in_progress', actor=admin_user, override=True)
    report.refresh_from_db()
    assert report.status == Report.STATUS_IN_PROGRESS
    event = AuditEvent.objects.filter(action='report_status', object_id=report.id).last()
    assert event.detail['override'] is True


def test_uploaded_report_cannot_go_back_to_pending(report, engine, dept_user):
    engine.upload_report_file(report.id, UPLOAD, actor=dept_user)
    with pytest.raises(PreconditionFailed):
        engine.change_report_status(report.id, 'pending', override=True)


def test_quick_create_twice_is_rejected(report, engine):
    with pytest.raises(PreconditionFailed):
        engine.create_report_from_case(report.case_id)


def test_upload_on_terminal_report_is_rejected(report, engine):
    engine.change_report_status(report.id, 'cancelled')
    with pytest.raises(PreconditionFailed):
        engine.upload_report_file(report.id, UPLOAD)


def test_upload_without_url_is_invalid(report, engine):
    with pytest.raises(InvalidArgument):
        engine.upload_report_file(report.id, {'filename': 'f.pdf'})


def test_upload_marks_patient_reported(report, engine, dept_user):
    engine.upload_report_file(report.id, UPLOAD, actor=dept_user)
    assert Patient.objects.get(pk=report.patient_id).status == Patient.STATUS_REPORTED


def test_database_error_rolls_back_and_surfaces_as_persistence_failure(report, engine, monkeypatch):
    def broken_notify(*args, **kwargs):
        raise DatabaseError('disk full')

    monkeypatch.setattr(engine.notifier, 'notify', broken_notify)
    with pytest.raises(PersistenceFailure):
        engine.change_report_status(report.id, 'approved', override=True)
    report.refresh_from_db()
    assert report.status == Report.STATUS_PENDING
    assert Patient.objects.get(pk=report.patient_id).status != Patient.STATUS_COMPLETED


def test_failed_operation_publishes_nothing(report, engine, router, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        with pytest.raises(PreconditionFailed):
            engine.create_report_from_case(report.case_id)
    assert router.published == []


def test_engine_without_router_still_records_notifications(report, dept_user,
                                                           django_capture_on_commit_callbacks):
    engine = WorkflowEngine(None)
    with django_capture_on_commit_callbacks(execute=True):
        engine.upload_report_file(report.id, UPLOAD, actor=dept_user)
    assert Notification.objects.filter(title='Report uploaded').count() == 3


# ---------------------------------------------------------------------------
# Direct and mobile creation paths
# ---------------------------------------------------------------------------

def test_direct_create_uses_random_suffix_and_links_case(case, engine, department, dept_user):
    report = engine.create_report(
        case.patient_id, department.id, case_id=case.id,
        fields={'findings': '<b>Normal</b> study', 'impression': 'No acute findings'},
        actor=dept_user,
    )
    case.refresh_from_db()
    assert re.fullmatch(r'CASE-\d+-\d{1,3}', report.case_number)
    assert report.findings == 'Normal study'
    assert case.report_id == report.id
    assert report.case_id == case.id


def test_direct_create_rejects_case_of_another_patient(case, engine, department, db):
    other = Patient.objects.create(first_name='Other', case_type='Routine')
    with pytest.raises(InvalidArgument):
        engine.create_report(other.id, department.id, case_id=case.id)


def test_mobile_report_is_approved_and_completes_patient(assigned_patient, engine, dept_user):
    report = engine.create_mobile_report(
        assigned_patient.id, fields={'conclusion': 'Normal'}, actor=dept_user,
    )
    assert re.fullmatch(r'CASE-\d+', report.case_number)
    assert report.status == Report.STATUS_APPROVED
    assert report.source == Report.SOURCE_MOBILE
    assert report.phone == assigned_patient.phone
    assert report.department_id == dept_user.department_id
    assert Patient.objects.get(pk=assigned_patient.id).status == Patient.STATUS_COMPLETED


def test_mobile_report_requires_patient_phone(engine, dept_user, db):
    patient = Patient.objects.create(first_name='NoPhone', case_type='Routine')
    with pytest.raises(InvalidArgument):
        engine.create_mobile_report(patient.id, actor=dept_user)
    assert not Report.objects.exists()


def test_update_report_sanitises_clinical_text(report, engine, dept_user):
    engine.update_report(report.id, {'notes': '<script>x</script>ok'}, actor=dept_user)
    report.refresh_from_db()
    assert '<script>' not in report.notes
    assert report.notes.endswith('ok')


def test_direct_create_rejects_case_of_another_department(case, engine, other_department):
    with pytest.raises(InvalidArgument):
        engine.create_report(case.patient_id, other_department.id, case_id=case.id)
    case.refresh_from_db()
    assert case.report_id is None
    assert not Report.objects.exists()


def test_mobile_report_rejects_case_of_another_patient(case, engine, dept_user, db):
    stranger = Patient.objects.create(first_name='Stranger', phone='9000000009', case_type='Routine')
    with pytest.raises(InvalidArgument):
        engine.create_mobile_report(stranger.id, case_id=case.id, actor=dept_user)
    case.refresh_from_db()
    stranger.refresh_from_db()
    assert case.report_id is None
    assert case.status == Case.STATUS_PENDING
    assert stranger.status != Patient.STATUS_COMPLETED


def test_mobile_report_rejects_case_outside_actor_department(case, engine, other_department):
    ct_user = User.objects.create_user(
        username='ct1', password='ctpass', role=User.ROLE_DEPARTMENT_USER, department=other_department,
    )
    with pytest.raises(InvalidArgument):
        engine.create_mobile_report(case.patient_id, case_id=case.id, actor=ct_user)
    assert not Report.objects.exists()


def test_mobile_report_takes_department_from_case(case, engine, admin_user):
    report = engine.create_mobile_report(case.patient_id, case_id=case.id, actor=admin_user)
    case.refresh_from_db()
    assert report.department_id == case.department_id
    assert case.report_id == report.id
    assert case.status == Case.STATUS_APPROVED


def test_upload_on_reviewed_report_is_rejected(report, engine, dept_user):
    engine.upload_report_file(report.id, UPLOAD, actor=dept_user)
    engine.change_report_status(report.id, 'reviewed', actor=dept_user)
    with pytest.raises(PreconditionFailed):
        engine.upload_report_file(report.id, {'url': 'http://x/g.pdf', 'filename': 'g.pdf'}, actor=dept_user)
    report.refresh_from_db()
    assert report.status == Report.STATUS_REVIEWED
    assert report.file_url == 'http://x/f.pdf'


def test_reupload_replaces_file_while_uploaded(report, engine, dept_user):
    engine.upload_report_file(report.id, UPLOAD, actor=dept_user)
    engine.upload_report_file(report.id, {'url': 'http://x/g.pdf', 'filename': 'g.pdf'}, actor=dept_user)
    report.refresh_from_db()
    assert report.status == Report.STATUS_REPORT_UPLOADED
    assert report.file_url == 'http://x/g.pdf'
