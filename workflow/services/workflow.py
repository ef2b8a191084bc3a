"""
Status transition engine.

Every state change on a Patient, Case, Report or Payment goes through
:class:`WorkflowEngine`.  Each public method is one database transaction:
it validates the request, writes the entity, applies the cross-entity
rules from :mod:`workflow.services.sync` and records notifications.  Real
time publishes are queued with ``transaction.on_commit`` and so only fire
once the whole operation has been persisted.

The engine is constructed with an optional :class:`ChannelRouter`; when it
is ``None`` (no channel layer configured) the operations behave exactly the
same minus the pushes.
"""
from __future__ import annotations

import functools
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import bleach
from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from workflow.exceptions import InvalidArgument, NotFound, PersistenceFailure, PreconditionFailed
from workflow.models import Case, Department, Patient, Payment, Report, User
from workflow.realtime.router import ADMIN_ROOM, ChannelRouter, department_room, get_router, patient_room
from workflow.services import storage, sync
from workflow.services.audit import log_action
from workflow.services.formatting import format_payment, format_report
from workflow.services.ids import next_mobile_report_number, next_report_number
from workflow.services.notifications import Notifier, publish_after_commit
from workflow.services.transitions import TERMINAL_STATUSES, can_transition, ensure_transition

logger = logging.getLogger(__name__)

EVENT_NEW_REPORT = 'new_report'
EVENT_REPORT_UPLOADED = 'report_uploaded'
EVENT_STATUS_CHANGED = 'status_changed'

CLINICAL_FIELDS = ('indication', 'technique', 'findings', 'impression', 'conclusion', 'notes')
PAYMENT_STATUSES = frozenset(value for value, _ in Payment.STATUS_CHOICES)


def workflow_operation(func):
    """Run an engine method in one transaction; storage errors become ``PersistenceFailure``."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            with transaction.atomic():
                return func(*args, **kwargs)
        except DatabaseError as exc:
            logger.error('workflow.persistence_failure', extra={'operation': func.__name__, 'error': str(exc)})
            raise PersistenceFailure(f'{func.__name__} failed: {exc}') from exc
    return wrapper


def _get(model, pk, label: str):
    if pk in (None, ''):
        raise InvalidArgument(f'{label} id is required')
    try:
        return model.objects.select_for_update().get(pk=pk)
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'{label} {pk} not found')


def _get_user(pk) -> Optional[User]:
    if pk in (None, ''):
        return None
    try:
        return User.objects.get(pk=pk)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'User {pk} not found')


def _clean(value) -> str:
    return bleach.clean(str(value or '').strip(), tags=set(), strip=True)


def _apply_clinical_fields(report: Report, fields: dict) -> list:
    changed = []
    for name in CLINICAL_FIELDS:
        if name in fields:
            setattr(report, name, _clean(fields[name]))
            changed.append(name)
    if 'procedure' in fields:
        report.procedure = _clean(fields['procedure'])
        changed.append('procedure')
    if 'scheduled_at' in fields:
        report.scheduled_at = fields['scheduled_at']
        changed.append('scheduled_at')
    if 'assigned_to' in fields:
        report.assigned_to = _get_user(fields['assigned_to'])
        changed.append('assigned_to')
    return changed


def _apply_file(report: Report, descriptor: dict, actor: Optional[User]) -> None:
    url = (descriptor or {}).get('url')
    if not url:
        raise InvalidArgument('File descriptor must include a url')
    report.file_url = url
    report.file_storage_id = descriptor.get('storageId') or ''
    report.file_name = descriptor.get('originalFilename') or descriptor.get('filename') or ''
    report.file_uploaded_by = actor if getattr(actor, 'pk', None) else None
    report.file_uploaded_at = timezone.now()


class WorkflowEngine:
    def __init__(self, router: Optional[ChannelRouter] = None):
        self.router = router
        self.notifier = Notifier(router)

    def _publish(self, rooms, event: str, payload) -> None:
        publish_after_commit(self.router, rooms, event, payload)

    # ------------------------------------------------------------------
    # Patient
    # ------------------------------------------------------------------
    @workflow_operation
    def record_payment(self, patient_id, actor: Optional[User] = None) -> Patient:
        patient = _get(Patient, patient_id, 'Patient')
        if patient.payment_status == Patient.PAYMENT_PAID:
            logger.info('patient.payment_repeat', extra={'patient': patient.patient_id})
            return patient
        patient.payment_status = Patient.PAYMENT_PAID
        patient.status = Patient.STATUS_IN_PROGRESS
        patient.save(update_fields=['payment_status', 'status', 'updated_at'])
        log_action(user=actor, action='patient_payment', object_type='patient', object_id=patient.id)
        logger.info('patient.payment_recorded', extra={'patient': patient.patient_id})
        return patient

    @workflow_operation
    def assign_department(self, patient_id, department_id, department_name: Optional[str] = None,
                          actor: Optional[User] = None) -> Patient:
        patient = _get(Patient, patient_id, 'Patient')
        department = _get(Department, department_id, 'Department')
        if patient.payment_status != Patient.PAYMENT_PAID:
            raise PreconditionFailed(f'Patient {patient.patient_id} has not paid; cannot assign a department')

        patient.department_assigned_to = department
        patient.assigned_department = (department_name or department.name).strip().lower()
        patient.department_assigned_by = actor if getattr(actor, 'pk', None) else None
        patient.department_assigned_at = timezone.now()
        patient.status = Patient.STATUS_SENT_TO_DEPARTMENT
        patient.save(update_fields=[
            'department_assigned_to', 'assigned_department', 'department_assigned_by',
            'department_assigned_at', 'status', 'updated_at',
        ])

        self.notifier.notify(
            'New patient assigned',
            f'Patient {patient.full_name or patient.patient_id} was sent to {patient.assigned_department}',
            room=department_room(department.id),
            data={'patientId': patient.id},
        )
        log_action(user=actor, action='patient_assign_department', object_type='patient',
                   object_id=patient.id, detail={'departmentId': department.id})
        logger.info('patient.department_assigned', extra={'patient': patient.patient_id, 'department': department.id})
        return patient

    # ------------------------------------------------------------------
    # Case
    # ------------------------------------------------------------------
    @workflow_operation
    def create_case(self, patient_id, department_id, *, assigned_to=None, procedure: Optional[str] = None,
                    scheduled_at=None, actor: Optional[User] = None) -> Case:
        patient = _get(Patient, patient_id, 'Patient')
        department = _get(Department, department_id, 'Department')
        if patient.payment_status != Patient.PAYMENT_PAID:
            raise PreconditionFailed(f'Patient {patient.patient_id} has not paid; cannot create a case')

        case = Case(
            patient=patient,
            department=department,
            assigned_to=_get_user(assigned_to),
            selected_tests=list(patient.selected_tests or []),
            procedure=_clean(procedure),
            status=Case.STATUS_PENDING,
        )
        if scheduled_at:
            case.scheduled_at = scheduled_at
        case.save()
        log_action(user=actor, action='case_create', object_type='case', object_id=case.id,
                   detail={'caseNumber': case.case_number})
        logger.info('case.created', extra={'case': case.case_number, 'patient': patient.patient_id})
        return case

    @workflow_operation
    def update_case(self, case_id, fields: dict, actor: Optional[User] = None) -> Case:
        case = _get(Case, case_id, 'Case')
        changed = []
        if 'procedure' in fields:
            case.procedure = _clean(fields['procedure'])
            changed.append('procedure')
        if 'scheduled_at' in fields and fields['scheduled_at']:
            case.scheduled_at = fields['scheduled_at']
            changed.append('scheduled_at')
        if 'selected_tests' in fields:
            case.selected_tests = list(fields['selected_tests'] or [])
            changed.append('selected_tests')
        if 'assigned_to' in fields:
            case.assigned_to = _get_user(fields['assigned_to'])
            changed.append('assigned_to')
        if changed:
            case.save(update_fields=changed + ['updated_at'])
            log_action(user=actor, action='case_update', object_type='case', object_id=case.id,
                       detail={'fields': changed})
        return case

    @workflow_operation
    def delete_case(self, case_id, actor: Optional[User] = None) -> None:
        case = _get(Case, case_id, 'Case')
        files = list(
            Report.objects.filter(Q(pk=case.report_id) | Q(case=case)).values_list('file_storage_id', flat=True)
        )
        number = case.case_number
        report_ids = sync.delete_case_cascade(case)
        self._remove_files_after_commit(files)
        log_action(user=actor, action='case_delete', object_type='case', object_id=case_id,
                   detail={'caseNumber': number, 'reportIds': report_ids})
        logger.info('case.deleted', extra={'case': number, 'reports': report_ids})

    # ------------------------------------------------------------------
    # Report
    # ------------------------------------------------------------------
    @workflow_operation
    def create_report_from_case(self, case_id, actor: Optional[User] = None) -> Report:
        case = _get(Case, case_id, 'Case')
        if case.report_id is not None:
            raise PreconditionFailed(f'Case {case.case_number} already has a report')
        if Report.objects.filter(case_number=case.case_number).exists():
            raise PreconditionFailed(f'A report numbered {case.case_number} already exists')

        report = Report.objects.create(
            case_number=case.case_number,
            patient_id=case.patient_id,
            department_id=case.department_id,
            case=case,
            created_by=actor if getattr(actor, 'pk', None) else None,
            assigned_to_id=case.assigned_to_id,
            procedure=case.procedure,
            scheduled_at=case.scheduled_at,
            status=Report.STATUS_PENDING,
            phone=case.patient.phone,
        )
        sync.link_report_to_case(report, case)
        self._publish([department_room(report.department_id)], EVENT_NEW_REPORT, format_report(report))
        log_action(user=actor, action='report_create', object_type='report', object_id=report.id,
                   detail={'caseId': case.id, 'path': 'case'})
        logger.info('report.created', extra={'report': report.case_number, 'case': case.id})
        return report

    @workflow_operation
    def create_report(self, patient_id, department_id, *, case_id=None, fields: Optional[dict] = None,
                      actor: Optional[User] = None) -> Report:
        patient = _get(Patient, patient_id, 'Patient')
        department = _get(Department, department_id, 'Department')
        case = None
        if case_id not in (None, ''):
            case = _get(Case, case_id, 'Case')
            if case.patient_id != patient.id:
                raise InvalidArgument(f'Case {case.case_number} belongs to another patient')
            if case.department_id != department.id:
                raise InvalidArgument(f'Case {case.case_number} belongs to another department')
            if case.report_id is not None:
                raise PreconditionFailed(f'Case {case.case_number} already has a report')

        report = Report(
            case_number=next_report_number(),
            patient=patient,
            department=department,
            case=case,
            created_by=actor if getattr(actor, 'pk', None) else None,
            status=Report.STATUS_PENDING,
            phone=patient.phone,
        )
        _apply_clinical_fields(report, fields or {})
        report.save()
        if case is not None:
            sync.link_report_to_case(report, case)
        self._publish([department_room(department.id)], EVENT_NEW_REPORT, format_report(report))
        log_action(user=actor, action='report_create', object_type='report', object_id=report.id,
                   detail={'caseId': case.id if case else None, 'path': 'direct'})
        logger.info('report.created', extra={'report': report.case_number, 'case': case.id if case else None})
        return report

    @workflow_operation
    def create_mobile_report(self, patient_id, *, case_id=None, fields: Optional[dict] = None,
                             file: Optional[dict] = None, actor: Optional[User] = None) -> Report:
        patient = _get(Patient, patient_id, 'Patient')
        if not patient.phone:
            raise InvalidArgument('Patient phone missing')
        case = None
        if case_id not in (None, ''):
            case = _get(Case, case_id, 'Case')
            if case.patient_id != patient.id:
                raise InvalidArgument(f'Case {case.case_number} belongs to another patient')
            actor_department = getattr(actor, 'department_id', None)
            if actor_department and actor_department != case.department_id:
                raise InvalidArgument(f'Case {case.case_number} belongs to another department')
            if case.report_id is not None:
                raise PreconditionFailed(f'Case {case.case_number} already has a report')

        if case is not None:
            department_id = case.department_id
        else:
            department_id = getattr(actor, 'department_id', None) or patient.department_assigned_to_id
        if not department_id:
            raise InvalidArgument('No department for this report')

        report = Report(
            case_number=next_mobile_report_number(),
            patient=patient,
            department_id=department_id,
            case=case,
            created_by=actor if getattr(actor, 'pk', None) else None,
            assigned_to=actor if getattr(actor, 'pk', None) else None,
            status=Report.STATUS_APPROVED,
            source=Report.SOURCE_MOBILE,
            phone=patient.phone,
        )
        _apply_clinical_fields(report, fields or {})
        if file:
            _apply_file(report, file, actor)
        report.save()
        if case is not None:
            sync.link_report_to_case(report, case)
            case.status = Case.STATUS_APPROVED
            case.save(update_fields=['status', 'updated_at'])
        sync.complete_patient(patient)
        self._publish([department_room(department_id)], EVENT_NEW_REPORT, format_report(report))
        log_action(user=actor, action='report_create', object_type='report', object_id=report.id,
                   detail={'caseId': case.id if case else None, 'path': 'mobile'})
        logger.info('report.created', extra={'report': report.case_number, 'source': report.source})
        return report

    @workflow_operation
    def update_report(self, report_id, fields: dict, actor: Optional[User] = None) -> Report:
        report = _get(Report, report_id, 'Report')
        changed = _apply_clinical_fields(report, fields)
        if changed:
            report.save(update_fields=changed + ['updated_at'])
            log_action(user=actor, action='report_update', object_type='report', object_id=report.id,
                       detail={'fields': changed})
        return report

    @workflow_operation
    def upload_report_file(self, report_id, descriptor: dict, actor: Optional[User] = None) -> Report:
        report = _get(Report, report_id, 'Report')
        if report.status in TERMINAL_STATUSES:
            raise PreconditionFailed(f'Report {report.case_number} is {report.status}; cannot upload a file')
        if report.status != Report.STATUS_REPORT_UPLOADED \
                and not can_transition(report.status, Report.STATUS_REPORT_UPLOADED):
            raise PreconditionFailed(f'Report {report.case_number} is {report.status}; cannot replace its file')

        previous_file = report.file_storage_id
        _apply_file(report, descriptor, actor)
        report.status = Report.STATUS_REPORT_UPLOADED
        report.save()
        sync.mark_patient_reported(report.patient)
        if previous_file and previous_file != report.file_storage_id:
            self._remove_files_after_commit([previous_file])

        rooms = [department_room(report.department_id), patient_room(report.patient_id), ADMIN_ROOM]
        for room in rooms:
            self.notifier.notify(
                'Report uploaded',
                f'Report for case {report.case_number} has been uploaded',
                room=room,
                data={'reportId': report.id},
            )
        self._publish(rooms, EVENT_REPORT_UPLOADED, format_report(report))
        log_action(user=actor, action='report_upload', object_type='report', object_id=report.id,
                   detail={'file': report.file_name})
        logger.info('report.file_uploaded', extra={'report': report.case_number, 'file': report.file_name})
        return report

    @workflow_operation
    def change_report_status(self, report_id, new_status: str, actor: Optional[User] = None, *,
                             override: bool = False) -> Report:
        report = _get(Report, report_id, 'Report')
        ensure_transition(report, new_status, override=override)
        previous = report.status
        report.status = new_status
        report.save(update_fields=['status', 'updated_at'])

        if new_status == Report.STATUS_APPROVED:
            sync.complete_patient(report.patient)
            Case.objects.filter(report=report).update(status=Case.STATUS_APPROVED, updated_at=timezone.now())

        self.notifier.notify(
            f'Status changed to {new_status}',
            f'Case {report.case_number} is now {new_status}',
            room=department_room(report.department_id),
            data={'reportId': report.id},
        )
        self._publish(
            [department_room(report.department_id), patient_room(report.patient_id)],
            EVENT_STATUS_CHANGED,
            format_report(report),
        )
        log_action(user=actor, action='report_status', object_type='report', object_id=report.id,
                   detail={'from': previous, 'to': new_status, 'override': override})
        logger.info('report.status_changed', extra={
            'report': report.case_number, 'from': previous, 'to': new_status, 'override': override,
        })
        return report

    def approve_report(self, report_id, actor: Optional[User] = None) -> Report:
        return self.change_report_status(report_id, Report.STATUS_APPROVED, actor)

    @workflow_operation
    def delete_report(self, report_id, actor: Optional[User] = None) -> None:
        report = _get(Report, report_id, 'Report')
        number, storage_id = report.case_number, report.file_storage_id
        sync.unlink_report(report)
        report.delete()
        self._remove_files_after_commit([storage_id])
        log_action(user=actor, action='report_delete', object_type='report', object_id=report_id,
                   detail={'caseNumber': number})
        logger.info('report.deleted', extra={'report': number})

    def _remove_files_after_commit(self, storage_ids) -> None:
        ids = [s for s in storage_ids if s]
        if ids:
            transaction.on_commit(lambda: [storage.remove(s) for s in ids])

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------
    @workflow_operation
    def create_payment(self, report_id, amount, method: str = '', *, status: str = Payment.STATUS_PENDING,
                       transaction_id: str = '', actor: Optional[User] = None) -> Payment:
        report = _get(Report, report_id, 'Report')
        if status not in PAYMENT_STATUSES:
            raise InvalidArgument(f'Invalid payment status: {status!r}')
        try:
            amount = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise InvalidArgument(f'Invalid amount: {amount!r}')
        if amount < 0:
            raise InvalidArgument('Amount must not be negative')

        payment = Payment.objects.create(
            report=report, amount=amount, method=method or '', status=status,
            transaction_id=transaction_id or '',
            made_by=actor if getattr(actor, 'pk', None) else None,
        )
        if status == Payment.STATUS_SUCCESS:
            sync.mark_report_paid(report)
        self.notifier.notify(
            'Payment recorded',
            f'Payment of {amount} recorded for case {report.case_number}',
            room=ADMIN_ROOM,
            data={'paymentId': payment.id, 'reportId': report.id},
        )
        log_action(user=actor, action='payment_create', object_type='payment', object_id=payment.id,
                   detail={'reportId': report.id, 'status': status})
        logger.info('payment.created', extra={'payment': payment.id, 'report': report.case_number, 'status': status})
        return payment

    @workflow_operation
    def update_payment_status(self, payment_id, status: str, actor: Optional[User] = None) -> Payment:
        payment = _get(Payment, payment_id, 'Payment')
        if status not in PAYMENT_STATUSES:
            raise InvalidArgument(f'Invalid payment status: {status!r}')
        previous = payment.status
        payment.status = status
        payment.save(update_fields=['status', 'updated_at'])
        if status == Payment.STATUS_SUCCESS:
            sync.mark_report_paid(payment.report)
        self.notifier.notify(
            'Payment updated',
            f'Payment {payment.id} is now {status}',
            room=ADMIN_ROOM,
            data={'paymentId': payment.id, 'reportId': payment.report_id, 'payment': format_payment(payment)},
        )
        log_action(user=actor, action='payment_status', object_type='payment', object_id=payment.id,
                   detail={'from': previous, 'to': status})
        logger.info('payment.status_changed', extra={'payment': payment.id, 'from': previous, 'to': status})
        return payment

    # ------------------------------------------------------------------
    # Department
    # ------------------------------------------------------------------
    @workflow_operation
    def update_department(self, department_id, fields: dict, actor: Optional[User] = None) -> Department:
        department = _get(Department, department_id, 'Department')
        old_name = department.name
        for name in ('name', 'code', 'description', 'is_active'):
            if name in fields:
                setattr(department, name, fields[name])
        clash = Department.objects.exclude(pk=department.pk).filter(
            Q(name=(department.name or '').strip().lower()) | Q(code=(department.code or '').strip().upper())
        )
        if clash.exists():
            raise InvalidArgument('A department with this name or code already exists')
        department.save()
        refreshed = 0
        if department.name != old_name:
            refreshed = sync.refresh_department_name(department)
        log_action(user=actor, action='department_update', object_type='department', object_id=department.id,
                   detail={'renamedFrom': old_name if department.name != old_name else None, 'patients': refreshed})
        return department


def get_engine() -> WorkflowEngine:
    return WorkflowEngine(get_router())
