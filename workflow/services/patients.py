from typing import Optional

import bleach
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from workflow.exceptions import InvalidArgument, NotFound, PreconditionFailed
from workflow.models import Patient, User
from workflow.services import sync
from workflow.services.audit import log_action

DEMOGRAPHIC_FIELDS = (
    'first_name', 'last_name', 'address', 'phone', 'email', 'age', 'gender',
    'case_description', 'case_type', 'referred_doctor', 'report_date',
    'govt_id_type', 'govt_id_number',
)
HISTORY_FIELDS = ('clinical_history', 'previous_injury', 'previous_surgery')
TEST_KEYS = ('testId', 'name', 'mrp', 'offerRate', 'code', 'deptid')
DEPARTMENT_QUEUE_STATUSES = (Patient.STATUS_SENT_TO_DEPARTMENT, Patient.STATUS_IN_PROGRESS)


def _clean(value):
    if isinstance(value, str):
        return bleach.clean(value.strip(), tags=set(), strip=True)
    return value


def normalize_tests(tests) -> list:
    if not isinstance(tests, list):
        return []
    return [{k: t.get(k) for k in TEST_KEYS} for t in tests if isinstance(t, dict)]


def get_patient(patient_id) -> Patient:
    try:
        return Patient.objects.get(pk=patient_id)
    except (Patient.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'Patient {patient_id} not found')


def ensure_department_access(user: User, patient: Patient) -> None:
    """Department users may only read or edit patients assigned to their department."""
    if getattr(user, 'role', '') in ('admin', 'super_admin', 'reception'):
        return
    if not user.department_id or patient.department_assigned_to_id != user.department_id:
        raise PermissionDenied('Not your patient')


@transaction.atomic
def create_patient(current_user: Optional[User], data: dict) -> Patient:
    patient = Patient(created_by=current_user if getattr(current_user, 'pk', None) else None)
    for name in DEMOGRAPHIC_FIELDS + HISTORY_FIELDS:
        if name in data and data[name] is not None:
            setattr(patient, name, _clean(data[name]))
    if not patient.case_type:
        raise InvalidArgument('caseType is required')
    patient.selected_tests = normalize_tests(data.get('selected_tests'))
    patient.save()
    log_action(user=current_user, action='patient_create', object_type='patient', object_id=patient.id,
               detail={'patientId': patient.patient_id})
    return patient


@transaction.atomic
def update_patient(patient_id, data: dict, current_user: Optional[User] = None) -> Patient:
    """Edit demographics; workflow fields only change through the engine."""
    patient = get_patient(patient_id)
    changed = []
    for name in DEMOGRAPHIC_FIELDS:
        if name in data:
            setattr(patient, name, _clean(data[name]))
            changed.append(name)
    if 'selected_tests' in data:
        patient.selected_tests = normalize_tests(data['selected_tests'])
        changed.append('selected_tests')
    if changed:
        patient.save(update_fields=changed + ['updated_at'])
        if 'phone' in changed:
            sync.refresh_report_phone(patient)
        log_action(user=current_user, action='patient_update', object_type='patient', object_id=patient.id,
                   detail={'fields': changed})
    return patient


@transaction.atomic
def update_history(patient: Patient, data: dict, current_user: Optional[User] = None) -> Patient:
    for name in HISTORY_FIELDS:
        setattr(patient, name, _clean(data.get(name) or ''))
    patient.save(update_fields=list(HISTORY_FIELDS) + ['updated_at'])
    log_action(user=current_user, action='patient_history', object_type='patient', object_id=patient.id)
    return patient


@transaction.atomic
def add_attachment(patient: Patient, file_name: str, file_url: str, current_user: Optional[User] = None) -> Patient:
    if not file_url:
        raise InvalidArgument('fileUrl is required')
    attachments = list(patient.attachments or [])
    attachments.append({
        'fileName': _clean(file_name or ''),
        'fileUrl': file_url,
        'uploadedAt': timezone.now().isoformat(),
    })
    patient.attachments = attachments
    patient.save(update_fields=['attachments', 'updated_at'])
    log_action(user=current_user, action='patient_attachment', object_type='patient', object_id=patient.id,
               detail={'fileName': file_name})
    return patient


@transaction.atomic
def set_govt_id_file(patient: Patient, descriptor: dict, current_user: Optional[User] = None) -> Patient:
    patient.govt_id_file_url = descriptor['url']
    patient.save(update_fields=['govt_id_file_url', 'updated_at'])
    log_action(user=current_user, action='patient_govt_id', object_type='patient', object_id=patient.id,
               detail={'storageId': descriptor.get('storageId')})
    return patient


@transaction.atomic
def delete_patient(patient_id, current_user: Optional[User] = None) -> None:
    patient = get_patient(patient_id)
    if patient.cases.exists() or patient.reports.exists():
        raise PreconditionFailed(f'Patient {patient.patient_id} still has cases or reports')
    log_action(user=current_user, action='patient_delete', object_type='patient', object_id=patient.id,
               detail={'patientId': patient.patient_id})
    patient.delete()


def search_patients(q: Optional[str] = None, *, status: Optional[str] = None, page: int = 1, page_size: int = 50):
    qs = Patient.objects.all()
    if q:
        qs = qs.filter(
            Q(first_name__icontains=q) | Q(last_name__icontains=q)
            | Q(phone__icontains=q) | Q(patient_id__icontains=q)
        )
    if status:
        qs = qs.filter(status=status)
    total = qs.count()
    page = max(1, int(page or 1))
    page_size = min(200, max(1, int(page_size or 50)))
    start = (page - 1) * page_size
    return list(qs.order_by('-created_at', '-id')[start:start + page_size]), total


def department_patients(department_id):
    return list(
        Patient.objects
        .filter(department_assigned_to_id=department_id, status__in=DEPARTMENT_QUEUE_STATUSES)
        .order_by('-created_at')[:200]
    )
