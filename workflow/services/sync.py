"""
Denormalized field maintenance across Patient, Case and Report.

These helpers run inside the caller's transaction; they never open one of
their own and never publish anything.  ``reconcile`` is the exception: it
is the repair sweep behind ``manage.py reconcile_links`` for rows written
outside the workflow engine (admin site, raw SQL, fixtures).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from django.db import transaction

from workflow.models import Case, Department, DiagnosticTest, Patient, Report

logger = logging.getLogger(__name__)


def link_report_to_case(report: Report, case: Case) -> None:
    """Point ``case`` and ``report`` at each other."""
    case.report = report
    case.status = Case.STATUS_PENDING
    case.save(update_fields=['report', 'status', 'updated_at'])
    if report.case_id != case.id:
        report.case = case
        report.save(update_fields=['case', 'updated_at'])


def unlink_report(report: Report) -> None:
    """Clear ``Case.report`` on every case still pointing at ``report``."""
    Case.objects.filter(report=report).update(report=None)


def delete_case_cascade(case: Case) -> List[int]:
    """Delete the case's linked report(s) first, then the case itself."""
    report_ids = set(Report.objects.filter(case=case).values_list('id', flat=True))
    if case.report_id:
        report_ids.add(case.report_id)
    case.report = None
    case.save(update_fields=['report', 'updated_at'])
    Report.objects.filter(id__in=report_ids).delete()
    case.delete()
    return sorted(report_ids)


def mark_report_paid(report: Report) -> bool:
    if report.payment_status == Report.PAYMENT_PAID:
        return False
    report.payment_status = Report.PAYMENT_PAID
    report.save(update_fields=['payment_status', 'updated_at'])
    return True


def complete_patient(patient: Patient) -> bool:
    if patient.status == Patient.STATUS_COMPLETED:
        return False
    patient.status = Patient.STATUS_COMPLETED
    patient.save(update_fields=['status', 'updated_at'])
    return True


def mark_patient_reported(patient: Patient) -> bool:
    if patient.status in (Patient.STATUS_REPORTED, Patient.STATUS_COMPLETED):
        return False
    patient.status = Patient.STATUS_REPORTED
    patient.save(update_fields=['status', 'updated_at'])
    return True


def refresh_department_name(department: Department) -> int:
    """Rewrite the cached lower-case department name on assigned patients and catalog tests.

    Returns the number of patients touched.
    """
    DiagnosticTest.objects.filter(department=department).update(department_name=department.name)
    return (
        Patient.objects
        .filter(department_assigned_to=department)
        .exclude(assigned_department=department.name)
        .update(assigned_department=department.name)
    )


def refresh_report_phone(patient: Patient) -> int:
    """Copy the patient's current phone onto their reports for the portal lookup."""
    return Report.objects.filter(patient=patient).exclude(phone=patient.phone).update(phone=patient.phone)


@dataclass
class ReconcileResult:
    dangling_cleared: List[int] = field(default_factory=list)
    case_links_set: List[int] = field(default_factory=list)
    report_links_set: List[int] = field(default_factory=list)
    patients_completed: List[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return (len(self.dangling_cleared) + len(self.case_links_set)
                + len(self.report_links_set) + len(self.patients_completed))


def reconcile(*, dry_run: bool = False) -> ReconcileResult:
    """Repair one-sided Case/Report links and missed approval propagation.

    * ``Case.report`` pointing at a report whose ``case`` is another case is
      cleared (the report's side wins).
    * ``Case.report`` set while the report has no ``case`` sets the report side.
    * ``Report.case`` set while the case has no ``report`` sets the case side.
    * Patients with an approved report that are not ``completed`` are completed.
    """
    result = ReconcileResult()
    with transaction.atomic():
        for case in Case.objects.select_related('report').filter(report__isnull=False):
            report = case.report
            if report.case_id is None:
                result.report_links_set.append(report.id)
                if not dry_run:
                    report.case = case
                    report.save(update_fields=['case', 'updated_at'])
            elif report.case_id != case.id:
                result.dangling_cleared.append(case.id)
                if not dry_run:
                    case.report = None
                    case.save(update_fields=['report', 'updated_at'])

        for report in Report.objects.select_related('case').filter(case__isnull=False):
            case = report.case
            if case.report_id is None and not Case.objects.filter(report=report).exists():
                result.case_links_set.append(case.id)
                if not dry_run:
                    case.report = report
                    case.save(update_fields=['report', 'updated_at'])

        stale = (
            Patient.objects
            .filter(reports__status=Report.STATUS_APPROVED)
            .exclude(status=Patient.STATUS_COMPLETED)
            .distinct()
        )
        for patient in stale:
            result.patients_completed.append(patient.id)
            if not dry_run:
                complete_patient(patient)

        if dry_run:
            transaction.set_rollback(True)

    logger.info('sync.reconciled', extra={
        'dry_run': dry_run,
        'dangling_cleared': len(result.dangling_cleared),
        'case_links_set': len(result.case_links_set),
        'report_links_set': len(result.report_links_set),
        'patients_completed': len(result.patients_completed),
    })
    return result
