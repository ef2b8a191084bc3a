"""camelCase response/event shapes.

The same dicts are returned by the HTTP views and pushed over WebSockets,
so everything here must stay JSON (and msgpack) friendly: ids, strings,
numbers, lists and dicts only.
"""
from __future__ import annotations

from typing import Optional

from workflow.models import (
    AuditEvent,
    Case,
    Department,
    DiagnosticTest,
    MobileAppointment,
    Notification,
    Patient,
    Payment,
    Report,
    User,
)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def format_department(dept: Department) -> dict:
    return {
        'id': dept.id,
        'name': dept.name,
        'code': dept.code,
        'description': dept.description,
        'isActive': dept.is_active,
        'createdAt': _iso(dept.created_at),
    }


def format_user_brief(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {
        'id': user.id,
        'username': user.username,
        'name': user.get_full_name() or user.username,
        'role': user.role,
    }


def format_user(user: User) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'name': user.get_full_name() or user.username,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'email': user.email,
        'phone': user.phone,
        'role': user.role,
        'department': format_department(user.department) if user.department_id else None,
        'isActive': user.is_active,
        'lastLogin': _iso(user.last_login),
        'createdAt': _iso(user.date_joined),
    }


def mask_govt_id(number: str) -> str:
    """Keep the last four characters, ``X`` for the rest."""
    if not number:
        return number
    return number[-4:].rjust(len(number), 'X')


def format_patient(patient: Patient, *, mask_id: bool = False) -> dict:
    return {
        'id': patient.id,
        'patientId': patient.patient_id,
        'firstName': patient.first_name,
        'lastName': patient.last_name,
        'name': patient.full_name,
        'address': patient.address,
        'contact': {'phone': patient.phone, 'email': patient.email},
        'age': patient.age,
        'gender': patient.gender,
        'caseDescription': patient.case_description,
        'caseType': patient.case_type,
        'referredDoctor': patient.referred_doctor,
        'reportDate': _iso(patient.report_date),
        'paymentStatus': patient.payment_status,
        'status': patient.status,
        'createdBy': patient.created_by_id,
        'assignedDepartment': patient.assigned_department,
        'departmentAssignedTo': patient.department_assigned_to_id,
        'departmentAssignedBy': patient.department_assigned_by_id,
        'departmentAssignedAt': _iso(patient.department_assigned_at),
        'clinicalHistory': patient.clinical_history,
        'previousInjury': patient.previous_injury,
        'previousSurgery': patient.previous_surgery,
        'attachments': patient.attachments or [],
        'govtId': {
            'idType': patient.govt_id_type,
            'idNumber': mask_govt_id(patient.govt_id_number) if mask_id else patient.govt_id_number,
            'fileUrl': patient.govt_id_file_url,
        },
        'selectedTests': patient.selected_tests or [],
        'createdAt': _iso(patient.created_at),
        'updatedAt': _iso(patient.updated_at),
    }


def format_case(case: Case) -> dict:
    return {
        'id': case.id,
        'caseNumber': case.case_number,
        'patientId': case.patient_id,
        'patient': {
            'id': case.patient.id,
            'patientId': case.patient.patient_id,
            'name': case.patient.full_name,
            'caseType': case.patient.case_type,
        },
        'department': case.department_id,
        'assignedTo': case.assigned_to_id,
        'selectedTests': case.selected_tests or [],
        'procedure': case.procedure,
        'scheduledAt': _iso(case.scheduled_at),
        'status': case.status,
        'reportId': case.report_id,
        'createdAt': _iso(case.created_at),
        'updatedAt': _iso(case.updated_at),
    }


def format_report_file(report: Report) -> Optional[dict]:
    if not report.has_file:
        return None
    return {
        'url': report.file_url,
        'storageId': report.file_storage_id,
        'filename': report.file_name,
        'uploadedBy': report.file_uploaded_by_id,
        'uploadedAt': _iso(report.file_uploaded_at),
    }


def format_report(report: Report) -> dict:
    return {
        'id': report.id,
        'caseNumber': report.case_number,
        'patient': report.patient_id,
        'patientName': report.patient.full_name,
        'department': report.department_id,
        'case': report.case_id,
        'createdBy': report.created_by_id,
        'assignedTo': report.assigned_to_id,
        'status': report.status,
        'paymentStatus': report.payment_status,
        'source': report.source,
        'phone': report.phone,
        'procedure': report.procedure,
        'scheduledAt': _iso(report.scheduled_at),
        'indication': report.indication,
        'technique': report.technique,
        'findings': report.findings,
        'impression': report.impression,
        'conclusion': report.conclusion,
        'notes': report.notes,
        'reportFile': format_report_file(report),
        'createdAt': _iso(report.created_at),
        'updatedAt': _iso(report.updated_at),
    }


def format_payment(payment: Payment) -> dict:
    return {
        'id': payment.id,
        'report': payment.report_id,
        'amount': str(payment.amount),
        'method': payment.method,
        'status': payment.status,
        'transactionId': payment.transaction_id,
        'madeBy': payment.made_by_id,
        'createdAt': _iso(payment.created_at),
        'updatedAt': _iso(payment.updated_at),
    }


def format_notification(note: Notification) -> dict:
    return {
        'id': note.id,
        'title': note.title,
        'message': note.message,
        'to': note.to_id,
        'room': note.room,
        'isRead': note.is_read,
        'data': note.data,
        'createdAt': _iso(note.created_at),
        'updatedAt': _iso(note.updated_at),
    }


def format_audit_event(event: AuditEvent) -> dict:
    return {
        'id': event.id,
        'action': event.action,
        'user': format_user_brief(event.user),
        'objectType': event.object_type,
        'objectId': event.object_id,
        'detail': event.detail,
        'createdAt': _iso(event.created_at),
    }


def _money(value) -> Optional[str]:
    return None if value is None else str(value)


def format_test(test: DiagnosticTest) -> dict:
    return {
        'id': test.id,
        'itemId': test.item_id,
        'name': test.name,
        'code': test.code,
        'price': _money(test.price),
        'offerRate': _money(test.offer_rate),
        'department': test.department_id,
        'departmentName': test.department_name,
    }


def format_appointment(appt: MobileAppointment) -> dict:
    return {
        'id': appt.id,
        'user': appt.user_id,
        'procedure': appt.procedure,
        'center': appt.center,
        'fullName': appt.full_name,
        'mobile': appt.mobile,
        'email': appt.email,
        'doctor': appt.doctor,
        'date': appt.date.isoformat() if appt.date else None,
        'time': appt.time,
        'paymentMethod': appt.payment_method,
        'paymentStatus': appt.payment_status,
        'status': appt.status,
        'createdAt': _iso(appt.created_at),
    }
