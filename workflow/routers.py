"""
URL mappings for the radiology workflow API.

Trailing slashes are omitted to match the SPA's endpoint table
(``APPEND_SLASH`` is off).  Prometheus metrics are served at ``/metrics``.
"""
from django.urls import path, include

from .auth_views import login_view, refresh_view, me_view
from .views import audit, health
from .views.appointments import appointments, appointment_detail
from .views.catalog import tests, tests_by_department, tests_by_department_name
from .views.patients import (
    patients,
    patient_detail,
    record_payment,
    assign_department,
    update_history,
    add_attachment,
    upload_govt_id,
)
from .views.departments import departments, department_detail, department_patients, patient_details
from .views.cases import create_case, cases_by_department, case_detail, assign_case, create_report_from_case
from .views.reports import (
    list_reports,
    reports_by_department,
    create_report,
    report_detail,
    upload_report_file,
    change_status,
    approve_report,
)
from .views.payments import payments, payment_status, payments_by_report
from .views.notifications import list_notifications, mark_read, mark_all_read
from .views.mobile import create_mobile_report, my_reports, my_report_detail
from .views.users import users, user_detail, activate_user, deactivate_user, register


urlpatterns = [
    # auth
    path('api/auth/login', login_view),
    path('api/auth/refresh', refresh_view),
    path('api/auth/me', me_view),
    path('api/auth/register', register),

    # users
    path('api/users', users),
    path('api/users/<int:user_id>', user_detail),
    path('api/users/<int:user_id>/activate', activate_user),
    path('api/users/<int:user_id>/deactivate', deactivate_user),

    # patients
    path('api/patients', patients),
    path('api/patients/<int:patient_id>', patient_detail),
    path('api/patients/<int:patient_id>/payment', record_payment),
    path('api/patients/<int:patient_id>/assign-department', assign_department),
    path('api/patients/<int:patient_id>/update-history', update_history),
    path('api/patients/<int:patient_id>/add-attachment', add_attachment),
    path('api/patients/<int:patient_id>/upload-govt-id', upload_govt_id),

    # departments
    path('api/departments', departments),
    path('api/departments/<int:dept_id>', department_detail),
    path('api/departments/<int:dept_id>/patients', department_patients),
    path('api/departments/patients/<int:patient_id>/details', patient_details),

    # test catalog
    path('api/tests', tests),
    path('api/tests/department/<int:dept_id>', tests_by_department),
    path('api/tests/by-dept-name/<str:name>', tests_by_department_name),

    # cases
    path('api/cases/create', create_case),
    path('api/cases/department/<int:dept_id>', cases_by_department),
    path('api/cases/<int:case_id>', case_detail),
    path('api/cases/<int:case_id>/assign', assign_case),
    path('api/cases/<int:case_id>/create-report', create_report_from_case),

    # reports
    path('api/reports', list_reports),
    path('api/reports/create', create_report),
    path('api/reports/department/<int:dept_id>', reports_by_department),
    path('api/reports/<int:report_id>', report_detail),
    path('api/reports/<int:report_id>/upload', upload_report_file),
    path('api/reports/<int:report_id>/status', change_status),
    path('api/reports/<int:report_id>/approve', approve_report),

    # payments
    path('api/payments', payments),
    path('api/payments/<int:payment_id>/status', payment_status),
    path('api/payments/report/<int:report_id>', payments_by_report),

    # notifications (polling fallback)
    path('api/notifications', list_notifications),
    path('api/notifications/read-all', mark_all_read),
    path('api/notifications/<int:notification_id>/read', mark_read),

    # mobile portal
    path('api/mobile/reports', my_reports),
    path('api/mobile/reports/create', create_mobile_report),
    path('api/mobile/reports/<int:report_id>', my_report_detail),
    path('api/mobile/appointments', appointments),
    path('api/mobile/appointments/<int:appointment_id>', appointment_detail),

    # audit
    path('api/audit', audit.audit_log),

    # ops
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
]
