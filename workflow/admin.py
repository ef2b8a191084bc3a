"""
Django admin registrations for the workflow models.

Edits made here bypass the workflow engine; run
``manage.py reconcile_links`` afterwards if Case/Report links or patient
statuses were changed by hand.
"""

from django.contrib import admin

from .models import (
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


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'code', 'is_active', 'created_at')
    search_fields = ('name', 'code')


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'department', 'phone', 'is_active', 'is_staff', 'is_superuser')
    list_filter = ('role', 'department', 'is_active')
    search_fields = ('username', 'first_name', 'last_name', 'phone')


@admin.register(DiagnosticTest)
class DiagnosticTestAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'department', 'price', 'offer_rate')
    list_filter = ('department',)
    search_fields = ('name', 'code')
    exclude = ('department_name',)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('patient_id', 'first_name', 'last_name', 'case_type', 'payment_status', 'status',
                    'department_assigned_to')
    list_filter = ('status', 'payment_status', 'case_type', 'department_assigned_to')
    search_fields = ('patient_id', 'first_name', 'last_name', 'phone')


@admin.register(Case)
class CaseAdmin(admin.ModelAdmin):
    list_display = ('case_number', 'patient', 'department', 'status', 'report', 'scheduled_at')
    list_filter = ('status', 'department')
    search_fields = ('case_number', 'patient__patient_id')
    raw_id_fields = ('patient', 'report', 'assigned_to')


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ('case_number', 'patient', 'department', 'status', 'payment_status', 'source', 'created_at')
    list_filter = ('status', 'payment_status', 'source', 'department')
    search_fields = ('case_number', 'patient__patient_id', 'phone')
    raw_id_fields = ('patient', 'case', 'created_by', 'assigned_to', 'file_uploaded_by')


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('id', 'report', 'amount', 'method', 'status', 'made_by', 'created_at')
    list_filter = ('status', 'method')


@admin.register(MobileAppointment)
class MobileAppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'full_name', 'procedure', 'center', 'date', 'time', 'status', 'payment_status')
    list_filter = ('status', 'payment_status', 'center')
    search_fields = ('full_name', 'mobile')
    raw_id_fields = ('user',)


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'title', 'room', 'to', 'is_read', 'created_at')
    list_filter = ('is_read',)
    search_fields = ('title', 'room')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
