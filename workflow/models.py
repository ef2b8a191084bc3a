"""
Database models for the radiology workflow backend.

A Patient is registered at reception, pays, and is sent to a department.
The department opens a Case for the patient and produces a Report against
it; the Report carries the clinical text and the uploaded file and moves
through its own status lifecycle until it is approved.  Case and Report
point at each other (``Case.report`` / ``Report.case``) so that list views
never have to join collections; the workflow services keep both sides in
step.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class Department(models.Model):
    """A diagnostic department (MRI, CT, X-Ray ...)."""
    name = models.CharField(max_length=255, unique=True)
    code = models.CharField(max_length=32, unique=True)
    description = models.TextField(blank=True, default='')
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        self.name = (self.name or '').strip().lower()
        self.code = (self.code or '').strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class User(AbstractUser):
    """Custom user model with a role and optional department binding.

    ``department_user`` accounts work inside a single department and only
    see that department's cases and reports; ``reception`` registers
    patients and records payments; ``admin`` and ``super_admin`` see
    everything.  Portal patients log in with the ``patient`` role and are
    matched to their reports by phone number.
    """
    ROLE_SUPER_ADMIN = 'super_admin'
    ROLE_ADMIN = 'admin'
    ROLE_RECEPTION = 'reception'
    ROLE_DEPARTMENT_USER = 'department_user'
    ROLE_PATIENT = 'patient'
    ROLE_CHOICES = [
        (ROLE_SUPER_ADMIN, 'Super Administrator'),
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_RECEPTION, 'Reception'),
        (ROLE_DEPARTMENT_USER, 'Department User'),
        (ROLE_PATIENT, 'Patient'),
    ]
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_RECEPTION, db_index=True)
    department = models.ForeignKey(
        Department, null=True, blank=True, on_delete=models.SET_NULL, related_name='users'
    )
    phone = models.CharField(max_length=20, blank=True, default='', db_index=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    """A patient registered at intake.

    ``status`` follows the intake workflow: ``pending_payment`` until
    reception records the payment, then ``in_progress``,
    ``sent_to_department`` once assigned, ``reported`` when a report file
    is uploaded and ``completed`` when a report is approved.
    """
    CASE_TYPE_CHOICES = [
        ('Urgent', 'Urgent'),
        ('Emergency', 'Emergency'),
        ('Routine', 'Routine'),
        ('STAT', 'STAT'),
    ]

    PAYMENT_PENDING = 'pending'
    PAYMENT_PAID = 'paid'
    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, 'Pending'),
        (PAYMENT_PAID, 'Paid'),
    ]

    STATUS_PENDING_PAYMENT = 'pending_payment'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_SENT_TO_DEPARTMENT = 'sent_to_department'
    STATUS_REPORTED = 'reported'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = [
        (STATUS_PENDING_PAYMENT, 'Pending payment'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_SENT_TO_DEPARTMENT, 'Sent to department'),
        (STATUS_REPORTED, 'Reported'),
        (STATUS_COMPLETED, 'Completed'),
    ]

    patient_id = models.CharField(max_length=32, unique=True, editable=False)

    first_name = models.CharField(max_length=150, blank=True, default='')
    last_name = models.CharField(max_length=150, blank=True, default='')
    address = models.TextField(blank=True, default='')
    phone = models.CharField(max_length=20, blank=True, default='', db_index=True)
    email = models.EmailField(blank=True, default='')
    age = models.PositiveIntegerField(null=True, blank=True)
    gender = models.CharField(max_length=20, blank=True, default='')
    case_description = models.TextField(blank=True, default='')
    case_type = models.CharField(max_length=16, choices=CASE_TYPE_CHOICES)
    referred_doctor = models.CharField(max_length=255, blank=True, default='')
    report_date = models.DateTimeField(default=timezone.now)

    payment_status = models.CharField(
        max_length=16, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING, db_index=True
    )
    status = models.CharField(
        max_length=32, choices=STATUS_CHOICES, default=STATUS_PENDING_PAYMENT, db_index=True
    )

    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='patients_created'
    )

    # Assignment block: written together by the workflow engine only.
    assigned_department = models.CharField(max_length=255, null=True, blank=True)
    department_assigned_to = models.ForeignKey(
        Department, null=True, blank=True, on_delete=models.SET_NULL, related_name='assigned_patients'
    )
    department_assigned_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='patients_assigned'
    )
    department_assigned_at = models.DateTimeField(null=True, blank=True)

    clinical_history = models.TextField(blank=True, default='')
    previous_injury = models.TextField(blank=True, default='')
    previous_surgery = models.TextField(blank=True, default='')

    # [{"fileName", "fileUrl", "uploadedAt"}]
    attachments = models.JSONField(default=list, blank=True)

    govt_id_type = models.CharField(max_length=64, blank=True, default='')
    govt_id_number = models.CharField(max_length=64, blank=True, default='')
    govt_id_file_url = models.CharField(max_length=512, blank=True, default='')

    # [{"testId", "name", "mrp", "offerRate", "code", "deptid"}]
    selected_tests = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['department_assigned_to', 'status'], name='patient_dept_status_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self.patient_id:
            from workflow.services.ids import next_patient_id
            self.patient_id = next_patient_id()
        if self.assigned_department:
            self.assigned_department = self.assigned_department.lower()
        super().save(*args, **kwargs)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"{self.patient_id} {self.full_name}"


class Case(models.Model):
    """A diagnostic episode for one patient within one department."""
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
    ]

    case_number = models.CharField(max_length=40, unique=True, editable=False)
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='cases')
    department = models.ForeignKey(Department, on_delete=models.PROTECT, related_name='cases')
    assigned_to = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='cases_assigned'
    )
    selected_tests = models.JSONField(default=list, blank=True)
    procedure = models.CharField(max_length=255, blank=True, default='')
    scheduled_at = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    report = models.OneToOneField(
        'Report', null=True, blank=True, on_delete=models.SET_NULL, related_name='owning_case'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['department', 'created_at'], name='case_dept_created_idx'),
        ]

    def save(self, *args, **kwargs):
        if not self.case_number:
            from workflow.services.ids import next_case_number
            self.case_number = next_case_number()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.case_number


class Report(models.Model):
    """The clinical document produced for a case.

    Reports created from the mobile portal share this table; they are
    marked with ``source='mobile'`` and carry the patient's phone number
    so the portal can look them up.
    """
    STATUS_PENDING = 'pending'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_REPORT_UPLOADED = 'report_uploaded'
    STATUS_REVIEWED = 'reviewed'
    STATUS_APPROVED = 'approved'
    STATUS_CANCELLED = 'cancelled'
    STATUS_PAID = 'paid'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_REPORT_UPLOADED, 'Report uploaded'),
        (STATUS_REVIEWED, 'Reviewed'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_PAID, 'Paid'),
    ]

    PAYMENT_PENDING = 'pending'
    PAYMENT_PAID = 'paid'
    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, 'Pending'),
        (PAYMENT_PAID, 'Paid'),
    ]

    SOURCE_WEB = 'web'
    SOURCE_MOBILE = 'mobile'
    SOURCE_CHOICES = [
        (SOURCE_WEB, 'Web'),
        (SOURCE_MOBILE, 'Mobile'),
    ]

    case_number = models.CharField(max_length=48, unique=True)
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='reports')
    department = models.ForeignKey(Department, on_delete=models.PROTECT, related_name='reports')
    case = models.ForeignKey(
        Case, null=True, blank=True, on_delete=models.SET_NULL, related_name='linked_reports'
    )
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='reports_created'
    )
    assigned_to = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='reports_assigned'
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    payment_status = models.CharField(max_length=16, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)
    source = models.CharField(max_length=10, choices=SOURCE_CHOICES, default=SOURCE_WEB)
    phone = models.CharField(max_length=20, blank=True, default='', db_index=True)

    procedure = models.CharField(max_length=255, blank=True, default='')
    scheduled_at = models.DateTimeField(null=True, blank=True)

    indication = models.TextField(blank=True, default='')
    technique = models.TextField(blank=True, default='')
    findings = models.TextField(blank=True, default='')
    impression = models.TextField(blank=True, default='')
    conclusion = models.TextField(blank=True, default='')
    notes = models.TextField(blank=True, default='')

    file_url = models.CharField(max_length=1024, blank=True, default='')
    file_storage_id = models.CharField(max_length=512, blank=True, default='')
    file_name = models.CharField(max_length=255, blank=True, default='')
    file_uploaded_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='report_files_uploaded'
    )
    file_uploaded_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['department', 'status', 'created_at'], name='report_dept_status_idx'),
            models.Index(fields=['patient', 'created_at'], name='report_patient_created_idx'),
        ]

    @property
    def has_file(self) -> bool:
        return bool(self.file_url)

    def __str__(self) -> str:
        return f"{self.case_number} [{self.status}]"


class Payment(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_SUCCESS = 'success'
    STATUS_FAILED = 'failed'
    STATUS_REFUNDED = 'refunded'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_SUCCESS, 'Success'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_REFUNDED, 'Refunded'),
    ]

    report = models.ForeignKey(Report, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    method = models.CharField(max_length=32, blank=True, default='')  # cash, card, online
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    transaction_id = models.CharField(max_length=128, blank=True, default='')
    made_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='payments_made')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"payment {self.id} report={self.report_id} {self.status}"


class Notification(models.Model):
    """Audit row and polling fallback for a real-time event."""
    title = models.CharField(max_length=255)
    message = models.TextField(blank=True, default='')
    to = models.ForeignKey(User, null=True, blank=True, on_delete=models.CASCADE, related_name='notifications')
    room = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    is_read = models.BooleanField(default=False)
    data = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['to', 'created_at'], name='notif_to_created_idx'),
            models.Index(fields=['room', 'created_at'], name='notif_room_created_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.title} -> {self.room or self.to_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.BigIntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_idx'),
        ]


class DiagnosticTest(models.Model):
    """A billable test in a department's catalog.

    ``Patient.selected_tests[].testId`` refers to these rows; the cached
    ``department_name`` is what the intake screen filters on.
    """
    item_id = models.IntegerField(null=True, blank=True)
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=64, blank=True, default='')
    price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    offer_rate = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    department = models.ForeignKey(Department, on_delete=models.PROTECT, related_name='tests')
    department_name = models.CharField(max_length=255, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        if self.department_id:
            self.department_name = self.department.name
        self.department_name = (self.department_name or '').strip().lower()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} [{self.department_name}]"


class MobileAppointment(models.Model):
    """A booking made by a portal user from the mobile app."""
    PAY_NOW = 'Pay Now'
    PAY_AT_CENTER = 'Pay at Center'
    PAYMENT_METHOD_CHOICES = [
        (PAY_NOW, 'Pay now'),
        (PAY_AT_CENTER, 'Pay at center'),
    ]

    PAYMENT_PENDING = 'Pending'
    PAYMENT_COMPLETED = 'Completed'
    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, 'Pending'),
        (PAYMENT_COMPLETED, 'Completed'),
    ]

    STATUS_PENDING = 'Pending'
    STATUS_CONFIRMED = 'Confirmed'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_COMPLETED = 'Completed'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_COMPLETED, 'Completed'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='appointments')
    procedure = models.CharField(max_length=255)
    center = models.CharField(max_length=255)
    full_name = models.CharField(max_length=255)
    mobile = models.CharField(max_length=20)
    email = models.EmailField(blank=True, default='')
    doctor = models.CharField(max_length=255, blank=True, default='')
    date = models.DateField()
    time = models.CharField(max_length=16)
    payment_method = models.CharField(max_length=16, choices=PAYMENT_METHOD_CHOICES)
    payment_status = models.CharField(max_length=16, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['user', 'date'], name='appointment_user_date_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} {self.procedure} {self.date} {self.time}"
