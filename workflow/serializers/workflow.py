from rest_framework import serializers

from workflow.models import Payment, Report

REPORT_STATUSES = [value for value, _ in Report.STATUS_CHOICES]
PAYMENT_STATUSES = [value for value, _ in Payment.STATUS_CHOICES]

CLINICAL_FIELD_MAP = {
    'indication': 'indication',
    'technique': 'technique',
    'findings': 'findings',
    'impression': 'impression',
    'conclusion': 'conclusion',
    'notes': 'notes',
    'procedure': 'procedure',
    'scheduledAt': 'scheduled_at',
    'assignedTo': 'assigned_to',
}


def clinical_fields(validated: dict) -> dict:
    return {CLINICAL_FIELD_MAP[k]: v for k, v in validated.items() if k in CLINICAL_FIELD_MAP}


class CaseCreateSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    departmentId = serializers.IntegerField(min_value=1)
    assignedTo = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    procedure = serializers.CharField(max_length=255, required=False, allow_blank=True)
    scheduledAt = serializers.DateTimeField(required=False, allow_null=True)


class CaseUpdateSerializer(serializers.Serializer):
    procedure = serializers.CharField(max_length=255, required=False, allow_blank=True)
    scheduledAt = serializers.DateTimeField(required=False)
    selectedTests = serializers.ListField(child=serializers.DictField(), required=False)
    assignedTo = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def to_engine_fields(self) -> dict:
        mapping = {'procedure': 'procedure', 'scheduledAt': 'scheduled_at',
                   'selectedTests': 'selected_tests', 'assignedTo': 'assigned_to'}
        return {mapping[k]: v for k, v in self.validated_data.items()}


class CaseAssignSerializer(serializers.Serializer):
    assignedTo = serializers.IntegerField(min_value=1, allow_null=True)


class ClinicalFieldsSerializer(serializers.Serializer):
    indication = serializers.CharField(required=False, allow_blank=True)
    technique = serializers.CharField(required=False, allow_blank=True)
    findings = serializers.CharField(required=False, allow_blank=True)
    impression = serializers.CharField(required=False, allow_blank=True)
    conclusion = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    procedure = serializers.CharField(max_length=255, required=False, allow_blank=True)
    scheduledAt = serializers.DateTimeField(required=False, allow_null=True)
    assignedTo = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class ReportCreateSerializer(ClinicalFieldsSerializer):
    patientId = serializers.IntegerField(min_value=1)
    department = serializers.IntegerField(min_value=1)
    caseId = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class ReportFileSerializer(serializers.Serializer):
    url = serializers.CharField(max_length=1024)
    storageId = serializers.CharField(max_length=512, required=False, allow_blank=True)
    filename = serializers.CharField(max_length=255, required=False, allow_blank=True)


class MobileReportCreateSerializer(ClinicalFieldsSerializer):
    patientId = serializers.IntegerField(min_value=1)
    case = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    reportFile = ReportFileSerializer(required=False, allow_null=True)


class ReportListQuerySerializer(serializers.Serializer):
    department = serializers.IntegerField(min_value=1, required=False)
    status = serializers.ChoiceField(choices=REPORT_STATUSES, required=False)
    patient = serializers.IntegerField(min_value=1, required=False)
    source = serializers.ChoiceField(choices=[value for value, _ in Report.SOURCE_CHOICES], required=False)


class StatusChangeSerializer(serializers.Serializer):
    # Plain CharField: values outside the enum are rejected by the engine as InvalidArgument.
    status = serializers.CharField(max_length=32)
    override = serializers.BooleanField(required=False, default=False)


class PaymentCreateSerializer(serializers.Serializer):
    reportId = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    method = serializers.CharField(max_length=32, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=PAYMENT_STATUSES, required=False)
    transactionId = serializers.CharField(max_length=128, required=False, allow_blank=True)


class PaymentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PAYMENT_STATUSES)
