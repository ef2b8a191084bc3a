import bleach
from rest_framework import serializers

from workflow.models import Patient

CASE_TYPES = [value for value, _ in Patient.CASE_TYPE_CHOICES]
PATIENT_STATUSES = [value for value, _ in Patient.STATUS_CHOICES]

# camelCase request field -> model field
PATIENT_FIELD_MAP = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'address': 'address',
    'phone': 'phone',
    'email': 'email',
    'age': 'age',
    'gender': 'gender',
    'caseDescription': 'case_description',
    'caseType': 'case_type',
    'referredDoctor': 'referred_doctor',
    'reportDate': 'report_date',
    'clinicalHistory': 'clinical_history',
    'previousInjury': 'previous_injury',
    'previousSurgery': 'previous_surgery',
    'selectedTests': 'selected_tests',
}


class SelectedTestSerializer(serializers.Serializer):
    testId = serializers.CharField(required=False, allow_blank=True)
    name = serializers.CharField(max_length=255)
    mrp = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, coerce_to_string=False)
    offerRate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, coerce_to_string=False)
    code = serializers.CharField(required=False, allow_blank=True)
    deptid = serializers.CharField(required=False, allow_blank=True)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        # JSONField storage: keep prices as plain numbers
        for key in ('mrp', 'offerRate'):
            if value.get(key) is not None:
                value[key] = float(value[key])
        return value


class GovtIdSerializer(serializers.Serializer):
    idType = serializers.CharField(max_length=64, required=False, allow_blank=True)
    idNumber = serializers.CharField(max_length=64, required=False, allow_blank=True)


class ContactSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)


class PatientWriteSerializer(serializers.Serializer):
    firstName = serializers.CharField(max_length=150)
    lastName = serializers.CharField(max_length=150, required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    contact = ContactSerializer(required=False)
    age = serializers.IntegerField(min_value=0, max_value=150, required=False, allow_null=True)
    gender = serializers.CharField(max_length=20, required=False, allow_blank=True)
    caseDescription = serializers.CharField(required=False, allow_blank=True)
    caseType = serializers.ChoiceField(choices=CASE_TYPES)
    referredDoctor = serializers.CharField(max_length=255, required=False, allow_blank=True)
    reportDate = serializers.DateTimeField(required=False)
    clinicalHistory = serializers.CharField(required=False, allow_blank=True)
    previousInjury = serializers.CharField(required=False, allow_blank=True)
    previousSurgery = serializers.CharField(required=False, allow_blank=True)
    govtId = GovtIdSerializer(required=False)
    selectedTests = SelectedTestSerializer(many=True, required=False)

    def validate_firstName(self, v):
        v = bleach.clean((v or '').strip(), tags=set(), strip=True)
        if not v:
            raise serializers.ValidationError('First name is required')
        return v

    def to_model_fields(self) -> dict:
        """Flatten validated camelCase data into model field names."""
        vd = dict(self.validated_data)
        data = {PATIENT_FIELD_MAP[k]: v for k, v in vd.items() if k in PATIENT_FIELD_MAP}
        contact = vd.get('contact') or {}
        if 'phone' in contact:
            data['phone'] = contact['phone']
        if 'email' in contact:
            data['email'] = contact['email']
        govt = vd.get('govtId') or {}
        if 'idType' in govt:
            data['govt_id_type'] = govt['idType']
        if 'idNumber' in govt:
            data['govt_id_number'] = govt['idNumber']
        return data


class PatientListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=64, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=PATIENT_STATUSES, required=False)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=200)


class AssignDepartmentSerializer(serializers.Serializer):
    departmentId = serializers.IntegerField(min_value=1)
    departmentName = serializers.CharField(max_length=255, required=False, allow_blank=True)


class HistorySerializer(serializers.Serializer):
    clinicalHistory = serializers.CharField(required=False, allow_blank=True)
    previousInjury = serializers.CharField(required=False, allow_blank=True)
    previousSurgery = serializers.CharField(required=False, allow_blank=True)


class AttachmentSerializer(serializers.Serializer):
    fileName = serializers.CharField(max_length=255, required=False, allow_blank=True)
    fileUrl = serializers.CharField(max_length=1024)
