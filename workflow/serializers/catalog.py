import bleach
from rest_framework import serializers

from workflow.models import MobileAppointment


class DiagnosticTestSerializer(serializers.Serializer):
    itemId = serializers.IntegerField(required=False, allow_null=True)
    name = serializers.CharField(max_length=255)
    code = serializers.CharField(max_length=64, required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, allow_null=True)
    offerRate = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False,
                                         allow_null=True)
    department = serializers.IntegerField(min_value=1)

    def validate_name(self, v):
        v = bleach.clean((v or '').strip(), tags=set(), strip=True)
        if not v:
            raise serializers.ValidationError('Test name is required')
        return v

    def to_model_fields(self) -> dict:
        mapping = {
            'itemId': 'item_id', 'name': 'name', 'code': 'code', 'price': 'price',
            'offerRate': 'offer_rate', 'department': 'department_id',
        }
        return {mapping[k]: v for k, v in self.validated_data.items()}


APPOINTMENT_FIELD_MAP = {
    'procedure': 'procedure',
    'center': 'center',
    'fullName': 'full_name',
    'mobile': 'mobile',
    'email': 'email',
    'doctor': 'doctor',
    'date': 'date',
    'time': 'time',
    'paymentMethod': 'payment_method',
    'status': 'status',
}


class AppointmentSerializer(serializers.Serializer):
    procedure = serializers.CharField(max_length=255)
    center = serializers.CharField(max_length=255)
    fullName = serializers.CharField(max_length=255)
    mobile = serializers.CharField(max_length=20)
    email = serializers.EmailField(required=False, allow_blank=True)
    doctor = serializers.CharField(max_length=255, required=False, allow_blank=True)
    date = serializers.DateField()
    time = serializers.CharField(max_length=16)
    paymentMethod = serializers.ChoiceField(choices=[v for v, _ in MobileAppointment.PAYMENT_METHOD_CHOICES])
    # Portal users may only cancel; confirmation and completion happen at the center.
    status = serializers.ChoiceField(choices=[MobileAppointment.STATUS_CANCELLED], required=False)

    def validate(self, attrs):
        for key in ('procedure', 'center', 'fullName', 'doctor'):
            if key in attrs:
                attrs[key] = bleach.clean(attrs[key].strip(), tags=set(), strip=True)
        return attrs

    def to_model_fields(self) -> dict:
        return {APPOINTMENT_FIELD_MAP[k]: v for k, v in self.validated_data.items()}
