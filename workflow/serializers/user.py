import bleach
from rest_framework import serializers

from workflow.models import User

ROLES = [value for value, _ in User.ROLE_CHOICES]

# camelCase request field -> model field
USER_FIELD_MAP = {
    'username': 'username',
    'firstName': 'first_name',
    'lastName': 'last_name',
    'email': 'email',
    'phone': 'phone',
    'role': 'role',
    'department': 'department_id',
}


class UserWriteSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(min_length=8, write_only=True)
    firstName = serializers.CharField(max_length=150, required=False, allow_blank=True)
    lastName = serializers.CharField(max_length=150, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    role = serializers.ChoiceField(choices=ROLES)
    department = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate_username(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('Username is required')
        return v

    def validate_firstName(self, v):
        return bleach.clean((v or '').strip(), tags=set(), strip=True)

    def validate_lastName(self, v):
        return bleach.clean((v or '').strip(), tags=set(), strip=True)

    def to_model_fields(self) -> dict:
        return {USER_FIELD_MAP[k]: v for k, v in self.validated_data.items() if k in USER_FIELD_MAP}


class RegisterSerializer(UserWriteSerializer):
    """The older ``/api/auth/register`` body: a single ``name`` instead of first/last."""
    name = serializers.CharField(max_length=300)

    def to_model_fields(self) -> dict:
        fields = super().to_model_fields()
        first, _, last = bleach.clean(self.validated_data['name'].strip(), tags=set(), strip=True).partition(' ')
        fields.setdefault('first_name', first)
        fields.setdefault('last_name', last.strip())
        return fields
