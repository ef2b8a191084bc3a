import bleach
from rest_framework import serializers


class DepartmentSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    code = serializers.CharField(max_length=32)
    description = serializers.CharField(required=False, allow_blank=True)
    isActive = serializers.BooleanField(required=False)

    def validate_name(self, v):
        v = bleach.clean((v or '').strip(), tags=set(), strip=True)
        if not v:
            raise serializers.ValidationError('Department name is required')
        return v

    def to_model_fields(self) -> dict:
        mapping = {'name': 'name', 'code': 'code', 'description': 'description', 'isActive': 'is_active'}
        return {mapping[k]: v for k, v in self.validated_data.items()}
