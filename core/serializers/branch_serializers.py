import re

from rest_framework import serializers

from core.models import Branch

WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']
TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


class OperatingHoursSerializer(serializers.Serializer):
    opening = serializers.CharField()
    closing = serializers.CharField()
    days = serializers.ListField(child=serializers.ChoiceField(choices=WEEKDAYS), allow_empty=False)

    def validate_opening(self, value):
        if not TIME_PATTERN.match(value):
            raise serializers.ValidationError("Use HH:MM, e.g. 09:00.")
        return value

    def validate_closing(self, value):
        if not TIME_PATTERN.match(value):
            raise serializers.ValidationError("Use HH:MM, e.g. 17:00.")
        return value

    def validate(self, attrs):
        if attrs['closing'] <= attrs['opening']:
            raise serializers.ValidationError("Closing time must be after opening time.")
        return attrs


class BranchSerializer(serializers.ModelSerializer):
    organization_name = serializers.CharField(source='organization.name', read_only=True)

    class Meta:
        model = Branch
        fields = [
            'id', 'organization', 'organization_name', 'name', 'address', 'email',
            'contact_number', 'manager_name', 'operating_hours', 'is_active',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class BranchWriteSerializer(serializers.ModelSerializer):
    """Input for creating or updating a branch. The organization comes from the URL, never the body."""
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    operating_hours = OperatingHoursSerializer(required=False)

    class Meta:
        model = Branch
        fields = ['name', 'address', 'email', 'contact_number', 'manager_name', 'operating_hours', 'is_active']
