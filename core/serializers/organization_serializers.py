from rest_framework import serializers

from core.models import Organization


class OrganizationSerializer(serializers.ModelSerializer):
    branch_count = serializers.SerializerMethodField()

    class Meta:
        model = Organization
        fields = [
            'id', 'name', 'description', 'logo_url', 'website', 'email',
            'is_active', 'branch_count', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'is_active', 'branch_count', 'created_at', 'updated_at']

    def get_branch_count(self, obj) -> int:
        return obj.branches.count()


class CreateOrganizationSerializer(serializers.ModelSerializer):
    """
    Input for creating or updating an organization. Uniqueness of name and
    email is enforced by the service layer with a 409, not here.
    """
    name = serializers.CharField(min_length=2, max_length=255)
    email = serializers.EmailField(required=False, allow_null=True, allow_blank=True)

    class Meta:
        model = Organization
        fields = ['name', 'description', 'logo_url', 'website', 'email']

    def validate_email(self, value):
        return value or None


class OrganizationStatsSerializer(serializers.Serializer):
    organization_id = serializers.UUIDField()
    total_branches = serializers.IntegerField()
    active_branches = serializers.IntegerField()
    inactive_branches = serializers.IntegerField()
    total_users = serializers.IntegerField()
    content = serializers.DictField(child=serializers.IntegerField())

