from django.contrib.auth import get_user_model
from rest_framework import serializers

from core.models import Organization, Branch
from core.utils.roles import Roles, get_capabilities

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    organization_name = serializers.CharField(source='organization.name', read_only=True, allow_null=True)
    branch_name = serializers.CharField(source='branch.name', read_only=True, allow_null=True)
    capabilities = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'email', 'username', 'first_name', 'last_name', 'phone_number',
            'role', 'capabilities', 'organization', 'organization_name',
            'branch', 'branch_name', 'is_active', 'created_at',
        ]
        read_only_fields = fields

    def get_capabilities(self, obj) -> list:
        return sorted(get_capabilities(obj.role))


class AssignOrgBranchSerializer(serializers.Serializer):
    organization = serializers.PrimaryKeyRelatedField(queryset=Organization.objects.all(), allow_null=True)
    branch = serializers.PrimaryKeyRelatedField(queryset=Branch.objects.all(), allow_null=True, required=False)
    role = serializers.ChoiceField(choices=[role.value for role in Roles], required=False)

    def validate(self, attrs):
        organization = attrs.get('organization')
        branch = attrs.get('branch')
        if branch is not None and (organization is None or branch.organization_id != organization.id):
            raise serializers.ValidationError({'branch': "Branch must belong to the selected organization."})
        return attrs
