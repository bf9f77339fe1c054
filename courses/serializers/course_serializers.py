from rest_framework import serializers

from courses.models import Course, CourseMaterial


class CourseSerializer(serializers.ModelSerializer):
    created_by_email = serializers.CharField(source='created_by.email', read_only=True, allow_null=True)

    class Meta:
        model = Course
        fields = [
            'id', 'title', 'description', 'status', 'organization', 'branch',
            'created_by', 'created_by_email', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'organization', 'branch', 'created_by', 'created_at', 'updated_at']


class CourseMaterialSerializer(serializers.ModelSerializer):
    """Scope and course come from the parent course and can't be set by the client."""

    class Meta:
        model = CourseMaterial
        fields = [
            'id', 'course', 'title', 'description', 'external_url', 'material_type',
            'sort_order', 'is_active', 'status', 'organization', 'branch',
            'created_by', 'updated_by', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'course', 'status', 'organization', 'branch',
            'created_by', 'updated_by', 'created_at', 'updated_at',
        ]


class MaterialOrderSerializer(serializers.Serializer):
    material_id = serializers.UUIDField()
    sort_order = serializers.IntegerField(min_value=0)


class ReorderMaterialsSerializer(serializers.Serializer):
    materials = MaterialOrderSerializer(many=True, allow_empty=False)
