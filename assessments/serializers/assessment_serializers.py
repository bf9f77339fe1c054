from rest_framework import serializers

from assessments.models import Test, TestInvitation, TrainingProgress


class TestSerializer(serializers.ModelSerializer):
    course_title = serializers.CharField(source='course.title', read_only=True)

    class Meta:
        model = Test
        fields = [
            'id', 'course', 'course_title', 'title', 'description', 'test_type',
            'duration_minutes', 'max_attempts', 'is_active', 'organization', 'branch',
            'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'course', 'course_title', 'organization', 'branch', 'created_by', 'created_at', 'updated_at',
        ]


class CreateTestSerializer(TestSerializer):
    """Same as TestSerializer, plus the course to attach the test to."""
    course_id = serializers.UUIDField(write_only=True)

    class Meta(TestSerializer.Meta):
        fields = TestSerializer.Meta.fields + ['course_id']


class InviteUsersSerializer(serializers.Serializer):
    user_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    message = serializers.CharField(required=False, allow_blank=True, default='')
    expires_at = serializers.DateTimeField(required=False, allow_null=True, default=None)


class TestInvitationSerializer(serializers.ModelSerializer):
    test_title = serializers.CharField(source='test.title', read_only=True)
    user_email = serializers.CharField(source='user.email', read_only=True)

    class Meta:
        model = TestInvitation
        fields = [
            'id', 'test', 'test_title', 'user', 'user_email', 'invited_by', 'status',
            'message', 'expires_at', 'responded_at', 'response_notes',
            'organization', 'branch', 'created_at',
        ]
        read_only_fields = fields


class RespondInvitationSerializer(serializers.Serializer):
    accept = serializers.BooleanField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class TrainingProgressSerializer(serializers.ModelSerializer):
    class Meta:
        model = TrainingProgress
        fields = [
            'id', 'user', 'course', 'test', 'completion_percentage', 'time_spent_minutes',
            'questions_completed', 'total_questions', 'organization', 'branch', 'last_updated',
        ]
        read_only_fields = fields


class RecordProgressSerializer(serializers.Serializer):
    course_id = serializers.UUIDField()
    test_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    completion_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100)
    time_spent_minutes = serializers.IntegerField(min_value=0, required=False)
    questions_completed = serializers.IntegerField(min_value=0, required=False)
    total_questions = serializers.IntegerField(min_value=0, required=False)

    def validate(self, attrs):
        completed = attrs.get('questions_completed')
        total = attrs.get('total_questions')
        if completed is not None and total is not None and completed > total:
            raise serializers.ValidationError(
                {'questions_completed': 'Cannot exceed total_questions.'}
            )
        return attrs
