import logging

from assessments.models import Test
from core.services.access_service import get_scoped_object_or_404
from core.services.retry_service import retry_operation
from core.services.scoping_service import scope_queryset
from courses.models import Course
from courses.services.course_service import ensure_course_write_access

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ['title', 'description', 'test_type', 'duration_minutes', 'max_attempts', 'is_active']


class TestService:

    @staticmethod
    def create(course: Course, data: dict, scope, user) -> Test:
        """Create a test under `course`. The test takes the course's organization and branch."""
        ensure_course_write_access(course, scope)
        data = {key: value for key, value in data.items() if key not in ('organization', 'branch', 'course')}
        test = Test(course=course, created_by=user, **data)
        test.inherit_scope(course)
        retry_operation(test.save)
        logger.info(f"Test {test.id} created in course {course.id} by user {scope.user_id}")
        return test

    @staticmethod
    def list_for_scope(scope, course_id=None, active_only=False):
        queryset = Test.objects.select_related('course')
        if course_id:
            queryset = queryset.filter(course_id=course_id)
        if active_only:
            queryset = queryset.filter(is_active=True)
        return scope_queryset(queryset, scope)

    @staticmethod
    def get_for_scope(pk, scope) -> Test:
        return retry_operation(
            lambda: get_scoped_object_or_404(Test.objects.select_related('course'), pk, scope, message='Test not found.')
        )

    @staticmethod
    def update(test: Test, data: dict, scope) -> Test:
        ensure_course_write_access(test.course, scope)
        for field in UPDATABLE_FIELDS:
            if field in data:
                setattr(test, field, data[field])
        retry_operation(test.save)
        logger.info(f"Test {test.id} updated by user {scope.user_id}")
        return test

    @staticmethod
    def set_active(test: Test, is_active: bool, scope) -> Test:
        ensure_course_write_access(test.course, scope)
        test.is_active = is_active
        retry_operation(lambda: test.save(update_fields=['is_active', 'updated_at']))
        return test

    @staticmethod
    def delete(test: Test, scope):
        ensure_course_write_access(test.course, scope)
        test_id = test.id
        retry_operation(test.delete)
        logger.info(f"Test {test_id} deleted by user {scope.user_id}")
