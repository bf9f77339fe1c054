import logging

from rest_framework.exceptions import ValidationError

from assessments.models import TrainingProgress
from core.services.access_service import ensure_resource_access
from core.services.retry_service import retry_operation
from core.services.scoping_service import scope_queryset

logger = logging.getLogger(__name__)

PROGRESS_FIELDS = ['completion_percentage', 'time_spent_minutes', 'questions_completed', 'total_questions']


def record_progress(user, course, test, values: dict, scope) -> TrainingProgress:
    """
    Create or update the caller's progress on a course, or on one test of it.
    The row takes the course's organization and branch.
    """
    ensure_resource_access(course, scope)
    if test is not None and test.course_id != course.id:
        raise ValidationError({'test': 'Test does not belong to this course.'})

    defaults = {field: values[field] for field in PROGRESS_FIELDS if field in values}
    defaults['organization_id'] = course.organization_id
    defaults['branch_id'] = course.branch_id

    progress, created = retry_operation(lambda: TrainingProgress.objects.update_or_create(
        user=user, course=course, test=test, defaults=defaults,
    ))
    logger.info(
        f"{'Recorded' if created else 'Updated'} progress {progress.id} for user {user.id} "
        f"on course {course.id}: {progress.completion_percentage}%"
    )
    return progress


def list_for_scope(scope, course_id=None, user_id=None):
    queryset = TrainingProgress.objects.select_related('user', 'course', 'test')
    if course_id:
        queryset = queryset.filter(course_id=course_id)
    if user_id:
        queryset = queryset.filter(user_id=user_id)
    return scope_queryset(queryset, scope, ordering='-last_updated')


def list_for_user(user):
    return TrainingProgress.objects.filter(user=user).select_related('course', 'test').order_by('-last_updated')
