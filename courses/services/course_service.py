import logging

from django.conf import settings
from django.db import transaction

from core import signals
from core.events import CourseCreatedEvent, emit_on_commit
from core.exceptions import AccessDenied
from core.services.access_service import ensure_capability, ensure_resource_access, get_object_or_not_found
from core.services.cache_service import cache_delete, cache_get, cache_set, course_key, material_key
from core.services.retry_service import retry_operation
from core.services.scoping_service import scope_queryset
from core.utils.roles import Capabilities, has_capability
from courses.models import Course

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ['title', 'created_at', 'updated_at']
UPDATABLE_FIELDS = ['title', 'description', 'status']


def ensure_course_write_access(course: Course, scope):
    """
    Writing to a course or anything inside it requires read access plus
    either the manage_content capability or being the course creator.
    """
    ensure_resource_access(course, scope)
    if has_capability(scope.user_role, Capabilities.MANAGE_CONTENT):
        return
    if course.created_by_id and str(course.created_by_id) == scope.user_id:
        return
    logger.warning(f"User {scope.user_id} may not modify course {course.id}")
    raise AccessDenied('Only the course creator or a content manager can modify this course.')


class CourseService:

    @staticmethod
    def create(data: dict, scope, user) -> Course:
        """The course takes the creator's organization and branch."""
        if not scope.org_id:
            raise AccessDenied('You must belong to an organization to create courses.')
        ensure_capability(scope, Capabilities.MANAGE_CONTENT)

        def _create():
            with transaction.atomic():
                course = Course.objects.create(
                    organization_id=scope.org_id,
                    branch_id=scope.branch_id,
                    created_by=user,
                    **data,
                )
                emit_on_commit(signals.course_created, CourseCreatedEvent(
                    course_id=str(course.id),
                    title=course.title,
                    organization_id=scope.org_id,
                    branch_id=scope.branch_id,
                    created_by=scope.user_id,
                ))
            return course

        course = retry_operation(_create)
        logger.info(f"Course {course.id} created by user {scope.user_id}")
        return course

    @staticmethod
    def list_for_scope(scope, sort_by='created_at', sort_order='desc'):
        """Active courses visible to the caller, newest first by default."""
        if sort_by not in SORTABLE_FIELDS:
            sort_by = 'created_at'
        prefix = '' if str(sort_order).lower() == 'asc' else '-'
        return scope_queryset(
            Course.objects.filter(status='active').select_related('created_by'),
            scope,
            ordering=[f"{prefix}{sort_by}"],
        )

    @staticmethod
    def get_for_scope(pk, scope, use_cache=True) -> Course:
        """
        Load a course, from cache when possible. Access is checked on every
        call, cached or not. Pass use_cache=False before modifying the course.
        """
        key = course_key(pk)
        course = cache_get(key) if use_cache else None
        if course is None:
            course = retry_operation(
                lambda: get_object_or_not_found(
                    Course.objects.exclude(status='deleted'), pk, 'Course not found.'
                )
            )
            cache_set(key, course, settings.CACHE_TTL_COURSE)
        ensure_resource_access(course, scope)
        return course

    @staticmethod
    def update(course: Course, data: dict, scope) -> Course:
        ensure_course_write_access(course, scope)
        for field in UPDATABLE_FIELDS:
            if field in data:
                setattr(course, field, data[field])
        retry_operation(course.save)
        keys = course.cache_keys()
        if 'status' in data:
            keys += [material_key(pk) for pk in course.materials.values_list('id', flat=True)]
        cache_delete(*keys)
        logger.info(f"Course {course.id} updated by user {scope.user_id}")
        return course

    @staticmethod
    def delete(course: Course, scope) -> Course:
        """
        Soft delete: the course is marked deleted and disappears from listings.
        Its materials stop being readable and their cache entries are cleared.
        """
        ensure_course_write_access(course, scope)
        course.status = 'deleted'
        retry_operation(lambda: course.save(update_fields=['status', 'updated_at']))
        material_ids = list(course.materials.values_list('id', flat=True))
        cache_delete(*course.cache_keys(), *[material_key(pk) for pk in material_ids])
        logger.info(f"Course {course.id} deleted by user {scope.user_id}")
        return course
