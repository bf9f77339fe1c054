import logging

from django.conf import settings
from django.db import transaction

from core.exceptions import Conflict
from core.services.access_service import ensure_capability, ensure_resource_access, get_object_or_not_found
from core.services.cache_service import (
    cache_delete,
    cache_get,
    cache_set,
    material_count_key,
    material_key,
    material_list_key,
)
from core.services.retry_service import retry_operation
from core.utils.roles import Capabilities
from courses.models import Course, CourseMaterial
from courses.services.course_service import ensure_course_write_access

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ['title', 'created_at', 'sort_order']
UPDATABLE_FIELDS = ['title', 'description', 'external_url', 'material_type', 'sort_order', 'is_active']


def invalidate_material_cache(course_id, material_id=None):
    keys = [material_list_key(course_id), material_count_key(course_id)]
    if material_id is not None:
        keys.insert(0, material_key(material_id))
    cache_delete(*keys)


class MaterialService:
    """
    Course materials. Reads are cached; every write clears the material, list
    and count keys of the affected course before returning.
    """

    @staticmethod
    def create(course: Course, data: dict, scope, user) -> CourseMaterial:
        ensure_course_write_access(course, scope)
        data = {key: value for key, value in data.items() if key not in ('organization', 'branch', 'course')}

        def _create():
            material = CourseMaterial(course=course, created_by=user, **data)
            material.inherit_scope(course)
            material.save()
            return material

        material = retry_operation(_create)
        invalidate_material_cache(course.id)
        logger.info(f"Course material {material.id} created in course {course.id} by user {scope.user_id}")
        return material

    @staticmethod
    def list_by_course(course: Course, scope, sort_by='sort_order', sort_order='asc', include_inactive=False):
        """
        Active materials of a course. Only the default listing (sort_order
        ascending, active only) is cached.
        """
        ensure_resource_access(course, scope)
        if sort_by not in SORTABLE_FIELDS:
            sort_by = 'sort_order'
        ascending = str(sort_order).lower() != 'desc'
        cacheable = not include_inactive and sort_by == 'sort_order' and ascending

        key = material_list_key(course.id)
        if cacheable:
            cached = cache_get(key)
            if cached is not None:
                logger.debug(f"Cache hit for course materials: {key}")
                return cached

        queryset = CourseMaterial.objects.filter(course=course, status='active').select_related('created_by')
        if not include_inactive:
            queryset = queryset.filter(is_active=True)
        ordering = [f"{'' if ascending else '-'}{sort_by}"]
        if sort_by != 'sort_order':
            ordering.append('sort_order')

        materials = retry_operation(lambda: list(queryset.order_by(*ordering)))
        if cacheable:
            cache_set(key, materials, settings.CACHE_TTL_MATERIAL_LIST)
        return materials

    @staticmethod
    def get_for_scope(pk, scope) -> CourseMaterial:
        """An active material, from cache when possible. Access is checked on cache hits too."""
        key = material_key(pk)
        material = cache_get(key)
        if material is None:
            material = retry_operation(
                lambda: get_object_or_not_found(
                    CourseMaterial.objects.filter(status='active')
                    .exclude(course__status='deleted')
                    .select_related('course', 'created_by'),
                    pk, 'Course material not found.',
                )
            )
            cache_set(key, material, settings.CACHE_TTL_MATERIAL)
        ensure_resource_access(material, scope)
        return material

    @staticmethod
    def get_for_update(pk, scope) -> CourseMaterial:
        """Any material regardless of status, straight from the database, with write access checked."""
        material = get_object_or_not_found(
            CourseMaterial.objects.select_related('course'), pk, 'Course material not found.'
        )
        ensure_course_write_access(material.course, scope)
        return material

    @staticmethod
    def update(material: CourseMaterial, data: dict, scope, user) -> CourseMaterial:
        ensure_course_write_access(material.course, scope)
        for field in UPDATABLE_FIELDS:
            if field in data:
                setattr(material, field, data[field])
        material.updated_by = user
        retry_operation(material.save)
        invalidate_material_cache(material.course_id, material.id)
        logger.info(f"Course material {material.id} updated by user {scope.user_id}")
        return material

    @staticmethod
    def delete(material: CourseMaterial, scope):
        ensure_course_write_access(material.course, scope)
        material_id, course_id = material.id, material.course_id
        retry_operation(material.delete)
        invalidate_material_cache(course_id, material_id)
        logger.info(f"Course material {material_id} deleted by user {scope.user_id}")

    @staticmethod
    def soft_delete(material: CourseMaterial, scope, user) -> CourseMaterial:
        ensure_course_write_access(material.course, scope)
        material.status = 'deleted'
        material.is_active = False
        material.updated_by = user
        retry_operation(lambda: material.save(update_fields=['status', 'is_active', 'updated_by', 'updated_at']))
        invalidate_material_cache(material.course_id, material.id)
        logger.info(f"Course material {material.id} soft-deleted by user {scope.user_id}")
        return material

    @staticmethod
    def restore(material: CourseMaterial, scope, user) -> CourseMaterial:
        ensure_course_write_access(material.course, scope)
        if material.status != 'deleted':
            raise Conflict('Course material is not deleted.')
        material.status = 'active'
        material.is_active = True
        material.updated_by = user
        retry_operation(lambda: material.save(update_fields=['status', 'is_active', 'updated_by', 'updated_at']))
        invalidate_material_cache(material.course_id, material.id)
        logger.info(f"Course material {material.id} restored by user {scope.user_id}")
        return material

    @staticmethod
    def count(course: Course, scope, include_inactive=False) -> int:
        ensure_resource_access(course, scope)
        key = material_count_key(course.id)
        if not include_inactive:
            cached = cache_get(key)
            if cached is not None:
                return cached

        queryset = CourseMaterial.objects.filter(course=course, status='active')
        if not include_inactive:
            queryset = queryset.filter(is_active=True)
        count = retry_operation(queryset.count)
        if not include_inactive:
            cache_set(key, count, settings.CACHE_TTL_MATERIAL_COUNT)
        return count

    @staticmethod
    def reorder(course: Course, orders: list, scope, user):
        """
        Apply new sort orders. `orders` is a list of {'material_id', 'sort_order'}.
        Every id must belong to the course; the whole reorder applies or none of it.
        """
        ensure_course_write_access(course, scope)
        material_ids = [order['material_id'] for order in orders]
        if len(set(material_ids)) != len(material_ids):
            raise Conflict('Duplicate materials in reorder request.')

        def _reorder():
            with transaction.atomic():
                materials = {
                    material.id: material
                    for material in CourseMaterial.objects.select_for_update().filter(
                        course=course, id__in=material_ids
                    )
                }
                if len(materials) != len(material_ids):
                    raise Conflict('Some materials do not belong to the specified course.')
                for order in orders:
                    material = materials[order['material_id']]
                    material.sort_order = order['sort_order']
                    material.updated_by = user
                    material.save(update_fields=['sort_order', 'updated_by', 'updated_at'])

        retry_operation(_reorder)
        cache_delete(material_list_key(course.id), material_count_key(course.id), *[material_key(pk) for pk in material_ids])
        logger.info(f"Reordered {len(material_ids)} material(s) in course {course.id} by user {scope.user_id}")

    @staticmethod
    def list_deleted(course: Course, scope):
        ensure_resource_access(course, scope)
        ensure_capability(scope, Capabilities.MANAGE_CONTENT)
        return CourseMaterial.objects.filter(course=course, status='deleted').order_by('-updated_at')
