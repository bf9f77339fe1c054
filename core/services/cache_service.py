import logging

from django.core.cache import cache

logger = logging.getLogger(__name__)


def cache_get(key):
    """Return the cached value, or None on a miss or when the cache is unavailable."""
    try:
        return cache.get(key)
    except Exception as e:
        logger.warning(f"Cache get failed for {key}: {e}")
        return None


def cache_set(key, value, timeout):
    try:
        cache.set(key, value, timeout)
    except Exception as e:
        logger.warning(f"Cache set failed for {key}: {e}")


def cache_delete(*keys):
    for key in keys:
        try:
            cache.delete(key)
        except Exception as e:
            logger.warning(f"Cache delete failed for {key}: {e}")


def material_key(material_id):
    return f"material:{material_id}"


def material_list_key(course_id):
    return f"materials:course:{course_id}"


def material_count_key(course_id):
    return f"materials:count:{course_id}"


def course_key(course_id):
    return f"course:{course_id}"
