import functools
import logging
import time

from django.conf import settings

from core.exceptions import MaxRetriesExceeded

logger = logging.getLogger(__name__)


def is_transient_error(error: Exception) -> bool:
    """
    A connection reset, a lost connection or a connect timeout is worth
    retrying. Everything else (not found, forbidden, conflict, validation)
    is not.
    """
    message = str(error)
    markers = getattr(settings, 'RETRY_TRANSIENT_ERROR_MARKERS', [])
    return any(marker and marker in message for marker in markers)


def retry_operation(operation, max_retries=None, initial_delay=None, is_retryable=is_transient_error):
    """
    Run `operation` with up to `max_retries` attempts.

    The delay between attempts starts at `initial_delay` seconds and doubles
    after each failure. Errors rejected by `is_retryable` propagate straight
    away. When every attempt fails with a retryable error, MaxRetriesExceeded
    is raised from the last error.
    """
    if max_retries is None:
        max_retries = settings.RETRY_MAX_ATTEMPTS
    if initial_delay is None:
        initial_delay = settings.RETRY_INITIAL_DELAY_SECONDS

    delay = initial_delay
    last_error = None
    for attempt in range(1, max_retries + 1):
        try:
            return operation()
        except Exception as e:
            if not is_retryable(e):
                raise
            last_error = e
            logger.warning(f"Attempt {attempt}/{max_retries} failed with transient error: {e}")
            if attempt < max_retries:
                time.sleep(delay)
                delay *= 2

    logger.error(f"Operation failed after {max_retries} attempts: {last_error}")
    raise MaxRetriesExceeded() from last_error


def with_retry(max_retries=None, initial_delay=None, is_retryable=is_transient_error):
    """Decorator form of retry_operation."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return retry_operation(
                lambda: func(*args, **kwargs),
                max_retries=max_retries,
                initial_delay=initial_delay,
                is_retryable=is_retryable,
            )
        return wrapper
    return decorator
