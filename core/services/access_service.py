import logging
from dataclasses import dataclass
from typing import Optional

from django.core.exceptions import ValidationError as DjangoValidationError

from core.exceptions import AccessDenied, ResourceNotFound
from core.utils.roles import Capabilities, has_capability

logger = logging.getLogger(__name__)

WRONG_ORGANIZATION = 'Access denied: wrong organization'
BRANCH_MISMATCH = 'Access denied: branch mismatch'


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[str] = None


def _as_id(value):
    return str(value) if value else None


def validate_access(resource_org_id, resource_branch_id, scope) -> AccessDecision:
    """
    Decide whether the caller described by `scope` may reach a resource.

    1. The organization must match, whatever the caller's role.
    2. Organization-level resources (no branch) are visible org-wide.
    3. Callers without a branch see every branch of their organization.
    4. Same branch is allowed.
    5. A different branch needs the cross_branch capability.
    """
    resource_org_id = _as_id(resource_org_id)
    resource_branch_id = _as_id(resource_branch_id)

    if not scope.org_id or scope.org_id != resource_org_id:
        return AccessDecision(False, WRONG_ORGANIZATION)
    if not resource_branch_id:
        return AccessDecision(True)
    if not scope.branch_id:
        return AccessDecision(True)
    if scope.branch_id == resource_branch_id:
        return AccessDecision(True)
    if has_capability(scope.user_role, Capabilities.CROSS_BRANCH):
        return AccessDecision(True)
    return AccessDecision(False, BRANCH_MISMATCH)


def ensure_access(resource_org_id, resource_branch_id, scope):
    decision = validate_access(resource_org_id, resource_branch_id, scope)
    if not decision.allowed:
        logger.warning(
            f"{decision.reason}: user {scope.user_id} (org {scope.org_id}, branch {scope.branch_id}) "
            f"-> org {resource_org_id}, branch {resource_branch_id}"
        )
        raise AccessDenied(decision.reason)
    return decision


def ensure_resource_access(resource, scope):
    return ensure_access(resource.organization_id, resource.branch_id, scope)


def ensure_capability(scope, capability, message=None):
    if not has_capability(scope.user_role, capability):
        logger.warning(f"User {scope.user_id} ({scope.user_role}) lacks {capability}")
        raise AccessDenied(message or 'Insufficient permissions for this action.')


def get_object_or_not_found(queryset, pk, message=None):
    try:
        return queryset.get(pk=pk)
    except (queryset.model.DoesNotExist, DjangoValidationError, ValueError):
        raise ResourceNotFound(message or f"{queryset.model._meta.verbose_name.title()} not found.")


def get_scoped_object_or_404(queryset, pk, scope, org_attr='organization_id', branch_attr='branch_id', message=None):
    """
    Load a resource by id, then validate it against the caller's scope.
    An unknown id is a 404; a known id outside the caller's scope is a 403.
    """
    instance = get_object_or_not_found(queryset, pk, message)
    ensure_access(getattr(instance, org_attr), getattr(instance, branch_attr), scope)
    return instance
