import logging

from django.db import transaction

from core import signals
from core.events import UserOrgBranchAssignedEvent, emit_on_commit
from core.exceptions import AccessDenied
from core.services.access_service import ensure_access, ensure_capability
from core.services.retry_service import retry_operation
from core.utils.roles import Capabilities, Roles, has_capability

logger = logging.getLogger(__name__)


def assign_org_branch(user, organization, branch, role, scope):
    """
    Place `user` in `organization` and optionally `branch`, optionally changing their role.

    Callers without manage_organizations may only assign within their own
    organization, and may not hand out the platform-level role.
    """
    ensure_capability(scope, Capabilities.MANAGE_USERS)
    if branch is not None and (organization is None or branch.organization_id != organization.id):
        raise AccessDenied("Branch does not belong to the organization.")

    if not has_capability(scope.user_role, Capabilities.MANAGE_ORGANIZATIONS):
        if user.organization_id is not None:
            ensure_access(user.organization_id, user.branch_id, scope)
        if organization is None:
            raise AccessDenied("Only platform administrators can remove users from an organization.")
        ensure_access(organization.id, branch.id if branch else None, scope)
        if role is not None and Roles.from_string(role) == Roles.BRANDON:
            raise AccessDenied("Only platform administrators can assign this role.")

    def _save():
        with transaction.atomic():
            user.organization = organization
            user.branch = branch
            update_fields = ['organization', 'branch', 'updated_at']
            if role is not None:
                user.role = role
                update_fields.append('role')
            user.save(update_fields=update_fields)
            emit_on_commit(signals.user_org_branch_assigned, UserOrgBranchAssignedEvent(
                user_id=str(user.id),
                organization_id=str(organization.id) if organization else None,
                branch_id=str(branch.id) if branch else None,
                role=user.role,
                assigned_by=scope.user_id,
            ))

    retry_operation(_save)

    logger.info(f"User {user.id} assigned to organization {user.organization_id}, branch {user.branch_id}")
    return user
