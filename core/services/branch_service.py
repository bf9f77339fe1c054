import logging

from django.db import IntegrityError, transaction

from core import signals
from core.events import BranchCreatedEvent, emit_on_commit
from core.exceptions import Conflict
from core.models import Branch, Organization
from core.services import lifecycle_service
from core.services.access_service import (
    ensure_access,
    ensure_capability,
    get_object_or_not_found,
    get_scoped_object_or_404,
)
from core.services.retry_service import retry_operation
from core.services.scoping_service import scope_queryset
from core.utils.roles import Capabilities, has_capability

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ['name', 'address', 'email', 'contact_number', 'manager_name', 'operating_hours', 'is_active']


class BranchService:
    """
    Branch management. Callers with manage_organizations work across every
    organization; everyone else is held to their own scope.
    """

    @staticmethod
    def _check_email(email, exclude_id=None):
        queryset = Branch.objects.filter(email__iexact=email)
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        if email and queryset.exists():
            raise Conflict(f"Branch with email '{email}' already exists.")

    @staticmethod
    def _ensure_organization_access(organization_id, scope):
        if has_capability(scope.user_role, Capabilities.MANAGE_ORGANIZATIONS):
            return
        ensure_access(organization_id, None, scope)

    @staticmethod
    def create(organization: Organization, data: dict, scope) -> Branch:
        """
        Create a branch under `organization`. Any organization id in `data`
        is ignored; the branch always belongs to the given organization.
        """
        BranchService._ensure_organization_access(organization.id, scope)
        ensure_capability(scope, Capabilities.MANAGE_BRANCHES)
        data = {key: value for key, value in data.items() if key not in ('organization', 'organization_id')}

        def _create():
            BranchService._check_email(data.get('email'))
            with transaction.atomic():
                branch = Branch.objects.create(organization=organization, **data)
                emit_on_commit(signals.branch_created, BranchCreatedEvent(
                    branch_id=str(branch.id),
                    name=branch.name,
                    email=branch.email,
                    organization_id=str(organization.id),
                    organization_name=organization.name,
                    address=branch.address,
                    contact_number=branch.contact_number,
                    manager_name=branch.manager_name,
                ))
            return branch

        try:
            branch = retry_operation(_create)
        except IntegrityError as e:
            raise Conflict('Branch with this email already exists.') from e

        logger.info(f"Branch {branch.id} created in organization {organization.id} by user {scope.user_id}")
        return branch

    @staticmethod
    def list_for_scope(scope):
        return scope_queryset(
            Branch.objects.select_related('organization'), scope,
            org_field='organization', branch_field='id',
        )

    @staticmethod
    def list_for_organization(organization_id, scope, active_only=False):
        BranchService._ensure_organization_access(organization_id, scope)
        queryset = Branch.objects.filter(organization_id=organization_id)
        if active_only:
            queryset = queryset.filter(is_active=True)
        return queryset.order_by('name')

    @staticmethod
    def get_for_scope(pk, scope) -> Branch:
        queryset = Branch.objects.select_related('organization')
        if has_capability(scope.user_role, Capabilities.MANAGE_ORGANIZATIONS):
            return retry_operation(lambda: get_object_or_not_found(queryset, pk, 'Branch not found.'))
        return retry_operation(
            lambda: get_scoped_object_or_404(queryset, pk, scope, branch_attr='id', message='Branch not found.')
        )

    @staticmethod
    def update(branch: Branch, data: dict, scope) -> Branch:
        ensure_capability(scope, Capabilities.MANAGE_BRANCHES)
        for field in UPDATABLE_FIELDS:
            if field in data:
                setattr(branch, field, data[field])

        def _save():
            if 'email' in data:
                BranchService._check_email(data['email'], exclude_id=branch.id)
            with transaction.atomic():
                branch.save()

        try:
            retry_operation(_save)
        except IntegrityError as e:
            raise Conflict('Branch with this email already exists.') from e
        logger.info(f"Branch {branch.id} updated by user {scope.user_id}")
        return branch

    @staticmethod
    def delete(branch: Branch, scope, policy=None) -> dict:
        ensure_capability(scope, Capabilities.DELETE_BRANCH)
        return lifecycle_service.delete_branch(branch, policy=policy)
