import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from core import signals
from core.events import OrganizationCreatedEvent, emit_on_commit
from core.exceptions import AccessDenied, Conflict
from core.models import Organization
from core.services import lifecycle_service
from core.services.access_service import WRONG_ORGANIZATION, ensure_capability, get_object_or_not_found
from core.services.retry_service import retry_operation
from core.utils.roles import Capabilities, has_capability

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ['name', 'description', 'logo_url', 'website', 'email']


class OrganizationService:

    @staticmethod
    def _check_unique(name=None, email=None, exclude_id=None):
        queryset = Organization.objects.all()
        if exclude_id is not None:
            queryset = queryset.exclude(id=exclude_id)
        if name and queryset.filter(name__iexact=name).exists():
            raise Conflict(f"Organization with name '{name}' already exists.")
        if email and queryset.filter(email__iexact=email).exists():
            raise Conflict(f"Organization with email '{email}' already exists.")

    @staticmethod
    def create(data: dict, scope) -> Organization:
        """
        Create an organization. Only platform-level roles may do this.
        Emits organization_created once the transaction commits.
        """
        ensure_capability(scope, Capabilities.MANAGE_ORGANIZATIONS)

        def _create():
            OrganizationService._check_unique(name=data.get('name'), email=data.get('email'))
            with transaction.atomic():
                organization = Organization.objects.create(**data)
                emit_on_commit(signals.organization_created, OrganizationCreatedEvent(
                    organization_id=str(organization.id),
                    name=organization.name,
                    email=organization.email,
                    logo_url=organization.logo_url,
                    website=organization.website,
                ))
            return organization

        try:
            organization = retry_operation(_create)
        except IntegrityError as e:
            raise Conflict('Organization with this name or email already exists.') from e

        logger.info(f"Organization {organization.id} created by user {scope.user_id}")
        return organization

    @staticmethod
    def list_for_scope(scope, active_only=False):
        queryset = Organization.objects.all()
        if not has_capability(scope.user_role, Capabilities.MANAGE_ORGANIZATIONS):
            if not scope.org_id:
                return queryset.none()
            queryset = queryset.filter(id=scope.org_id)
        if active_only:
            queryset = queryset.filter(is_active=True)
        return queryset.order_by('name')

    @staticmethod
    def get_for_scope(pk, scope) -> Organization:
        organization = retry_operation(
            lambda: get_object_or_not_found(Organization.objects.all(), pk, 'Organization not found.')
        )
        if has_capability(scope.user_role, Capabilities.MANAGE_ORGANIZATIONS):
            return organization
        if scope.org_id != str(organization.id):
            logger.warning(f"{WRONG_ORGANIZATION}: user {scope.user_id} -> organization {organization.id}")
            raise AccessDenied(WRONG_ORGANIZATION)
        return organization

    @staticmethod
    def update(organization: Organization, data: dict, scope) -> Organization:
        ensure_capability(scope, Capabilities.MANAGE_ORGANIZATIONS)
        for field in UPDATABLE_FIELDS:
            if field in data:
                setattr(organization, field, data[field])

        def _save():
            OrganizationService._check_unique(
                name=data.get('name'), email=data.get('email'), exclude_id=organization.id
            )
            with transaction.atomic():
                organization.save()

        try:
            retry_operation(_save)
        except IntegrityError as e:
            raise Conflict('Organization with this name or email already exists.') from e
        logger.info(f"Organization {organization.id} updated by user {scope.user_id}")
        return organization

    @staticmethod
    def set_active(organization: Organization, is_active: bool, scope) -> Organization:
        """Suspend or reactivate an organization."""
        ensure_capability(scope, Capabilities.MANAGE_ORGANIZATIONS)
        organization.is_active = is_active
        retry_operation(lambda: organization.save(update_fields=['is_active', 'updated_at']))
        logger.info(
            f"Organization {organization.id} {'activated' if is_active else 'deactivated'} by user {scope.user_id}"
        )
        return organization

    @staticmethod
    def delete(organization: Organization, scope, policy=None) -> dict:
        ensure_capability(scope, Capabilities.DELETE_ORGANIZATION)
        return lifecycle_service.delete_organization(organization, policy=policy)

    @staticmethod
    def stats(organization: Organization) -> dict:
        def _stats():
            branches = organization.branches.all()
            total_branches = branches.count()
            active_branches = branches.filter(is_active=True).count()
            return {
                'organization_id': str(organization.id),
                'total_branches': total_branches,
                'active_branches': active_branches,
                'inactive_branches': total_branches - active_branches,
                'total_users': get_user_model().objects.filter(organization=organization).count(),
                'content': lifecycle_service.count_dependents(organization=organization),
            }

        return retry_operation(_stats)
