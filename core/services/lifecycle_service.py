import logging

from django.apps import apps
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction

from core import signals
from core.events import BranchDeletedEvent, OrganizationDeletedEvent, emit_on_commit
from core.exceptions import DependentResourcesExist
from core.services.cache_service import cache_delete
from core.models import Branch, Organization, ScopedModel

logger = logging.getLogger(__name__)

CASCADE = 'cascade'
REJECT = 'reject'
ORPHAN = 'orphan'
POLICIES = (CASCADE, REJECT, ORPHAN)


def scoped_models():
    """Every concrete model that carries an organization/branch scope."""
    return [
        model for model in apps.get_models()
        if issubclass(model, ScopedModel) and not model._meta.abstract
    ]


def _resolve_policy(policy):
    policy = policy or getattr(settings, 'TENANT_DELETION_POLICY', CASCADE)
    if policy not in POLICIES:
        raise ImproperlyConfigured(f"Unknown tenant deletion policy '{policy}', expected one of {POLICIES}")
    return policy


def _label(model):
    return model._meta.label_lower


def count_dependents(**filters):
    """Row counts per scoped model matching `filters`, skipping empty ones."""
    counts = {}
    for model in scoped_models():
        count = model.objects.filter(**filters).count()
        if count:
            counts[_label(model)] = count
    return counts


def _format_counts(counts):
    return ', '.join(f"{count} {label}" for label, count in sorted(counts.items()))


def _cached_keys(**filters):
    """Cache keys held by the scoped rows matching `filters`."""
    keys = set()
    for model in scoped_models():
        if model.cache_keys is ScopedModel.cache_keys:
            continue
        for instance in model.objects.filter(**filters):
            keys.update(instance.cache_keys())
    return keys


def _delete_scoped_rows(**filters):
    deleted = {}
    for model in scoped_models():
        _, per_model = model.objects.filter(**filters).delete()
        for label, count in per_model.items():
            if count:
                deleted[label.lower()] = deleted.get(label.lower(), 0) + count
    return deleted


def delete_organization(organization: Organization, policy=None) -> dict:
    """
    Delete an organization according to the deletion policy and return the
    affected row counts. Runs in one transaction; on any failure nothing changes.
    """
    policy = _resolve_policy(policy)
    User = get_user_model()

    with transaction.atomic():
        users = User.objects.filter(organization=organization)
        branches = Branch.objects.filter(organization=organization)
        affected = {}
        stale_keys = set()

        if policy == REJECT:
            counts = count_dependents(organization=organization)
            if branches.exists():
                counts['core.branch'] = branches.count()
            if users.exists():
                counts['authentication.user'] = users.count()
            if counts:
                raise DependentResourcesExist(
                    f"Organization still has dependents: {_format_counts(counts)}", counts=counts
                )

        elif policy == CASCADE:
            stale_keys = _cached_keys(organization=organization)
            affected.update(_delete_scoped_rows(organization=organization))
            affected['users_detached'] = users.update(organization=None, branch=None)
            affected['core.branch'] = branches.count()
            branches.delete()

        elif policy == ORPHAN:
            affected['users_detached'] = users.update(organization=None, branch=None)
            counts = count_dependents(organization=organization)
            if branches.exists():
                counts['core.branch'] = branches.count()
            if counts:
                raise DependentResourcesExist(
                    f"Organization content cannot be orphaned: {_format_counts(counts)}", counts=counts
                )

        event = OrganizationDeletedEvent(
            organization_id=str(organization.id),
            name=organization.name,
            policy=policy,
            affected=affected,
        )
        organization.delete()
        emit_on_commit(signals.organization_deleted, event)

    cache_delete(*sorted(stale_keys))
    logger.info(f"Organization {event.organization_id} deleted with policy {policy}: {affected}")
    return affected


def delete_branch(branch: Branch, policy=None) -> dict:
    """
    Delete a branch according to the deletion policy and return the affected
    row counts. With the orphan policy, dependents move to organization level.
    """
    policy = _resolve_policy(policy)
    User = get_user_model()

    with transaction.atomic():
        users = User.objects.filter(branch=branch)
        affected = {}
        stale_keys = set()

        if policy == REJECT:
            counts = count_dependents(branch=branch)
            if users.exists():
                counts['authentication.user'] = users.count()
            if counts:
                raise DependentResourcesExist(
                    f"Branch still has dependents: {_format_counts(counts)}", counts=counts
                )

        elif policy == CASCADE:
            stale_keys = _cached_keys(branch=branch)
            affected.update(_delete_scoped_rows(branch=branch))
            affected['users_detached'] = users.update(branch=None)

        elif policy == ORPHAN:
            stale_keys = _cached_keys(branch=branch)
            for model in scoped_models():
                moved = model.objects.filter(branch=branch).update(branch=None)
                if moved:
                    affected[_label(model)] = moved
            affected['users_detached'] = users.update(branch=None)
            logger.info(f"Orphaned dependents of branch {branch.id} to organization level: {affected}")

        event = BranchDeletedEvent(
            branch_id=str(branch.id),
            name=branch.name,
            organization_id=str(branch.organization_id),
            policy=policy,
            affected=affected,
        )
        branch.delete()
        emit_on_commit(signals.branch_deleted, event)

    cache_delete(*sorted(stale_keys))
    logger.info(f"Branch {event.branch_id} deleted with policy {policy}: {affected}")
    return affected
