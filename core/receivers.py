import logging

from django.dispatch import receiver

from core import signals

logger = logging.getLogger(__name__)


@receiver(signals.organization_created)
def log_organization_created(sender, event, **kwargs):
    logger.info(f"Organization created: {event.organization_id} ({event.name})")


@receiver(signals.organization_deleted)
def log_organization_deleted(sender, event, **kwargs):
    logger.info(
        f"Organization deleted: {event.organization_id} ({event.name}) "
        f"policy={event.policy} affected={event.affected}"
    )


@receiver(signals.branch_created)
def log_branch_created(sender, event, **kwargs):
    logger.info(f"Branch created: {event.branch_id} ({event.name}) in organization {event.organization_id}")


@receiver(signals.branch_deleted)
def log_branch_deleted(sender, event, **kwargs):
    logger.info(
        f"Branch deleted: {event.branch_id} ({event.name}) from organization {event.organization_id} "
        f"policy={event.policy} affected={event.affected}"
    )


@receiver(signals.user_org_branch_assigned)
def log_user_assignment(sender, event, **kwargs):
    logger.info(
        f"User {event.user_id} assigned to organization {event.organization_id}, "
        f"branch {event.branch_id} as {event.role} by {event.assigned_by}"
    )


@receiver(signals.course_created)
def log_course_created(sender, event, **kwargs):
    logger.info(f"Course created: {event.course_id} ({event.title}) by {event.created_by}")


@receiver(signals.test_invitation_sent)
def log_invitations_sent(sender, event, **kwargs):
    logger.info(f"{len(event.invitation_ids)} invitation(s) sent for test {event.test_id}")


@receiver(signals.test_invitation_responded)
def log_invitation_response(sender, event, **kwargs):
    logger.info(f"Invitation {event.invitation_id} {event.status} by user {event.user_id}")
