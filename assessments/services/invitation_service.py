import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from assessments.models import Test, TestInvitation
from authentication.scope import OrgBranchScope
from core import signals
from core.events import TestInvitationRespondedEvent, TestInvitationSentEvent, emit_on_commit
from core.exceptions import AccessDenied, Conflict, ResourceNotFound
from core.services.access_service import get_scoped_object_or_404, validate_access
from core.services.retry_service import retry_operation
from core.services.scoping_service import scope_queryset
from courses.services.course_service import ensure_course_write_access

logger = logging.getLogger(__name__)


class InvitationService:

    @staticmethod
    def invite(test: Test, user_ids, scope, invited_by, message='', expires_at=None):
        """
        Invite users to a test. Every invitee must be able to see the test
        themselves. Users who already hold an invitation are skipped.

        Returns (created invitations, ids of skipped users).
        """
        ensure_course_write_access(test.course, scope)
        if not test.is_active:
            raise Conflict('Cannot invite users to an inactive test.')

        user_ids = list(dict.fromkeys(user_ids))
        users = retry_operation(lambda: list(get_user_model().objects.filter(id__in=user_ids)))
        if len(users) != len(user_ids):
            found = {user.id for user in users}
            missing = [str(user_id) for user_id in user_ids if user_id not in found]
            raise ResourceNotFound(f"Users not found: {', '.join(missing)}")

        for user in users:
            decision = validate_access(test.organization_id, test.branch_id, OrgBranchScope.from_user(user))
            if not decision.allowed:
                logger.warning(f"User {user.id} cannot be invited to test {test.id}: {decision.reason}")
                raise AccessDenied(f"User {user.email} cannot access this test.")

        already_invited = retry_operation(lambda: set(
            TestInvitation.objects.filter(test=test, user__in=users).values_list('user_id', flat=True)
        ))
        invitations = []
        for user in users:
            if user.id in already_invited:
                continue
            invitation = TestInvitation(
                test=test,
                user=user,
                invited_by=invited_by,
                message=message or '',
                expires_at=expires_at,
            )
            invitation.inherit_scope(test)
            invitations.append(invitation)

        def _create():
            with transaction.atomic():
                TestInvitation.objects.bulk_create(invitations)
                if invitations:
                    emit_on_commit(signals.test_invitation_sent, TestInvitationSentEvent(
                        test_id=str(test.id),
                        invitation_ids=[str(invitation.id) for invitation in invitations],
                        invited_by=scope.user_id,
                    ))

        retry_operation(_create)

        skipped = [str(user_id) for user_id in already_invited]
        logger.info(f"Invited {len(invitations)} user(s) to test {test.id}, skipped {len(skipped)}")
        return invitations, skipped

    @staticmethod
    def respond(invitation: TestInvitation, accept: bool, user, notes=''):
        """
        Accept or decline a pending invitation. Only the invitee may respond.
        A pending invitation past its expiry is marked expired and rejected.
        """
        if invitation.user_id != user.id:
            raise AccessDenied('Only the invited user can respond to this invitation.')
        if invitation.status != 'pending':
            raise Conflict(f"Invitation is already {invitation.status}.")
        if invitation.is_expired:
            invitation.status = 'expired'
            retry_operation(lambda: invitation.save(update_fields=['status', 'updated_at']))
            raise Conflict('Invitation has expired.')

        def _respond():
            with transaction.atomic():
                invitation.status = 'accepted' if accept else 'declined'
                invitation.responded_at = timezone.now()
                invitation.response_notes = notes or ''
                invitation.save(update_fields=['status', 'responded_at', 'response_notes', 'updated_at'])
                emit_on_commit(signals.test_invitation_responded, TestInvitationRespondedEvent(
                    invitation_id=str(invitation.id),
                    test_id=str(invitation.test_id),
                    user_id=str(user.id),
                    status=invitation.status,
                ))

        retry_operation(_respond)

        logger.info(f"Invitation {invitation.id} {invitation.status} by user {user.id}")
        return invitation

    @staticmethod
    def get_for_scope(pk, scope) -> TestInvitation:
        return retry_operation(lambda: get_scoped_object_or_404(
            TestInvitation.objects.select_related('test', 'user'), pk, scope, message='Invitation not found.'
        ))

    @staticmethod
    def list_for_scope(scope, test_id=None, status=None):
        queryset = TestInvitation.objects.select_related('test', 'user')
        if test_id:
            queryset = queryset.filter(test_id=test_id)
        if status:
            queryset = queryset.filter(status=status)
        return scope_queryset(queryset, scope)

    @staticmethod
    def list_for_user(user, status=None):
        queryset = TestInvitation.objects.filter(user=user).select_related('test')
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by('-created_at')
