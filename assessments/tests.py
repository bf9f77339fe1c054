from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import OperationalError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from assessments import models as assessment_models
from assessments.services import progress_service
from assessments.services.invitation_service import InvitationService
from assessments.services.test_service import TestService as AssessmentService
from authentication.scope import OrgBranchScope
from core import signals
from core.exceptions import AccessDenied, Conflict
from core.models import Organization, Branch
from courses.models import Course

User = get_user_model()


class AssessmentFixtureMixin:

    def create_fixtures(self):
        cache.clear()
        self.organization = Organization.objects.create(name="Acme Learning")
        self.other_org = Organization.objects.create(name="Other Org")
        self.branch_a = Branch.objects.create(organization=self.organization, name="A", email="a@acme.test")
        self.branch_b = Branch.objects.create(organization=self.organization, name="B", email="b@acme.test")
        self.admin = User.objects.create_user(
            username="admin", email="admin@example.com", password="password123",
            organization=self.organization, role='admin',
        )
        self.learner_a = User.objects.create_user(
            username="learner_a", email="learner_a@example.com", password="password123",
            organization=self.organization, branch=self.branch_a,
        )
        self.learner_b = User.objects.create_user(
            username="learner_b", email="learner_b@example.com", password="password123",
            organization=self.organization, branch=self.branch_b,
        )
        self.outsider = User.objects.create_user(
            username="outsider", email="outsider@example.com", password="password123",
            organization=self.other_org,
        )
        self.course = Course.objects.create(
            organization=self.organization, branch=self.branch_a, title="Safety 101", created_by=self.admin
        )
        self.admin_scope = OrgBranchScope.from_user(self.admin)


class TestServiceTests(AssessmentFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_test_inherits_course_scope(self):
        test = AssessmentService.create(
            self.course,
            {'title': "Final", 'test_type': 'exam', 'organization': self.other_org},
            self.admin_scope,
            self.admin,
        )
        self.assertEqual(test.organization_id, self.organization.id)
        self.assertEqual(test.branch_id, self.branch_a.id)

    def test_plain_user_cannot_create_test(self):
        with self.assertRaises(AccessDenied):
            AssessmentService.create(
                self.course, {'title': "Final"}, OrgBranchScope.from_user(self.learner_a), self.learner_a
            )

    def test_list_is_scoped(self):
        AssessmentService.create(self.course, {'title': "Final"}, self.admin_scope, self.admin)
        self.assertEqual(AssessmentService.list_for_scope(OrgBranchScope.from_user(self.learner_a)).count(), 1)
        self.assertEqual(AssessmentService.list_for_scope(OrgBranchScope.from_user(self.learner_b)).count(), 0)
        self.assertEqual(AssessmentService.list_for_scope(OrgBranchScope.from_user(self.outsider)).count(), 0)


class InvitationTests(AssessmentFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        self.test = AssessmentService.create(self.course, {'title': "Final"}, self.admin_scope, self.admin)

    def test_invite_skips_existing_invitations(self):
        received = []

        def handler(sender, event, **kwargs):
            received.append(event)

        signals.test_invitation_sent.connect(handler, weak=False)
        self.addCleanup(signals.test_invitation_sent.disconnect, handler)

        with self.captureOnCommitCallbacks(execute=True):
            created, skipped = InvitationService.invite(self.test, [self.learner_a.id], self.admin_scope, self.admin)
        self.assertEqual(len(created), 1)
        self.assertEqual(created[0].organization_id, self.organization.id)
        self.assertEqual(created[0].branch_id, self.branch_a.id)

        created, skipped = InvitationService.invite(self.test, [self.learner_a.id], self.admin_scope, self.admin)
        self.assertEqual(created, [])
        self.assertEqual(skipped, [str(self.learner_a.id)])
        self.assertEqual(len(received), 1)

    def test_invitee_must_be_able_to_see_the_test(self):
        with self.assertRaises(AccessDenied):
            InvitationService.invite(self.test, [self.outsider.id], self.admin_scope, self.admin)
        with self.assertRaises(AccessDenied):
            InvitationService.invite(self.test, [self.learner_b.id], self.admin_scope, self.admin)
        self.assertFalse(assessment_models.TestInvitation.objects.exists())

    def test_respond_accept(self):
        created, _ = InvitationService.invite(self.test, [self.learner_a.id], self.admin_scope, self.admin)
        invitation = InvitationService.respond(created[0], True, self.learner_a, notes="Ready")
        self.assertEqual(invitation.status, 'accepted')
        self.assertIsNotNone(invitation.responded_at)

        with self.assertRaises(Conflict):
            InvitationService.respond(invitation, False, self.learner_a)

    def test_only_invitee_can_respond(self):
        created, _ = InvitationService.invite(self.test, [self.learner_a.id], self.admin_scope, self.admin)
        with self.assertRaises(AccessDenied):
            InvitationService.respond(created[0], True, self.admin)

    def test_expired_invitation_is_marked_and_rejected(self):
        created, _ = InvitationService.invite(
            self.test, [self.learner_a.id], self.admin_scope, self.admin,
            expires_at=timezone.now() - timedelta(hours=1),
        )
        with self.assertRaises(Conflict):
            InvitationService.respond(created[0], True, self.learner_a)
        created[0].refresh_from_db()
        self.assertEqual(created[0].status, 'expired')


class TrainingProgressTests(AssessmentFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        self.learner_scope = OrgBranchScope.from_user(self.learner_a)

    def test_record_progress_upserts(self):
        first = progress_service.record_progress(
            self.learner_a, self.course, None, {'completion_percentage': Decimal("25.00")}, self.learner_scope
        )
        second = progress_service.record_progress(
            self.learner_a, self.course, None,
            {'completion_percentage': Decimal("60.00"), 'time_spent_minutes': 30}, self.learner_scope,
        )
        self.assertEqual(first.id, second.id)
        self.assertEqual(second.completion_percentage, Decimal("60.00"))
        self.assertEqual(second.organization_id, self.organization.id)
        self.assertEqual(second.branch_id, self.branch_a.id)
        self.assertEqual(assessment_models.TrainingProgress.objects.count(), 1)

    def test_progress_on_inaccessible_course_denied(self):
        with self.assertRaises(AccessDenied):
            progress_service.record_progress(
                self.learner_b, self.course, None, {'completion_percentage': 10},
                OrgBranchScope.from_user(self.learner_b),
            )

    def test_list_for_scope(self):
        progress_service.record_progress(
            self.learner_a, self.course, None, {'completion_percentage': 50}, self.learner_scope
        )
        self.assertEqual(progress_service.list_for_scope(self.admin_scope).count(), 1)
        self.assertEqual(progress_service.list_for_scope(OrgBranchScope.from_user(self.learner_b)).count(), 0)

    @mock.patch('core.services.retry_service.time.sleep')
    def test_record_progress_retries_transient_failure(self, sleep):
        manager = assessment_models.TrainingProgress.objects
        real_upsert = manager.update_or_create
        attempts = []

        def flaky_upsert(**kwargs):
            attempts.append(kwargs)
            if len(attempts) == 1:
                raise OperationalError("connect ETIMEDOUT")
            return real_upsert(**kwargs)

        with mock.patch.object(manager, 'update_or_create', side_effect=flaky_upsert):
            progress = progress_service.record_progress(
                self.learner_a, self.course, None, {'completion_percentage': 20}, self.learner_scope
            )
        self.assertEqual(len(attempts), 2)
        self.assertEqual(progress.completion_percentage, 20)
        sleep.assert_called_once()


class AssessmentApiTests(AssessmentFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        self.client = APIClient()

    def test_create_test_and_invite(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            '/api/v1/assessments/tests',
            {'course_id': str(self.course.id), 'title': "Quiz 1", 'test_type': 'quiz', 'max_attempts': 2},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        test_id = response.data['data']['id']

        response = self.client.post(
            f'/api/v1/assessments/tests/{test_id}/invite',
            {'user_ids': [str(self.learner_a.id)], 'message': "Good luck"},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        invitation_id = response.data['data']['invitations'][0]['id']

        self.client.force_authenticate(self.learner_a)
        response = self.client.get('/api/v1/assessments/invitations/mine')
        self.assertEqual(len(response.data), 1)

        response = self.client.post(
            f'/api/v1/assessments/invitations/{invitation_id}/respond', {'accept': False}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'declined')

    def test_max_attempts_must_be_positive(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            '/api/v1/assessments/tests',
            {'course_id': str(self.course.id), 'title': "Quiz 1", 'max_attempts': 0},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_learner_cannot_list_all_invitations(self):
        self.client.force_authenticate(self.learner_a)
        response = self.client.get('/api/v1/assessments/invitations')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_record_progress_endpoint_validates_percentage(self):
        self.client.force_authenticate(self.learner_a)
        response = self.client.post(
            '/api/v1/assessments/progress',
            {'course_id': str(self.course.id), 'completion_percentage': "120"},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(
            '/api/v1/assessments/progress',
            {'course_id': str(self.course.id), 'completion_percentage': "40.5", 'time_spent_minutes': 12},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get('/api/v1/assessments/progress/mine')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['completion_percentage'], "40.50")
