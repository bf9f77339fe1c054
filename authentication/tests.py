from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase, RequestFactory
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework.views import APIView

from authentication import services
from authentication.permissions import CanManageUsers
from authentication.scope import OrgBranchScope, get_request_scope
from core import signals
from core.exceptions import AccessDenied
from core.models import Organization, Branch

User = get_user_model()


class UserModelTests(TestCase):

    def setUp(self):
        self.organization = Organization.objects.create(name="Acme Learning")
        self.other_org = Organization.objects.create(name="Other Org")
        self.foreign_branch = Branch.objects.create(
            organization=self.other_org, name="Foreign", email="foreign@other.test"
        )

    def test_branch_must_belong_to_organization(self):
        """A user's branch has to be a branch of the user's organization."""
        user = User(
            username="mismatch",
            email="mismatch@example.com",
            organization=self.organization,
            branch=self.foreign_branch,
        )
        with self.assertRaises(ValidationError):
            user.clean()

    def test_default_role_is_user(self):
        user = User.objects.create_user(username="plain", email="plain@example.com", password="password123")
        self.assertEqual(user.role, 'user')
        self.assertFalse(user.has_organization())


class PermissionTests(TestCase):

    def setUp(self):
        self.factory = RequestFactory()
        self.organization = Organization.objects.create(name="Acme Learning")

    def test_can_manage_users_permission(self):
        """Only roles with manage_users pass."""
        permission = CanManageUsers()
        view = APIView()
        request = self.factory.get('/')

        request.user = User.objects.create_user(
            username="member", email="member@example.com", password="password123",
            organization=self.organization,
        )
        self.assertFalse(permission.has_permission(request, view))

        request.user = User.objects.create_user(
            username="admin", email="admin@example.com", password="password123",
            organization=self.organization, role='admin',
        )
        self.assertTrue(permission.has_permission(request, view))

    def test_request_scope(self):
        request = self.factory.get('/')
        request.user = User.objects.create_user(
            username="member", email="member@example.com", password="password123",
            organization=self.organization, role='owner',
        )
        scope = get_request_scope(request)
        self.assertEqual(scope, OrgBranchScope(
            user_id=str(request.user.id), org_id=str(self.organization.id), branch_id=None, user_role='owner'
        ))


class AssignOrgBranchTests(TestCase):

    def setUp(self):
        self.organization = Organization.objects.create(name="Acme Learning")
        self.other_org = Organization.objects.create(name="Other Org")
        self.branch = Branch.objects.create(organization=self.organization, name="Main", email="main@acme.test")
        self.other_branch = Branch.objects.create(
            organization=self.other_org, name="Elsewhere", email="elsewhere@other.test"
        )
        self.platform_admin = User.objects.create_user(
            username="platform", email="platform@example.com", password="password123", role='brandon'
        )
        self.owner = User.objects.create_user(
            username="owner", email="owner@example.com", password="password123",
            organization=self.organization, role='owner',
        )
        self.newcomer = User.objects.create_user(
            username="newcomer", email="newcomer@example.com", password="password123"
        )

    def test_platform_admin_assigns_user_and_event_fires(self):
        received = []

        def handler(sender, event, **kwargs):
            received.append(event)

        signals.user_org_branch_assigned.connect(handler, weak=False)
        self.addCleanup(signals.user_org_branch_assigned.disconnect, handler)

        with self.captureOnCommitCallbacks(execute=True):
            services.assign_org_branch(
                self.newcomer, self.organization, self.branch, 'admin', OrgBranchScope.from_user(self.platform_admin)
            )

        self.newcomer.refresh_from_db()
        self.assertEqual(self.newcomer.organization_id, self.organization.id)
        self.assertEqual(self.newcomer.branch_id, self.branch.id)
        self.assertEqual(self.newcomer.role, 'admin')
        self.assertEqual(len(received), 1)
        self.assertEqual(received[0].branch_id, str(self.branch.id))

    def test_owner_cannot_assign_into_another_organization(self):
        with self.assertRaises(AccessDenied):
            services.assign_org_branch(
                self.newcomer, self.other_org, None, None, OrgBranchScope.from_user(self.owner)
            )

    def test_owner_cannot_grant_platform_role(self):
        with self.assertRaises(AccessDenied):
            services.assign_org_branch(
                self.newcomer, self.organization, None, 'brandon', OrgBranchScope.from_user(self.owner)
            )

    def test_branch_from_other_organization_rejected(self):
        with self.assertRaises(AccessDenied):
            services.assign_org_branch(
                self.newcomer, self.organization, self.other_branch, None,
                OrgBranchScope.from_user(self.platform_admin),
            )


class AuthApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.organization = Organization.objects.create(name="Acme Learning")
        self.branch = Branch.objects.create(organization=self.organization, name="Main", email="main@acme.test")
        self.admin = User.objects.create_user(
            username="admin", email="admin@example.com", password="password123",
            organization=self.organization, role='admin',
        )
        self.member = User.objects.create_user(
            username="member", email="member@example.com", password="password123",
            organization=self.organization, branch=self.branch,
        )
        self.outsider = User.objects.create_user(
            username="outsider", email="outsider@example.com", password="password123"
        )

    def test_obtain_token(self):
        response = self.client.post(
            '/api/v1/auth/token', {'username': "member", 'password': "password123"}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_me_includes_scope_and_capabilities(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/v1/auth/me')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['organization'], self.organization.id)
        self.assertIn('cross_branch', response.data['capabilities'])

    def test_admin_lists_users_in_scope(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/v1/auth/users')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        emails = {user['email'] for user in response.data['results']}
        self.assertEqual(emails, {"admin@example.com", "member@example.com"})

    def test_member_cannot_list_users(self):
        self.client.force_authenticate(self.member)
        response = self.client.get('/api/v1/auth/users')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_assign_org_branch_endpoint(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            f'/api/v1/auth/users/{self.outsider.id}/assign-org-branch',
            {'organization': str(self.organization.id), 'branch': str(self.branch.id)},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.outsider.refresh_from_db()
        self.assertEqual(self.outsider.branch_id, self.branch.id)

    def test_assign_rejects_branch_outside_organization(self):
        other_org = Organization.objects.create(name="Other Org")
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            f'/api/v1/auth/users/{self.outsider.id}/assign-org-branch',
            {'organization': str(other_org.id), 'branch': str(self.branch.id)},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
