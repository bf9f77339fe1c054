from datetime import timedelta
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import OperationalError
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.test import APIClient

from authentication.scope import OrgBranchScope
from core import signals
from core.exceptions import AccessDenied, Conflict, DependentResourcesExist, MaxRetriesExceeded, ResourceNotFound
from core.models import Organization, Branch
from core.services import cache_service, lifecycle_service
from core.services.access_service import (
    BRANCH_MISMATCH,
    WRONG_ORGANIZATION,
    get_scoped_object_or_404,
    validate_access,
)
from core.services.branch_service import BranchService
from core.services.organization_service import OrganizationService
from core.services.retry_service import retry_operation, with_retry
from core.services.scoping_service import scope_queryset
from core.utils.roles import Capabilities, Roles, get_capabilities, has_capability
from courses.models import Course

User = get_user_model()


def make_org(name="Acme Learning", **kwargs):
    return Organization.objects.create(name=name, **kwargs)


def make_branch(organization, name="Main", email=None, **kwargs):
    email = email or f"{name.lower().replace(' ', '-')}@{organization.name.lower().replace(' ', '')}.test"
    return Branch.objects.create(organization=organization, name=name, email=email, **kwargs)


def make_user(username, organization=None, branch=None, role='user'):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="password123",
        organization=organization,
        branch=branch,
        role=role,
    )


class RoleCapabilityTests(TestCase):

    def test_default_capability_table(self):
        """Each role gets exactly the capabilities of the default table."""
        self.assertTrue(has_capability('brandon', Capabilities.MANAGE_ORGANIZATIONS))
        self.assertTrue(has_capability('brandon', Capabilities.DELETE_ORGANIZATION))
        self.assertTrue(has_capability('owner', Capabilities.DELETE_BRANCH))
        self.assertFalse(has_capability('owner', Capabilities.MANAGE_ORGANIZATIONS))
        self.assertTrue(has_capability('admin', Capabilities.CROSS_BRANCH))
        self.assertFalse(has_capability('admin', Capabilities.DELETE_BRANCH))
        self.assertEqual(get_capabilities('user'), set())

    def test_unknown_role_is_treated_as_user(self):
        self.assertEqual(Roles.from_string('superhero'), Roles.USER)
        self.assertEqual(Roles.from_string(None), Roles.USER)
        self.assertEqual(get_capabilities('superhero'), set())

    @override_settings(ROLE_CAPABILITIES={'user': ['cross_branch']})
    def test_settings_override_capabilities(self):
        self.assertTrue(has_capability('user', Capabilities.CROSS_BRANCH))
        # Roles not overridden keep their defaults
        self.assertTrue(has_capability('admin', Capabilities.MANAGE_CONTENT))


class ScopeResolutionTests(TestCase):

    def setUp(self):
        self.organization = make_org()
        self.branch = make_branch(self.organization)

    def test_scope_from_user_with_branch(self):
        user = make_user("member", self.organization, self.branch, role='admin')
        scope = OrgBranchScope.from_user(user)
        self.assertEqual(scope.user_id, str(user.id))
        self.assertEqual(scope.org_id, str(self.organization.id))
        self.assertEqual(scope.branch_id, str(self.branch.id))
        self.assertEqual(scope.user_role, 'admin')

    def test_scope_from_user_without_organization(self):
        user = make_user("loner")
        scope = OrgBranchScope.from_user(user)
        self.assertIsNone(scope.org_id)
        self.assertIsNone(scope.branch_id)
        self.assertEqual(scope.user_role, 'user')


class ScopedQueryTests(TestCase):

    def setUp(self):
        self.org_a = make_org("Org A")
        self.org_b = make_org("Org B")
        self.branch_a1 = make_branch(self.org_a, "A1")
        self.branch_a2 = make_branch(self.org_a, "A2")
        self.branch_b1 = make_branch(self.org_b, "B1")
        self.creator = make_user("creator", self.org_a)
        self.course_a = Course.objects.create(organization=self.org_a, title="Org-wide", created_by=self.creator)
        self.course_a1 = Course.objects.create(
            organization=self.org_a, branch=self.branch_a1, title="A1 only", created_by=self.creator
        )
        self.course_b1 = Course.objects.create(
            organization=self.org_b, branch=self.branch_b1, title="B1 only", created_by=self.creator
        )

    def test_no_organization_returns_empty_without_query(self):
        """A caller without an organization sees nothing and no query runs."""
        scope = OrgBranchScope(user_id="u1")
        with self.assertNumQueries(0):
            self.assertEqual(list(scope_queryset(Course.objects.all(), scope)), [])

    def test_org_level_caller_sees_every_branch_of_own_org(self):
        scope = OrgBranchScope(user_id="u1", org_id=str(self.org_a.id))
        titles = set(scope_queryset(Course.objects.all(), scope).values_list('title', flat=True))
        self.assertEqual(titles, {"Org-wide", "A1 only"})

    def test_branch_caller_sees_only_own_branch(self):
        """Listing is an exact branch filter: org-level rows are not listed for branch-bound callers."""
        scope = OrgBranchScope(user_id="u1", org_id=str(self.org_a.id), branch_id=str(self.branch_a1.id))
        titles = list(scope_queryset(Course.objects.all(), scope).values_list('title', flat=True))
        self.assertEqual(titles, ["A1 only"])

    def test_default_ordering_is_newest_first(self):
        Course.objects.filter(id=self.course_a.id).update(created_at=timezone.now() - timedelta(days=1))
        scope = OrgBranchScope(user_id="u1", org_id=str(self.org_a.id))
        titles = list(scope_queryset(Course.objects.all(), scope).values_list('title', flat=True))
        self.assertEqual(titles, ["A1 only", "Org-wide"])

    def test_branch_listing_uses_id_as_branch_field(self):
        scope = OrgBranchScope(user_id="u1", org_id=str(self.org_a.id), branch_id=str(self.branch_a2.id))
        branches = scope_queryset(Branch.objects.all(), scope, branch_field='id', ordering='name')
        self.assertEqual(list(branches), [self.branch_a2])


class AccessValidatorTests(TestCase):

    def setUp(self):
        self.org_a = make_org("Org A")
        self.org_b = make_org("Org B")
        self.branch_a1 = make_branch(self.org_a, "A1")
        self.branch_a2 = make_branch(self.org_a, "A2")

    def scope(self, org=None, branch=None, role='user'):
        return OrgBranchScope(
            user_id="u1",
            org_id=str(org.id) if org else None,
            branch_id=str(branch.id) if branch else None,
            user_role=role,
        )

    def test_wrong_organization_denied_for_every_role(self):
        for role in ['brandon', 'owner', 'admin', 'user']:
            decision = validate_access(self.org_b.id, None, self.scope(self.org_a, role=role))
            self.assertFalse(decision.allowed, role)
            self.assertEqual(decision.reason, WRONG_ORGANIZATION)

    def test_missing_scope_organization_denied(self):
        decision = validate_access(self.org_a.id, None, self.scope(role='brandon'))
        self.assertFalse(decision.allowed)
        self.assertEqual(decision.reason, WRONG_ORGANIZATION)

    def test_organization_level_resource_visible_to_branch_user(self):
        decision = validate_access(self.org_a.id, None, self.scope(self.org_a, self.branch_a1))
        self.assertTrue(decision.allowed)

    def test_org_level_caller_reaches_branch_resource(self):
        decision = validate_access(self.org_a.id, self.branch_a1.id, self.scope(self.org_a))
        self.assertTrue(decision.allowed)

    def test_same_branch_allowed(self):
        decision = validate_access(self.org_a.id, self.branch_a1.id, self.scope(self.org_a, self.branch_a1))
        self.assertTrue(decision.allowed)

    def test_other_branch_denied_for_plain_user(self):
        decision = validate_access(self.org_a.id, self.branch_a2.id, self.scope(self.org_a, self.branch_a1))
        self.assertFalse(decision.allowed)
        self.assertEqual(decision.reason, BRANCH_MISMATCH)

    def test_other_branch_allowed_for_elevated_roles(self):
        for role in ['brandon', 'owner', 'admin']:
            decision = validate_access(
                self.org_a.id, self.branch_a2.id, self.scope(self.org_a, self.branch_a1, role=role)
            )
            self.assertTrue(decision.allowed, role)

    def test_scoped_lookup_distinguishes_missing_from_forbidden(self):
        course = Course.objects.create(organization=self.org_b, title="Other org")
        scope = self.scope(self.org_a)
        with self.assertRaises(ResourceNotFound):
            get_scoped_object_or_404(Course.objects.all(), "00000000-0000-0000-0000-000000000000", scope)
        with self.assertRaises(ResourceNotFound):
            get_scoped_object_or_404(Course.objects.all(), "not-a-uuid", scope)
        with self.assertRaises(AccessDenied):
            get_scoped_object_or_404(Course.objects.all(), course.id, scope)


class RetryWrapperTests(TestCase):

    @mock.patch('core.services.retry_service.time.sleep')
    def test_transient_errors_are_retried_with_doubling_delay(self, mock_sleep):
        operation = mock.Mock(side_effect=[ConnectionError("ECONNRESET"), ConnectionError("Connection lost"), "ok"])
        self.assertEqual(retry_operation(operation, max_retries=3, initial_delay=1), "ok")
        self.assertEqual(operation.call_count, 3)
        self.assertEqual(mock_sleep.call_args_list, [mock.call(1), mock.call(2)])

    @mock.patch('core.services.retry_service.time.sleep')
    def test_non_transient_errors_propagate_immediately(self, mock_sleep):
        operation = mock.Mock(side_effect=NotFound("missing"))
        with self.assertRaises(NotFound):
            retry_operation(operation, max_retries=3, initial_delay=1)
        self.assertEqual(operation.call_count, 1)
        mock_sleep.assert_not_called()

    @mock.patch('core.services.retry_service.time.sleep')
    def test_exhausted_retries_raise_max_retries_exceeded(self, mock_sleep):
        last_error = ConnectionError("connect ETIMEDOUT")
        operation = mock.Mock(side_effect=[ConnectionError("ECONNRESET"), ConnectionError("ECONNRESET"), last_error])
        with self.assertRaises(MaxRetriesExceeded) as ctx:
            retry_operation(operation, max_retries=3, initial_delay=1)
        self.assertIs(ctx.exception.__cause__, last_error)
        self.assertEqual(mock_sleep.call_count, 2)

    @mock.patch('core.services.retry_service.time.sleep')
    def test_decorator_form(self, mock_sleep):
        calls = []

        @with_retry(max_retries=2, initial_delay=0.5)
        def flaky(value):
            calls.append(value)
            if len(calls) == 1:
                raise ConnectionError("Connection lost")
            return value * 2

        self.assertEqual(flaky(21), 42)
        mock_sleep.assert_called_once_with(0.5)


class CacheHelperTests(TestCase):

    def setUp(self):
        cache.clear()

    def test_get_falls_back_to_none_when_cache_fails(self):
        with mock.patch('core.services.cache_service.cache') as broken_cache:
            broken_cache.get.side_effect = ConnectionError("redis down")
            self.assertIsNone(cache_service.cache_get("anything"))

    def test_set_and_delete_swallow_cache_failures(self):
        with mock.patch('core.services.cache_service.cache') as broken_cache:
            broken_cache.set.side_effect = ConnectionError("redis down")
            broken_cache.delete.side_effect = ConnectionError("redis down")
            cache_service.cache_set("key", 1, 60)
            cache_service.cache_delete("key", "other")
            self.assertEqual(broken_cache.delete.call_count, 2)

    def test_round_trip(self):
        cache_service.cache_set("key", {"a": 1}, 60)
        self.assertEqual(cache_service.cache_get("key"), {"a": 1})
        cache_service.cache_delete("key")
        self.assertIsNone(cache_service.cache_get("key"))


class LifecycleTests(TestCase):

    def setUp(self):
        self.organization = make_org()
        self.branch = make_branch(self.organization)
        self.other_branch = make_branch(self.organization, "Second")
        self.member = make_user("member", self.organization, self.branch)
        self.org_course = Course.objects.create(organization=self.organization, title="Org course")
        self.branch_course = Course.objects.create(
            organization=self.organization, branch=self.branch, title="Branch course"
        )

    def listen(self, signal):
        received = []

        def handler(sender, event, **kwargs):
            received.append(event)

        signal.connect(handler, weak=False)
        self.addCleanup(signal.disconnect, handler)
        return received

    def test_reject_policy_leaves_everything_in_place(self):
        with self.assertRaises(DependentResourcesExist) as ctx:
            lifecycle_service.delete_organization(self.organization, policy='reject')
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.counts['courses.course'], 2)
        self.assertTrue(Organization.objects.filter(id=self.organization.id).exists())
        self.assertEqual(Branch.objects.filter(organization=self.organization).count(), 2)
        self.assertEqual(Course.objects.count(), 2)

    def test_reject_policy_allows_empty_organization(self):
        empty = make_org("Empty Org")
        lifecycle_service.delete_organization(empty, policy='reject')
        self.assertFalse(Organization.objects.filter(id=empty.id).exists())

    def test_cascade_organization_delete(self):
        """Branches and scoped rows go, users stay detached, one event after commit."""
        received = self.listen(signals.organization_deleted)
        with self.captureOnCommitCallbacks(execute=True):
            affected = lifecycle_service.delete_organization(self.organization, policy='cascade')

        self.assertFalse(Organization.objects.filter(id=self.organization.id).exists())
        self.assertFalse(Branch.objects.filter(organization_id=self.organization.id).exists())
        self.assertEqual(Course.objects.count(), 0)
        self.member.refresh_from_db()
        self.assertIsNone(self.member.organization_id)
        self.assertIsNone(self.member.branch_id)
        self.assertEqual(affected['users_detached'], 1)
        self.assertEqual(len(received), 1)
        self.assertEqual(received[0].organization_id, str(self.organization.id))

    def test_no_event_when_delete_rolls_back(self):
        received = self.listen(signals.organization_deleted)
        with self.captureOnCommitCallbacks(execute=True):
            with self.assertRaises(DependentResourcesExist):
                lifecycle_service.delete_organization(self.organization, policy='reject')
        self.assertEqual(received, [])

    def test_orphan_branch_moves_dependents_to_organization_level(self):
        received = self.listen(signals.branch_deleted)
        with self.captureOnCommitCallbacks(execute=True):
            lifecycle_service.delete_branch(self.branch, policy='orphan')

        self.branch_course.refresh_from_db()
        self.member.refresh_from_db()
        self.assertIsNone(self.branch_course.branch_id)
        self.assertEqual(self.branch_course.organization_id, self.organization.id)
        self.assertIsNone(self.member.branch_id)
        self.assertEqual(self.member.organization_id, self.organization.id)
        self.assertEqual(len(received), 1)

    def test_orphan_organization_rejected_while_content_remains(self):
        with self.assertRaises(DependentResourcesExist):
            lifecycle_service.delete_organization(self.organization, policy='orphan')
        self.member.refresh_from_db()
        self.assertEqual(self.member.organization_id, self.organization.id)

    def test_cascade_branch_delete(self):
        lifecycle_service.delete_branch(self.branch, policy='cascade')
        self.assertFalse(Course.objects.filter(id=self.branch_course.id).exists())
        self.assertTrue(Course.objects.filter(id=self.org_course.id).exists())
        self.assertTrue(Branch.objects.filter(id=self.other_branch.id).exists())

    @override_settings(TENANT_DELETION_POLICY='reject')
    def test_configured_policy_is_default(self):
        with self.assertRaises(DependentResourcesExist):
            lifecycle_service.delete_branch(self.branch)


class OrganizationServiceTests(TestCase):

    def setUp(self):
        self.platform_admin = make_user("platform", role='brandon')
        self.platform_scope = OrgBranchScope.from_user(self.platform_admin)

    def test_create_emits_event_after_commit(self):
        received = []

        def handler(sender, event, **kwargs):
            received.append(event)

        signals.organization_created.connect(handler, weak=False)
        self.addCleanup(signals.organization_created.disconnect, handler)

        with self.captureOnCommitCallbacks(execute=True):
            organization = OrganizationService.create({'name': "New Org", 'email': "hello@new.org"}, self.platform_scope)
        self.assertEqual(len(received), 1)
        self.assertEqual(received[0].organization_id, str(organization.id))

    def test_duplicate_name_is_conflict(self):
        make_org("Taken")
        with self.assertRaises(Conflict):
            OrganizationService.create({'name': "Taken"}, self.platform_scope)

    def test_duplicate_email_on_update_is_conflict(self):
        make_org("First", email="first@org.test")
        second = make_org("Second", email="second@org.test")
        with self.assertRaises(Conflict):
            OrganizationService.update(second, {'email': "first@org.test"}, self.platform_scope)

    def test_non_platform_roles_cannot_create(self):
        organization = make_org()
        owner = make_user("owner", organization, role='owner')
        with self.assertRaises(AccessDenied):
            OrganizationService.create({'name': "Another"}, OrgBranchScope.from_user(owner))

    def test_list_limited_to_own_organization(self):
        mine = make_org("Mine")
        make_org("Theirs")
        member = make_user("member", mine)
        listed = list(OrganizationService.list_for_scope(OrgBranchScope.from_user(member)))
        self.assertEqual(listed, [mine])
        self.assertEqual(OrganizationService.list_for_scope(self.platform_scope).count(), 2)

    def test_stats(self):
        organization = make_org()
        make_branch(organization, "One")
        make_branch(organization, "Two", is_active=False)
        make_user("member", organization)
        stats = OrganizationService.stats(organization)
        self.assertEqual(stats['total_branches'], 2)
        self.assertEqual(stats['active_branches'], 1)
        self.assertEqual(stats['inactive_branches'], 1)
        self.assertEqual(stats['total_users'], 1)

    def test_create_then_read_back(self):
        created = OrganizationService.create({'name': "Round Trip", 'email': "hello@roundtrip.test"}, self.platform_scope)
        fetched = OrganizationService.get_for_scope(created.id, self.platform_scope)
        self.assertEqual(fetched.name, "Round Trip")
        self.assertEqual(fetched.email, "hello@roundtrip.test")
        self.assertIs(fetched.is_active, True)

    def test_repeated_update_is_idempotent(self):
        organization = make_org("Before", email="before@org.test")
        data = {'name': "After", 'website': "https://after.test"}
        fields = ('name', 'email', 'website', 'description', 'is_active')

        OrganizationService.update(organization, data, self.platform_scope)
        first = Organization.objects.filter(id=organization.id).values(*fields).get()
        OrganizationService.update(organization, data, self.platform_scope)
        second = Organization.objects.filter(id=organization.id).values(*fields).get()

        self.assertEqual(first, second)
        self.assertEqual(second['name'], "After")

    @mock.patch('core.services.retry_service.time.sleep')
    def test_read_retries_transient_failure(self, sleep):
        organization = make_org()
        lookups = [OperationalError("Connection lost"), organization]

        def flaky_lookup(queryset, pk, message=None):
            result = lookups.pop(0)
            if isinstance(result, Exception):
                raise result
            return result

        with mock.patch('core.services.organization_service.get_object_or_not_found', side_effect=flaky_lookup):
            fetched = OrganizationService.get_for_scope(organization.id, self.platform_scope)
        self.assertEqual(fetched, organization)
        sleep.assert_called_once()


class BranchServiceTests(TestCase):

    def setUp(self):
        self.organization = make_org()
        self.other_org = make_org("Other Org")
        self.owner = make_user("owner", self.organization, role='owner')
        self.scope = OrgBranchScope.from_user(self.owner)

    def test_create_ignores_organization_in_payload(self):
        branch = BranchService.create(
            self.organization,
            {'name': "North", 'email': "north@acme.test", 'organization': self.other_org},
            self.scope,
        )
        self.assertEqual(branch.organization_id, self.organization.id)

    def test_branch_email_is_globally_unique(self):
        make_branch(self.other_org, "Elsewhere", email="shared@branch.test")
        with self.assertRaises(Conflict):
            BranchService.create(self.organization, {'name': "North", 'email': "shared@branch.test"}, self.scope)

    def test_cannot_create_branch_in_another_organization(self):
        with self.assertRaises(AccessDenied):
            BranchService.create(self.other_org, {'name': "Sneaky", 'email': "sneaky@x.test"}, self.scope)

    def test_plain_user_cannot_create_branch(self):
        member = make_user("member", self.organization)
        with self.assertRaises(AccessDenied):
            BranchService.create(
                self.organization, {'name': "North", 'email': "north@acme.test"}, OrgBranchScope.from_user(member)
            )

    def test_list_for_organization_active_only(self):
        make_branch(self.organization, "Open")
        make_branch(self.organization, "Closed", is_active=False)
        names = [b.name for b in BranchService.list_for_organization(self.organization.id, self.scope, active_only=True)]
        self.assertEqual(names, ["Open"])

    def test_admin_cannot_delete_branch(self):
        branch = make_branch(self.organization)
        admin = make_user("admin", self.organization, role='admin')
        with self.assertRaises(AccessDenied):
            BranchService.delete(branch, OrgBranchScope.from_user(admin))

    def test_platform_admin_reaches_branches_of_any_organization(self):
        branch = make_branch(self.other_org, "Remote")
        platform_scope = OrgBranchScope.from_user(make_user("platform", role='brandon'))

        self.assertEqual(BranchService.get_for_scope(branch.id, platform_scope), branch)
        updated = BranchService.update(branch, {'name': "Remote HQ"}, platform_scope)
        self.assertEqual(updated.name, "Remote HQ")
        with self.assertRaises(AccessDenied):
            BranchService.get_for_scope(branch.id, self.scope)


class OrganizationApiTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.organization = make_org()
        self.platform_admin = make_user("platform", role='brandon')
        self.owner = make_user("owner", self.organization, role='owner')
        self.member = make_user("member", self.organization)

    def test_create_returns_success_envelope(self):
        self.client.force_authenticate(self.platform_admin)
        response = self.client.post('/api/v1/core/organizations', {'name': "Fresh Org"}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['name'], "Fresh Org")

    def test_duplicate_returns_conflict_envelope(self):
        self.client.force_authenticate(self.platform_admin)
        response = self.client.post('/api/v1/core/organizations', {'name': self.organization.name}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['success'], False)
        self.assertEqual(response.data['status_code'], 409)
        self.assertIn('already exists', response.data['message'])

    def test_validation_errors_use_envelope(self):
        self.client.force_authenticate(self.platform_admin)
        response = self.client.post('/api/v1/core/organizations', {'name': "x"}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertIn('name', response.data['errors'])

    def test_member_cannot_create(self):
        self.client.force_authenticate(self.member)
        response = self.client.post('/api/v1/core/organizations', {'name': "Nope"}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_retrieve_other_organization_forbidden(self):
        other = make_org("Other")
        self.client.force_authenticate(self.member)
        response = self.client.get(f'/api/v1/core/organizations/{other.id}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated_rejected(self):
        response = self.client.get('/api/v1/core/organizations')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_deactivate_and_activate(self):
        self.client.force_authenticate(self.platform_admin)
        response = self.client.post(f'/api/v1/core/organizations/{self.organization.id}/deactivate')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.organization.refresh_from_db()
        self.assertFalse(self.organization.is_active)
        self.client.post(f'/api/v1/core/organizations/{self.organization.id}/activate')
        self.organization.refresh_from_db()
        self.assertTrue(self.organization.is_active)

    def test_create_branch_validates_operating_hours(self):
        self.client.force_authenticate(self.owner)
        url = f'/api/v1/core/organizations/{self.organization.id}/branches'
        payload = {
            'name': "Downtown",
            'email': "downtown@acme.test",
            'operating_hours': {'opening': "17:00", 'closing': "09:00", 'days': ["Monday"]},
        }
        response = self.client.post(url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        payload['operating_hours'] = {'opening': "09:00", 'closing': "17:00", 'days': []}
        response = self.client.post(url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        payload['operating_hours'] = {'opening': "09:00", 'closing': "17:00", 'days': ["Monday", "Friday"]}
        response = self.client.post(url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['organization'], self.organization.id)

    def test_delete_with_reject_policy_returns_conflict(self):
        make_branch(self.organization)
        self.client.force_authenticate(self.platform_admin)
        response = self.client.delete(f'/api/v1/core/organizations/{self.organization.id}?policy=reject')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Organization.objects.filter(id=self.organization.id).exists())

    def test_stats_endpoint(self):
        make_branch(self.organization)
        self.client.force_authenticate(self.member)
        response = self.client.get(f'/api/v1/core/organizations/{self.organization.id}/stats')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_branches'], 1)
        self.assertEqual(response.data['total_users'], 2)


class BranchApiTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.organization = make_org()
        self.branch_a = make_branch(self.organization, "A")
        self.branch_b = make_branch(self.organization, "B")

    def test_branch_user_lists_only_own_branch(self):
        self.client.force_authenticate(make_user("member", self.organization, self.branch_a))
        response = self.client.get('/api/v1/core/branches')
        self.assertEqual([b['name'] for b in response.data], ["A"])

    def test_branch_user_cannot_read_sibling_branch(self):
        self.client.force_authenticate(make_user("member", self.organization, self.branch_a))
        response = self.client.get(f'/api/v1/core/branches/{self.branch_b.id}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_can_read_sibling_branch(self):
        self.client.force_authenticate(make_user("admin", self.organization, self.branch_a, role='admin'))
        response = self.client.get(f'/api/v1/core/branches/{self.branch_b.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_missing_branch_is_not_found(self):
        self.client.force_authenticate(make_user("member", self.organization))
        response = self.client.get('/api/v1/core/branches/00000000-0000-0000-0000-000000000000')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])

    def test_update_branch_email_conflict(self):
        self.client.force_authenticate(make_user("owner", self.organization, role='owner'))
        response = self.client.patch(
            f'/api/v1/core/branches/{self.branch_a.id}', {'email': self.branch_b.email}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
