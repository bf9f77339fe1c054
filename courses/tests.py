from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from authentication.scope import OrgBranchScope
from core.exceptions import AccessDenied, Conflict, ResourceNotFound
from core.models import Organization, Branch
from core.services import lifecycle_service
from core.services.cache_service import course_key, material_count_key, material_key, material_list_key
from courses.models import Course, CourseMaterial
from courses.services.course_service import CourseService
from courses.services.material_service import MaterialService

User = get_user_model()


class CourseFixtureMixin:

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
        self.instructor = User.objects.create_user(
            username="instructor", email="instructor@example.com", password="password123",
            organization=self.organization, branch=self.branch_a,
        )
        self.learner_b = User.objects.create_user(
            username="learner_b", email="learner_b@example.com", password="password123",
            organization=self.organization, branch=self.branch_b,
        )
        self.outsider = User.objects.create_user(
            username="outsider", email="outsider@example.com", password="password123",
            organization=self.other_org, role='admin',
        )
        self.course = Course.objects.create(
            organization=self.organization, branch=self.branch_a, title="Safety 101", created_by=self.instructor
        )

    def scope_for(self, user):
        return OrgBranchScope.from_user(user)

    def add_material(self, title, sort_order=0, **kwargs):
        material = CourseMaterial(course=self.course, title=title, sort_order=sort_order, **kwargs)
        material.inherit_scope(self.course)
        material.save()
        return material


class CourseServiceTests(CourseFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_course_takes_creator_scope(self):
        admin_in_branch = User.objects.create_user(
            username="branch_admin", email="branch_admin@example.com", password="password123",
            organization=self.organization, branch=self.branch_b, role='admin',
        )
        course = CourseService.create({'title': "New"}, self.scope_for(admin_in_branch), admin_in_branch)
        self.assertEqual(course.organization_id, self.organization.id)
        self.assertEqual(course.branch_id, self.branch_b.id)
        self.assertEqual(course.created_by, admin_in_branch)

    def test_caller_without_organization_cannot_create(self):
        loner = User.objects.create_user(username="loner", email="loner@example.com", password="password123")
        with self.assertRaises(AccessDenied):
            CourseService.create({'title': "New"}, self.scope_for(loner), loner)

    def test_deleted_courses_leave_listing(self):
        scope = self.scope_for(self.admin)
        self.assertEqual(list(CourseService.list_for_scope(scope)), [self.course])
        CourseService.delete(self.course, scope)
        self.course.refresh_from_db()
        self.assertEqual(self.course.status, 'deleted')
        self.assertEqual(list(CourseService.list_for_scope(scope)), [])

    def test_creator_can_update_without_capability(self):
        course = CourseService.update(self.course, {'title': "Safety 102"}, self.scope_for(self.instructor))
        self.assertEqual(course.title, "Safety 102")

    def test_other_plain_user_cannot_update(self):
        colleague = User.objects.create_user(
            username="colleague", email="colleague@example.com", password="password123",
            organization=self.organization, branch=self.branch_a,
        )
        with self.assertRaises(AccessDenied):
            CourseService.update(self.course, {'title': "Hijacked"}, self.scope_for(colleague))

    def test_cached_course_still_checks_access(self):
        CourseService.get_for_scope(self.course.id, self.scope_for(self.instructor))
        self.assertIsNotNone(cache.get(f"course:{self.course.id}"))
        with self.assertRaises(AccessDenied):
            CourseService.get_for_scope(self.course.id, self.scope_for(self.learner_b))
        with self.assertRaises(AccessDenied):
            CourseService.get_for_scope(self.course.id, self.scope_for(self.outsider))


class MaterialServiceTests(CourseFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_material_inherits_course_scope(self):
        """Scope fields in the input never reach the material."""
        material = MaterialService.create(
            self.course,
            {'title': "Intro", 'organization': self.other_org, 'branch': self.branch_b},
            self.scope_for(self.instructor),
            self.instructor,
        )
        self.assertEqual(material.organization_id, self.organization.id)
        self.assertEqual(material.branch_id, self.branch_a.id)
        self.assertEqual(material.created_by, self.instructor)

    def test_list_default_sort_and_secondary_sort(self):
        self.add_material("Charlie", sort_order=1)
        self.add_material("Alpha", sort_order=2)
        self.add_material("Bravo", sort_order=0)
        self.add_material("Hidden", sort_order=3, is_active=False)
        scope = self.scope_for(self.instructor)

        titles = [m.title for m in MaterialService.list_by_course(self.course, scope)]
        self.assertEqual(titles, ["Bravo", "Charlie", "Alpha"])

        titles = [m.title for m in MaterialService.list_by_course(self.course, scope, sort_by='title')]
        self.assertEqual(titles, ["Alpha", "Bravo", "Charlie"])

        titles = [m.title for m in MaterialService.list_by_course(self.course, scope, include_inactive=True)]
        self.assertEqual(titles, ["Bravo", "Charlie", "Alpha", "Hidden"])

    def test_read_survives_cache_failure(self):
        material = self.add_material("Intro")
        with mock.patch('core.services.cache_service.cache') as broken_cache:
            broken_cache.get.side_effect = ConnectionError("cache unavailable")
            broken_cache.set.side_effect = ConnectionError("cache unavailable")
            fetched = MaterialService.get_for_scope(material.id, self.scope_for(self.instructor))
            listed = MaterialService.list_by_course(self.course, self.scope_for(self.instructor))
        self.assertEqual(fetched.id, material.id)
        self.assertEqual([m.id for m in listed], [material.id])

    def test_cache_hit_still_validates_access(self):
        material = self.add_material("Intro")
        MaterialService.get_for_scope(material.id, self.scope_for(self.instructor))
        self.assertIsNotNone(cache.get(material_key(material.id)))
        with self.assertRaises(AccessDenied):
            MaterialService.get_for_scope(material.id, self.scope_for(self.learner_b))

    def test_writes_clear_material_list_and_count_caches(self):
        material = self.add_material("Intro")
        scope = self.scope_for(self.instructor)
        MaterialService.get_for_scope(material.id, scope)
        MaterialService.list_by_course(self.course, scope)
        MaterialService.count(self.course, scope)
        for key in (material_key(material.id), material_list_key(self.course.id), material_count_key(self.course.id)):
            self.assertIsNotNone(cache.get(key), key)

        MaterialService.update(material, {'title': "Intro v2"}, scope, self.instructor)

        for key in (material_key(material.id), material_list_key(self.course.id), material_count_key(self.course.id)):
            self.assertIsNone(cache.get(key), key)
        self.assertEqual(MaterialService.get_for_scope(material.id, scope).title, "Intro v2")

    def test_create_clears_list_cache(self):
        scope = self.scope_for(self.instructor)
        self.assertEqual(MaterialService.count(self.course, scope), 0)
        MaterialService.create(self.course, {'title': "Intro"}, scope, self.instructor)
        self.assertEqual(MaterialService.count(self.course, scope), 1)
        self.assertEqual(len(MaterialService.list_by_course(self.course, scope)), 1)

    def test_reorder_applies_all_orders(self):
        first = self.add_material("First", sort_order=0)
        second = self.add_material("Second", sort_order=1)
        MaterialService.reorder(
            self.course,
            [{'material_id': first.id, 'sort_order': 1}, {'material_id': second.id, 'sort_order': 0}],
            self.scope_for(self.admin),
            self.admin,
        )
        titles = [m.title for m in MaterialService.list_by_course(self.course, self.scope_for(self.admin))]
        self.assertEqual(titles, ["Second", "First"])

    def test_reorder_with_foreign_material_changes_nothing(self):
        first = self.add_material("First", sort_order=0)
        other_course = Course.objects.create(organization=self.organization, title="Other")
        foreign = CourseMaterial(course=other_course, title="Foreign")
        foreign.inherit_scope(other_course)
        foreign.save()

        with self.assertRaises(Conflict):
            MaterialService.reorder(
                self.course,
                [{'material_id': first.id, 'sort_order': 5}, {'material_id': foreign.id, 'sort_order': 0}],
                self.scope_for(self.admin),
                self.admin,
            )
        first.refresh_from_db()
        self.assertEqual(first.sort_order, 0)

    def test_soft_delete_and_restore(self):
        material = self.add_material("Intro")
        scope = self.scope_for(self.admin)
        MaterialService.soft_delete(material, scope, self.admin)
        self.assertEqual(MaterialService.list_by_course(self.course, scope), [])
        self.assertEqual(list(MaterialService.list_deleted(self.course, scope)), [material])

        MaterialService.restore(material, scope, self.admin)
        material.refresh_from_db()
        self.assertEqual(material.status, 'active')
        self.assertTrue(material.is_active)

    def test_restore_requires_deleted_material(self):
        material = self.add_material("Intro")
        with self.assertRaises(Conflict):
            MaterialService.restore(material, self.scope_for(self.admin), self.admin)

    def test_list_deleted_requires_content_manager(self):
        with self.assertRaises(AccessDenied):
            MaterialService.list_deleted(self.course, self.scope_for(self.instructor))

    def test_repeated_update_is_idempotent(self):
        material = self.add_material("Intro")
        scope = self.scope_for(self.instructor)
        data = {'title': "Intro v2", 'description': "Updated", 'sort_order': 4}
        fields = ('title', 'description', 'sort_order', 'is_active', 'status')

        MaterialService.get_for_scope(material.id, scope)
        MaterialService.update(material, data, scope, self.instructor)
        self.assertIsNone(cache.get(material_key(material.id)))
        first = CourseMaterial.objects.filter(id=material.id).values(*fields).get()

        MaterialService.get_for_scope(material.id, scope)
        MaterialService.update(material, data, scope, self.instructor)
        self.assertIsNone(cache.get(material_key(material.id)))
        second = CourseMaterial.objects.filter(id=material.id).values(*fields).get()

        self.assertEqual(first, second)
        self.assertEqual(second['title'], "Intro v2")
        self.assertEqual(MaterialService.get_for_scope(material.id, scope).title, "Intro v2")


class CourseDeletionTests(CourseFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        self.material = self.add_material("Intro")
        self.admin_scope = self.scope_for(self.admin)

    def test_soft_deleted_course_hides_its_materials(self):
        MaterialService.get_for_scope(self.material.id, self.admin_scope)
        MaterialService.count(self.course, self.admin_scope)

        CourseService.delete(self.course, self.admin_scope)

        self.assertIsNone(cache.get(material_key(self.material.id)))
        self.assertIsNone(cache.get(material_count_key(self.course.id)))
        with self.assertRaises(ResourceNotFound):
            MaterialService.get_for_scope(self.material.id, self.admin_scope)

    def test_status_update_to_deleted_hides_materials(self):
        MaterialService.get_for_scope(self.material.id, self.admin_scope)
        CourseService.update(self.course, {'status': 'deleted'}, self.admin_scope)
        with self.assertRaises(ResourceNotFound):
            MaterialService.get_for_scope(self.material.id, self.admin_scope)


class TenantDeletionCacheTests(CourseFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        self.material = self.add_material("Intro")
        self.admin_scope = self.scope_for(self.admin)

    def warm_cache(self, scope):
        CourseService.get_for_scope(self.course.id, scope)
        MaterialService.get_for_scope(self.material.id, scope)
        MaterialService.list_by_course(self.course, scope)
        MaterialService.count(self.course, scope)
        self.assertIsNotNone(cache.get(course_key(self.course.id)))
        self.assertIsNotNone(cache.get(material_key(self.material.id)))

    def assert_cache_cleared(self):
        for key in (
            course_key(self.course.id),
            material_key(self.material.id),
            material_list_key(self.course.id),
            material_count_key(self.course.id),
        ):
            self.assertIsNone(cache.get(key), key)

    def test_branch_cascade_clears_cached_rows(self):
        self.warm_cache(self.admin_scope)

        lifecycle_service.delete_branch(self.branch_a, policy='cascade')

        self.assertFalse(CourseMaterial.objects.filter(id=self.material.id).exists())
        self.assert_cache_cleared()
        with self.assertRaises(ResourceNotFound):
            CourseService.get_for_scope(self.course.id, self.admin_scope)
        with self.assertRaises(ResourceNotFound):
            MaterialService.get_for_scope(self.material.id, self.admin_scope)

    def test_branch_orphan_serves_moved_rows_with_new_scope(self):
        self.warm_cache(self.scope_for(self.instructor))

        lifecycle_service.delete_branch(self.branch_a, policy='orphan')

        self.assert_cache_cleared()
        learner_scope = self.scope_for(self.learner_b)
        material = MaterialService.get_for_scope(self.material.id, learner_scope)
        self.assertIsNone(material.branch_id)
        course = CourseService.get_for_scope(self.course.id, learner_scope)
        self.assertIsNone(course.branch_id)

    def test_organization_cascade_clears_cached_rows(self):
        self.warm_cache(self.admin_scope)

        lifecycle_service.delete_organization(self.organization, policy='cascade')

        self.assert_cache_cleared()
        with self.assertRaises(ResourceNotFound):
            CourseService.get_for_scope(self.course.id, self.admin_scope)
        with self.assertRaises(ResourceNotFound):
            MaterialService.get_for_scope(self.material.id, self.admin_scope)


class CourseApiTests(CourseFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        self.client = APIClient()

    def test_create_course_ignores_scope_fields(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            '/api/v1/courses/',
            {'title': "Onboarding", 'organization': str(self.other_org.id), 'branch': str(self.branch_b.id)},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        course = Course.objects.get(id=response.data['data']['id'])
        self.assertEqual(course.organization_id, self.organization.id)
        self.assertIsNone(course.branch_id)

    def test_list_is_scoped_and_filterable(self):
        Course.objects.create(organization=self.organization, branch=self.branch_b, title="B course")
        Course.objects.create(organization=self.other_org, title="Foreign course")

        self.client.force_authenticate(self.instructor)
        response = self.client.get('/api/v1/courses/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['title'] for c in response.data['results']], ["Safety 101"])

        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/v1/courses/', {'title': "course", 'sort_by': 'title', 'sort_order': 'asc'})
        self.assertEqual([c['title'] for c in response.data['results']], ["B course"])

    def test_retrieve_cross_branch(self):
        self.client.force_authenticate(self.learner_b)
        response = self.client.get(f'/api/v1/courses/{self.course.id}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.get(f'/api/v1/courses/{self.course.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_materials_endpoints(self):
        self.client.force_authenticate(self.instructor)
        url = f'/api/v1/courses/{self.course.id}/materials'
        response = self.client.post(url, {'title': "Slides", 'material_type': 'document'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        material_id = response.data['data']['id']

        response = self.client.get(url)
        self.assertEqual(response.data['data']['total'], 1)

        response = self.client.get(f'/api/v1/courses/{self.course.id}/materials/count')
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(f'/api/v1/courses/materials/{material_id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['title'], "Slides")

        response = self.client.post(f'/api/v1/courses/materials/{material_id}/soft-delete')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get(f'/api/v1/courses/materials/{material_id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_reorder_endpoint_conflict(self):
        first = self.add_material("First")
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            f'/api/v1/courses/{self.course.id}/materials/reorder',
            {'materials': [
                {'material_id': str(first.id), 'sort_order': 1},
                {'material_id': "00000000-0000-0000-0000-000000000000", 'sort_order': 0},
            ]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_outsider_cannot_touch_materials(self):
        material = self.add_material("Intro")
        self.client.force_authenticate(self.outsider)
        response = self.client.delete(f'/api/v1/courses/materials/{material.id}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(CourseMaterial.objects.filter(id=material.id).exists())
