from rest_framework.routers import SimpleRouter

from courses.views import course_views

# No API root view: the course list itself lives at the empty prefix
router = SimpleRouter(trailing_slash=False)
# Registered first so 'materials/<id>' is not taken for a course id
router.register('materials', course_views.CourseMaterialViewSet, basename='course-materials')
router.register('', course_views.CourseViewSet, basename='courses')

urlpatterns = router.urls
