from rest_framework.routers import DefaultRouter

from core.views import organization_views, branch_views

router = DefaultRouter(trailing_slash=False)
router.register('organizations', organization_views.OrganizationViewSet, basename='organizations')
router.register('branches', branch_views.BranchViewSet, basename='branches')

urlpatterns = router.urls
