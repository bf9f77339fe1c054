from rest_framework.routers import DefaultRouter

from assessments.views import assessment_views

router = DefaultRouter(trailing_slash=False)
router.register('tests', assessment_views.TestViewSet, basename='tests')
router.register('invitations', assessment_views.TestInvitationViewSet, basename='test-invitations')
router.register('progress', assessment_views.TrainingProgressViewSet, basename='training-progress')

urlpatterns = router.urls
