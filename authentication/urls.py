from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .views import user_views

router = DefaultRouter(trailing_slash=False)
router.register('users', user_views.UserViewSet, basename='users')

urlpatterns = [
    # JWT tokens
    path('token', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh', TokenRefreshView.as_view(), name='token_refresh'),

    path('me', user_views.me, name='me'),

    path('', include(router.urls)),
]
