"""
URL configuration for learningbackend project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.0/topics/http/urls/
"""

from django.contrib import admin
from django.urls import path, include

from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularSwaggerView,
)


v1_0_patterns = [
    path('auth/', include('authentication.urls')),
    path('core/', include('core.urls')),
    path('courses/', include('courses.urls')),
    path('assessments/', include('assessments.urls')),
]


urlpatterns = [
    path("admin/", admin.site.urls),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),

    # API endpoints
    path('api/v1/', include((v1_0_patterns, 'v1.0'), namespace='v1.0')),
]
