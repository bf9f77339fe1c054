from django.contrib import admin
from .models import Test, TestInvitation, TrainingProgress


@admin.register(Test)
class TestAdmin(admin.ModelAdmin):
    list_display = ['title', 'course', 'test_type', 'max_attempts', 'is_active', 'created_at']
    list_filter = ['test_type', 'is_active']
    search_fields = ['title']


@admin.register(TestInvitation)
class TestInvitationAdmin(admin.ModelAdmin):
    list_display = ['test', 'user', 'status', 'expires_at', 'responded_at', 'created_at']
    list_filter = ['status']
    search_fields = ['user__email', 'test__title']


@admin.register(TrainingProgress)
class TrainingProgressAdmin(admin.ModelAdmin):
    list_display = ['user', 'course', 'test', 'completion_percentage', 'time_spent_minutes', 'last_updated']
    search_fields = ['user__email', 'course__title']
