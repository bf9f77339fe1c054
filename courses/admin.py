from django.contrib import admin
from .models import Course, CourseMaterial


class CourseMaterialInline(admin.TabularInline):
    model = CourseMaterial
    extra = 0
    fields = ['title', 'material_type', 'sort_order', 'is_active', 'status']


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ['title', 'organization', 'branch', 'status', 'created_by', 'created_at']
    list_filter = ['status', 'organization']
    search_fields = ['title', 'description']
    inlines = [CourseMaterialInline]


@admin.register(CourseMaterial)
class CourseMaterialAdmin(admin.ModelAdmin):
    list_display = ['title', 'course', 'material_type', 'sort_order', 'is_active', 'status']
    list_filter = ['material_type', 'status', 'is_active']
    search_fields = ['title']
