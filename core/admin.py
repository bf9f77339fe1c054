from django.contrib import admin
from .models import Organization, Branch


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'website', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'email']


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'email', 'manager_name', 'is_active', 'created_at']
    list_filter = ['is_active', 'organization']
    search_fields = ['name', 'email', 'manager_name']
