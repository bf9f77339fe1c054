from django_filters import rest_framework as filters

from courses.models import Course


class CourseFilter(filters.FilterSet):
    """Filter for course listing"""
    title = filters.CharFilter(lookup_expr='icontains')
    created_by = filters.UUIDFilter(field_name='created_by')
    created_after = filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='gte')
    created_before = filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = Course
        fields = ['title', 'created_by', 'created_after', 'created_before']
