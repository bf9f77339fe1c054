import uuid

from django.conf import settings
from django.db import models

from core.models import ScopedModel
from core.services.cache_service import course_key, material_count_key, material_key, material_list_key

STATUS_CHOICES = [
    ('active', 'Active'),
    ('inactive', 'Inactive'),
    ('deleted', 'Deleted'),
    ('draft', 'Draft'),
]


class Course(ScopedModel):
    """
    A course is created in its creator's organization and branch and keeps
    that scope for life.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='courses_created',
    )

    class Meta:
        db_table = 'courses'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', 'branch'], name='courses_organiz_4e7a10_idx'),
            models.Index(fields=['status'], name='courses_status_b21c9d_idx'),
        ]

    def __str__(self):
        return self.title

    def cache_keys(self):
        return [course_key(self.id), material_list_key(self.id), material_count_key(self.id)]


class CourseMaterial(ScopedModel):
    """Learning material attached to a course. Scope is copied from the course."""
    MATERIAL_TYPE_CHOICES = [
        ('document', 'Document'),
        ('video', 'Video'),
        ('audio', 'Audio'),
        ('image', 'Image'),
        ('link', 'Link'),
        ('other', 'Other'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='materials')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    external_url = models.URLField(blank=True, null=True)
    material_type = models.CharField(max_length=20, choices=MATERIAL_TYPE_CHOICES, default='document')
    sort_order = models.PositiveIntegerField(default=0, help_text="Position within the course, ascending")
    is_active = models.BooleanField(default=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='materials_created',
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='materials_updated',
    )

    class Meta:
        db_table = 'course_materials'
        ordering = ['sort_order', 'created_at']
        indexes = [
            models.Index(fields=['course', 'sort_order'], name='course_mate_course__8d2f61_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.course.title})"

    def cache_keys(self):
        return [material_key(self.id), material_list_key(self.course_id), material_count_key(self.course_id)]
