import uuid

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from core.models import ScopedModel


class Test(ScopedModel):
    """An assessment attached to a course. Scope is copied from the course."""
    TEST_TYPE_CHOICES = [
        ('exam', 'Exam'),
        ('quiz', 'Quiz'),
        ('training', 'Training'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    course = models.ForeignKey('courses.Course', on_delete=models.CASCADE, related_name='tests')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    test_type = models.CharField(max_length=20, choices=TEST_TYPE_CHOICES, default='exam')
    duration_minutes = models.PositiveIntegerField(null=True, blank=True, help_text="Time limit, empty for none")
    max_attempts = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tests_created',
    )

    class Meta:
        db_table = 'tests'
        ordering = ['-created_at']

    def __str__(self):
        return self.title


class TestInvitation(ScopedModel):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('accepted', 'Accepted'),
        ('declined', 'Declined'),
        ('expired', 'Expired'),
        ('completed', 'Completed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    test = models.ForeignKey(Test, on_delete=models.CASCADE, related_name='invitations')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='test_invitations')
    invited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='test_invitations_sent',
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    message = models.TextField(blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    response_notes = models.TextField(blank=True)

    class Meta:
        db_table = 'test_invitations'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['test', 'user'], name='unique_test_invitation'),
        ]
        indexes = [
            models.Index(fields=['status'], name='test_invita_status_3f8a2b_idx'),
            models.Index(fields=['expires_at'], name='test_invita_expires_7c41d0_idx'),
        ]

    def __str__(self):
        return f"{self.user} -> {self.test} ({self.status})"

    @property
    def is_expired(self):
        return self.expires_at is not None and self.expires_at <= timezone.now()


class TrainingProgress(ScopedModel):
    """One row per (user, course, test); a null test tracks progress on the course itself."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='training_progress')
    course = models.ForeignKey('courses.Course', on_delete=models.CASCADE, related_name='training_progress')
    test = models.ForeignKey(Test, on_delete=models.CASCADE, null=True, blank=True, related_name='training_progress')
    completion_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    time_spent_minutes = models.PositiveIntegerField(default=0)
    questions_completed = models.PositiveIntegerField(default=0)
    total_questions = models.PositiveIntegerField(default=0)
    last_updated = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'training_progress'
        ordering = ['-last_updated']
        constraints = [
            models.UniqueConstraint(fields=['user', 'course', 'test'], name='unique_training_progress'),
            models.UniqueConstraint(
                fields=['user', 'course'],
                condition=models.Q(test__isnull=True),
                name='unique_course_training_progress',
            ),
        ]

    def __str__(self):
        return f"{self.user} - {self.course} ({self.completion_percentage}%)"
