import uuid

from django.core.validators import MinLengthValidator
from django.db import models


class TimestampedModel(models.Model):
    """Abstract model to add created/updated timestamps"""
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Organization(TimestampedModel):
    """
    Multi-tenancy: each organization is a separate tenant.
    Every scoped resource belongs to exactly one organization.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(
        max_length=255,
        unique=True,
        validators=[MinLengthValidator(2)],
        help_text="Organization name, unique across the platform",
    )
    description = models.TextField(blank=True)
    logo_url = models.URLField(blank=True, null=True)
    website = models.URLField(blank=True, null=True)
    email = models.EmailField(unique=True, blank=True, null=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'organizations'
        ordering = ['name']
        verbose_name = 'Organization'
        verbose_name_plural = 'Organizations'

    def __str__(self):
        return self.name


class Branch(TimestampedModel):
    """
    A sub-unit of an organization. Branches never move between organizations.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        Organization,
        on_delete=models.PROTECT,
        related_name='branches',
    )
    name = models.CharField(max_length=255)
    address = models.TextField(blank=True)
    email = models.EmailField(unique=True, help_text="Branch email, unique across all branches")
    contact_number = models.CharField(max_length=20, blank=True)
    manager_name = models.CharField(max_length=255, blank=True)
    operating_hours = models.JSONField(
        default=dict,
        blank=True,
        help_text='e.g. {"opening": "09:00", "closing": "17:00", "days": ["Monday", "Friday"]}',
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'branches'
        ordering = ['name']
        verbose_name = 'Branch'
        verbose_name_plural = 'Branches'
        indexes = [
            models.Index(fields=['organization', 'is_active'], name='branches_organiz_5c1d2e_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.organization.name})"


class ScopedModel(TimestampedModel):
    """
    Abstract base model for every resource that lives inside an organization
    and optionally a branch. A null branch means the row is visible to the
    whole organization.
    """
    organization = models.ForeignKey(
        Organization,
        on_delete=models.PROTECT,
        related_name='%(app_label)s_%(class)s_set',
    )
    branch = models.ForeignKey(
        Branch,
        on_delete=models.PROTECT,
        related_name='%(app_label)s_%(class)s_set',
        null=True,
        blank=True,
    )

    class Meta:
        abstract = True

    def inherit_scope(self, parent):
        """Copy organization and branch from the parent resource."""
        self.organization_id = parent.organization_id
        self.branch_id = parent.branch_id
        return self

    def cache_keys(self):
        """Cache entries that hold this row. Empty for rows that are never cached."""
        return []
