import uuid

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.db import models

from core.utils.roles import Roles, has_capability


class User(AbstractUser):
    """
    Custom user model with organization and branch membership.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Optional until an admin assigns the user to an organization
    organization = models.ForeignKey(
        'core.Organization',
        on_delete=models.PROTECT,
        related_name='users',
        null=True,
        blank=True
    )
    branch = models.ForeignKey(
        'core.Branch',
        on_delete=models.PROTECT,
        related_name='users',
        null=True,
        blank=True,
        help_text="Must belong to the user's organization"
    )

    # Override email to be required and unique
    email = models.EmailField(unique=True)

    phone_number = models.CharField(max_length=20, blank=True)
    profile_picture = models.URLField(blank=True, null=True)

    ROLE_CHOICES = Roles.choices()
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=Roles.USER.value)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', 'role'], name='users_organiz_2a8f4c_idx'),
            models.Index(fields=['organization', 'branch'], name='users_organiz_9b3e71_idx'),
        ]

    def __str__(self):
        org_name = self.organization.name if self.organization else "No Org"
        return f"{self.email} ({org_name})"

    def clean(self):
        super().clean()
        if self.branch_id and self.branch.organization_id != self.organization_id:
            raise ValidationError({'branch': "Branch must belong to the user's organization."})

    def has_organization(self):
        return self.organization_id is not None

    def has_capability(self, capability):
        return has_capability(self.role, capability)
