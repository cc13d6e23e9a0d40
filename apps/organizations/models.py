import uuid
from django.db import models


class Organization(models.Model):
    """
    Represents a tenant workspace (an agency or a solo operator).
    All websites, leads, clients and tasks are isolated per organization.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    settings = models.JSONField(
        default=dict,
        blank=True,
        help_text="Flexible metadata (e.g., default country for keyword tracking)"
    )
    logo = models.URLField(blank=True, null=True)
    website = models.URLField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name
