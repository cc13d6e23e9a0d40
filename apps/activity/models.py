from django.db import models


class Activity(models.Model):
    """
    Workspace activity feed entry (website added, lead created, task moved...).
    """
    org_id = models.UUIDField(db_index=True)
    type = models.CharField(max_length=50, db_index=True, help_text="Activity type (e.g., website_created)")
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    website = models.ForeignKey(
        'websites.Website',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activities'
    )
    performed_by = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activities'
    )
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name_plural = "Activities"

    def __str__(self):
        return f"{self.type}: {self.title}"
