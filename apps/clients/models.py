from django.db import models


class Client(models.Model):
    """
    A business renting one of the workspace's ranked sites.
    """
    org_id = models.UUIDField(db_index=True)
    created_by = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='clients'
    )

    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255, blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    website = models.URLField(max_length=255)
    city = models.CharField(max_length=255, blank=True, null=True)
    reviews = models.IntegerField(null=True, blank=True)
    contacted = models.BooleanField(default=False)
    follow_up_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name


class ChecklistCompletion(models.Model):
    """
    Completion state of one onboarding checklist item for a client.
    Items themselves are defined by the dashboard; only their ids are stored.
    """
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='checklist')
    user = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        related_name='checklist_completions'
    )
    checklist_item_id = models.CharField(max_length=50, db_index=True)
    is_completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['checklist_item_id']
        unique_together = ['client', 'checklist_item_id']

    def __str__(self):
        return f"{self.client} - {self.checklist_item_id}"
