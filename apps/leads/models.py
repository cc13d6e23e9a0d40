import uuid
from datetime import timedelta
from django.db import models


class LeadStatus(models.TextChoices):
    NEW = 'New', 'New'
    CONTACTED = 'Contacted', 'Contacted'
    QUALIFIED = 'Qualified', 'Qualified'
    CONVERTED = 'Converted', 'Converted'
    LOST = 'Lost', 'Lost'


class Lead(models.Model):
    """
    A prospective renter: a local business that may rent a ranked site.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    org_id = models.UUIDField(db_index=True)
    created_by = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='leads'
    )

    name = models.CharField(max_length=255, blank=True, null=True)
    email = models.EmailField(max_length=255, blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    company = models.CharField(max_length=255, blank=True, null=True)
    status = models.CharField(
        max_length=20,
        choices=LeadStatus.choices,
        default=LeadStatus.NEW,
        db_index=True
    )
    notes = models.TextField(blank=True, null=True)
    reviews = models.IntegerField(null=True, blank=True)
    website = models.URLField(max_length=255, blank=True, null=True)
    contacted = models.BooleanField(default=False)
    city = models.CharField(max_length=255, blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.label

    @property
    def label(self) -> str:
        return self.name or self.email or str(self.id)


class CallOutcome(models.TextChoices):
    FOLLOW_UP_1_DAY = 'follow_up_1_day', 'Follow up in 1 day'
    FOLLOW_UP_72_HOURS = 'follow_up_72_hours', 'Follow up in 72 hours'
    FOLLOW_UP_NEXT_WEEK = 'follow_up_next_week', 'Follow up next week'
    FOLLOW_UP_NEXT_MONTH = 'follow_up_next_month', 'Follow up next month'
    FOLLOW_UP_3_MONTHS = 'follow_up_3_months', 'Follow up in 3 months'


FOLLOW_UP_DELAYS = {
    CallOutcome.FOLLOW_UP_1_DAY: timedelta(days=1),
    CallOutcome.FOLLOW_UP_72_HOURS: timedelta(hours=72),
    CallOutcome.FOLLOW_UP_NEXT_WEEK: timedelta(days=7),
    CallOutcome.FOLLOW_UP_NEXT_MONTH: timedelta(days=30),
    CallOutcome.FOLLOW_UP_3_MONTHS: timedelta(days=90),
}


class CallLog(models.Model):
    """
    Outcome of a sales call to a lead and when to call back.
    """
    lead = models.ForeignKey(Lead, on_delete=models.CASCADE, related_name='call_logs')
    user = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        related_name='call_logs'
    )
    outcome = models.CharField(max_length=30, choices=CallOutcome.choices)
    notes = models.TextField()
    duration = models.PositiveIntegerField(default=0, help_text="Call length in seconds")
    next_follow_up = models.DateTimeField(null=True, blank=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.lead} - {self.outcome}"
