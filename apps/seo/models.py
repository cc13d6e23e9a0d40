from django.db import models


class SerpApiKey(models.Model):
    """
    One SerpApi key with its call count for the current 30 day window.

    A key that ages out of the window gets a fresh row the next time it is
    used, so `count` always describes calls made inside the window.
    """
    api_key = models.CharField(max_length=255, db_index=True)
    count = models.PositiveIntegerField(default=0)
    date_created = models.DateTimeField(auto_now_add=True, db_index=True)
    date_updated = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['id']
        verbose_name = 'SerpApi key'

    def __str__(self):
        return f"{self.api_key[:8]}... ({self.count})"


class CheckFrequency(models.TextChoices):
    DAILY = 'daily', 'Daily'
    WEEKLY = 'weekly', 'Weekly'
    MONTHLY = 'monthly', 'Monthly'


class KeywordTracking(models.Model):
    """
    A keyword whose Google position is tracked for a client's site.
    """
    org_id = models.UUIDField(db_index=True)
    user = models.ForeignKey(
        'identity.User',
        on_delete=models.CASCADE,
        related_name='tracked_keywords'
    )
    client = models.ForeignKey(
        'clients.Client',
        on_delete=models.CASCADE,
        related_name='tracked_keywords'
    )

    keyword = models.CharField(max_length=255)
    target_url = models.CharField(max_length=500)
    current_rank = models.PositiveIntegerField(null=True, blank=True)
    previous_rank = models.PositiveIntegerField(null=True, blank=True)
    rank_change = models.IntegerField(null=True, blank=True)
    search_engine = models.CharField(max_length=50, default='google')
    country = models.CharField(max_length=10, default='us')
    location = models.CharField(max_length=255, null=True, blank=True)
    last_checked = models.DateTimeField(null=True, blank=True, db_index=True)
    check_frequency = models.CharField(
        max_length=10,
        choices=CheckFrequency.choices,
        default=CheckFrequency.WEEKLY
    )
    is_active = models.BooleanField(default=True, db_index=True)
    notes = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        unique_together = ['user', 'client', 'keyword', 'search_engine', 'country']

    def __str__(self):
        return f"{self.keyword} -> {self.target_url}"


class KeywordRankHistory(models.Model):
    keyword_tracking = models.ForeignKey(
        KeywordTracking,
        on_delete=models.CASCADE,
        related_name='history'
    )
    rank_position = models.PositiveIntegerField()
    check_date = models.DateTimeField(auto_now_add=True, db_index=True)
    search_volume = models.IntegerField(null=True, blank=True)
    competition_level = models.CharField(max_length=20, null=True, blank=True)
    cpc = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    notes = models.TextField(null=True, blank=True)

    class Meta:
        ordering = ['-check_date', '-id']
        verbose_name_plural = 'keyword rank history'

    def __str__(self):
        return f"{self.keyword_tracking.keyword} #{self.rank_position}"


class SavedKeyword(models.Model):
    """
    Keyword idea a user bookmarked from the research tools.
    """
    user = models.ForeignKey(
        'identity.User',
        on_delete=models.CASCADE,
        related_name='saved_keywords'
    )
    keyword = models.CharField(max_length=255)
    difficulty = models.IntegerField(null=True, blank=True)
    volume = models.IntegerField(null=True, blank=True)
    last_updated = models.DateTimeField(null=True, blank=True)
    search_engine = models.CharField(max_length=50, default='google')
    country = models.CharField(max_length=10, default='us')
    category = models.CharField(max_length=50, default='idea', db_index=True)
    notes = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        unique_together = ['user', 'keyword']

    def __str__(self):
        return self.keyword


class AnalyticsSnapshot(models.Model):
    """
    Frozen copy of an analytics screen so it can be reopened later.
    """
    user = models.ForeignKey(
        'identity.User',
        on_delete=models.CASCADE,
        related_name='analytics_snapshots'
    )
    url = models.CharField(max_length=500)
    mode = models.CharField(max_length=50)
    snapshot_json = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.url} ({self.mode})"
