from decimal import Decimal
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


class WebsiteStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    INACTIVE = 'inactive', 'Inactive'
    SUSPENDED = 'suspended', 'Suspended'


class Website(models.Model):
    """
    A rank-and-rent property: a local-service site that is ranked and rented out.
    """
    org_id = models.UUIDField(db_index=True)
    created_by = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='websites'
    )

    domain = models.CharField(max_length=255)
    niche = models.CharField(max_length=100, blank=True, null=True)
    status = models.CharField(
        max_length=20,
        choices=WebsiteStatus.choices,
        default=WebsiteStatus.ACTIVE,
        db_index=True
    )
    monthly_revenue = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(0)]
    )

    # SEO metrics
    domain_authority = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    backlinks = models.PositiveIntegerField(default=0)
    organic_keywords = models.PositiveIntegerField(default=0)
    organic_traffic = models.PositiveIntegerField(default=0)
    top_keywords = models.JSONField(default=list, blank=True, null=True)
    competitors = models.JSONField(default=list, blank=True, null=True)
    seo_last_updated = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.domain
