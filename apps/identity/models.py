import uuid
from decimal import Decimal
from django.db import models
from django.contrib.auth.models import AbstractUser


class UserRole(models.TextChoices):
    ADMIN = 'ADMIN', 'Administrator'
    MANAGER = 'MANAGER', 'Manager'
    STAFF = 'STAFF', 'Staff'
    VIEWER = 'VIEWER', 'Viewer'


class User(AbstractUser):
    """
    Custom User model with organization relationship for multi-tenancy.

    Also carries the calling wallet: prepaid balance plus the monthly
    allowance of free minutes.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # Store org_id as UUID field (no FK to maintain app independence)
    org_id = models.UUIDField(null=True, blank=True, db_index=True)
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.ADMIN
    )
    name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True)

    # Wallet
    balance = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    free_minutes_remaining = models.PositiveIntegerField(default=200)
    free_minutes_last_reset = models.DateTimeField(null=True, blank=True)
    has_claimed_free_number = models.BooleanField(default=False)

    class Meta:
        ordering = ['username']

    def __str__(self):
        return self.email or self.username

    @property
    def display_name(self) -> str:
        return self.name or self.get_full_name() or self.email


class PredefinedQuestion(models.Model):
    """
    Curated security question users pick from when setting up
    password recovery.
    """
    question = models.CharField(max_length=255, unique=True)
    category = models.CharField(max_length=50, db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['category', 'question']

    def __str__(self):
        return self.question


class SecurityQuestion(models.Model):
    """
    A user's chosen security question with a bcrypt hash of the
    normalized answer. The plain answer is never stored.
    """
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='security_questions')
    predefined_question = models.ForeignKey(
        PredefinedQuestion,
        on_delete=models.CASCADE,
        related_name='user_answers'
    )
    answer_hash = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['id']
        unique_together = ['user', 'predefined_question']

    def __str__(self):
        return f"{self.user} - {self.predefined_question}"
