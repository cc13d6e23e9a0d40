from decimal import Decimal

from django.db import models


class WhisperType(models.TextChoices):
    SAY = 'say', 'Text to speech'
    PLAY = 'play', 'Audio file'


class PhoneNumber(models.Model):
    """
    A Twilio number bought by a user.

    The first number a user buys is free; every other number is charged
    the monthly price up front and renewed every 30 days.
    """
    user = models.ForeignKey(
        'identity.User',
        on_delete=models.CASCADE,
        related_name='phone_numbers'
    )
    phone_number = models.CharField(max_length=20, db_index=True)
    twilio_sid = models.CharField(max_length=64, unique=True)
    friendly_name = models.CharField(max_length=255, null=True, blank=True)
    country = models.CharField(max_length=2, default='US')
    region = models.CharField(max_length=100, null=True, blank=True)
    locality = models.CharField(max_length=100, null=True, blank=True)
    purchase_price = models.DecimalField(max_digits=10, decimal_places=4, null=True, blank=True)
    purchase_price_unit = models.CharField(max_length=3, default='USD')
    monthly_cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('2.00'))
    capabilities = models.JSONField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    # Billing
    is_free = models.BooleanField(default=False)
    next_renewal_at = models.DateTimeField(null=True, blank=True, db_index=True)

    # Whisper played to whoever answers a forwarded call
    whisper_enabled = models.BooleanField(default=False)
    whisper_type = models.CharField(max_length=4, choices=WhisperType.choices, default=WhisperType.SAY)
    whisper_text = models.CharField(max_length=255, null=True, blank=True)
    whisper_voice = models.CharField(max_length=50, default='alice')
    whisper_language = models.CharField(max_length=10, default='en-US')
    whisper_media_url = models.URLField(max_length=1000, null=True, blank=True)
    whisper_media_key = models.CharField(max_length=500, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return self.phone_number


class ForwardingType(models.TextChoices):
    ALWAYS = 'always', 'Always'
    BUSY = 'busy', 'When busy'
    NO_ANSWER = 'no_answer', 'No answer'
    UNAVAILABLE = 'unavailable', 'Unavailable'


class CallForwarding(models.Model):
    """Where inbound calls to one of the user's numbers are sent."""
    user = models.ForeignKey(
        'identity.User',
        on_delete=models.CASCADE,
        related_name='call_forwardings'
    )
    phone_number = models.OneToOneField(
        PhoneNumber,
        on_delete=models.CASCADE,
        related_name='forwarding'
    )
    forward_to_number = models.CharField(max_length=20)
    is_active = models.BooleanField(default=True)
    forwarding_type = models.CharField(
        max_length=20,
        choices=ForwardingType.choices,
        default=ForwardingType.ALWAYS
    )
    ring_timeout = models.PositiveIntegerField(default=20)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.phone_number} -> {self.forward_to_number}"


class CallDirection(models.TextChoices):
    INBOUND = 'inbound', 'Inbound'
    OUTBOUND = 'outbound', 'Outbound'


class PhoneCall(models.Model):
    """
    One Twilio call, kept up to date by the status and recording callbacks.

    `is_billed` is set exactly once, when a completed call has been charged.
    """
    call_sid = models.CharField(max_length=64, unique=True)
    user = models.ForeignKey(
        'identity.User',
        on_delete=models.CASCADE,
        related_name='phone_calls'
    )
    phone_number = models.ForeignKey(
        PhoneNumber,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='calls'
    )
    from_number = models.CharField(max_length=50)
    to_number = models.CharField(max_length=50)
    direction = models.CharField(max_length=10, choices=CallDirection.choices)
    status = models.CharField(max_length=20, default='initiated', db_index=True)
    duration = models.PositiveIntegerField(default=0)
    price = models.DecimalField(max_digits=10, decimal_places=4, null=True, blank=True)
    price_unit = models.CharField(max_length=3, null=True, blank=True)
    record = models.BooleanField(default=False)

    recording_url = models.URLField(max_length=1000, null=True, blank=True)
    recording_sid = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    recording_duration = models.PositiveIntegerField(null=True, blank=True)
    recording_channels = models.PositiveSmallIntegerField(null=True, blank=True)
    recording_status = models.CharField(max_length=20, null=True, blank=True)

    is_billed = models.BooleanField(default=False)
    billed_minutes = models.PositiveIntegerField(default=0)
    billed_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.call_sid} ({self.status})"
