from django.db import models
from django.utils.crypto import get_random_string

SHAREABLE_ID_LENGTH = 12
VIEWER_ID_LENGTH = 16


def generate_shareable_id() -> str:
    return get_random_string(SHAREABLE_ID_LENGTH)


def generate_viewer_id() -> str:
    return get_random_string(VIEWER_ID_LENGTH)


class RecordingType(models.TextChoices):
    SCREEN = 'screen', 'Screen'
    WEBCAM = 'webcam', 'Webcam'
    BOTH = 'both', 'Screen + webcam'


class VideoRecording(models.Model):
    """
    A recorded video stored in object storage.

    `metadata` keeps the storage keys (s3_key, thumbnail_s3_key) next to
    whatever the recorder sent along.
    """
    user = models.ForeignKey(
        'identity.User',
        on_delete=models.CASCADE,
        related_name='video_recordings'
    )
    title = models.CharField(max_length=255, default='Untitled Recording')
    description = models.TextField(blank=True, default='')
    file_url = models.URLField(max_length=1000)
    file_size = models.BigIntegerField(default=0)
    duration = models.PositiveIntegerField(default=0, help_text="Seconds")
    thumbnail_url = models.URLField(max_length=1000, null=True, blank=True)
    recording_type = models.CharField(
        max_length=10,
        choices=RecordingType.choices,
        default=RecordingType.SCREEN
    )
    shareable_id = models.CharField(
        max_length=SHAREABLE_ID_LENGTH,
        unique=True,
        default=generate_shareable_id
    )
    is_public = models.BooleanField(default=False)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return self.title


class VideoView(models.Model):
    """One visit to a shared video, updated as the viewer watches."""
    video = models.ForeignKey(
        VideoRecording,
        on_delete=models.CASCADE,
        related_name='views'
    )
    viewer_id = models.CharField(max_length=VIEWER_ID_LENGTH, default=generate_viewer_id, db_index=True)
    viewer_email = models.EmailField(null=True, blank=True)
    viewer_ip = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, null=True, blank=True)
    watch_duration = models.PositiveIntegerField(default=0, help_text="Seconds")
    completion_percentage = models.FloatField(default=0)
    engagement_data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.video_id}:{self.viewer_id}"
