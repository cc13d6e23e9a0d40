"""
Video recordings: upload pipeline, sharing and viewer analytics.

Uploads are written to a temp directory, probed and thumbnailed with
ffmpeg, then pushed to object storage under `videos/{timestamp}-{uuid}{ext}`.
"""
import logging
import os
import tempfile
import time
import uuid
from typing import List, Optional, Tuple

from django.conf import settings
from django.db.models import Avg, Count, Max, Min
from django.utils import timezone

from apps.activity.services import log_activity, ActivityType
from apps.core import media_storage
from apps.core.querying import apply_sorting
from . import media
from .models import VideoRecording, VideoView, RecordingType

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = (
    'video/webm', 'video/webm;codecs=vp8', 'video/webm;codecs=vp9',
    'video/webm;codecs=vp8,opus', 'video/webm;codecs=vp9,opus',
    'video/mp4', 'video/mp4;codecs=h264', 'video/quicktime',
    'video/x-msvideo', 'video/x-ms-wmv', 'video/ogg', 'video/mpeg',
    'video/3gpp', 'video/3gpp2', 'video/avi', 'video/mov',
)
ALLOWED_EXTENSIONS = ('.webm', '.mp4', '.avi', '.mov', '.ogg', '.mpeg', '.3gp', '.wmv')
MAX_FILE_SIZE = 500 * 1024 * 1024  # 500 MB

SORTABLE_FIELDS = ('created_at', 'updated_at', 'title', 'duration', 'file_size', 'recording_type')
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
VIEWS_LIMIT = 50
TOP_VIEWERS_LIMIT = 10
RECENT_VIEWS_LIMIT = 100
UPDATABLE_FIELDS = ('title', 'description', 'is_public')


# =============================================================================
# Upload pipeline
# =============================================================================

def validate_video(filename: str, content_type: str, size: int) -> None:
    """
    Raises:
        ValueError: not a video by MIME type nor extension, or over 500 MB.
    """
    extension = os.path.splitext(filename or '')[1].lower()
    if content_type not in ALLOWED_MIME_TYPES and extension not in ALLOWED_EXTENSIONS:
        raise ValueError(f"Invalid file type: {content_type} ({extension}). Only video files are allowed.")
    if size > MAX_FILE_SIZE:
        raise ValueError(f"File too large. Maximum size is {MAX_FILE_SIZE // (1024 * 1024)} MB")


def _object_key(prefix: str, extension: str) -> str:
    return f"{prefix}/{int(time.time() * 1000)}-{uuid.uuid4()}{extension}"


def _write_temp(upload, directory: str) -> str:
    extension = os.path.splitext(upload.name or '')[1].lower()
    path = os.path.join(directory, f"{uuid.uuid4()}{extension}")
    with open(path, 'wb') as fh:
        for chunk in upload.chunks():
            fh.write(chunk)
    return path


def _store(user, video_path: str, content_type: str, extension: str, meta: dict, prefix: str = 'videos') -> VideoRecording:
    """Probe, thumbnail and upload a local video file, then create its row."""
    duration = media.probe_duration(video_path)

    key = media_storage.save_file(_object_key(prefix, extension), video_path, content_type)

    thumbnail_key = None
    thumbnail_path = media.make_thumbnail(video_path, f"{os.path.splitext(video_path)[0]}-thumb.jpg")
    if thumbnail_path:
        try:
            thumbnail_key = media_storage.save_file(_object_key('videos', '-thumb.jpg'), thumbnail_path, 'image/jpeg')
        except media_storage.StorageError as e:
            logger.warning(f"Thumbnail upload skipped: {e}")

    metadata = dict(meta.get('metadata') or {})
    metadata['s3_key'] = key
    if thumbnail_key:
        metadata['thumbnail_s3_key'] = thumbnail_key

    recording = VideoRecording.objects.create(
        user=user,
        title=meta.get('title') or 'Untitled Recording',
        description=meta.get('description') or '',
        file_url=media_storage.url_for(key),
        file_size=os.path.getsize(video_path),
        duration=duration,
        thumbnail_url=media_storage.url_for(thumbnail_key) if thumbnail_key else None,
        recording_type=meta.get('recording_type') or RecordingType.SCREEN,
        is_public=bool(meta.get('is_public')),
        metadata=metadata,
    )

    log_activity(
        org_id=user.org_id,
        activity_type=ActivityType.VIDEO_UPLOADED,
        title="Video uploaded",
        description=f'"{recording.title}" ({recording.duration}s)',
        performed_by=user,
        metadata={"video_id": recording.id},
    )
    return recording


def process_upload(user, upload, meta: dict) -> VideoRecording:
    """
    Store one uploaded recording.

    Raises:
        ValueError: invalid file.
        StorageError: upload failed.
    """
    validate_video(upload.name, upload.content_type, upload.size)
    extension = os.path.splitext(upload.name or '')[1].lower()
    with tempfile.TemporaryDirectory() as tmp:
        path = _write_temp(upload, tmp)
        return _store(user, path, upload.content_type, extension, meta)


def process_dual_upload(user, screen, webcam, meta: dict) -> VideoRecording:
    """
    Store a screen capture, with the webcam stream overlaid when given.

    The webcam file is never kept on its own. If composition fails the
    plain screen recording is stored instead.
    """
    if screen is None:
        raise ValueError("No screen recording file provided")
    if webcam is None:
        return process_upload(user, screen, {**meta, 'recording_type': RecordingType.SCREEN})

    validate_video(screen.name, screen.content_type, screen.size)
    validate_video(webcam.name, webcam.content_type, webcam.size)
    layout = meta.get('layout') or media.DEFAULT_LAYOUT
    screen_ext = os.path.splitext(screen.name or '')[1].lower()

    with tempfile.TemporaryDirectory() as tmp:
        screen_path = _write_temp(screen, tmp)
        webcam_path = _write_temp(webcam, tmp)
        composed_path = os.path.join(tmp, f"composed-{uuid.uuid4()}.webm")
        try:
            media.compose_overlay(screen_path, webcam_path, composed_path, layout)
        except media.CompositionError as e:
            logger.warning(f"Falling back to the screen recording: {e}")
            return _store(user, screen_path, screen.content_type, screen_ext, {
                **meta,
                'recording_type': RecordingType.SCREEN,
                'title': meta.get('title') or 'Screen Recording',
            })

        metadata = dict(meta.get('metadata') or {})
        metadata['composition'] = {'layout': layout, 'composed_at': timezone.now().isoformat()}
        return _store(user, composed_path, 'video/webm', '.webm', {
            **meta,
            'recording_type': RecordingType.BOTH,
            'title': meta.get('title') or 'Screen + Webcam Recording',
            'metadata': metadata,
        }, prefix='composed')


# =============================================================================
# Recordings
# =============================================================================

def shareable_url(recording: VideoRecording) -> str:
    return f"{settings.FRONTEND_URL}/v/{recording.shareable_id}"


def list_recordings(
    user,
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
) -> Tuple[List[VideoRecording], dict]:
    page = max(page or 1, 1)
    limit = max(1, min(limit or DEFAULT_LIMIT, MAX_LIMIT))
    offset = (page - 1) * limit

    queryset = apply_sorting(VideoRecording.objects.filter(user=user), sort_by, sort_dir, SORTABLE_FIELDS)
    total = queryset.count()
    items = list(queryset[offset:offset + limit])
    return items, {
        'page': page,
        'limit': limit,
        'total': total,
        'has_more': offset + len(items) < total,
    }


def get_recording(user, recording_id: int) -> Optional[VideoRecording]:
    try:
        return VideoRecording.objects.get(user=user, id=recording_id)
    except VideoRecording.DoesNotExist:
        return None


def update_recording(user, recording_id: int, data: dict) -> Optional[VideoRecording]:
    recording = get_recording(user, recording_id)
    if recording is None:
        return None
    for attr, value in data.items():
        if attr in UPDATABLE_FIELDS and value is not None:
            setattr(recording, attr, value)
    recording.save()
    return recording


def delete_recording(user, recording_id: int) -> bool:
    """Remove the stored objects first, then the row."""
    recording = get_recording(user, recording_id)
    if recording is None:
        return False

    for key in (recording.metadata.get('s3_key'), recording.metadata.get('thumbnail_s3_key')):
        if key:
            try:
                media_storage.delete(key)
            except media_storage.StorageError as e:
                logger.error(f"Could not delete {key} for recording {recording.id}: {e}")
    recording.delete()
    return True


def signed_url(recording: VideoRecording) -> str:
    """
    Raises:
        ValueError: the recording has no storage key.
    """
    key = (recording.metadata or {}).get('s3_key')
    if not key:
        raise ValueError("Video file not found in storage")
    return media_storage.signed_url(key)


# =============================================================================
# Sharing
# =============================================================================

def get_public_recording(shareable_id: str) -> Optional[VideoRecording]:
    return VideoRecording.objects.filter(shareable_id=shareable_id, is_public=True).select_related('user').first()


def track_view(recording: VideoRecording, viewer_ip=None, user_agent=None, viewer_email=None) -> VideoView:
    return VideoView.objects.create(
        video=recording,
        viewer_ip=viewer_ip,
        user_agent=(user_agent or '')[:500] or None,
        viewer_email=viewer_email or None,
    )


def update_view_progress(view_id: int, watch_duration=None, completion_percentage=None, engagement_data=None) -> bool:
    changes = {}
    if watch_duration is not None:
        changes['watch_duration'] = max(0, int(watch_duration))
    if completion_percentage is not None:
        changes['completion_percentage'] = max(0.0, min(100.0, float(completion_percentage)))
    if engagement_data is not None:
        changes['engagement_data'] = engagement_data
    if not changes:
        return VideoView.objects.filter(id=view_id).exists()
    changes['updated_at'] = timezone.now()
    return VideoView.objects.filter(id=view_id).update(**changes) > 0


# =============================================================================
# Analytics
# =============================================================================

def viewer_stats(recording: VideoRecording) -> dict:
    stats = recording.views.aggregate(
        total_views=Count('id'),
        unique_viewers=Count('viewer_id', distinct=True),
        unique_emails=Count('viewer_email', distinct=True),
        avg_completion=Avg('completion_percentage'),
        avg_watch_duration=Avg('watch_duration'),
        first_view=Min('created_at'),
        last_view=Max('created_at'),
    )
    stats['avg_completion'] = round(stats['avg_completion'] or 0, 2)
    stats['avg_watch_duration'] = round(stats['avg_watch_duration'] or 0, 2)
    return stats


def list_views(recording: VideoRecording, page: int = 1, limit: int = VIEWS_LIMIT) -> List[VideoView]:
    page = max(page or 1, 1)
    limit = max(1, min(limit or VIEWS_LIMIT, MAX_LIMIT))
    offset = (page - 1) * limit
    return list(recording.views.all()[offset:offset + limit])


def engagement_heatmap(recording: VideoRecording) -> List[dict]:
    """Viewer counts per 10 % completion bucket (100 % lands in its own bucket)."""
    buckets = {}
    for completion in recording.views.values_list('completion_percentage', flat=True):
        bucket = int(completion // 10) * 10
        buckets[bucket] = buckets.get(bucket, 0) + 1
    return [{'bucket': bucket, 'viewer_count': count} for bucket, count in sorted(buckets.items())]


def top_viewers(recording: VideoRecording, limit: int = TOP_VIEWERS_LIMIT) -> List[dict]:
    rows = (
        recording.views
        .exclude(viewer_email__isnull=True)
        .exclude(viewer_email='')
        .values('viewer_email')
        .annotate(
            view_count=Count('id'),
            avg_completion=Avg('completion_percentage'),
            best_completion=Max('completion_percentage'),
            last_view=Max('created_at'),
        )
        .order_by('-avg_completion', '-view_count', 'viewer_email')[:limit]
    )
    return list(rows)


def analytics(recording: VideoRecording) -> dict:
    return {
        'analytics': {
            'id': recording.id,
            'title': recording.title,
            'duration': recording.duration,
            **viewer_stats(recording),
        },
        'recent_views': list_views(recording, 1, RECENT_VIEWS_LIMIT),
        'engagement_heatmap': engagement_heatmap(recording),
        'top_viewers': top_viewers(recording),
    }
