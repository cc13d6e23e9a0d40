"""
Video recording endpoints: uploads, library management, public share pages
and viewer analytics.

`/v/{shareable_id}` and `/track-progress` serve the public player and carry
no session.
"""
import json
import logging
from typing import Optional

from django.http import HttpRequest
from ninja import Router, File
from ninja.errors import HttpError
from ninja.files import UploadedFile

from apps.core.media_storage import StorageError
from apps.identity.decorators import require_permission
from apps.identity.permissions import Permissions
from . import services
from .dtos import VideoRecordingOut, VideoViewOut, VideoRecordingUpdate, TrackProgressIn

logger = logging.getLogger(__name__)

router = Router(tags=["Videos"])


def _recording(obj) -> dict:
    data = VideoRecordingOut.from_orm(obj).dict()
    data['shareable_url'] = services.shareable_url(obj)
    return data


def _view(obj) -> dict:
    return VideoViewOut.from_orm(obj).dict()


def _upload_meta(request: HttpRequest) -> dict:
    post = request.POST
    raw_metadata = post.get('metadata')
    try:
        metadata = json.loads(raw_metadata) if raw_metadata else {}
    except ValueError:
        raise HttpError(400, "metadata must be a JSON object")
    if not isinstance(metadata, dict):
        raise HttpError(400, "metadata must be a JSON object")
    return {
        'title': post.get('title'),
        'description': post.get('description'),
        'is_public': post.get('is_public', '').lower() in ('1', 'true', 'yes', 'on'),
        'recording_type': post.get('recording_type'),
        'layout': post.get('layout'),
        'metadata': metadata,
    }


def _get_owned(user, recording_id: int):
    recording = services.get_recording(user, recording_id)
    if recording is None:
        raise HttpError(404, "Video recording not found")
    return recording


def _client_ip(request: HttpRequest) -> Optional[str]:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


# =============================================================================
# Uploads
# =============================================================================

@router.post("/upload", response={201: dict}, auth=None)
def upload_video(request: HttpRequest, video: UploadedFile = File(...)):
    user = require_permission(request, Permissions.VIDEOS_MANAGE)
    meta = _upload_meta(request)
    if meta['recording_type'] not in (None, '', 'screen', 'webcam', 'both'):
        raise HttpError(400, "recording_type must be screen, webcam or both")

    try:
        recording = services.process_upload(user, video, meta)
    except ValueError as e:
        raise HttpError(400, str(e))
    except StorageError as e:
        logger.error(f"Video upload failed for user {user.id}: {e}")
        raise HttpError(500, "Failed to upload video")

    return 201, {"message": "Video uploaded successfully", "recording": _recording(recording)}


@router.post("/upload-dual", response={201: dict}, auth=None)
def upload_dual(
    request: HttpRequest,
    video: UploadedFile = File(...),
    webcam: Optional[UploadedFile] = File(None),
):
    """Screen capture plus an optional webcam stream composed picture-in-picture."""
    user = require_permission(request, Permissions.VIDEOS_MANAGE)
    meta = _upload_meta(request)

    try:
        recording = services.process_dual_upload(user, video, webcam, meta)
    except ValueError as e:
        raise HttpError(400, str(e))
    except StorageError as e:
        logger.error(f"Dual video upload failed for user {user.id}: {e}")
        raise HttpError(500, "Failed to upload video")

    return 201, {"message": "Video uploaded successfully", "recording": _recording(recording)}


# =============================================================================
# Library
# =============================================================================

@router.get("/recordings", auth=None)
def list_recordings(
    request: HttpRequest,
    page: int = 1,
    limit: int = services.DEFAULT_LIMIT,
    sort_by: Optional[str] = None,
    sort_dir: Optional[str] = None,
):
    user = require_permission(request, Permissions.VIDEOS_VIEW)
    items, pagination = services.list_recordings(user, page, limit, sort_by, sort_dir)
    return {"recordings": [_recording(r) for r in items], "pagination": pagination}


@router.get("/recordings/{recording_id}", auth=None)
def get_recording(request: HttpRequest, recording_id: int):
    user = require_permission(request, Permissions.VIDEOS_VIEW)
    return _recording(_get_owned(user, recording_id))


@router.put("/recordings/{recording_id}", auth=None)
def update_recording(request: HttpRequest, recording_id: int, payload: VideoRecordingUpdate):
    user = require_permission(request, Permissions.VIDEOS_MANAGE)
    recording = services.update_recording(user, recording_id, payload.dict(exclude_unset=True))
    if recording is None:
        raise HttpError(404, "Video recording not found")
    return _recording(recording)


@router.delete("/recordings/{recording_id}", auth=None)
def delete_recording(request: HttpRequest, recording_id: int):
    user = require_permission(request, Permissions.VIDEOS_MANAGE)
    if not services.delete_recording(user, recording_id):
        raise HttpError(404, "Video recording not found")
    return {"message": "Video recording deleted successfully"}


@router.get("/recordings/{recording_id}/signed-url", auth=None)
def signed_url(request: HttpRequest, recording_id: int):
    user = require_permission(request, Permissions.VIDEOS_VIEW)
    recording = _get_owned(user, recording_id)
    try:
        url = services.signed_url(recording)
    except ValueError as e:
        raise HttpError(400, str(e))
    except StorageError as e:
        logger.error(f"Signed URL failed for recording {recording.id}: {e}")
        raise HttpError(500, "Failed to generate video URL")
    return {"url": url, "expires_in": 3600}


# =============================================================================
# Public sharing
# =============================================================================

@router.get("/v/{shareable_id}", auth=None)
def shared_video(request: HttpRequest, shareable_id: str, email: Optional[str] = None):
    recording = services.get_public_recording(shareable_id)
    if recording is None:
        raise HttpError(404, "Video not found or not public")

    view = services.track_view(
        recording,
        viewer_ip=_client_ip(request),
        user_agent=request.META.get('HTTP_USER_AGENT'),
        viewer_email=email,
    )
    return {
        "recording": {
            "id": recording.id,
            "title": recording.title,
            "description": recording.description,
            "video_url": recording.file_url,
            "thumbnail_url": recording.thumbnail_url,
            "duration": recording.duration,
            "created_at": recording.created_at,
            "user_name": recording.user.display_name,
        },
        "view_id": view.id,
        "viewer_id": view.viewer_id,
    }


@router.post("/track-progress", auth=None)
def track_progress(request: HttpRequest, payload: TrackProgressIn):
    if not payload.view_id:
        raise HttpError(400, "view_id is required")
    updated = services.update_view_progress(
        payload.view_id,
        watch_duration=payload.watch_duration,
        completion_percentage=payload.completion_percentage,
        engagement_data=payload.engagement_data,
    )
    if not updated:
        raise HttpError(404, "View not found")
    return {"success": True}


# =============================================================================
# Analytics
# =============================================================================

@router.get("/recordings/{recording_id}/analytics", auth=None)
def recording_analytics(request: HttpRequest, recording_id: int):
    user = require_permission(request, Permissions.VIDEOS_VIEW)
    data = services.analytics(_get_owned(user, recording_id))
    data['recent_views'] = [_view(v) for v in data['recent_views']]
    return data


@router.get("/recordings/{recording_id}/views", auth=None)
def recording_views(request: HttpRequest, recording_id: int, page: int = 1, limit: int = services.VIEWS_LIMIT):
    user = require_permission(request, Permissions.VIDEOS_VIEW)
    views = services.list_views(_get_owned(user, recording_id), page, limit)
    return {"views": [_view(v) for v in views], "page": page}


@router.get("/recordings/{recording_id}/stats", auth=None)
def recording_stats(request: HttpRequest, recording_id: int):
    user = require_permission(request, Permissions.VIDEOS_VIEW)
    return services.viewer_stats(_get_owned(user, recording_id))


@router.get("/recordings/{recording_id}/heatmap", auth=None)
def recording_heatmap(request: HttpRequest, recording_id: int):
    user = require_permission(request, Permissions.VIDEOS_VIEW)
    return {"heatmap": services.engagement_heatmap(_get_owned(user, recording_id))}


@router.get("/recordings/{recording_id}/top-viewers", auth=None)
def recording_top_viewers(request: HttpRequest, recording_id: int):
    user = require_permission(request, Permissions.VIDEOS_VIEW)
    return {"top_viewers": services.top_viewers(_get_owned(user, recording_id))}
