from typing import Optional

from ninja import Schema
from ninja.orm import create_schema
from pydantic import Field

from .models import VideoRecording, VideoView


VideoRecordingOut = create_schema(VideoRecording, exclude=['user'])
VideoViewOut = create_schema(VideoView, exclude=['video'])


class VideoRecordingUpdate(Schema):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_public: Optional[bool] = None


class TrackProgressIn(Schema):
    view_id: Optional[int] = None
    watch_duration: Optional[int] = Field(None, ge=0)
    completion_percentage: Optional[float] = Field(None, ge=0, le=100)
    engagement_data: Optional[dict] = None
