from django.contrib import admin
from .models import VideoRecording, VideoView


class VideoViewInline(admin.TabularInline):
    model = VideoView
    extra = 0
    readonly_fields = ['viewer_id', 'viewer_email', 'watch_duration', 'completion_percentage', 'created_at']


@admin.register(VideoRecording)
class VideoRecordingAdmin(admin.ModelAdmin):
    list_display = ['title', 'user', 'recording_type', 'duration', 'is_public', 'shareable_id', 'created_at']
    list_filter = ['recording_type', 'is_public']
    search_fields = ['title', 'shareable_id']
    inlines = [VideoViewInline]
