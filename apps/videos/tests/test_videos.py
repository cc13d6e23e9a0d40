import json
from unittest.mock import patch
import os
from uuid import uuid4

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, Client
from django.contrib.auth import get_user_model

from apps.activity.models import Activity
from apps.identity.models import UserRole
from apps.videos import services
from apps.videos import media
from apps.videos.media import CompositionError
from apps.videos.models import VideoRecording, VideoView, RecordingType


User = get_user_model()


def make_user(org_id, role=UserRole.STAFF):
    username = f"user_{uuid4().hex[:8]}"
    return User.objects.create_user(
        username=username,
        email=f"{username}@test.com",
        password="testpass123",
        org_id=org_id,
        role=role,
    )


def make_recording(user, **fields):
    fields.setdefault('file_url', 'https://cdn.test/videos/a.webm')
    fields.setdefault('metadata', {'s3_key': 'videos/a.webm'})
    return VideoRecording.objects.create(user=user, **fields)


def webm(name="rec.webm", content_type="video/webm"):
    return SimpleUploadedFile(name, b"\x1aE\xdf\xa3fake-webm", content_type=content_type)


def stored_key(key, path, content_type=None):
    return key


def fake_compose(screen, webcam, out, layout):
    with open(out, "wb") as fh:
        fh.write(b"composed")
    return out


class ValidateVideoTest(TestCase):
    def test_accepts_by_mime_or_extension(self):
        services.validate_video("clip.webm", "application/octet-stream", 10)
        services.validate_video("clip.bin", "video/mp4", 10)

    def test_rejects_non_video(self):
        with self.assertRaises(ValueError):
            services.validate_video("notes.txt", "text/plain", 10)

    def test_rejects_oversized(self):
        with self.assertRaises(ValueError):
            services.validate_video("clip.mp4", "video/mp4", services.MAX_FILE_SIZE + 1)


@patch("apps.videos.services.media.make_thumbnail", return_value=None)
@patch("apps.videos.services.media.probe_duration", return_value=42)
@patch("apps.videos.services.media_storage.save_file", side_effect=stored_key)
class UploadTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.org_id = uuid4()
        self.user = make_user(self.org_id)
        self.client.force_login(self.user)

    def test_upload_creates_recording(self, mock_save, mock_duration, mock_thumb):
        response = self.client.post("/api/videos/upload", data={
            "video": webm(),
            "title": "Demo",
            "is_public": "true",
            "metadata": json.dumps({"source": "extension"}),
        })

        self.assertEqual(response.status_code, 201)
        recording = response.json()["recording"]
        self.assertEqual(recording["title"], "Demo")
        self.assertEqual(recording["duration"], 42)
        self.assertTrue(recording["is_public"])
        self.assertTrue(recording["shareable_url"].endswith(f"/v/{recording['shareable_id']}"))

        saved = VideoRecording.objects.get(id=recording["id"])
        self.assertTrue(saved.metadata["s3_key"].startswith("videos/"))
        self.assertTrue(saved.metadata["s3_key"].endswith(".webm"))
        self.assertEqual(saved.metadata["source"], "extension")
        self.assertTrue(Activity.objects.filter(org_id=self.org_id, type="video_uploaded").exists())

    def test_upload_rejects_non_video(self, mock_save, mock_duration, mock_thumb):
        response = self.client.post("/api/videos/upload", data={
            "video": SimpleUploadedFile("notes.txt", b"hello", content_type="text/plain"),
        })

        self.assertEqual(response.status_code, 400)
        mock_save.assert_not_called()

    def test_viewer_cannot_upload(self, mock_save, mock_duration, mock_thumb):
        viewer = make_user(self.org_id, role=UserRole.VIEWER)
        self.client.force_login(viewer)

        response = self.client.post("/api/videos/upload", data={"video": webm()})

        self.assertEqual(response.status_code, 403)

    @patch("apps.videos.services.media.compose_overlay")
    def test_dual_upload_composes(self, mock_compose, mock_save, mock_duration, mock_thumb):
        mock_compose.side_effect = fake_compose

        response = self.client.post("/api/videos/upload-dual", data={
            "video": webm("screen.webm"),
            "webcam": webm("cam.webm"),
            "layout": "bottom-left",
        })

        self.assertEqual(response.status_code, 201)
        recording = VideoRecording.objects.get(id=response.json()["recording"]["id"])
        self.assertEqual(recording.recording_type, RecordingType.BOTH)
        self.assertEqual(recording.metadata["composition"]["layout"], "bottom-left")
        self.assertTrue(recording.metadata["s3_key"].startswith("composed/"))
        self.assertTrue(recording.metadata["s3_key"].endswith(".webm"))
        # only the composed file is stored
        self.assertEqual(mock_save.call_count, 1)

    @patch("apps.videos.services.media.compose_overlay", side_effect=CompositionError("boom"))
    def test_dual_upload_falls_back_to_screen(self, mock_compose, mock_save, mock_duration, mock_thumb):
        response = self.client.post("/api/videos/upload-dual", data={
            "video": webm("screen.webm"),
            "webcam": webm("cam.webm"),
        })

        self.assertEqual(response.status_code, 201)
        recording = VideoRecording.objects.get(id=response.json()["recording"]["id"])
        self.assertEqual(recording.recording_type, RecordingType.SCREEN)
        self.assertEqual(recording.title, "Screen Recording")


class RecordingLibraryTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = make_user(uuid4())
        self.client.force_login(self.user)

    def test_list_is_scoped_and_paginated(self):
        for i in range(3):
            make_recording(self.user, title=f"Video {i}")
        make_recording(make_user(uuid4()), title="Someone else")

        response = self.client.get("/api/videos/recordings?limit=2")

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(len(data["recordings"]), 2)
        self.assertEqual(data["pagination"], {"page": 1, "limit": 2, "total": 3, "has_more": True})

    def test_update_recording(self):
        recording = make_recording(self.user)

        response = self.client.put(
            f"/api/videos/recordings/{recording.id}",
            data=json.dumps({"title": "Renamed", "is_public": True}),
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 200)
        recording.refresh_from_db()
        self.assertEqual(recording.title, "Renamed")
        self.assertTrue(recording.is_public)

    def test_other_users_recording_is_not_found(self):
        recording = make_recording(make_user(uuid4()))

        response = self.client.get(f"/api/videos/recordings/{recording.id}")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Video recording not found")

    @patch("apps.videos.services.media_storage.delete")
    def test_delete_removes_stored_objects(self, mock_delete):
        recording = make_recording(self.user, metadata={'s3_key': 'videos/a.webm', 'thumbnail_s3_key': 'videos/a-thumb.jpg'})

        response = self.client.delete(f"/api/videos/recordings/{recording.id}")

        self.assertEqual(response.status_code, 200)
        self.assertFalse(VideoRecording.objects.filter(id=recording.id).exists())
        mock_delete.assert_any_call('videos/a.webm')
        mock_delete.assert_any_call('videos/a-thumb.jpg')

    def test_signed_url_requires_storage_key(self):
        recording = make_recording(self.user, metadata={})

        response = self.client.get(f"/api/videos/recordings/{recording.id}/signed-url")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Video file not found in storage")


class SharingTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.owner = make_user(uuid4())

    def test_public_video_records_a_view(self):
        recording = make_recording(self.owner, is_public=True, title="Pitch")

        response = self.client.get(
            f"/api/videos/v/{recording.shareable_id}?email=prospect@example.com",
            HTTP_USER_AGENT="Mozilla/5.0",
        )

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["recording"]["title"], "Pitch")
        view = VideoView.objects.get(id=data["view_id"])
        self.assertEqual(view.viewer_email, "prospect@example.com")
        self.assertEqual(view.user_agent, "Mozilla/5.0")
        self.assertEqual(len(data["viewer_id"]), 16)

    def test_private_video_is_hidden(self):
        recording = make_recording(self.owner, is_public=False)

        response = self.client.get(f"/api/videos/v/{recording.shareable_id}")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(VideoView.objects.count(), 0)

    def test_track_progress_clamps_completion(self):
        view = VideoView.objects.create(video=make_recording(self.owner, is_public=True))

        response = self.client.post(
            "/api/videos/track-progress",
            data=json.dumps({"view_id": view.id, "watch_duration": 30, "completion_percentage": 100}),
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 200)
        view.refresh_from_db()
        self.assertEqual(view.watch_duration, 30)
        self.assertEqual(view.completion_percentage, 100)

    def test_track_progress_requires_view_id(self):
        response = self.client.post("/api/videos/track-progress", data=json.dumps({}), content_type="application/json")

        self.assertEqual(response.status_code, 400)

    def test_track_progress_unknown_view(self):
        response = self.client.post(
            "/api/videos/track-progress",
            data=json.dumps({"view_id": 999999, "watch_duration": 5}),
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 404)


class AnalyticsTest(TestCase):
    def setUp(self):
        self.client = Client()
        self.user = make_user(uuid4())
        self.client.force_login(self.user)
        self.recording = make_recording(self.user, is_public=True, duration=120)
        for email, completion in [("a@x.com", 95), ("a@x.com", 45), ("b@x.com", 12), (None, 100)]:
            VideoView.objects.create(video=self.recording, viewer_email=email, completion_percentage=completion, watch_duration=60)

    def test_heatmap_buckets(self):
        self.assertEqual(services.engagement_heatmap(self.recording), [
            {'bucket': 10, 'viewer_count': 1},
            {'bucket': 40, 'viewer_count': 1},
            {'bucket': 90, 'viewer_count': 1},
            {'bucket': 100, 'viewer_count': 1},
        ])

    def test_top_viewers_ignores_anonymous(self):
        viewers = services.top_viewers(self.recording)

        self.assertEqual([v['viewer_email'] for v in viewers], ["a@x.com", "b@x.com"])
        self.assertEqual(viewers[0]['view_count'], 2)

    def test_analytics_endpoint(self):
        response = self.client.get(f"/api/videos/recordings/{self.recording.id}/analytics")

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["analytics"]["total_views"], 4)
        self.assertEqual(data["analytics"]["unique_emails"], 2)
        self.assertEqual(data["analytics"]["avg_completion"], 63.0)
        self.assertEqual(len(data["recent_views"]), 4)
        self.assertEqual(len(data["engagement_heatmap"]), 4)

    def test_stats_for_foreign_recording(self):
        other = make_recording(make_user(uuid4()))

        response = self.client.get(f"/api/videos/recordings/{other.id}/stats")

        self.assertEqual(response.status_code, 404)


@patch.dict(os.environ, {"PATH": "/nonexistent"})
class WithoutFfmpegTest(TestCase):
    """ffmpeg/ffprobe binaries missing from PATH."""

    def setUp(self):
        self.client = Client()
        self.user = make_user(uuid4())
        self.client.force_login(self.user)

    def test_duration_falls_back_to_zero(self):
        self.assertEqual(media.probe_duration("/tmp/missing.webm"), 0)

    def test_thumbnail_is_skipped(self):
        self.assertIsNone(media.make_thumbnail("/tmp/missing.webm", "/tmp/missing-thumb.jpg"))

    def test_composition_error(self):
        with self.assertRaises(CompositionError):
            media.compose_overlay("/tmp/screen.webm", "/tmp/cam.webm", "/tmp/out.webm")

    @patch("apps.videos.services.media_storage.save_file", side_effect=stored_key)
    def test_upload_still_stores_video(self, mock_save):
        response = self.client.post("/api/videos/upload", data={"video": webm()})

        self.assertEqual(response.status_code, 201)
        recording = VideoRecording.objects.get(id=response.json()["recording"]["id"])
        self.assertEqual(recording.duration, 0)
        self.assertIsNone(recording.thumbnail_url)
        self.assertNotIn("thumbnail_s3_key", recording.metadata)
        self.assertTrue(recording.metadata["s3_key"].startswith("videos/"))
        mock_save.assert_called_once()

    @patch("apps.videos.services.media_storage.save_file", side_effect=stored_key)
    def test_dual_upload_keeps_screen_recording(self, mock_save):
        response = self.client.post("/api/videos/upload-dual", data={
            "video": webm("screen.webm"),
            "webcam": webm("cam.webm"),
        })

        self.assertEqual(response.status_code, 201)
        recording = VideoRecording.objects.get(id=response.json()["recording"]["id"])
        self.assertEqual(recording.recording_type, RecordingType.SCREEN)
        self.assertTrue(recording.metadata["s3_key"].startswith("videos/"))
