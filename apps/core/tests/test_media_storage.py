import os
import tempfile
from unittest.mock import patch

from django.core.files import File
from django.core.files.base import ContentFile
from django.test import SimpleTestCase, override_settings

from apps.core import media_storage
from apps.core.media_storage import StorageError


@override_settings(USE_S3_STORAGE=True, AWS_STORAGE_BUCKET_NAME="rr-bucket", AWS_S3_REGION_NAME="us-west-2", AWS_S3_CUSTOM_DOMAIN=None)
class S3UrlTest(SimpleTestCase):
    def test_url_is_unsigned_and_fits_column(self):
        url = media_storage.url_for("videos/a b.webm")

        self.assertEqual(url, "https://rr-bucket.s3.us-west-2.amazonaws.com/videos/a%20b.webm")
        self.assertNotIn("?", url)
        self.assertLess(len(url), 500)

    @override_settings(AWS_S3_CUSTOM_DOMAIN="cdn.example.com")
    def test_custom_domain(self):
        self.assertEqual(media_storage.url_for("whispers/1/x.wav"), "https://cdn.example.com/whispers/1/x.wav")

    @override_settings(AWS_S3_REGION_NAME=None)
    def test_default_region(self):
        self.assertEqual(
            media_storage.url_for("composed/1.webm"),
            "https://rr-bucket.s3.us-east-1.amazonaws.com/composed/1.webm",
        )

    @patch("apps.core.media_storage.default_storage")
    def test_signed_url_is_built_on_read(self, mock_storage):
        mock_storage.url.return_value = "https://rr-bucket.s3.amazonaws.com/videos/a.webm?X-Amz-Signature=abc"

        url = media_storage.signed_url("videos/a.webm", expires_in=60)

        mock_storage.url.assert_called_once_with("videos/a.webm", expire=60)
        self.assertIn("X-Amz-Signature", url)


@override_settings(USE_S3_STORAGE=False, MEDIA_URL="/media/")
class LocalUrlTest(SimpleTestCase):
    def test_local_url(self):
        self.assertEqual(media_storage.url_for("videos/a.webm"), "/media/videos/a.webm")
        self.assertEqual(media_storage.signed_url("videos/a.webm"), "/media/videos/a.webm")


class SaveFileTest(SimpleTestCase):
    def setUp(self):
        fd, self.path = tempfile.mkstemp(suffix=".webm")
        with os.fdopen(fd, "wb") as fh:
            fh.write(b"\x1aE\xdf\xa3" + b"\x00" * 2048)

    def tearDown(self):
        os.remove(self.path)

    @patch("apps.core.media_storage.default_storage")
    def test_streams_file_handle(self, mock_storage):
        seen = {}

        def save(key, content):
            seen["content"] = content
            seen["closed"] = content.file.closed
            return "videos/stored.webm"

        mock_storage.save.side_effect = save

        key = media_storage.save_file("videos/a.webm", self.path, "video/webm")

        self.assertEqual(key, "videos/stored.webm")
        content = seen["content"]
        self.assertIsInstance(content, File)
        self.assertNotIsInstance(content, ContentFile)
        self.assertFalse(seen["closed"])
        self.assertEqual(content.content_type, "video/webm")
        self.assertEqual(content.name, "videos/a.webm")
        self.assertTrue(content.file.closed)

    @patch("apps.core.media_storage.default_storage")
    def test_backend_failure_raises_storage_error(self, mock_storage):
        mock_storage.save.side_effect = RuntimeError("bucket gone")

        with self.assertRaises(StorageError):
            media_storage.save_file("videos/a.webm", self.path)

    def test_missing_local_file(self):
        with self.assertRaises(FileNotFoundError):
            media_storage.save_file("videos/a.webm", self.path + ".gone")
