"""
Media object storage shared by the telephony and video apps.

Objects are addressed by key. With USE_S3_STORAGE the default storage is
S3Boto3Storage (see config/storage.py). Rows keep plain object URLs and
reads go through signed_url(); locally the files land under MEDIA_ROOT.
"""
import logging
from urllib.parse import quote

from django.conf import settings
from django.core.files import File
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage

logger = logging.getLogger(__name__)

SIGNED_URL_EXPIRY = 3600


class StorageError(Exception):
    """An object could not be written to or removed from storage."""


def _use_s3() -> bool:
    return getattr(settings, 'USE_S3_STORAGE', False)


def save_bytes(key: str, data: bytes, content_type: str = None) -> str:
    """
    Store `data` under `key` and return the key actually written.

    Raises:
        StorageError: the backend rejected the write.
    """
    content = ContentFile(data)
    if content_type:
        content.content_type = content_type
    try:
        return default_storage.save(key, content)
    except Exception as e:
        logger.error(f"Upload of {key} failed: {e}")
        raise StorageError(f"Failed to upload {key}: {e}")


def save_file(key: str, path: str, content_type: str = None) -> str:
    """Stream a local file into storage without loading it into memory."""
    with open(path, 'rb') as fh:
        content = File(fh, name=key)
        if content_type:
            content.content_type = content_type
        try:
            return default_storage.save(key, content)
        except Exception as e:
            logger.error(f"Upload of {key} failed: {e}")
            raise StorageError(f"Failed to upload {key}: {e}")


def delete(key: str) -> None:
    if not key:
        return
    try:
        default_storage.delete(key)
    except Exception as e:
        logger.error(f"Delete of {key} failed: {e}")
        raise StorageError(f"Failed to delete {key}: {e}")


def url_for(key: str) -> str:
    """
    Permanent, unsigned object URL suitable for storing on a row.

    Private objects are read through signed_url().
    """
    if _use_s3():
        domain = getattr(settings, 'AWS_S3_CUSTOM_DOMAIN', None)
        if not domain:
            bucket = settings.AWS_STORAGE_BUCKET_NAME
            region = getattr(settings, 'AWS_S3_REGION_NAME', None) or 'us-east-1'
            domain = f"{bucket}.s3.{region}.amazonaws.com"
        return f"https://{domain}/{quote(key)}"
    return f"{settings.MEDIA_URL}{key}"


def signed_url(key: str, expires_in: int = SIGNED_URL_EXPIRY) -> str:
    """Time-limited GET URL. Local storage has no signing, so the plain URL is returned."""
    if _use_s3():
        return default_storage.url(key, expire=expires_in)
    return url_for(key)
