"""
Whisper audio uploads: validation and phone-grade transcoding.
"""
import logging
import os
import uuid

import ffmpeg

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = (
    'audio/mpeg', 'audio/mp3', 'audio/wav', 'audio/x-wav', 'audio/ogg',
    'audio/webm', 'audio/mp4', 'audio/aac', 'audio/x-m4a',
)
ALLOWED_EXTENSIONS = ('.mp3', '.wav', '.ogg', '.webm', '.m4a', '.aac')
MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB

PHONE_SAMPLE_RATE = 8000
PHONE_FORMAT_LABEL = '8kHz mono WAV (mu-law)'


class TranscodingError(Exception):
    pass


def validate_audio(filename: str, content_type: str, size: int) -> None:
    """
    Raises:
        ValueError: not an audio file, or larger than 5 MB.
    """
    extension = os.path.splitext(filename or '')[1].lower()
    if content_type not in ALLOWED_MIME_TYPES and extension not in ALLOWED_EXTENSIONS:
        raise ValueError(
            f"Invalid file type: {content_type}. Only audio files (MP3, WAV, OGG, etc.) are allowed."
        )
    if size > MAX_FILE_SIZE:
        raise ValueError(f"File too large. Maximum size is {MAX_FILE_SIZE // (1024 * 1024)} MB")


def transcode_to_phone_wav(data: bytes) -> bytes:
    """8 kHz mono mu-law WAV, the format Twilio plays without resampling."""
    try:
        out, _ = (
            ffmpeg
            .input('pipe:0')
            .output('pipe:1', format='wav', acodec='pcm_mulaw', ac=1, ar=PHONE_SAMPLE_RATE)
            .run(input=data, capture_stdout=True, capture_stderr=True, quiet=True)
        )
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors='ignore') if e.stderr else str(e)
        logger.error(f"Whisper transcoding failed: {stderr[-500:]}")
        raise TranscodingError("Failed to transcode audio")
    except OSError as e:
        logger.error(f"ffmpeg unavailable for whisper transcoding: {e}")
        raise TranscodingError("Failed to transcode audio")
    logger.info(f"Transcoded whisper audio: {len(data)} -> {len(out)} bytes")
    return out


def whisper_key(phone_number_id: int) -> str:
    return f"whispers/{phone_number_id}/{uuid.uuid4().hex}.wav"
