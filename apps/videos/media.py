"""
ffmpeg helpers for uploaded recordings: duration probing, thumbnails and
picture-in-picture composition of a webcam stream over a screen capture.
"""
import logging

import ffmpeg

logger = logging.getLogger(__name__)

THUMBNAIL_AT_SECONDS = 1
THUMBNAIL_SIZE = '320x240'

# layout -> (webcam scale, overlay x, overlay y)
OVERLAY_LAYOUTS = {
    'top-right': (0.25, 'W-w-20', '20'),
    'top-left': (0.25, '20', '20'),
    'bottom-right': (0.25, 'W-w-20', 'H-h-20'),
    'bottom-left': (0.25, '20', 'H-h-20'),
    'center': (0.3, '(W-w)/2', '(H-h)/2'),
}
DEFAULT_LAYOUT = 'top-right'

COMPOSED_VIDEO_BITRATE = '8M'


class CompositionError(Exception):
    pass


def probe_duration(path: str) -> int:
    """Whole seconds, or 0 when ffprobe cannot read the file."""
    try:
        info = ffmpeg.probe(path)
        return int(round(float(info['format']['duration'])))
    except (ffmpeg.Error, OSError) as e:
        logger.warning(f"ffprobe failed for {path}: {e}")
    except (KeyError, TypeError, ValueError):
        logger.warning(f"ffprobe returned no duration for {path}")
    return 0


def make_thumbnail(video_path: str, output_path: str):
    """Grab one frame at 1 s. Returns the output path, or None if ffmpeg failed."""
    try:
        (
            ffmpeg
            .input(video_path, ss=THUMBNAIL_AT_SECONDS)
            .output(output_path, vframes=1, s=THUMBNAIL_SIZE)
            .overwrite_output()
            .run(quiet=True)
        )
    except (ffmpeg.Error, OSError) as e:
        logger.warning(f"Thumbnail generation failed for {video_path}: {e}")
        return None
    return output_path


def compose_overlay(screen_path: str, webcam_path: str, output_path: str, layout: str = DEFAULT_LAYOUT) -> str:
    """
    Overlay the webcam on the screen capture and encode VP9 WebM.

    Audio is copied from the screen capture when it has any.

    Raises:
        CompositionError: ffmpeg failed.
    """
    scale, x, y = OVERLAY_LAYOUTS.get(layout, OVERLAY_LAYOUTS[DEFAULT_LAYOUT])
    screen = ffmpeg.input(screen_path)
    webcam = ffmpeg.input(webcam_path)
    pip = webcam.video.filter('scale', f'iw*{scale}', f'ih*{scale}')
    video = ffmpeg.overlay(screen.video, pip, x=x, y=y)

    try:
        (
            ffmpeg
            .output(
                video,
                screen['a?'],
                output_path,
                vcodec='libvpx-vp9',
                acodec='copy',
                crf=23,
                deadline='good',
                **{'b:v': COMPOSED_VIDEO_BITRATE, 'cpu-used': 2},
            )
            .overwrite_output()
            .run(quiet=True)
        )
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors='ignore') if e.stderr else str(e)
        logger.error(f"Video composition failed ({layout}): {stderr[-500:]}")
        raise CompositionError("Failed to compose screen and webcam recordings")
    except OSError as e:
        logger.error(f"ffmpeg unavailable for composition: {e}")
        raise CompositionError("Failed to compose screen and webcam recordings")
    return output_path
