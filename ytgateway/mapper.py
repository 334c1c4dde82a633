"""
Shapes VideoMetadata into the /api/info JSON contract.

The payload field set is fixed here and does not follow whatever yt-dlp
happens to return. Fallbacks: thumbnail is the last (highest resolution)
entry of the thumbnail list, author is "Unknown" when yt-dlp has none.
"""

from typing import Any, Dict

from .models import FormatDescriptor, FormatPayload, InfoPayload, VideoMetadata

UNKNOWN_AUTHOR = "Unknown"


def _format_payload(fmt: FormatDescriptor) -> FormatPayload:
    return FormatPayload(
        itag=fmt.itag,
        quality=fmt.quality,
        type=fmt.mime_type.split(";")[0].strip(),
        container=fmt.container,
        has_video=fmt.has_video,
        has_audio=fmt.has_audio,
        bitrate=fmt.bitrate,
        content_length=fmt.content_length,
        url=fmt.url,
    )


def build_info_payload(metadata: VideoMetadata) -> Dict[str, Any]:
    payload = InfoPayload(
        video_id=metadata.video_id,
        title=metadata.title,
        thumbnail=metadata.thumbnails[-1] if metadata.thumbnails else None,
        duration=metadata.duration,
        views=metadata.view_count,
        author=metadata.author or UNKNOWN_AUTHOR,
        formats=[_format_payload(fmt) for fmt in metadata.formats],
    )
    return payload.model_dump(mode="json", by_alias=True)
