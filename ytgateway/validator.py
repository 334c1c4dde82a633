"""
YouTube URL validation and video id extraction.

Pure functions: no network access. The final check defers to yt-dlp's own
URL predicate for the YouTube extractor so that anything we accept here is
something the collaborator will also accept.
"""

import re
from typing import Optional, Tuple

from yt_dlp.extractor.youtube import YoutubeIE

from .models import ErrorCode, ErrorDetail, VideoReference

VIDEO_ID_PATTERN = r"[A-Za-z0-9_-]{11}"

# Scheme and host, which compare case-insensitively; the id never sits here
_SCHEME_HOST = re.compile(r"^(?:[A-Za-z][A-Za-z0-9+.-]*://)?[^/?#]*")

# Tried in order; the first match wins
URL_PATTERNS: Tuple[re.Pattern, ...] = (
    # Standard watch URL, v= anywhere in the query string
    re.compile(
        r"^(?:https?://)?(?:www\.|m\.|music\.)?youtube\.com/watch\?(?:[^#]*&)?v=(?P<id>" + VIDEO_ID_PATTERN + r")(?![A-Za-z0-9_-])"
    ),
    # Shortened domain
    re.compile(r"^(?:https?://)?youtu\.be/(?P<id>" + VIDEO_ID_PATTERN + r")(?![A-Za-z0-9_-])"),
    # Embed path
    re.compile(
        r"^(?:https?://)?(?:www\.|m\.)?youtube(?:-nocookie)?\.com/embed/(?P<id>" + VIDEO_ID_PATTERN + r")(?![A-Za-z0-9_-])"
    ),
    # Shorts path
    re.compile(
        r"^(?:https?://)?(?:www\.|m\.)?youtube\.com/shorts/(?P<id>" + VIDEO_ID_PATTERN + r")(?![A-Za-z0-9_-])"
    ),
    # Live and legacy /v/ paths
    re.compile(
        r"^(?:https?://)?(?:www\.|m\.)?youtube\.com/(?:live|v)/(?P<id>" + VIDEO_ID_PATTERN + r")(?![A-Za-z0-9_-])"
    ),
)


def canonical_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def extract_video_id(raw_url: Optional[str]) -> Optional[VideoReference]:
    """Return the reference for the first pattern that matches, or None."""
    if not raw_url:
        return None
    text = _SCHEME_HOST.sub(lambda m: m.group(0).lower(), raw_url.strip(), count=1)
    for pattern in URL_PATTERNS:
        match = pattern.search(text)
        if match:
            video_id = match.group("id")
            return VideoReference(video_id=video_id, canonical_url=canonical_url(video_id))
    return None


def validate_video_url(raw_url: Optional[str]) -> Tuple[Optional[VideoReference], Optional[ErrorDetail]]:
    """
    Validate user input and build a VideoReference.

    Returns (reference, None) on success, (None, error) otherwise.
    """
    if raw_url is None or not raw_url.strip():
        return None, ErrorDetail(
            code=ErrorCode.MISSING_URL,
            message="URL parameter is required",
            suggestion="Pass the video link as ?url=https://www.youtube.com/watch?v=...",
        )

    reference = extract_video_id(raw_url)
    if reference is None:
        return None, ErrorDetail(
            code=ErrorCode.INVALID_URL,
            message="Invalid YouTube URL",
            suggestion="Supported formats: watch?v=, youtu.be/, /embed/, /shorts/",
        )

    if not YoutubeIE.suitable(reference.canonical_url):
        return None, ErrorDetail(
            code=ErrorCode.INVALID_VIDEO,
            message="Video id was not accepted by the extractor",
            details={"video_id": reference.video_id},
        )

    return reference, None
