"""
Stream variant selection and download filename derivation
"""

import re
from typing import Optional, Tuple, Union

from .models import ErrorCode, ErrorDetail, FormatDescriptor, MediaKind, VideoMetadata

# AAC 128 kbps in an MP4 container, present on nearly every YouTube video
CANONICAL_AUDIO_ITAG = 140

DEFAULT_CONTAINER = "mp4"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_\s]")
_WHITESPACE = re.compile(r"\s+")


def parse_itag(value: Union[str, int, None]) -> Optional[int]:
    if isinstance(value, int):
        return value
    if value is None:
        return None
    value = value.strip()
    return int(value) if value.isascii() and value.isdecimal() else None


def find_format(metadata: VideoMetadata, itag: int) -> Optional[FormatDescriptor]:
    for fmt in metadata.formats:
        if fmt.itag == itag:
            return fmt
    return None


def select_format(
    metadata: VideoMetadata,
    itag: Union[str, int, None],
    kind: MediaKind,
) -> Tuple[Optional[FormatDescriptor], Optional[ErrorDetail]]:
    """
    Resolve the requested itag to a FormatDescriptor.

    Audio requests prefer the canonical audio itag when the video offers it,
    falling back to the format that was asked for.
    """
    tag = parse_itag(itag)
    matched = find_format(metadata, tag) if tag is not None else None
    if matched is None:
        return None, ErrorDetail(
            code=ErrorCode.FORMAT_UNAVAILABLE,
            message="Requested format not available",
            suggestion="Pick an itag from the formats listed by /api/info",
            details={"itag": itag, "available": [f.itag for f in metadata.formats]},
        )

    if kind is MediaKind.AUDIO:
        return find_format(metadata, CANONICAL_AUDIO_ITAG) or matched, None

    return matched, None


def build_filename(title: str, fmt: FormatDescriptor, kind: MediaKind) -> str:
    """Title stripped to letters, digits and whitespace plus an extension"""
    base = _UNSAFE_FILENAME_CHARS.sub("", title or "")
    base = _WHITESPACE.sub(" ", base).strip() or "download"
    if kind is MediaKind.AUDIO:
        return f"{base}.mp3"
    return f"{base}.{fmt.container or DEFAULT_CONTAINER}"
