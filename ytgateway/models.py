"""
Pydantic models for request/response schemas
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorCode(str, Enum):
    """Error code classifications"""
    MISSING_URL = "MISSING_URL"
    MISSING_PARAMS = "MISSING_PARAMS"
    INVALID_URL = "INVALID_URL"
    INVALID_VIDEO = "INVALID_VIDEO"
    PRIVATE_VIDEO = "PRIVATE_VIDEO"
    LIVE_STREAM = "LIVE_STREAM"
    VIDEO_UNAVAILABLE = "VIDEO_UNAVAILABLE"
    RATE_LIMITED = "RATE_LIMITED"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"
    FORMAT_UNAVAILABLE = "FORMAT_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    STREAM_ERROR = "STREAM_ERROR"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
    SERVER_ERROR = "SERVER_ERROR"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"


STATUS_CODES: Dict[ErrorCode, int] = {
    ErrorCode.MISSING_URL: 400,
    ErrorCode.MISSING_PARAMS: 400,
    ErrorCode.INVALID_URL: 400,
    ErrorCode.INVALID_VIDEO: 400,
    ErrorCode.PRIVATE_VIDEO: 403,
    ErrorCode.LIVE_STREAM: 400,
    ErrorCode.VIDEO_UNAVAILABLE: 404,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.TOO_MANY_REQUESTS: 429,
    ErrorCode.FORMAT_UNAVAILABLE: 400,
    ErrorCode.TIMEOUT: 500,
    ErrorCode.STREAM_ERROR: 500,
    ErrorCode.DOWNLOAD_FAILED: 500,
    ErrorCode.SERVER_ERROR: 500,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.METHOD_NOT_ALLOWED: 405,
}


class MediaKind(str, Enum):
    AUDIO = "audio"
    VIDEO = "video"

    @classmethod
    def parse(cls, value: Optional[str]) -> "MediaKind":
        """Anything other than 'audio' is a video request"""
        if value and value.strip().lower() == cls.AUDIO.value:
            return cls.AUDIO
        return cls.VIDEO


class VideoReference(BaseModel):
    """A validated video id and the canonical watch URL built from it"""
    model_config = ConfigDict(frozen=True)

    video_id: str = Field(..., min_length=11, max_length=11)
    canonical_url: str


class FormatDescriptor(BaseModel):
    """One stream variant reported by yt-dlp"""
    itag: int
    quality: Optional[str] = None
    mime_type: str
    codecs: Optional[str] = None
    container: Optional[str] = None
    has_video: bool = False
    has_audio: bool = False
    bitrate: Optional[int] = None
    content_length: Optional[int] = None
    url: str
    http_headers: Dict[str, str] = Field(default_factory=dict)


class VideoMetadata(BaseModel):
    """Video metadata as extracted, before shaping for clients"""
    video_id: str
    title: str
    thumbnails: List[str] = Field(default_factory=list)
    duration: int = 0
    view_count: int = 0
    author: Optional[str] = None
    is_private: bool = False
    is_live: bool = False
    formats: List[FormatDescriptor] = Field(default_factory=list)


class DownloadRequest(BaseModel):
    """Validated parameters for /api/download"""
    reference: VideoReference
    itag: int
    kind: MediaKind = MediaKind.VIDEO


class ErrorDetail(BaseModel):
    """Error details"""
    code: ErrorCode
    message: str
    suggestion: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    @property
    def status_code(self) -> int:
        return STATUS_CODES.get(self.code, 500)


class ErrorResponse(BaseModel):
    """Error body returned for every failed request"""
    status: str = "error"
    code: ErrorCode
    message: str
    suggestion: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def from_detail(cls, error: ErrorDetail, include_details: bool = True) -> "ErrorResponse":
        return cls(
            code=error.code,
            message=error.message,
            suggestion=error.suggestion,
            details=error.details if include_details else None,
        )


# ============================================================================
# CLIENT PAYLOADS (camelCase on the wire)
# ============================================================================


class FormatPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    itag: int
    quality: Optional[str] = None
    type: str
    container: Optional[str] = None
    has_video: bool
    has_audio: bool
    bitrate: Optional[int] = None
    content_length: Optional[int] = None
    url: str


class InfoPayload(BaseModel):
    """Response schema for /api/info"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    video_id: str
    title: str
    thumbnail: Optional[str] = None
    duration: int
    views: int
    author: str
    formats: List[FormatPayload]


class HealthResponse(BaseModel):
    """Response schema for /api/health"""
    status: str
    version: str
    uptime_seconds: float
    yt_dlp_version: str
