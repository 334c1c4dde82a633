"""
Shared fixtures and fakes for the gateway tests.

Nothing here touches the network: the yt-dlp extraction and the upstream
stream are replaced by in-memory fakes on the module-level singletons that
ytgateway.main routes through.
"""

from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from ytgateway import main
from ytgateway.models import ErrorDetail, FormatDescriptor, VideoMetadata
from ytgateway.ratelimit import rate_limiter

# ─── Constants ───────────────────────────────────────────────────────────────

TEST_VIDEO_ID = "dQw4w9WgXcQ"
TEST_VIDEO_URL = f"https://www.youtube.com/watch?v={TEST_VIDEO_ID}"
TEST_TITLE = "Rick Astley - Never Gonna Give You Up (Official Video) [4K]"


# ─── Builders ────────────────────────────────────────────────────────────────

def make_format(
    itag: int,
    mime_type: str = "video/mp4",
    has_video: bool = True,
    has_audio: bool = True,
    container: Optional[str] = "mp4",
    quality: Optional[str] = "360p",
) -> FormatDescriptor:
    return FormatDescriptor(
        itag=itag,
        quality=quality,
        mime_type=mime_type,
        container=container,
        has_video=has_video,
        has_audio=has_audio,
        bitrate=500_000,
        content_length=1_048_576,
        url=f"https://rr1---sn-example.googlevideo.com/videoplayback?itag={itag}",
        http_headers={"User-Agent": "Mozilla/5.0"},
    )


def make_info(**overrides) -> dict:
    """A trimmed yt-dlp info dict"""
    info = {
        "id": TEST_VIDEO_ID,
        "title": TEST_TITLE,
        "duration": 212.0,
        "view_count": 1_600_000_000,
        "uploader": "Rick Astley",
        "availability": "public",
        "is_live": False,
        "live_status": "not_live",
        "thumbnails": [
            {"url": "https://i.ytimg.com/vi/dQw4w9WgXcQ/default.jpg"},
            {"url": "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg"},
            {"url": "https://i.ytimg.com/vi/dQw4w9WgXcQ/maxresdefault.jpg"},
        ],
        "formats": [
            {
                "format_id": "sb0", "ext": "mhtml", "protocol": "mhtml",
                "vcodec": "none", "acodec": "none",
                "url": "https://i.ytimg.com/sb/dQw4w9WgXcQ/storyboard3_L0/default.jpg",
            },
            {
                "format_id": "18", "ext": "mp4", "protocol": "https",
                "vcodec": "avc1.42001E", "acodec": "mp4a.40.2", "format_note": "360p",
                "tbr": 503.4, "filesize": 13_400_000,
                "url": "https://rr1---sn-example.googlevideo.com/videoplayback?itag=18",
                "http_headers": {"User-Agent": "Mozilla/5.0"},
            },
            {
                "format_id": "140", "ext": "m4a", "protocol": "https",
                "vcodec": "none", "acodec": "mp4a.40.2", "format_note": "medium",
                "tbr": 129.5, "filesize": 3_433_514,
                "url": "https://rr1---sn-example.googlevideo.com/videoplayback?itag=140",
            },
            {
                "format_id": "251", "ext": "webm", "protocol": "https",
                "vcodec": "none", "acodec": "opus", "format_note": "medium",
                "tbr": 135.0, "filesize_approx": 3_500_000,
                "url": "https://rr1---sn-example.googlevideo.com/videoplayback?itag=251",
            },
            {
                "format_id": "137", "ext": "mp4", "protocol": "https",
                "vcodec": "avc1.640028", "acodec": "none", "format_note": "1080p",
                "tbr": 4400.0,
                "url": "https://rr1---sn-example.googlevideo.com/videoplayback?itag=137",
            },
            {
                "format_id": "96", "ext": "mp4", "protocol": "m3u8_native",
                "vcodec": "avc1.640028", "acodec": "mp4a.40.2",
                "url": "https://manifest.googlevideo.com/api/manifest/hls_playlist/itag/96",
            },
        ],
    }
    info.update(overrides)
    return info


# ─── Fakes ───────────────────────────────────────────────────────────────────

class FakeFetcher:
    def __init__(self, metadata: Optional[VideoMetadata] = None, error: Optional[ErrorDetail] = None):
        self.metadata = metadata
        self.error = error
        self.timeout_seconds = 10
        self.cookies_file = None
        self.calls = []

    async def fetch_metadata(self, reference):
        self.calls.append(reference)
        if self.error:
            return None, self.error
        return self.metadata, None


class FakeStream:
    def __init__(self, chunks: List[bytes]):
        self.chunks = chunks
        self.closed = False

    async def iter_bytes(self):
        try:
            for chunk in self.chunks:
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self):
        self.closed = True


class FakeStreamer:
    def __init__(self, chunks: Optional[List[bytes]] = None, error: Optional[ErrorDetail] = None):
        self.chunks = chunks if chunks is not None else [b"chunk-1", b"chunk-2"]
        self.error = error
        self.opened: List[FormatDescriptor] = []
        self.streams: List[FakeStream] = []

    async def open(self, fmt, label=""):
        self.opened.append(fmt)
        if self.error:
            return None, self.error
        stream = FakeStream(self.chunks)
        self.streams.append(stream)
        return stream, None


# ─── Fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Every test starts with empty client counters"""
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def metadata() -> VideoMetadata:
    return VideoMetadata(
        video_id=TEST_VIDEO_ID,
        title=TEST_TITLE,
        thumbnails=[
            "https://i.ytimg.com/vi/dQw4w9WgXcQ/default.jpg",
            "https://i.ytimg.com/vi/dQw4w9WgXcQ/maxresdefault.jpg",
        ],
        duration=212,
        view_count=1_600_000_000,
        author="Rick Astley",
        formats=[
            make_format(18),
            make_format(137, has_audio=False, quality="1080p"),
            make_format(251, mime_type="audio/webm", has_video=False, container="webm", quality="medium"),
            make_format(140, mime_type="audio/mp4", has_video=False, quality="medium"),
        ],
    )


@pytest.fixture
def fake_fetcher(monkeypatch, metadata) -> FakeFetcher:
    fetcher = FakeFetcher(metadata=metadata)
    monkeypatch.setattr(main, "fetcher", fetcher)
    return fetcher


@pytest.fixture
def fake_streamer(monkeypatch) -> FakeStreamer:
    streamer = FakeStreamer()
    monkeypatch.setattr(main, "streamer", streamer)
    return streamer


@pytest.fixture
def client() -> TestClient:
    return TestClient(main.app)
