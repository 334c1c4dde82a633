"""
Relays a selected stream from YouTube's CDN to the client.

The upstream request is opened and the first chunk read before any response
is started, so failures up to that point can still be reported as JSON. Once
bytes are flowing, a failure can only terminate the connection.
"""

import logging
from typing import AsyncIterator, Optional, Tuple

import anyio
import httpx

from .config import settings
from .models import ErrorCode, ErrorDetail, FormatDescriptor

logger = logging.getLogger(__name__)

CHUNK_SIZE = 256 * 1024

# Connect/read limits for a single upstream stream; the transfer itself is unbounded
UPSTREAM_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


class UpstreamStream:
    """An open upstream response whose first chunk has already arrived"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
        first_chunk: bytes,
        chunks: AsyncIterator[bytes],
        label: str = "",
    ):
        self._client = client
        self._response = response
        self._first_chunk = first_chunk
        self._chunks = chunks
        self.label = label
        self.bytes_sent = 0
        self.closed = False

    @property
    def content_length(self) -> Optional[int]:
        value = self._response.headers.get("content-length")
        return int(value) if value and value.isdigit() else None

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        try:
            if self._first_chunk:
                self.bytes_sent += len(self._first_chunk)
                yield self._first_chunk
            async for chunk in self._chunks:
                self.bytes_sent += len(chunk)
                yield chunk
            logger.info(f"✅ Stream complete: {self.label} ({self.bytes_sent / 1024 / 1024:.2f} MB)")
        except Exception as e:
            logger.error(
                f"💥 Upstream stream failed after {self.bytes_sent} bytes ({self.label}): {e}",
                exc_info=True,
            )
            raise
        finally:
            # Runs on completion, failure and client disconnect (cancellation)
            with anyio.CancelScope(shield=True):
                await self.aclose()

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()
        logger.debug(f"Upstream closed: {self.label}")


class DownloadStreamer:
    """Opens upstream byte streams for FormatDescriptors"""

    def __init__(
        self,
        proxy: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        chunk_size: int = CHUNK_SIZE,
    ):
        self.proxy = proxy if proxy is not None else settings.proxy
        self.transport = transport
        self.chunk_size = chunk_size

    def _client(self) -> httpx.AsyncClient:
        if self.transport is not None:
            return httpx.AsyncClient(transport=self.transport, timeout=UPSTREAM_TIMEOUT, follow_redirects=True)
        return httpx.AsyncClient(proxy=self.proxy, timeout=UPSTREAM_TIMEOUT, follow_redirects=True)

    async def open(
        self, fmt: FormatDescriptor, label: str = ""
    ) -> Tuple[Optional[UpstreamStream], Optional[ErrorDetail]]:
        """
        Start the upstream transfer for fmt.

        Returns (stream, None) once the first chunk has been received, or
        (None, STREAM_ERROR) if the upstream could not be opened.
        """
        label = label or f"itag {fmt.itag}"
        client = self._client()
        response: Optional[httpx.Response] = None
        try:
            request = client.build_request("GET", fmt.url, headers=fmt.http_headers)
            response = await client.send(request, stream=True)
            response.raise_for_status()
            chunks = response.aiter_bytes(self.chunk_size)
            first_chunk = await anext(chunks, b"")
        except Exception as e:
            if isinstance(e, httpx.HTTPError):
                logger.error(f"❌ Failed to open upstream stream ({label}): {e}")
            else:
                logger.exception(f"💥 Unexpected error opening upstream stream ({label}): {e}")
            if response is not None:
                await response.aclose()
            await client.aclose()
            return None, ErrorDetail(
                code=ErrorCode.STREAM_ERROR,
                message="Failed to start the download stream",
                suggestion="Fetch /api/info again and retry; stream links expire after a few hours",
                details={"error": str(e), "itag": fmt.itag},
            )

        logger.info(f"📤 Streaming {label} ({fmt.mime_type})")
        return UpstreamStream(client, response, first_chunk, chunks, label=label), None


# Module-level singleton
streamer = DownloadStreamer()
