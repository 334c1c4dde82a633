"""
FastAPI YouTube download gateway
Looks up video metadata and relays a chosen stream to the caller as a download
"""

import time
import logging
from pathlib import Path
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request, Response
from fastapi.responses import FileResponse, JSONResponse, StreamingResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.background import BackgroundTask
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match
import yt_dlp

from .config import settings
from .models import (
    DownloadRequest,
    ErrorCode,
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
    MediaKind,
)
from .fetcher import fetcher
from .mapper import build_info_payload
from .ratelimit import RateLimitMiddleware, rate_limiter
from .selector import build_filename, parse_itag, select_format
from .streamer import streamer
from .validator import validate_video_url

# Logging configuration
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# App metadata
VERSION = "1.0.0"
start_time = time.time()

STATIC_DIR = Path(settings.static_dir)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for startup/shutdown logging"""
    logger.info("🚀 Starting YouTube download gateway...")
    logger.info(f"Version: {VERSION} ({settings.environment})")
    logger.info(f"yt-dlp version: {yt_dlp.version.__version__}")
    logger.info(
        f"🚦 Rate limit: {rate_limiter.limit} requests / {rate_limiter.window_seconds}s per client"
    )
    logger.info(f"⏱️ Info timeout: {fetcher.timeout_seconds}s")
    logger.info(f"🍪 YouTube cookies: {'configured' if fetcher.cookies_file else 'not configured'}")
    logger.info(f"🌐 Proxy: {'configured' if settings.proxy else 'not set'}")
    if not STATIC_DIR.is_dir():
        logger.warning(f"⚠️ Static directory {STATIC_DIR} not found, frontend disabled")

    yield

    logger.info("Shutting down YouTube download gateway...")


# Create FastAPI app
app = FastAPI(
    title="YouTube Download Gateway",
    description="Video metadata lookup and stream download proxy backed by yt-dlp",
    version=VERSION,
    lifespan=lifespan,
)

# Rate limiting on /api/*, CORS outermost so 429s still carry CORS headers
app.add_middleware(RateLimitMiddleware, limiter=rate_limiter, message=settings.rate_limit_message)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(request: Request, error: ErrorDetail, exc: Optional[BaseException] = None) -> JSONResponse:
    """Log an error and render it with the shared error body"""
    logger.error(
        f"❌ {request.method} {request.url} -> {error.status_code} {error.code.value}: {error.message}"
        + (f" | details={error.details}" if error.details else ""),
        exc_info=exc,
    )
    body = ErrorResponse.from_detail(error, include_details=not settings.is_production)
    return JSONResponse(
        status_code=error.status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


# ============================================================================
# API ENDPOINTS
# ============================================================================


@app.get("/api/info")
async def get_video_info(request: Request, url: Optional[str] = Query(None)) -> Response:
    """
    Get video metadata and the list of available formats

    **Flow:**
    1. Extract and validate the video id from `url`
    2. Fetch metadata with yt-dlp (10 second limit)
    3. Reject private videos and live streams
    """
    logger.info(f"ℹ️ Info request: {url}")

    reference, error = validate_video_url(url)
    if error:
        return error_response(request, error)

    metadata, error = await fetcher.fetch_metadata(reference)
    if error:
        return error_response(request, error)

    logger.info(f"✅ Info extracted: {metadata.title} ({metadata.duration}s, {len(metadata.formats)} formats)")

    return JSONResponse(content=build_info_payload(metadata))


@app.get("/api/download")
async def download_video(
    request: Request,
    url: Optional[str] = Query(None),
    itag: Optional[str] = Query(None),
    media_type: Optional[str] = Query(None, alias="type"),
) -> Response:
    """
    Stream one format of a video back as an attachment

    **Flow:**
    1. Validate `url` and `itag`
    2. Fetch metadata and resolve the format (`type=audio` prefers itag 140)
    3. Open the upstream stream; only then send headers and relay bytes
    """
    logger.info(f"📥 Download request: {url} (itag={itag}, type={media_type})")

    if not url or not url.strip() or not itag or not itag.strip():
        return error_response(request, ErrorDetail(
            code=ErrorCode.MISSING_PARAMS,
            message="URL and itag parameters are required",
            suggestion="Call /api/download?url=<video url>&itag=<format itag>&type=video|audio",
        ))

    reference, error = validate_video_url(url)
    if error:
        return error_response(request, error)

    tag = parse_itag(itag)
    if tag is None:
        return error_response(request, ErrorDetail(
            code=ErrorCode.FORMAT_UNAVAILABLE,
            message="Requested format not available",
            suggestion="itag must be one of the integers listed by /api/info",
            details={"itag": itag},
        ))

    download = DownloadRequest(reference=reference, itag=tag, kind=MediaKind.parse(media_type))

    metadata, error = await fetcher.fetch_metadata(download.reference)
    if error:
        if error.code in (ErrorCode.SERVER_ERROR, ErrorCode.TIMEOUT):
            error = ErrorDetail(
                code=ErrorCode.DOWNLOAD_FAILED,
                message="Download failed",
                suggestion=error.suggestion,
                details={"cause": error.code.value, **(error.details or {})},
            )
        return error_response(request, error)

    fmt, error = select_format(metadata, download.itag, download.kind)
    if error:
        return error_response(request, error)

    filename = build_filename(metadata.title, fmt, download.kind)
    stream, error = await streamer.open(fmt, label=f"{reference.video_id} itag {fmt.itag} -> {filename}")
    if error:
        return error_response(request, error)

    return StreamingResponse(
        stream.iter_bytes(),
        media_type=fmt.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        background=BackgroundTask(stream.aclose),
    )


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Service status and versions"""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        uptime_seconds=time.time() - start_time,
        yt_dlp_version=yt_dlp.version.__version__,
    )


@app.api_route(
    "/api/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"],
    include_in_schema=False,
)
async def api_not_found(request: Request, path: str):
    # A known endpoint hit with the wrong method is a 405, not a 404
    for route in app.routes:
        if not getattr(route, "path", "").startswith("/api/"):
            continue
        match, _ = route.matches(request.scope)
        if match is Match.PARTIAL:
            raise StarletteHTTPException(
                status_code=405,
                detail=f"Method {request.method} not allowed for /api/{path}",
                headers={"Allow": ", ".join(sorted(route.methods))},
            )

    return error_response(request, ErrorDetail(
        code=ErrorCode.NOT_FOUND,
        message=f"API endpoint /api/{path} not found",
        suggestion="Available endpoints: /api/info, /api/download, /api/health",
    ))


# ============================================================================
# FRONTEND
# ============================================================================


@app.get("/{path:path}", include_in_schema=False)
async def frontend(request: Request, path: str) -> Response:
    """Static assets, falling back to index.html for client-side routes"""
    root = STATIC_DIR.resolve()
    if path:
        candidate = (root / path).resolve()
        if candidate.is_relative_to(root) and candidate.is_file():
            return FileResponse(candidate)

    index = root / "index.html"
    if index.is_file():
        return FileResponse(index)

    return error_response(request, ErrorDetail(code=ErrorCode.NOT_FOUND, message="Not found"))


# ============================================================================
# ERROR HANDLERS
# ============================================================================


_HTTP_ERROR_CODES = {
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
}


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Framework-raised HTTP errors (405 etc.) in the shared error shape"""
    code = _HTTP_ERROR_CODES.get(exc.status_code, ErrorCode.SERVER_ERROR)
    logger.warning(f"⚠️ {request.method} {request.url} -> {exc.status_code}: {exc.detail}")
    body = ErrorResponse(code=code, message=str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    """Anything uncaught becomes a SERVER_ERROR"""
    return error_response(
        request,
        ErrorDetail(
            code=ErrorCode.SERVER_ERROR,
            message="Internal server error. Please try again later.",
            details={"error": str(exc)},
        ),
        exc=exc,
    )


def run() -> None:
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
