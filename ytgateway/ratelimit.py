"""
Per-client request limiter for the /api surface.

Fixed window per client address: the first request opens a window, every
request inside it counts, and the counter starts over once the window has
elapsed. Counters live in process memory; with a single event loop no
locking is needed.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from .config import settings
from .models import ErrorCode, ErrorResponse

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    started_at: float
    count: int = 0


class RateLimiter:
    """Counts hits per key inside a fixed window"""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._last_sweep = clock()

    def hit(self, key: str) -> Tuple[bool, float]:
        """
        Record one request for key.

        Returns (allowed, seconds_until_reset).
        """
        now = self._clock()
        self._sweep(now)

        window = self._windows.get(key)
        if window is None or now - window.started_at >= self.window_seconds:
            window = _Window(started_at=now)
            self._windows[key] = window

        window.count += 1
        remaining = max(0.0, window.started_at + self.window_seconds - now)
        return window.count <= self.limit, remaining

    def _sweep(self, now: float) -> None:
        """Drop expired windows, at most once per window length"""
        if now - self._last_sweep < self.window_seconds:
            return
        expired = [k for k, w in self._windows.items() if now - w.started_at >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now

    def reset(self) -> None:
        self._windows.clear()
        self._last_sweep = self._clock()

    def __len__(self) -> int:
        return len(self._windows)


class RateLimitMiddleware:
    """ASGI middleware applying a RateLimiter to requests under path_prefix"""

    def __init__(
        self,
        app: ASGIApp,
        limiter: Optional[RateLimiter] = None,
        message: Optional[str] = None,
        path_prefix: str = "/api/",
    ):
        self.app = app
        self.limiter = limiter if limiter is not None else rate_limiter
        self.message = message or settings.rate_limit_message
        self.path_prefix = path_prefix

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope.get("path", "").startswith(self.path_prefix):
            await self.app(scope, receive, send)
            return

        client = scope.get("client")
        key = client[0] if client else "unknown"
        allowed, remaining = self.limiter.hit(key)
        if allowed:
            await self.app(scope, receive, send)
            return

        logger.warning(f"🚦 Rate limit exceeded for {key} on {scope.get('path')}")
        body = ErrorResponse(code=ErrorCode.TOO_MANY_REQUESTS, message=self.message)
        response = JSONResponse(
            status_code=429,
            content=body.model_dump(mode="json", exclude_none=True),
            headers={"Retry-After": str(math.ceil(remaining))},
        )
        await response(scope, receive, send)


# Shared limiter for the application
rate_limiter = RateLimiter(
    limit=settings.rate_limit_max,
    window_seconds=settings.rate_limit_window_seconds,
)
