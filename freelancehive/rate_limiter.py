"""
Rate Limiting Middleware
Fixed-window request limit per client IP on the /api/ surface
"""

import time
import threading
from typing import Dict, Optional, Tuple
import logging

from fastapi import status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RateLimiter:
    """Simple in-memory rate limiter"""

    def __init__(self, max_requests: int, window_seconds: float):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows: Dict[str, Tuple[float, int]] = {}  # key -> (window_start, count)
        self._lock = threading.Lock()
        self._last_sweep = 0.0

    def hit(self, key: str, now: Optional[float] = None) -> Tuple[bool, int]:
        """
        Count a request for `key`.

        Returns:
            Tuple of (is_limited, seconds_until_reset)
        """
        now = time.time() if now is None else now
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            window_start, count = self._windows.get(key, (now, 0))
            if now - window_start >= self.window_seconds:
                window_start, count = now, 0
            count += 1
            self._windows[key] = (window_start, count)
        reset = max(1, int(window_start + self.window_seconds - now))
        return count > self.max_requests, reset

    def _sweep(self, now: float):
        # Caller holds the lock
        expired = [key for key, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now

    @property
    def tracked_keys(self) -> int:
        return len(self._windows)

    def reset(self):
        with self._lock:
            self._windows.clear()


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, max_requests: int, window_ms: int, path_prefix: str = "/api/"):
        super().__init__(app)
        self.path_prefix = path_prefix
        self.limiter = RateLimiter(max_requests, window_ms / 1000.0) if max_requests > 0 else None

    async def dispatch(self, request, call_next):
        if self.limiter is None or not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_limited, reset = self.limiter.hit(client_ip)
        if is_limited:
            logger.warning("Rate limit exceeded for %s on %s", client_ip, request.url.path)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Too many requests from this IP, please try again later."},
                headers={"Retry-After": str(reset)},
            )
        return await call_next(request)
