"""
NoteFlow Backend — Authentication Rate Limiting Middleware
============================================================

What:  Per-IP sliding window limit on credential endpoints
       (POST /api/auth/login and POST /api/auth/signup).
Why:   Slows down password guessing and mass account creation without
       throttling ordinary browsing.

Algorithm: Sliding Window Log
    1. Each IP keeps a list of request timestamps
    2. On each guarded request, drop timestamps older than the window
    3. If the remaining count reached the limit, answer 429 with Retry-After
    4. Otherwise record the timestamp and continue

State is in-process memory: correct for a single uvicorn worker only.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, FrozenSet, List, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from noteflow.config import settings
from noteflow.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

GUARDED_ROUTES: FrozenSet[Tuple[str, str]] = frozenset(
    {
        ("POST", "/api/auth/login"),
        ("POST", "/api/auth/signup"),
    }
)

# Sweep idle IPs after this many recorded hits
CLEANUP_EVERY = 1000


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Configuration (from settings, read per request so tests can patch it):
        auth_rate_limit_requests: max guarded requests per window per IP
        auth_rate_limit_window:   window length in seconds
    """

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._hits_since_cleanup = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if (request.method, request.url.path.rstrip("/")) not in GUARDED_ROUTES:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        retry_after = self._check(client_ip, time.time())
        if retry_after is not None:
            exc = RateLimitExceededError(retry_after=retry_after, context={"client_ip": client_ip})
            logger.warning(
                "Auth rate limit exceeded for %s on %s (retry in %ds)",
                client_ip,
                request.url.path,
                retry_after,
            )
            return JSONResponse(
                status_code=exc.status_code,
                content={"success": False, "message": exc.message},
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)

    def _check(self, client_ip: str, now: float) -> Optional[int]:
        """Records a hit; returns seconds to wait if the IP is over its limit."""
        window = settings.auth_rate_limit_window
        window_start = now - window

        recent = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = recent

        if len(recent) >= settings.auth_rate_limit_requests:
            return int(recent[0] + window - now) + 1

        recent.append(now)
        self._hits_since_cleanup += 1
        if self._hits_since_cleanup >= CLEANUP_EVERY:
            self._cleanup_inactive_ips(window_start)
        return None

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]
        self._hits_since_cleanup = 0
        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
