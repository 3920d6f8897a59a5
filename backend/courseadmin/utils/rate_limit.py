"""In-memory rate limiting for the credential endpoints (login, device recovery)."""

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from typing import Callable, Optional

from fastapi import HTTPException, Request

from ..config import settings


class SlidingWindowLimiter:
    """Count hits per key inside a trailing time window.

    State lives in process memory; a multi-worker deployment gets one
    window per worker. Keys with no hit left in their window are swept at
    most once per window, so idle clients do not accumulate.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._hits = defaultdict(deque)
        self._lock = threading.Lock()
        self._clock = clock
        self._last_sweep = clock()

    def hit(self, key: str, max_requests: int, window_seconds: int) -> int:
        """Record one attempt for `key`.

        Returns 0 when allowed, otherwise the number of seconds until the
        oldest attempt leaves the window (the attempt is not recorded).
        """
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= window_seconds:
                self._sweep(now - window_seconds)
                self._last_sweep = now
            q = self._hits[key]
            while q and q[0] <= now - window_seconds:
                q.popleft()
            if len(q) >= max_requests:
                return max(1, int(window_seconds - (now - q[0])))
            q.append(now)
        return 0

    def _sweep(self, cutoff: float) -> None:
        stale = [k for k, q in self._hits.items() if not q or q[-1] <= cutoff]
        for k in stale:
            del self._hits[k]

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)


limiter = SlidingWindowLimiter()


def client_ip(request: Request) -> str:
    """Peer address, or the first X-Forwarded-For hop when proxy headers are trusted."""
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def throttle(scope: str, window_seconds: int = 60) -> Callable[[Request], None]:
    """Build a dependency limiting `scope` to LOGIN_RATE_LIMIT_PER_MIN hits per client."""

    def _dependency(request: Request) -> None:
        retry_after = limiter.hit(f"{scope}:{client_ip(request)}", settings.LOGIN_RATE_LIMIT_PER_MIN, window_seconds)
        if retry_after:
            raise HTTPException(
                status_code=429,
                detail=f"Too many attempts; retry after {retry_after}s",
                headers={"Retry-After": str(retry_after)},
            )

    return _dependency
