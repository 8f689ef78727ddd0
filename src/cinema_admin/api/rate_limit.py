from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from threading import Lock

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from cinema_admin.core.settings import env_float, env_int

_LOG = logging.getLogger("cinema_admin.rate_limit")

_WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."
_SWEEP_INTERVAL_S = 30.0


@dataclass
class _Window:
    hits: deque[float]
    window_s: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_s: int


class SlidingWindowRateLimiter:
    """Small in-process sliding-window limiter keyed by client + bucket."""

    def __init__(self, *, clock=time.monotonic) -> None:
        self._clock = clock
        self._lock = Lock()
        self._windows: dict[str, _Window] = {}
        self._last_sweep = float("-inf")

    def hit(self, *, key: str, limit: int, window_s: float) -> RateLimitDecision:
        now = self._clock()
        cutoff = now - window_s
        with self._lock:
            self._evict_idle(now)
            w = self._windows.setdefault(key, _Window(hits=deque(), window_s=window_s))
            w.window_s = window_s

            while w.hits and w.hits[0] <= cutoff:
                w.hits.popleft()

            if len(w.hits) >= limit:
                if not w.hits:
                    # limit <= 0: nothing is ever recorded for this key.
                    del self._windows[key]
                    return RateLimitDecision(False, limit, 0, max(1, math.ceil(window_s)))
                retry_after = max(1, math.ceil(w.hits[0] + window_s - now))
                return RateLimitDecision(False, limit, 0, retry_after)

            w.hits.append(now)
            return RateLimitDecision(True, limit, max(0, limit - len(w.hits)), 0)

    def __len__(self) -> int:
        return len(self._windows)

    def _evict_idle(self, now: float) -> None:
        # Drop clients whose newest hit has left their window.
        if now - self._last_sweep < _SWEEP_INTERVAL_S:
            return
        self._last_sweep = now
        idle = [k for k, w in self._windows.items() if not w.hits or w.hits[-1] <= now - w.window_s]
        for k in idle:
            del self._windows[k]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Global limit for every request plus a tighter bucket for writes.

    Responses carry RateLimit-Limit / RateLimit-Remaining for the global bucket;
    rejected requests get 429 with the standard envelope and Retry-After.
    """

    def __init__(self, app, *, limiter: SlidingWindowRateLimiter | None = None) -> None:
        super().__init__(app)
        self._limiter = limiter or SlidingWindowRateLimiter()

        self._global_limit = env_int("RL_GLOBAL", 120)
        self._global_window_s = env_float("RL_GLOBAL_WINDOW_S", 60)
        self._write_limit = env_int("RL_WRITE", 30)
        self._write_window_s = env_float("RL_WRITE_WINDOW_S", 60)

    def _reject(self, decision: RateLimitDecision, key: str) -> Response:
        _LOG.warning("Rate limit exceeded for %s", key)
        return JSONResponse(
            status_code=429,
            content={"success": False, "message": RATE_LIMIT_MESSAGE},
            headers={
                "Retry-After": str(decision.retry_after_s),
                "RateLimit-Limit": str(decision.limit),
                "RateLimit-Remaining": "0",
            },
        )

    async def dispatch(self, request: Request, call_next) -> Response:
        client_ip = request.client.host if request.client else "unknown"

        global_key = f"{client_ip}:global"
        decision = self._limiter.hit(
            key=global_key, limit=self._global_limit, window_s=self._global_window_s
        )
        if not decision.allowed:
            return self._reject(decision, global_key)

        if request.method in _WRITE_METHODS:
            write_key = f"{client_ip}:write"
            write_decision = self._limiter.hit(
                key=write_key, limit=self._write_limit, window_s=self._write_window_s
            )
            if not write_decision.allowed:
                return self._reject(write_decision, write_key)

        response = await call_next(request)
        response.headers["RateLimit-Limit"] = str(decision.limit)
        response.headers["RateLimit-Remaining"] = str(decision.remaining)
        return response
