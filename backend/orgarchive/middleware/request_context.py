"""Per-request plumbing: request id, timing headers, access log, rate limit.

The limiter itself is the pure function ``check_rate_limit`` operating on a
plain dict, so tests can drive it with a fake clock.
"""

import logging
import threading
import time
import uuid
from typing import Dict, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..core.config import settings
from ..core.logging_config import request_id_var
from ..exceptions import ErrorCode

logger = logging.getLogger(__name__)

# client key -> (tokens left, time of last update)
Buckets = Dict[str, Tuple[float, float]]

_rate_buckets: Buckets = {}
_rate_lock = threading.Lock()

# Buckets idle for longer than this are dropped on the next sweep.
_IDLE_SECONDS = 120.0
_SWEEP_INTERVAL = 60.0
_last_sweep = 0.0

_UNLIMITED_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})


def _sweep(bucket: Buckets, now: float) -> None:
    global _last_sweep
    if now - _last_sweep < _SWEEP_INTERVAL:
        return
    _last_sweep = now
    for key in [k for k, (_, seen) in bucket.items() if now - seen > _IDLE_SECONDS]:
        del bucket[key]


def check_rate_limit(
    bucket: Buckets,
    key: str,
    max_per_minute: int,
    now: Optional[float] = None,
) -> Tuple[bool, float]:
    """Take one token for *key* from a bucket refilled at ``max_per_minute``.

    Returns ``(allowed, retry_after_seconds)``. A limit of 0 or less never
    blocks.
    """
    if max_per_minute <= 0:
        return True, 0.0
    now = time.monotonic() if now is None else now
    _sweep(bucket, now)

    per_second = max_per_minute / 60.0
    tokens, seen = bucket.get(key, (float(max_per_minute), now))
    tokens = min(float(max_per_minute), tokens + (now - seen) * per_second)

    if tokens < 1.0:
        bucket[key] = (tokens, now)
        return False, (1.0 - tokens) / per_second
    bucket[key] = (tokens - 1.0, now)
    return True, 0.0


def _client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",", 1)[0].strip()
    return request.client.host if request.client else "unknown"


def _too_many_requests(rid: str, retry_after: float) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error": ErrorCode.RATE_LIMITED.value,
            "message": "Too many requests",
            "details": {"retry_after": round(retry_after, 1)},
        },
        headers={"Retry-After": str(int(retry_after) + 1), "X-Request-ID": rid},
    )


class RequestContextMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request_id_var.set(rid)
        path = request.url.path

        if path not in _UNLIMITED_PATHS:
            client = _client_key(request)
            with _rate_lock:
                allowed, retry_after = check_rate_limit(
                    _rate_buckets, client, settings.rate_limit_per_minute,
                )
            if not allowed:
                logger.warning("Rate limited %s on %s", client, path, extra={"client": client})
                return _too_many_requests(rid, retry_after)

        started = time.monotonic()
        response = await call_next(request)
        elapsed_ms = round((time.monotonic() - started) * 1000, 1)

        response.headers["X-Request-ID"] = rid
        response.headers["X-Response-Time"] = f"{elapsed_ms}ms"
        logger.info(
            "%s %s %d", request.method, path, response.status_code,
            extra={"status_code": response.status_code, "duration_ms": elapsed_ms},
        )
        return response
