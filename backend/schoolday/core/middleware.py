from __future__ import annotations

import logging
import time
import uuid

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from schoolday.core.config import Settings

logger = logging.getLogger("schoolday.http")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags every response with a request id and baseline security headers."""

    def __init__(self, app, *, settings: Settings) -> None:
        super().__init__(app)
        self._settings = settings

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "HTTP | request_id=%s | %s %s | status=%s | duration_ms=%.1f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if self._settings.security_enable_hsts:
            max_age = max(1, self._settings.security_hsts_max_age_seconds)
            response.headers.setdefault("Strict-Transport-Security", f"max-age={max_age}; includeSubDomains")
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects oversized bodies before they are read.

    Spreadsheet uploads get their own, larger allowance.
    """

    def __init__(self, app, *, max_bytes: int, upload_max_bytes: int, upload_path_prefix: str) -> None:
        super().__init__(app)
        self._max_bytes = max(1, max_bytes)
        self._upload_max_bytes = max(1, upload_max_bytes)
        self._upload_path_prefix = upload_path_prefix

    def _limit_for(self, request: Request) -> int:
        if request.method == "POST" and request.url.path.startswith(self._upload_path_prefix):
            return self._upload_max_bytes
        return self._max_bytes

    async def dispatch(self, request: Request, call_next) -> Response:
        raw_length = request.headers.get("content-length")
        if not raw_length or not raw_length.isdigit():
            return await call_next(request)

        size = int(raw_length)
        limit = self._limit_for(request)
        if size > limit:
            logger.warning("HTTP BODY REJECTED | path=%s | size=%s | limit=%s", request.url.path, size, limit)
            return JSONResponse(
                status_code=413,
                content={
                    "message": f"Request body too large ({size} bytes). Maximum allowed is {limit} bytes.",
                    "details": {"code": "RequestTooLarge", "size": size, "limit": limit},
                },
            )
        return await call_next(request)
