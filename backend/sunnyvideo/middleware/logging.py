"""
Sunny Video Backend: Request Logging Middleware
=================================================

What:  One access log line per HTTP request with status and duration.
Who:   Applied to every request except /health.

Line format:
    POST /api/messages 201 184.2ms [1a2b3c4d] user=<uuid> from 10.0.0.7

Level follows the status: 5xx ERROR, 4xx WARNING, otherwise INFO.
Bodies, uploaded videos and Authorization headers are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from sunnyvideo.middleware.request_id import request_id_var

logger = logging.getLogger("sunnyvideo.access")

QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = getattr(request.state, "request_id", "") or request_id_var.get("")
        # Set by get_current_user on authenticated routes
        user_id = getattr(request.state, "user_id", "-")
        client_ip = request.client.host if request.client else "unknown"

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            user_id,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
                "user_id": user_id,
            },
        )
        return response
