"""
Memeflix Backend — Access Log Middleware
=========================================

What:  One log line per request: method, path, status, duration, request
       ID and client IP.
How:   Level follows the status class so 5xx can be alerted on:
           5xx → ERROR    4xx → WARNING    otherwise → INFO
       Media requests succeed constantly while a page renders, so
       successful /media/ hits are logged at DEBUG.

What we DON'T log: request bodies (passwords) and the Authorization header.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from memeflix.middleware.request_id import request_id_var

logger = logging.getLogger("memeflix.access")

QUIET_PATHS = {"/health"}
QUIET_PREFIXES = ("/media/",)


def _level_for(path: str, status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    if path.startswith(QUIET_PREFIXES):
        return logging.DEBUG
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        rid = request_id_var.get("")
        logger.log(
            _level_for(path, status),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
