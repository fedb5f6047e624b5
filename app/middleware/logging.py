import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


logger = logging.getLogger("app.middleware")

# Polled by load balancers and by clients waiting on a reply
QUIET_PATH_SUFFIXES = ("/health", "/stream")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per HTTP request. WebSocket traffic is not seen here."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = (time.perf_counter() - start_time) * 1000

        path = request.url.path
        level = logging.DEBUG if path.endswith(QUIET_PATH_SUFFIXES) else logging.INFO
        logger.log(
            level,
            f"{request.method} {path} - {process_time:.2f}ms - {response.status_code}",
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(process_time, 2),
            },
        )
        return response
