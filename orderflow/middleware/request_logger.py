# orderflow/middleware/request_logger.py
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("orderflow.requests")

MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()

        # Call actual endpoint
        response = await call_next(request)

        # Only log requests that modify data
        if request.method in MUTATING_METHODS:
            user = getattr(request.state, "user_label", None) or "anonymous"
            elapsed_ms = (time.perf_counter() - started) * 1000
            level = logging.WARNING if response.status_code >= 400 else logging.INFO
            logger.log(
                level, "%s %s %s -> %s (%.1f ms)",
                user, request.method, request.url.path, response.status_code, elapsed_ms,
            )

        return response
