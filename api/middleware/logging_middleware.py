"""
FastAPI middleware for request logging with dividers and timing.

This middleware:
- Adds unique request IDs to all requests
- Logs request start and end with clear dividers
- Tracks request timing
"""

import time
import uuid
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.logging_config import get_logger, get_request_logger

logger = get_logger(__name__)
request_logger = get_request_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging with dividers and timing"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        endpoint = f"{request.method} {request.url.path}"
        request_logger.log_request_start(endpoint, request_id)

        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            request_logger.log_request_end(
                endpoint, request_id, duration_ms, status=f"error: {e}"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        if response.status_code >= 400:
            status = f"error ({response.status_code})"
        else:
            status = f"success ({response.status_code})"
        request_logger.log_request_end(endpoint, request_id, duration_ms, status=status)

        # Request ID in response headers for debugging
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        return response


def add_logging_middleware(app):
    """Add logging middleware to FastAPI app"""
    app.add_middleware(LoggingMiddleware)
    logger.debug("🔧 Logging middleware added to FastAPI app")
