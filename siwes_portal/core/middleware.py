"""
HTTP middleware - request correlation and access logging.
"""

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from siwes_portal.core.logging_config import (
    generate_request_id,
    set_request_id,
    set_user_id,
)

logger = logging.getLogger(__name__)

SKIP_LOGGING_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id (X-Request-ID, generated when absent),
    logs method, path, status and duration, and echoes the id back.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        path = request.url.path
        skip_logging = path.startswith(SKIP_LOGGING_PATHS)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000
            response.headers["X-Request-ID"] = request_id

            if not skip_logging:
                status_code = response.status_code
                if status_code >= 500:
                    log_func = logger.error
                elif status_code >= 400:
                    log_func = logger.warning
                else:
                    log_func = logger.info
                log_func(
                    f"{request.method} {path} - {status_code} ({duration_ms:.2f}ms)",
                    extra={
                        "event_type": "http_request",
                        "http_method": request.method,
                        "http_path": path,
                        "http_status": status_code,
                        "duration_ms": duration_ms,
                    },
                )
            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"{request.method} {path} - Exception ({duration_ms:.2f}ms): {type(exc).__name__}",
                exc_info=True,
            )
            raise

        finally:
            set_request_id("")
            set_user_id("")
