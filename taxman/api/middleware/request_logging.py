"""HTTP request/response logging with performance monitoring.

Each request gets a request ID (from ``X-Request-ID`` or generated), which
is bound to its log lines, stored on ``request.state`` for the error
handlers, and echoed in the response. Start and completion are logged with
timing, and requests slower than the configured threshold are flagged.
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from taxman.api.constants import MAX_USER_AGENT_LENGTH, REQUEST_ID_HEADER
from taxman.core.config import LogConfig
from taxman.core.constants import MILLISECONDS_PER_SECOND
from taxman.core.context import generate_request_id


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses.

    Args:
        app: The ASGI application.
        log_config: Logging configuration.
    """

    def __init__(self, app: ASGIApp, *, log_config: LogConfig) -> None:
        super().__init__(app)
        self.log_config = log_config
        self.excluded_paths = set(log_config.excluded_paths)

    @staticmethod
    def _get_user_agent(request: Request) -> str:
        ua = request.headers.get("user-agent", "")
        return ua[:MAX_USER_AGENT_LENGTH] if ua else "unknown"

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process the request and log details.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: The response from the application.

        Raises:
            Exception: Any exception raised by the application is re-raised
                after logging.
        """
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        request.state.request_id = request_id

        if request.url.path in self.excluded_paths:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        with logger.contextualize(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else "unknown",
            user_agent=self._get_user_agent(request),
        ):
            logger.info("Request started")
            start_time = time.perf_counter()

            try:
                response = await call_next(request)
            except Exception as exc:
                duration_ms = (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND
                logger.error(
                    "Request failed",
                    duration_ms=round(duration_ms, 2),
                    error_type=type(exc).__name__,
                )
                raise

            duration_ms = (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND
            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )
            response.headers[REQUEST_ID_HEADER] = request_id

            if duration_ms > self.log_config.slow_request_threshold_ms:
                logger.warning(
                    "Slow request detected",
                    duration_ms=round(duration_ms, 2),
                    threshold_ms=self.log_config.slow_request_threshold_ms,
                )

            return response
