"""Request context middleware for correlation IDs.

The correlation ID is taken from the ``X-Correlation-ID`` request header or
generated, stored in a context variable for code without access to the
request, bound to every log line of the request, and echoed back in the
response header.
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from taxman.api.constants import CORRELATION_ID_HEADER
from taxman.core.context import RequestContext, generate_correlation_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Set up the correlation ID for each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process the request with its correlation ID in context.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: Response with correlation ID header.
        """
        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        )
        RequestContext.set_correlation_id(correlation_id)

        with logger.contextualize(correlation_id=correlation_id):
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
