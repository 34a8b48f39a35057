"""Middleware and exception handlers applied to every request.

- **RequestContextMiddleware**: Correlation ID in context, logs and headers
- **RequestLoggingMiddleware**: Request ID, timing and slow request warnings
- **error_handler**: Maps exceptions to status codes and error bodies

Middleware run in reverse order of registration: the context middleware
is registered last so the correlation ID is set before anything logs.
"""
