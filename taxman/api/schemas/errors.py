"""Error response schema shared by every exception handler.

``error`` carries the client-facing message; the remaining fields let a
client quote the request when reporting a problem.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: str = Field(
        ...,
        description="Human-readable error message",
        examples=["invalid date format", "tax rate not found"],
    )

    error_code: str = Field(
        ...,
        description="Machine-readable error code",
        examples=["VALIDATION_ERROR", "NOT_FOUND", "STORE_ERROR"],
    )

    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional details for client errors",
        examples=[{"allowed": ["daily", "weekly", "monthly", "yearly"]}],
    )

    correlation_id: str | None = Field(
        default=None,
        description="Request correlation ID for tracing and debugging",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    )

    request_id: str | None = Field(
        default=None,
        description="Identifier of this single request",
        examples=["req-660e8400-e29b-41d4-a716-446655440000"],
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp when the error occurred (with timezone)",
        examples=["2024-06-14T12:00:00+00:00"],
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": "municipality name exceeds maximum length",
                    "error_code": "VALIDATION_ERROR",
                    "details": {"max_length": 100},
                    "correlation_id": "550e8400-e29b-41d4-a716-446655440000",
                    "request_id": "req-660e8400-e29b-41d4-a716-446655440000",
                    "timestamp": "2024-06-14T12:00:00+00:00",
                },
                {
                    "error": "tax rate not found",
                    "error_code": "NOT_FOUND",
                    "correlation_id": "550e8400-e29b-41d4-a716-446655440001",
                    "request_id": "req-660e8400-e29b-41d4-a716-446655440001",
                    "timestamp": "2024-06-14T12:00:01+00:00",
                },
            ]
        }
    }
