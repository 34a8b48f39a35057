"""API-related constants."""

# HTTP Status Codes
HTTP_500_INTERNAL_SERVER_ERROR = 500

# HTTP Headers
CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

MAX_USER_AGENT_LENGTH = 200

# Routes
TAX_PREFIX = "/tax"

# Shown to clients in place of unexpected error details
INTERNAL_ERROR_MESSAGE = "internal server error"
INVALID_JSON_MESSAGE = "invalid json input"
