"""Core application constants."""

MILLISECONDS_PER_SECOND = 1000

REDACTED = "[REDACTED]"
