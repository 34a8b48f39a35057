"""Pydantic models for the HTTP boundary.

- **errors**: The error body returned by every exception handler
- **tax**: Request and response bodies of the tax endpoints
"""
