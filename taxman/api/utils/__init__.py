"""API-specific helpers.

- **responses**: orjson-backed default response class
"""
