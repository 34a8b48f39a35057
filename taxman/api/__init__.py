"""HTTP API layer on FastAPI.

- **main**: Application factory, lifespan and operational endpoints
- **routes**: The tax record and tax rate endpoints
- **dependencies**: Access to the store and resolver opened at start-up
- **middleware**: Request context, request logging and error handling
- **schemas**: Request, response and error bodies
- **utils**: orjson-backed default response class

This layer only translates between HTTP and the domain. Validation rules
and rate selection live in ``taxman.domain``.
"""
