"""Infrastructure layer: persistence behind the domain's store protocol.

The domain layer defines ``TaxRecordStore``; this package provides the
PostgreSQL implementation and everything it needs (engine, schema,
statements). Nothing here builds HTTP responses.
"""
