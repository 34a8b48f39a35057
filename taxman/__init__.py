"""TaxMan - municipality tax rate service.

TaxMan stores tax rate declarations for municipalities over time and answers
"what is the effective tax rate for municipality M on date D?".

Architecture Overview:
- **API Layer**: FastAPI routes, middleware and exception handlers
- **Core Layer**: Configuration, logging, tracing and the exception hierarchy
- **Domain Layer**: Tax records, input validation and the rate resolver
- **Infrastructure Layer**: PostgreSQL persistence with range-typed periods

Declarations may overlap in time with different granularities (daily,
weekly, monthly, yearly). Overlaps are kept as written and resolved at query
time: the most specific period wins, then the highest rate.
"""
