"""Domain layer: tax records, input rules and rate resolution.

- **models**: Tax records, queries, period types and lookup results
- **validation**: Field rules applied to raw request input
- **resolver**: Picks the single effective rate among overlapping records

Nothing in this package talks to the database or to HTTP directly; the
resolver depends on the ``TaxRecordStore`` protocol only.
"""

from taxman.domain.models import PeriodType, TaxQuery, TaxRateResult, TaxRecord
from taxman.domain.resolver import TaxRateResolver, TaxRecordStore, select_best_record

__all__ = [
    "PeriodType",
    "TaxQuery",
    "TaxRateResolver",
    "TaxRateResult",
    "TaxRecord",
    "TaxRecordStore",
    "select_best_record",
]
