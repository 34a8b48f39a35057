"""Tax rate resolution.

Given every record whose interval contains the query date, the most
specific period type wins. Among records of that type the highest rate
wins. When nothing applies, the configured default rate is returned, or
``NotFoundError`` is raised if there is none.
"""

from collections.abc import Iterable
from typing import Protocol

from loguru import logger

from taxman.core.config import TaxConfig
from taxman.core.exceptions import NotFoundError
from taxman.domain.models import TaxQuery, TaxRateResult, TaxRecord


class TaxRecordStore(Protocol):
    """Persistence boundary for tax records."""

    async def upsert(self, record: TaxRecord) -> None:
        """Insert the record, or replace the rate of the one with its identity."""
        ...

    async def candidates(self, query: TaxQuery) -> list[TaxRecord]:
        """Return every record for the municipality whose interval covers the date."""
        ...


def select_best_record(records: Iterable[TaxRecord]) -> TaxRecord | None:
    """Pick the applicable record from a set of candidates.

    Args:
        records: Records that all cover the query date.

    Returns:
        TaxRecord | None: The lowest priority value wins, then the highest
            rate; on a full tie the first record seen wins. None if empty.
    """
    best: TaxRecord | None = None
    for record in records:
        if best is None:
            best = record
            continue
        priority = record.period_type.priority
        best_priority = best.period_type.priority
        if priority < best_priority or (
            priority == best_priority and record.tax_rate > best.tax_rate
        ):
            best = record
    return best


class TaxRateResolver:
    """Answers rate queries against a ``TaxRecordStore``.

    Args:
        store: Where the candidate records come from.
        config: Rate lookup configuration, including the default rate.
    """

    def __init__(self, store: TaxRecordStore, config: TaxConfig) -> None:
        self._store = store
        self._config = config

    async def lookup(self, query: TaxQuery) -> TaxRateResult:
        """Resolve the rate that applies to ``query``.

        Raises:
            NotFoundError: If no record applies and no default is configured.
            StoreError: If the store fails; never replaced by the default.
        """
        records = await self._store.candidates(query)
        best = select_best_record(records)

        if best is not None:
            logger.debug(
                "Resolved tax rate from {} record",
                best.period_type.value,
                municipality=query.municipality,
                candidates=len(records),
            )
            return TaxRateResult(tax_rate=best.tax_rate)

        if self._config.default_tax_rate is not None:
            logger.debug(
                "No record applies, using default rate",
                municipality=query.municipality,
            )
            return TaxRateResult(
                tax_rate=self._config.default_tax_rate, is_default_rate=True
            )

        raise NotFoundError(
            context={
                "municipality": query.municipality,
                "date": query.date.isoformat(),
            }
        )
