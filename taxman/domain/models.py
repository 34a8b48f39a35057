"""Tax record value types.

A ``TaxRecord`` states that a municipality has a rate over an inclusive date
interval under a period type. The period type is a priority tag supplied by
the caller; the length of the interval is never checked against it.
"""

import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class PeriodType(Enum):
    """Granularity tag of a tax record, ordered from most to least specific."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def priority(self) -> int:
        """Specificity rank; lower wins when several records apply."""
        return _PERIOD_PRIORITY[self]


_PERIOD_PRIORITY: dict[PeriodType, int] = {
    PeriodType.DAILY: 1,
    PeriodType.WEEKLY: 2,
    PeriodType.MONTHLY: 3,
    PeriodType.YEARLY: 4,
}


class TaxRecord(BaseModel):
    """A tax rate declared for a municipality over an inclusive interval.

    Identity is ``(municipality, start_date, end_date, period_type)``;
    writing a record with the same identity replaces ``tax_rate``.
    """

    model_config = ConfigDict(frozen=True)

    municipality: str
    tax_rate: float
    start_date: datetime.date
    end_date: datetime.date
    period_type: PeriodType

    def covers(self, day: datetime.date) -> bool:
        """Whether ``day`` falls inside the inclusive interval."""
        return self.start_date <= day <= self.end_date


class TaxQuery(BaseModel):
    """A request for the rate of ``municipality`` on ``date``."""

    model_config = ConfigDict(frozen=True)

    municipality: str
    date: datetime.date


class TaxRateResult(BaseModel):
    """Outcome of a rate lookup."""

    model_config = ConfigDict(frozen=True)

    tax_rate: float
    is_default_rate: bool = False
