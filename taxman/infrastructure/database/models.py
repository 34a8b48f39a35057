"""Table model for tax records and its date-range encoding.

A record's inclusive interval ``[start, end]`` is stored as the half-open
PostgreSQL ``daterange`` ``[start, end + 1 day)``. ``to_period`` and
``from_period`` are the only places that convert between the two, and
they are exact inverses for every non-empty interval. An interval ending
on ``date.max`` has no representable exclusive bound and is stored with an
open upper end.
"""

from datetime import date, timedelta

from sqlalchemy import CheckConstraint, Float, Index, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import DATERANGE, Range
from sqlalchemy.orm import Mapped, mapped_column

from taxman.domain.models import PeriodType, TaxRecord
from taxman.infrastructure.database.base import BaseModel

ONE_DAY = timedelta(days=1)

_PERIOD_TYPE_VALUES = ", ".join(f"'{period.value}'" for period in PeriodType)


def to_period(start_date: date, end_date: date) -> Range[date]:
    """Encode an inclusive interval as a half-open date range.

    An interval whose end precedes its start becomes the empty range,
    which contains no date.
    """
    if end_date < start_date:
        return Range(empty=True)
    if end_date == date.max:
        return Range(start_date, None, bounds="[)")
    return Range(start_date, end_date + ONE_DAY, bounds="[)")


def from_period(period: Range[date]) -> tuple[date, date]:
    """Decode a stored range back into an inclusive ``(start, end)`` pair.

    Raises:
        ValueError: If the range is empty or has no lower bound.
    """
    if period.isempty or period.lower is None:
        msg = f"Cannot decode period {period!r} into an inclusive interval"
        raise ValueError(msg)

    start = period.lower if period.lower_inc else period.lower + ONE_DAY
    if period.upper is None:
        end = date.max
    elif period.upper_inc:
        end = period.upper
    else:
        end = period.upper - ONE_DAY
    return start, end


class MunicipalityTax(BaseModel):
    """One tax rate declaration, unique per municipality, period and type."""

    __tablename__ = "municipality_taxes"
    __table_args__ = (
        UniqueConstraint("municipality_name", "period", "period_type"),
        CheckConstraint(f"period_type IN ({_PERIOD_TYPE_VALUES})", name="period_type"),
        Index("ix_municipality_taxes_period", "period", postgresql_using="gist"),
    )

    municipality_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    tax_rate: Mapped[float] = mapped_column(Float, nullable=False)
    period: Mapped[Range[date]] = mapped_column(DATERANGE, nullable=False)
    period_type: Mapped[str] = mapped_column(Text, nullable=False)

    @classmethod
    def values_from_record(cls, record: TaxRecord) -> dict[str, object]:
        """Column values for inserting ``record``."""
        return {
            "municipality_name": record.municipality,
            "tax_rate": record.tax_rate,
            "period": to_period(record.start_date, record.end_date),
            "period_type": record.period_type.value,
        }

    def to_record(self) -> TaxRecord:
        """Convert the row into a domain ``TaxRecord``."""
        start_date, end_date = from_period(self.period)
        return TaxRecord(
            municipality=self.municipality_name,
            tax_rate=self.tax_rate,
            start_date=start_date,
            end_date=end_date,
            period_type=PeriodType(self.period_type),
        )
