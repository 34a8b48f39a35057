"""Field rules for tax record input.

Every function here either returns a parsed value or raises
``ValidationError`` with a message meant for the client. Requests are
validated completely before the store is touched.
"""

import datetime
import re

from taxman.core.config import TaxConfig
from taxman.core.exceptions import ValidationError
from taxman.domain.models import PeriodType, TaxQuery, TaxRecord

_ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MIN_TAX_RATE = 0.0
MAX_TAX_RATE = 1.0


def validate_municipality(municipality: str, max_length: int) -> str:
    """Check a municipality name is present and not too long.

    Length is counted in code points, so "København" is nine characters
    regardless of its encoded size.

    Args:
        municipality: Name as received.
        max_length: Maximum number of code points.

    Returns:
        str: The name unchanged.

    Raises:
        ValidationError: If the name is empty or too long.
    """
    if not municipality:
        raise ValidationError("municipality is required")
    if len(municipality) > max_length:
        raise ValidationError(
            "municipality name exceeds maximum length",
            context={"max_length": max_length},
        )
    return municipality


def parse_date(value: str, field_name: str) -> datetime.date:
    """Parse a ``YYYY-MM-DD`` calendar date.

    Args:
        value: Date string as received.
        field_name: Human name of the field, used in error messages.

    Returns:
        datetime.date: The parsed date.

    Raises:
        ValidationError: If the value is missing or not a valid date.
    """
    if not value:
        raise ValidationError(f"{field_name} is required")
    if not _ISO_DATE_PATTERN.match(value):
        raise ValidationError(f"invalid {field_name} format")
    try:
        return datetime.date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"invalid {field_name} format", cause=e) from e


def validate_tax_rate(tax_rate: float | None) -> float:
    """Check a tax rate is a fraction between 0 and 1 inclusive.

    Raises:
        ValidationError: If the rate is missing or out of range.
    """
    if tax_rate is None:
        raise ValidationError("tax rate is required")
    # NaN fails both comparisons
    if not MIN_TAX_RATE <= tax_rate <= MAX_TAX_RATE:
        raise ValidationError("tax rate must be between 0.0 and 1.0")
    return tax_rate


def parse_period_type(value: str) -> PeriodType:
    """Parse one of the lowercase period literals, case-sensitively.

    Raises:
        ValidationError: If the value is missing or not a known period type.
    """
    if not value:
        raise ValidationError("period type is required")
    try:
        return PeriodType(value)
    except ValueError as e:
        raise ValidationError(
            "invalid period type",
            context={"allowed": [period.value for period in PeriodType]},
            cause=e,
        ) from e


def build_tax_record(  # noqa: PLR0913
    config: TaxConfig,
    *,
    municipality: str,
    tax_rate: float | None,
    start_date: str,
    end_date: str,
    period_type: str,
) -> TaxRecord:
    """Validate raw write input and build a ``TaxRecord``.

    ``end_date`` before ``start_date`` is accepted; such a record never
    matches any query.

    Args:
        config: Rate lookup configuration.
        municipality: Municipality name.
        tax_rate: Rate as a fraction.
        start_date: First day the rate applies, ``YYYY-MM-DD``.
        end_date: Last day the rate applies, ``YYYY-MM-DD``.
        period_type: One of ``daily``, ``weekly``, ``monthly``, ``yearly``.

    Returns:
        TaxRecord: The validated record.

    Raises:
        ValidationError: On the first field that breaks a rule.
    """
    return TaxRecord(
        municipality=validate_municipality(
            municipality, config.max_municipality_name_length
        ),
        tax_rate=validate_tax_rate(tax_rate),
        start_date=parse_date(start_date, "start date"),
        end_date=parse_date(end_date, "end date"),
        period_type=parse_period_type(period_type),
    )


def build_tax_query(config: TaxConfig, municipality: str, date: str) -> TaxQuery:
    """Validate raw lookup input and build a ``TaxQuery``.

    Raises:
        ValidationError: If the municipality or date is invalid.
    """
    return TaxQuery(
        municipality=validate_municipality(
            municipality, config.max_municipality_name_length
        ),
        date=parse_date(date, "date"),
    )
