"""Unit tests for taxman.domain.validation."""

import datetime
import math

import pytest

from taxman.core.config import TaxConfig
from taxman.core.exceptions import ErrorCode, ValidationError
from taxman.domain.models import PeriodType
from taxman.domain.validation import (
    build_tax_query,
    build_tax_record,
    parse_date,
    parse_period_type,
    validate_municipality,
    validate_tax_rate,
)


def _record_input(**overrides: object) -> dict[str, object]:
    values: dict[str, object] = {
        "municipality": "Copenhagen",
        "tax_rate": 0.2,
        "start_date": "2024-01-01",
        "end_date": "2024-12-31",
        "period_type": "yearly",
    }
    values.update(overrides)
    return values


@pytest.mark.unit
class TestValidateMunicipality:
    """Test municipality name rules."""

    def test_accepts_name(self) -> None:
        """A non-empty name within the limit is returned unchanged."""
        assert validate_municipality("Copenhagen", 100) == "Copenhagen"

    def test_empty_name_is_rejected(self) -> None:
        """An empty name is reported as missing."""
        with pytest.raises(ValidationError, match="municipality is required"):
            validate_municipality("", 100)

    def test_length_counts_code_points(self) -> None:
        """Non-ASCII characters count once each, not by encoded size."""
        name = "København"
        assert len(name.encode()) > len(name)
        assert validate_municipality(name, len(name)) == name

    def test_name_at_limit_is_accepted(self) -> None:
        """A name of exactly the maximum length passes."""
        assert validate_municipality("a" * 100, 100) == "a" * 100

    def test_name_over_limit_is_rejected(self) -> None:
        """A name one character over the limit fails."""
        with pytest.raises(
            ValidationError, match="municipality name exceeds maximum length"
        ) as exc_info:
            validate_municipality("a" * 101, 100)

        assert exc_info.value.context == {"max_length": 100}


@pytest.mark.unit
class TestParseDate:
    """Test calendar date parsing."""

    def test_parses_iso_date(self) -> None:
        """YYYY-MM-DD is parsed into a date."""
        assert parse_date("2024-02-29", "date") == datetime.date(2024, 2, 29)

    def test_missing_value(self) -> None:
        """An empty value names the missing field."""
        with pytest.raises(ValidationError, match="start date is required"):
            parse_date("", "start date")

    @pytest.mark.parametrize(
        "value",
        [
            "not-a-date",
            "2024/01/01",
            "20240101",
            "2024-1-1",
            "2024-01-01T00:00:00",
            " 2024-01-01",
            "2023-02-29",
            "2024-13-01",
            "2024-00-10",
        ],
    )
    def test_invalid_format(self, value: str) -> None:
        """Anything but a real YYYY-MM-DD date is a format error."""
        with pytest.raises(ValidationError, match="invalid date format"):
            parse_date(value, "date")


@pytest.mark.unit
class TestValidateTaxRate:
    """Test tax rate bounds."""

    @pytest.mark.parametrize("rate", [0.0, 0.5, 1.0])
    def test_accepts_rates_in_range(self, rate: float) -> None:
        """Both bounds are inclusive."""
        assert validate_tax_rate(rate) == rate

    @pytest.mark.parametrize("rate", [-0.01, 1.5, math.inf, math.nan])
    def test_rejects_rates_out_of_range(self, rate: float) -> None:
        """Rates outside [0, 1] and NaN are rejected."""
        with pytest.raises(
            ValidationError, match=r"tax rate must be between 0\.0 and 1\.0"
        ):
            validate_tax_rate(rate)

    def test_missing_rate(self) -> None:
        """A missing rate is reported as required."""
        with pytest.raises(ValidationError, match="tax rate is required"):
            validate_tax_rate(None)


@pytest.mark.unit
class TestParsePeriodType:
    """Test period type parsing."""

    @pytest.mark.parametrize("period", list(PeriodType))
    def test_accepts_lowercase_literals(self, period: PeriodType) -> None:
        """Each lowercase literal maps to its member."""
        assert parse_period_type(period.value) is period

    @pytest.mark.parametrize("value", ["Yearly", "DAILY", "annual", "week"])
    def test_rejects_unknown_or_wrong_case(self, value: str) -> None:
        """Matching is exact and case-sensitive."""
        with pytest.raises(ValidationError, match="invalid period type") as exc_info:
            parse_period_type(value)

        assert exc_info.value.context["allowed"] == [
            "daily",
            "weekly",
            "monthly",
            "yearly",
        ]

    def test_missing_value(self) -> None:
        """An empty value is reported as required."""
        with pytest.raises(ValidationError, match="period type is required"):
            parse_period_type("")


@pytest.mark.unit
class TestBuildTaxRecord:
    """Test full write input validation."""

    def test_builds_record(self) -> None:
        """Valid input becomes a TaxRecord."""
        record = build_tax_record(TaxConfig(), **_record_input())

        assert record.municipality == "Copenhagen"
        assert record.tax_rate == 0.2
        assert record.start_date == datetime.date(2024, 1, 1)
        assert record.end_date == datetime.date(2024, 12, 31)
        assert record.period_type is PeriodType.YEARLY

    def test_end_before_start_is_accepted(self) -> None:
        """An inverted interval is not a validation error."""
        record = build_tax_record(
            TaxConfig(), **_record_input(start_date="2024-05-01", end_date="2024-04-01")
        )

        assert record.end_date < record.start_date

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"municipality": ""}, "municipality is required"),
            ({"tax_rate": 1.5}, "tax rate must be between 0.0 and 1.0"),
            ({"tax_rate": None}, "tax rate is required"),
            ({"start_date": ""}, "start date is required"),
            ({"start_date": "2024-31-01"}, "invalid start date format"),
            ({"end_date": "tomorrow"}, "invalid end date format"),
            ({"period_type": "fortnightly"}, "invalid period type"),
        ],
    )
    def test_reports_first_broken_rule(
        self, overrides: dict[str, object], message: str
    ) -> None:
        """Each broken rule surfaces as a ValidationError with its message."""
        with pytest.raises(ValidationError) as exc_info:
            build_tax_record(TaxConfig(), **_record_input(**overrides))

        assert exc_info.value.message == message
        assert exc_info.value.error_code == ErrorCode.VALIDATION_ERROR.value

    def test_uses_configured_name_limit(self) -> None:
        """The municipality limit comes from the configuration."""
        config = TaxConfig(max_municipality_name_length=5)

        with pytest.raises(ValidationError, match="exceeds maximum length"):
            build_tax_record(config, **_record_input(municipality="Aarhus"))


@pytest.mark.unit
class TestBuildTaxQuery:
    """Test lookup input validation."""

    def test_builds_query(self) -> None:
        """A valid municipality and date become a TaxQuery."""
        query = build_tax_query(TaxConfig(), "Copenhagen", "2024-01-01")

        assert query.municipality == "Copenhagen"
        assert query.date == datetime.date(2024, 1, 1)

    def test_invalid_date(self) -> None:
        """A malformed date is reported against the date field."""
        with pytest.raises(ValidationError, match="invalid date format"):
            build_tax_query(TaxConfig(), "Copenhagen", "not-a-date")

    def test_municipality_checked_first(self) -> None:
        """With both fields invalid, the municipality error wins."""
        with pytest.raises(ValidationError, match="municipality is required"):
            build_tax_query(TaxConfig(), "", "not-a-date")
