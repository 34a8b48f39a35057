"""Request and response bodies of the tax endpoints.

The request model leaves every field optional, so that missing or empty
fields reach the domain rules and are reported with their specific message.
The rate is strict: JSON numbers only, never booleans or numeric strings.
"""

import datetime

from pydantic import BaseModel, Field


class TaxRecordRequest(BaseModel):
    """Body of ``POST /tax``."""

    municipality: str = Field(default="", examples=["Copenhagen"])
    tax_rate: float | None = Field(
        default=None,
        strict=True,
        description="Rate as a fraction between 0.0 and 1.0",
        examples=[0.2],
    )
    start_date: str = Field(
        default="", description="First day, YYYY-MM-DD", examples=["2024-01-01"]
    )
    end_date: str = Field(
        default="",
        description="Last day (inclusive), YYYY-MM-DD",
        examples=["2024-12-31"],
    )
    period_type: str = Field(
        default="",
        description="One of daily, weekly, monthly, yearly",
        examples=["yearly"],
    )


class TaxRecordResponse(BaseModel):
    """Body of a successful ``POST /tax``."""

    success: bool = True


class TaxRateResponse(BaseModel):
    """Body of a successful rate lookup."""

    municipality: str = Field(examples=["Copenhagen"])
    date: datetime.date = Field(examples=["2024-01-01"])
    tax_rate: float = Field(examples=[0.1])
    is_default_rate: bool = Field(
        default=False,
        description="True when no declaration applied and the default was used",
    )
