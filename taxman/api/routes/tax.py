"""Tax record and tax rate endpoints.

``POST /tax`` upserts a record. ``GET /tax/{municipality}/{date}`` returns
the rate in effect; the names of its two path parameters come from
``TaxConfig``, so the router is built per application.
"""

from typing import Any

from fastapi import APIRouter, Request
from loguru import logger

from taxman.api.constants import TAX_PREFIX
from taxman.api.dependencies import AppSettings, Resolver, TaxStore
from taxman.api.schemas.errors import ErrorResponse
from taxman.api.schemas.tax import TaxRateResponse, TaxRecordRequest, TaxRecordResponse
from taxman.core.config import TaxConfig
from taxman.domain.validation import build_tax_query, build_tax_record

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    500: {"model": ErrorResponse, "description": "Storage failure"},
}


def _path_parameter(name: str, description: str, example: str) -> dict[str, Any]:
    return {
        "name": name,
        "in": "path",
        "required": True,
        "description": description,
        "schema": {"type": "string"},
        "example": example,
    }


def build_tax_router(config: TaxConfig) -> APIRouter:
    """Build the tax router for the given path parameter names.

    Args:
        config: Rate lookup configuration.

    Returns:
        APIRouter: Router with the write and lookup endpoints.
    """
    router = APIRouter(prefix=TAX_PREFIX, tags=["tax"])
    municipality_key = config.municipality_path_key
    date_key = config.date_path_key

    @router.post("", responses=_ERROR_RESPONSES)
    async def add_tax_record(
        body: TaxRecordRequest, store: TaxStore, settings: AppSettings
    ) -> TaxRecordResponse:
        """Add a tax record, or replace the rate of an identical one."""
        record = build_tax_record(settings.tax_config, **body.model_dump())
        await store.upsert(record)

        logger.info(
            "Tax record saved",
            municipality=record.municipality,
            period_type=record.period_type.value,
        )
        return TaxRecordResponse()

    @router.get(
        f"/{{{municipality_key}}}/{{{date_key}}}",
        responses={
            **_ERROR_RESPONSES,
            404: {"model": ErrorResponse, "description": "No rate applies"},
        },
        openapi_extra={
            "parameters": [
                _path_parameter(municipality_key, "Municipality name", "Copenhagen"),
                _path_parameter(date_key, "Date as YYYY-MM-DD", "2024-01-01"),
            ]
        },
    )
    async def get_tax_rate(
        request: Request, resolver: Resolver, settings: AppSettings
    ) -> TaxRateResponse:
        """Get the tax rate in effect for a municipality on a date."""
        query = build_tax_query(
            settings.tax_config,
            request.path_params[municipality_key],
            request.path_params[date_key],
        )
        result = await resolver.lookup(query)

        return TaxRateResponse(
            municipality=query.municipality,
            date=query.date,
            tax_rate=result.tax_rate,
            is_default_rate=result.is_default_rate,
        )

    return router
