"""Repositories for database access.

``BaseRepository`` carries the row count shared by every table;
``TaxRecordRepository`` adds the upsert and containment query the tax
store is built on. Repositories never commit; the caller's session scope
decides.
"""

from typing import Any

from loguru import logger
from sqlalchemy import Date, func, select, text
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import bindparam
from sqlalchemy.sql.expression import Executable

from taxman.domain.models import TaxQuery, TaxRecord
from taxman.infrastructure.constants import SELECT_TAX_RECORDS, UPSERT_TAX_RECORD
from taxman.infrastructure.database.base import BaseModel
from taxman.infrastructure.database.models import MunicipalityTax


class BaseRepository[T: BaseModel]:
    """Base repository class for table-wide reads.

    Args:
        session: The async SQLAlchemy session to use for operations.
        model_class: The SQLAlchemy model class this repository manages.
    """

    def __init__(self, session: AsyncSession, model_class: type[T]) -> None:
        self.session = session
        self.model_class = model_class

    async def count(self) -> int:
        """Count all instances of the model."""
        stmt = select(func.count()).select_from(self.model_class)
        result = await self.session.execute(stmt)
        return result.scalar() or 0


def build_tax_statements() -> dict[str, Executable]:
    """Build the parameterized statements the tax store reuses.

    Returns:
        dict[str, Executable]: Statements keyed by logical name.
    """
    table = MunicipalityTax.__table__

    insert_stmt = insert(table).values(
        municipality_name=bindparam("municipality_name"),
        tax_rate=bindparam("tax_rate"),
        period=bindparam("period", type_=table.c.period.type),
        period_type=bindparam("period_type"),
    )
    upsert_stmt = insert_stmt.on_conflict_do_update(
        index_elements=[table.c.municipality_name, table.c.period, table.c.period_type],
        set_={
            "tax_rate": insert_stmt.excluded.tax_rate,
            "period_type": insert_stmt.excluded.period_type,
            "updated_at": func.now(),
        },
    )

    select_stmt = select(MunicipalityTax).where(
        MunicipalityTax.municipality_name == bindparam("municipality_name"),
        MunicipalityTax.period.contains(bindparam("day", type_=Date)),
    )

    return {UPSERT_TAX_RECORD: upsert_stmt, SELECT_TAX_RECORDS: select_stmt}


class TaxRecordRepository(BaseRepository[MunicipalityTax]):
    """Reads and writes ``municipality_taxes`` rows.

    Args:
        session: The async SQLAlchemy session to use for operations.
        statements: Prebuilt statements from ``build_tax_statements``; built
            on demand when omitted.
    """

    def __init__(
        self, session: AsyncSession, statements: dict[str, Executable] | None = None
    ) -> None:
        super().__init__(session, MunicipalityTax)
        self.statements = statements or build_tax_statements()

    async def upsert(self, record: TaxRecord) -> None:
        """Insert ``record`` or replace the rate of the row with its identity."""
        params: dict[str, Any] = MunicipalityTax.values_from_record(record)
        await self.session.execute(self.statements[UPSERT_TAX_RECORD], params)
        logger.debug(
            "Upserted {} tax record",
            record.period_type.value,
            municipality=record.municipality,
        )

    async def find_applicable(self, query: TaxQuery) -> list[TaxRecord]:
        """Return every record for the municipality whose period covers the date."""
        result = await self.session.execute(
            self.statements[SELECT_TAX_RECORDS],
            {"municipality_name": query.municipality, "day": query.date},
        )
        return [row.to_record() for row in result.scalars().all()]

    async def truncate(self) -> None:
        """Remove every row. Intended for tests."""
        await self.session.execute(
            text(f"TRUNCATE TABLE {MunicipalityTax.__tablename__} RESTART IDENTITY")
        )
        logger.warning("Truncated {}", MunicipalityTax.__tablename__)
