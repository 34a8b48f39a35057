"""Database infrastructure on async PostgreSQL.

- **base**: Declarative base and common model fields
- **models**: The ``municipality_taxes`` table and its date-range encoding
- **session**: Engine creation, start-up ping and session scope
- **repository**: Generic reads plus the tax upsert and containment query
- **store**: ``PostgresTaxStore``, the store the API runs against
"""

from taxman.infrastructure.database.base import Base, BaseModel
from taxman.infrastructure.database.models import MunicipalityTax
from taxman.infrastructure.database.repository import (
    BaseRepository,
    TaxRecordRepository,
)
from taxman.infrastructure.database.session import (
    check_database_connection,
    create_database_engine,
    session_scope,
)
from taxman.infrastructure.database.store import PostgresTaxStore

__all__ = [
    "Base",
    "BaseModel",
    "BaseRepository",
    "MunicipalityTax",
    "PostgresTaxStore",
    "TaxRecordRepository",
    "check_database_connection",
    "create_database_engine",
    "session_scope",
]
