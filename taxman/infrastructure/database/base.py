"""SQLAlchemy declarative base and common model fields.

- **Naming conventions**: Deterministic constraint and index names
- **Base**: Declarative base bound to the shared metadata
- **BaseModel**: Abstract model with a surrogate key and timestamps

The schema is created from ``Base.metadata`` at store start-up, so every
table model must be imported before ``create_all`` runs.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, MetaData, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from taxman.infrastructure.constants import NAMING_CONVENTION


class Base(DeclarativeBase):
    """Declarative base with the project's naming convention."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class BaseModel(Base):
    """Abstract base model with a surrogate key and timestamps.

    ``updated_at`` is refreshed by the ORM on flush; bulk statements such
    as upserts must set it themselves.
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=True,
        doc="Surrogate primary key",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Timestamp when the row was first written (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        doc="Timestamp when the row was last written (UTC)",
    )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"
