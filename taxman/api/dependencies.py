"""FastAPI dependencies for the objects opened at application start-up.

The lifespan puts the settings and the tax store on ``app.state``; routes
reach them through the annotated aliases below. Tests replace the store
with ``app.dependency_overrides[get_tax_store]``.
"""

from typing import Annotated

from fastapi import Depends, Request

from taxman.core.config import Settings
from taxman.core.exceptions import StoreError
from taxman.domain.resolver import TaxRateResolver, TaxRecordStore


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_tax_store(request: Request) -> TaxRecordStore:
    """The store opened by the lifespan.

    Raises:
        StoreError: If the application has no open store.
    """
    store: TaxRecordStore | None = getattr(request.app.state, "tax_store", None)
    if store is None:
        raise StoreError("tax store is not available")
    return store


AppSettings = Annotated[Settings, Depends(get_app_settings)]
TaxStore = Annotated[TaxRecordStore, Depends(get_tax_store)]


def get_resolver(store: TaxStore, settings: AppSettings) -> TaxRateResolver:
    """A resolver over the application's store and tax configuration."""
    return TaxRateResolver(store, settings.tax_config)


Resolver = Annotated[TaxRateResolver, Depends(get_resolver)]
