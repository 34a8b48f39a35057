"""API routers."""

from taxman.api.routes.tax import build_tax_router

__all__ = ["build_tax_router"]
