"""Main entry point for running the TaxMan service."""

import os

import uvicorn
from loguru import logger

from taxman.core.config import get_settings
from taxman.core.logging import setup_logging

APP_IMPORT_PATH = "taxman.api.main:app"


def main() -> None:
    """Run the service under uvicorn.

    ``PORT`` overrides the configured port. SIGINT and SIGTERM stop the
    server gracefully, which closes the tax store.
    """
    settings = get_settings()
    setup_logging(settings)

    port = int(os.environ.get("PORT", settings.api_port))

    # Route uvicorn's own loggers through Loguru
    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "default": {"class": "taxman.core.logging.InterceptHandler"},
        },
        "loggers": {
            name: {"handlers": ["default"], "level": "INFO", "propagate": False}
            for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
        },
    }

    mode = "development mode with auto-reload" if settings.debug else "production mode"
    logger.info("Starting Uvicorn on http://{}:{} ({})", settings.api_host, port, mode)
    uvicorn.run(
        APP_IMPORT_PATH,
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        log_config=log_config,
    )


if __name__ == "__main__":
    main()
