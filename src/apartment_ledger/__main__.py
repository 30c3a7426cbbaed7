"""Serve the ledger API with uvicorn: ``python -m apartment_ledger``."""

import logging

import uvicorn

from apartment_ledger.config import configure_logging, get_settings

logger = logging.getLogger("apartment_ledger")


def main() -> None:
    """Configure logging from LOG_LEVEL and start the API server."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Serving the ledger API on %s:%d", settings.host, settings.port)
    uvicorn.run(
        "apartment_ledger.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
