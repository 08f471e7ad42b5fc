"""Main entry point - runs the API server."""

import logging

import uvicorn

from smartfx.api.app import create_app
from smartfx.config import get_settings

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main():
    """Run the SmartFX API."""
    settings = get_settings()
    configure_logging(settings.debug)

    logger.info("Starting SmartFX...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Chain {settings.chain_id}, verifier {settings.verifying_contract}")

    uvicorn.run(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
