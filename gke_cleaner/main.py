"""
GKE Cleaner — Main Entry Point

Loads configuration, then serves the control API with the reconciler
running in the same event loop. uvicorn's SIGINT/SIGTERM handling shuts
both down.
"""

from __future__ import annotations

import logging
import os
import sys

import uvicorn
from dotenv import load_dotenv

from gke_cleaner.shared.errors import ConfigurationError
from gke_cleaner.shared.logging import MAIN_LOGGER, setup_logging
from gke_cleaner.shared.settings import load_settings

logger = logging.getLogger(MAIN_LOGGER)


def main() -> None:
    """Main entry point for GKE Cleaner."""
    load_dotenv()
    setup_logging(os.getenv("GKE_CLEANER_LOG_LEVEL", "INFO"))

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error("Failed to load config: %s", e)
        sys.exit(1)

    from gke_cleaner.api.main import app
    from gke_cleaner.api.routes import app_state

    app_state.settings = settings
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
