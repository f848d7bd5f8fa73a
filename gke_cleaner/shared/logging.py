"""
GKE Cleaner — Shared Logging Configuration

Centralized logging setup for all GKE Cleaner components.
"""

import logging
import sys


# =============================================================================
# Log Format
# =============================================================================
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


# =============================================================================
# Component Loggers
# =============================================================================
MAIN_LOGGER = "gke_cleaner.main"
CONFIG_LOGGER = "gke_cleaner.config"
LEDGER_LOGGER = "gke_cleaner.ledger"
RECONCILER_LOGGER = "gke_cleaner.reconciler"
GKE_LOGGER = "gke_cleaner.gke"
API_LOGGER = "gke_cleaner.api"


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the process.

    Args:
        level: Log level name (DEBUG, INFO, ...). Unknown names fall back to INFO.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
    )
    logging.getLogger("gke_cleaner").setLevel(log_level)
