"""
GKE Cleaner — Shared Settings

Central configuration for the reconciler and the HTTP control surface.
Loaded from environment variables; a local ``.env`` file is merged in by
the entrypoint before ``load_settings`` runs.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Mapping, Optional

from gke_cleaner.shared.errors import ConfigurationError, MissingEnvironmentVariableError
from gke_cleaner.shared.logging import CONFIG_LOGGER
from gke_cleaner.utils import parse_duration, split_label_filter

logger = logging.getLogger(CONFIG_LOGGER)


# =============================================================================
# Project Identity
# =============================================================================
PROJECT_NAME: str = "gke-cleaner"
VERSION: str = "1.0.0"


# =============================================================================
# Defaults
# =============================================================================
DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_POLL_INTERVAL: str = "10m"
DEFAULT_CLUSTER_LIFETIME: str = "24h"
DEFAULT_DB_PATH: str = "data/gke_cleaner.db"
DEFAULT_LOG_LEVEL: str = "INFO"
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class Settings:
    """Validated process configuration."""

    port: int
    project: str
    poll_interval: timedelta = field(default_factory=lambda: timedelta(minutes=10))
    cluster_lifetime: timedelta = field(default_factory=lambda: timedelta(hours=24))
    label_filters: tuple[str, ...] = ()
    service_account_info: Optional[dict[str, Any]] = None
    basic_auth_username: Optional[str] = None
    basic_auth_password: Optional[str] = None
    db_path: str = DEFAULT_DB_PATH
    host: str = DEFAULT_HOST
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def basic_auth_enabled(self) -> bool:
        return self.basic_auth_username is not None


# =============================================================================
# Loaders
# =============================================================================
def _required(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if value is None or not value.strip():
        raise MissingEnvironmentVariableError(name)
    logger.info("Loaded %s=%s", name, value)
    return value.strip()


def _duration(env: Mapping[str, str], name: str, default: str) -> timedelta:
    raw = env.get(name, default)
    logger.info("Loaded %s=%s", name, raw)
    try:
        value = parse_duration(raw)
    except ValueError as exc:
        raise ConfigurationError(f"failed to parse {name} environment variable: {exc}") from exc
    if value <= timedelta(0):
        raise ConfigurationError(f"{name} must be a positive duration, got {raw!r}")
    return value


def _label_filters(env: Mapping[str, str]) -> tuple[str, ...]:
    raw = env.get("GCLOUD_GKE_LABEL_FILTERS")
    if raw is None:
        logger.info("GCLOUD_GKE_LABEL_FILTERS unset.")
        return ()

    try:
        filters = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            f"failed to parse GCLOUD_GKE_LABEL_FILTERS environment variable: {exc}"
        ) from exc
    if not isinstance(filters, list) or not all(isinstance(item, str) for item in filters):
        raise ConfigurationError("GCLOUD_GKE_LABEL_FILTERS must be a JSON array of strings")

    for item in filters:
        try:
            split_label_filter(item)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    logger.info("Loaded GCLOUD_GKE_LABEL_FILTERS=%s", filters)
    return tuple(filters)


def _service_account_info(env: Mapping[str, str]) -> Optional[dict[str, Any]]:
    raw = env.get("GCP_SERVICE_ACCOUNT_KEY")
    if not raw:
        logger.info("GCP_SERVICE_ACCOUNT_KEY unset, using application default credentials.")
        return None
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            f"failed to parse GCP_SERVICE_ACCOUNT_KEY environment variable: {exc.msg}"
        ) from None
    if not isinstance(info, dict):
        raise ConfigurationError("GCP_SERVICE_ACCOUNT_KEY must be a JSON object")
    logger.info("Loaded GCP_SERVICE_ACCOUNT_KEY=<redacted>")
    return info


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If a required variable is missing or any value is invalid
    """
    env = os.environ if environ is None else environ

    port_str = _required(env, "PORT")
    try:
        port = int(port_str)
    except ValueError as exc:
        raise ConfigurationError(f"failed to convert PORT environment variable: {exc}") from exc
    if not 0 < port < 65536:
        raise ConfigurationError(f"PORT out of range: {port}")

    project = _required(env, "PROJECT")
    service_account_info = _service_account_info(env)
    poll_interval = _duration(env, "GCLOUD_POLL_INTERVAL", DEFAULT_POLL_INTERVAL)
    cluster_lifetime = _duration(env, "CLUSTER_LIFETIME_DURATION", DEFAULT_CLUSTER_LIFETIME)
    label_filters = _label_filters(env)

    username = env.get("BASIC_AUTH_USERNAME") or None
    password = env.get("BASIC_AUTH_PASSWORD") or None
    if (username is None) != (password is None):
        raise ConfigurationError(
            "BASIC_AUTH_USERNAME and BASIC_AUTH_PASSWORD must be set together"
        )
    if username is not None:
        logger.info("Loaded BASIC_AUTH_USERNAME=%s", username)

    log_level = env.get("GKE_CLEANER_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigurationError(f"GKE_CLEANER_LOG_LEVEL must be one of {sorted(_LOG_LEVELS)}")

    return Settings(
        port=port,
        project=project,
        poll_interval=poll_interval,
        cluster_lifetime=cluster_lifetime,
        label_filters=label_filters,
        service_account_info=service_account_info,
        basic_auth_username=username,
        basic_auth_password=password,
        db_path=env.get("GKE_CLEANER_DB_PATH", DEFAULT_DB_PATH),
        host=env.get("GKE_CLEANER_HOST", DEFAULT_HOST),
        log_level=log_level,
    )
