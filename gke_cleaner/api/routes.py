"""
GKE Cleaner API Routes - cluster control endpoint handlers.

Handlers mutate the cluster store directly; the reconciler picks up the
effects on its next cycle.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from gke_cleaner import __version__
from gke_cleaner.api import schemas
from gke_cleaner.ledger.cluster_store import ClusterStore
from gke_cleaner.shared.errors import StoreError
from gke_cleaner.shared.logging import API_LOGGER
from gke_cleaner.shared.settings import Settings
from gke_cleaner.utils import utc_now

logger = logging.getLogger(API_LOGGER)

router = APIRouter(tags=["gke-cleaner"])

_basic_auth = HTTPBasic(auto_error=False)


@dataclass
class AppState:
    """Application state container."""

    settings: Settings | None = None
    db: Any | None = None
    cluster_store: ClusterStore | None = None
    inventory: Any | None = None
    reconciler: Any | None = None

    def clear(self) -> None:
        self.settings = None
        self.db = None
        self.cluster_store = None
        self.inventory = None
        self.reconciler = None


app_state = AppState()


def get_settings() -> Settings:
    """Dependency: Get loaded settings."""
    if app_state.settings is None:
        raise HTTPException(status_code=503, detail="Settings not loaded")
    return app_state.settings


def get_cluster_store() -> ClusterStore:
    """Dependency: Get shared cluster store."""
    if app_state.cluster_store is None:
        raise HTTPException(status_code=503, detail="Cluster store not initialized")
    return app_state.cluster_store


def _matches(given: str, expected: str) -> bool:
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def require_basic_auth(
    credentials: HTTPBasicCredentials | None = Depends(_basic_auth),
) -> bool:
    """
    Guard for cluster endpoints.

    Enforces basic auth only when a username and password are configured;
    both must match.
    """
    settings = app_state.settings
    if settings is None or not settings.basic_auth_enabled:
        return False

    if (
        credentials is None
        or not _matches(credentials.username, settings.basic_auth_username or "")
        or not _matches(credentials.password, settings.basic_auth_password or "")
    ):
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": 'Basic realm="Restricted"'},
        )
    return True


def _internal_error(action: str, name: str | None, exc: StoreError) -> HTTPException:
    if name:
        logger.error("Failed to %s (cluster=%s): %s", action, name, exc)
    else:
        logger.error("Failed to %s: %s", action, exc)
    return HTTPException(status_code=500, detail="Internal server error")


async def _updated_record(store: ClusterStore, name: str, found: bool) -> schemas.ClusterResponse:
    if not found:
        raise HTTPException(status_code=404, detail=f"Cluster not found: {name}")
    record = await store.get(name)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Cluster not found: {name}")
    return schemas.ClusterResponse.from_record(record)


@router.get("/clusters", response_model=list[schemas.ClusterResponse])
async def list_clusters(
    store: ClusterStore = Depends(get_cluster_store),
    _authorized=Depends(require_basic_auth),
) -> list[schemas.ClusterResponse]:
    """List every tracked cluster."""
    try:
        records = await store.list()
    except StoreError as exc:
        raise _internal_error("list clusters", None, exc) from exc
    return [schemas.ClusterResponse.from_record(record) for record in records]


@router.post("/clusters/renew/{name}", response_model=schemas.ClusterResponse)
async def renew_cluster(
    name: str,
    store: ClusterStore = Depends(get_cluster_store),
    settings: Settings = Depends(get_settings),
    _authorized=Depends(require_basic_auth),
) -> schemas.ClusterResponse:
    """Push expiration to now plus the configured lifetime."""
    try:
        found = await store.update_expiration_date(name, utc_now() + settings.cluster_lifetime)
        response = await _updated_record(store, name, found)
    except StoreError as exc:
        raise _internal_error("renew cluster", name, exc) from exc
    logger.info("Renewed cluster (cluster=%s expiration=%s).", name, response.expiration_date.isoformat())
    return response


async def _set_ignore(store: ClusterStore, name: str, ignore: bool) -> schemas.ClusterResponse:
    action = "ignore cluster" if ignore else "unignore cluster"
    try:
        found = await store.update_ignore(name, ignore)
        response = await _updated_record(store, name, found)
    except StoreError as exc:
        raise _internal_error(action, name, exc) from exc
    logger.info("Set ignore=%s (cluster=%s).", ignore, name)
    return response


@router.post("/clusters/ignore/{name}", response_model=schemas.ClusterResponse)
async def ignore_cluster(
    name: str,
    store: ClusterStore = Depends(get_cluster_store),
    _authorized=Depends(require_basic_auth),
) -> schemas.ClusterResponse:
    """Exempt a cluster from deletion."""
    return await _set_ignore(store, name, True)


@router.post("/clusters/unignore/{name}", response_model=schemas.ClusterResponse)
async def unignore_cluster(
    name: str,
    store: ClusterStore = Depends(get_cluster_store),
    _authorized=Depends(require_basic_auth),
) -> schemas.ClusterResponse:
    """Remove a deletion exemption."""
    return await _set_ignore(store, name, False)


@router.get("/health", response_model=schemas.HealthResponse)
async def health_check() -> schemas.HealthResponse:
    """Service health check."""
    components = {
        "cluster_store": "ok" if app_state.cluster_store else "not_initialized",
        "reconciler": (
            "ok"
            if app_state.reconciler and getattr(app_state.reconciler, "running", False)
            else "not_running"
        ),
    }

    status = "ok" if all(v == "ok" for v in components.values()) else "degraded"
    return schemas.HealthResponse(
        status=status,
        version=__version__,
        components=components,
    )
