"""
GKE Cleaner FastAPI Service - Main Application.

Startup runs in two phases: the database migration completes first, then
the reconciler is started alongside the HTTP server. Both stop when the
server shuts down.

Usage:
    uvicorn gke_cleaner.api.main:app --host 0.0.0.0 --port 8080

Endpoints:
    GET  /clusters
    POST /clusters/renew/{name}
    POST /clusters/ignore/{name}
    POST /clusters/unignore/{name}
    GET  /health
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gke_cleaner import __version__
from gke_cleaner.api.routes import app_state, router
from gke_cleaner.control_plane import ClusterReconciler, GKEClient
from gke_cleaner.ledger import ClusterStore, init_db
from gke_cleaner.shared.logging import API_LOGGER, setup_logging
from gke_cleaner.shared.settings import load_settings

setup_logging(os.getenv("GKE_CLEANER_LOG_LEVEL", "INFO"))

logger = logging.getLogger(API_LOGGER)


# ============================================================================
# Lifespan Management
# ============================================================================


async def _release_resources() -> None:
    if app_state.reconciler:
        try:
            await app_state.reconciler.stop()
        except Exception as e:
            logger.error("Error stopping reconciler: %s", e)

    if app_state.db:
        try:
            await app_state.db.close()
        except Exception as e:
            logger.error("Error closing database: %s", e)

    app_state.clear()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Settings and the inventory client may be preset on ``app_state``
    (the entrypoint presets settings, tests preset both).
    """
    # ---- Startup ----
    logger.info("GKE Cleaner API starting...")

    settings = app_state.settings or load_settings()
    app_state.settings = settings

    app_state.db = await init_db(settings.db_path)
    try:
        app_state.cluster_store = ClusterStore(app_state.db)

        if app_state.inventory is None:
            app_state.inventory = GKEClient(credentials_info=settings.service_account_info)

        app_state.reconciler = ClusterReconciler(
            store=app_state.cluster_store,
            inventory=app_state.inventory,
            project=settings.project,
            lifetime=settings.cluster_lifetime,
            poll_interval_seconds=settings.poll_interval.total_seconds(),
            label_filters=settings.label_filters,
        )
        await app_state.reconciler.start()
    except Exception:
        logger.exception("Startup failed, releasing resources")
        await _release_resources()
        raise

    logger.info("Started (project=%s port=%s).", settings.project, settings.port)

    yield

    # ---- Shutdown ----
    logger.info("GKE Cleaner API shutting down...")
    await _release_resources()
    logger.info("Shutdown complete")


# ============================================================================
# FastAPI Application
# ============================================================================


app = FastAPI(
    title="GKE Cleaner API",
    description="Tracks expiration of ephemeral GKE clusters and exposes renew/ignore controls.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(router)
