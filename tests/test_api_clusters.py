"""Cluster control API tests."""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from gke_cleaner.api import main as api_main
from gke_cleaner.api.main import app
from gke_cleaner.api.routes import (
    app_state,
    get_cluster_store,
    ignore_cluster,
    list_clusters,
    renew_cluster,
    unignore_cluster,
)
from gke_cleaner.ledger import ClusterStore, RemoteCluster, init_db
from gke_cleaner.shared.errors import ConfigurationError, StoreError
from gke_cleaner.shared.settings import Settings

CREATED = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
LIFETIME = timedelta(hours=24)


def make_settings(**overrides) -> Settings:
    values = dict(
        port=8080,
        project="test-project",
        poll_interval=timedelta(hours=1),
        cluster_lifetime=LIFETIME,
        db_path=":memory:",
    )
    values.update(overrides)
    return Settings(**values)


class StubInventory:
    def __init__(self, clusters: list[RemoteCluster] | None = None) -> None:
        self.clusters = list(clusters or [])
        self.deleted: list[str] = []

    async def list_clusters(self, project: str) -> list[RemoteCluster]:
        return list(self.clusters)

    async def delete_cluster(self, name: str) -> str:
        self.deleted.append(name)
        return "operation-1"


class BrokenStore(ClusterStore):
    async def list(self):
        raise StoreError("list", RuntimeError("database is locked"))


@pytest.fixture(autouse=True)
def reset_app_state():
    app_state.clear()
    yield
    app_state.clear()


@pytest.mark.asyncio
async def test_cluster_store_dependency_uninitialized() -> None:
    with pytest.raises(HTTPException) as exc_info:
        get_cluster_store()
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_renew_and_ignore_handlers() -> None:
    db = await init_db(":memory:")
    store = ClusterStore(db)
    settings = make_settings()
    app_state.settings = settings
    await store.insert("ci-1", CREATED, CREATED + LIFETIME)

    before = datetime.now(timezone.utc)
    renewed = await renew_cluster(name="ci-1", store=store, settings=settings)
    after = datetime.now(timezone.utc)

    assert before + LIFETIME <= renewed.expiration_date <= after + LIFETIME
    assert renewed.create_date == CREATED

    ignored = await ignore_cluster(name="ci-1", store=store)
    assert ignored.ignore is True
    unignored = await unignore_cluster(name="ci-1", store=store)
    assert unignored.ignore is False

    listed = await list_clusters(store=store)
    assert [cluster.name for cluster in listed] == ["ci-1"]

    await db.close()


@pytest.mark.asyncio
async def test_unknown_cluster_returns_404() -> None:
    db = await init_db(":memory:")
    store = ClusterStore(db)
    settings = make_settings()
    app_state.settings = settings

    with pytest.raises(HTTPException) as exc_info:
        await renew_cluster(name="missing", store=store, settings=settings)
    assert exc_info.value.status_code == 404

    with pytest.raises(HTTPException) as exc_info:
        await ignore_cluster(name="missing", store=store)
    assert exc_info.value.status_code == 404

    await db.close()


@pytest.mark.asyncio
async def test_store_failure_returns_generic_500() -> None:
    db = await init_db(":memory:")

    with pytest.raises(HTTPException) as exc_info:
        await list_clusters(store=BrokenStore(db))
    assert exc_info.value.status_code == 500
    assert "locked" not in exc_info.value.detail

    await db.close()


@pytest.mark.asyncio
async def test_failed_startup_closes_database(monkeypatch) -> None:
    opened = []

    async def recording_init_db(db_path):
        db = await init_db(db_path)
        opened.append(db)
        return db

    monkeypatch.setattr(api_main, "init_db", recording_init_db)
    app_state.settings = make_settings(label_filters=("no-equals-sign",))
    app_state.inventory = StubInventory()

    with pytest.raises(ConfigurationError):
        async with api_main.lifespan(app):
            pass

    assert app_state.db is None
    assert app_state.cluster_store is None
    assert app_state.reconciler is None
    with pytest.raises(ValueError):
        await opened[0].execute("SELECT 1")


def _wait_for_clusters(client: TestClient, expected: int, **kwargs) -> list[dict]:
    deadline = time.monotonic() + 5
    while True:
        response = client.get("/clusters", **kwargs)
        assert response.status_code == 200
        body = response.json()
        if len(body) >= expected or time.monotonic() > deadline:
            return body
        time.sleep(0.05)


def test_lifespan_migrates_and_starts_reconciler() -> None:
    app_state.settings = make_settings()
    app_state.inventory = StubInventory(
        [RemoteCluster(name="ci-1", create_time=CREATED, location="us-central1-a")]
    )

    with TestClient(app) as client:
        health = client.get("/health")
        assert health.status_code == 200
        assert health.json()["components"] == {"cluster_store": "ok", "reconciler": "ok"}

        body = _wait_for_clusters(client, expected=1)
        assert [cluster["name"] for cluster in body] == ["ci-1"]
        assert body[0]["ignore"] is False

        response = client.post("/clusters/ignore/ci-1")
        assert response.status_code == 200
        assert response.json()["ignore"] is True

        response = client.post("/clusters/renew/ci-1")
        assert response.status_code == 200

        assert client.post("/clusters/unignore/nope").status_code == 404
        assert client.get("/clusters/renew/ci-1").status_code == 405

    assert app_state.reconciler is None
    assert app_state.cluster_store is None
    assert app_state.db is None


def test_basic_auth_guards_cluster_routes() -> None:
    app_state.settings = make_settings(basic_auth_username="admin", basic_auth_password="s3cret")
    app_state.inventory = StubInventory()

    with TestClient(app) as client:
        unauthenticated = client.get("/clusters")
        assert unauthenticated.status_code == 401
        assert unauthenticated.headers["www-authenticate"].startswith("Basic")

        assert client.get("/clusters", auth=("admin", "wrong")).status_code == 401
        assert client.get("/clusters", auth=("someone", "s3cret")).status_code == 401
        assert client.get("/clusters", auth=("admin", "s3cret")).status_code == 200
        assert client.post("/clusters/renew/ci-1", auth=("admin", "wrong")).status_code == 401

        assert client.get("/health").status_code == 200
