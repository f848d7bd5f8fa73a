"""Tests for the GKE inventory client adapter."""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as google_auth_exceptions
from google.cloud import container_v1

from gke_cleaner.control_plane.gke_client import GKEClient, cluster_path, to_remote_cluster
from gke_cleaner.shared.errors import RemoteInventoryError


class FakeClusterManager:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.requests: list[tuple[str, dict]] = []

    async def list_clusters(self, request: dict):
        self.requests.append(("list", request))
        if self.error:
            raise self.error
        return self.response

    async def delete_cluster(self, request: dict):
        self.requests.append(("delete", request))
        if self.error:
            raise self.error
        return SimpleNamespace(name="operation-123")


def make_cluster(name: str, create_time: str, location: str, **labels: str) -> container_v1.Cluster:
    return container_v1.Cluster(
        name=name,
        create_time=create_time,
        location=location,
        resource_labels=labels,
    )


@pytest.mark.asyncio
async def test_list_clusters_adapts_protobuf_clusters() -> None:
    response = container_v1.ListClustersResponse(
        clusters=[
            make_cluster("ci-1", "2024-03-01T08:00:00+00:00", "us-central1-a", env="ci"),
            make_cluster("ci-2", "2024-03-01T09:30:00Z", "europe-west1"),
        ]
    )
    manager = FakeClusterManager(response=response)
    client = GKEClient(client=manager)

    clusters = await client.list_clusters("my-project")

    assert manager.requests == [("list", {"parent": "projects/my-project/locations/-"})]
    assert [cluster.name for cluster in clusters] == ["ci-1", "ci-2"]
    assert clusters[0].create_time == datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
    assert clusters[0].location == "us-central1-a"
    assert clusters[0].resource_labels == {"env": "ci"}
    assert clusters[1].resource_labels == {}


@pytest.mark.asyncio
async def test_list_clusters_wraps_api_errors() -> None:
    manager = FakeClusterManager(error=google_exceptions.ServiceUnavailable("backend down"))
    client = GKEClient(client=manager)

    with pytest.raises(RemoteInventoryError) as exc_info:
        await client.list_clusters("my-project")
    assert exc_info.value.operation == "list"


def test_unparsable_create_time_is_a_remote_error() -> None:
    with pytest.raises(RemoteInventoryError):
        to_remote_cluster(make_cluster("bad", "yesterday", "us-east1"))


@pytest.mark.asyncio
async def test_delete_cluster_uses_fully_qualified_name() -> None:
    manager = FakeClusterManager()
    client = GKEClient(client=manager)
    name = cluster_path("my-project", "us-central1-a", "ci-1")

    operation = await client.delete_cluster(name)

    assert operation == "operation-123"
    assert manager.requests == [
        ("delete", {"name": "projects/my-project/locations/us-central1-a/clusters/ci-1"})
    ]


@pytest.mark.asyncio
async def test_delete_cluster_wraps_api_errors() -> None:
    manager = FakeClusterManager(error=google_exceptions.NotFound("no such cluster"))
    client = GKEClient(client=manager)

    with pytest.raises(RemoteInventoryError) as exc_info:
        await client.delete_cluster(cluster_path("p", "l", "n"))
    assert exc_info.value.operation == "delete"


@pytest.mark.asyncio
async def test_retry_timeouts_are_wrapped_for_list_and_delete() -> None:
    manager = FakeClusterManager(error=google_exceptions.RetryError("Timeout of 20.0s exceeded", None))
    client = GKEClient(client=manager)

    with pytest.raises(RemoteInventoryError) as list_info:
        await client.list_clusters("my-project")
    with pytest.raises(RemoteInventoryError) as delete_info:
        await client.delete_cluster(cluster_path("p", "l", "n"))

    assert list_info.value.operation == "list"
    assert delete_info.value.operation == "delete"
    assert isinstance(delete_info.value.__cause__, google_exceptions.RetryError)


@pytest.mark.asyncio
async def test_credential_errors_are_wrapped() -> None:
    manager = FakeClusterManager(error=google_auth_exceptions.DefaultCredentialsError("no credentials"))
    client = GKEClient(client=manager)

    with pytest.raises(RemoteInventoryError) as exc_info:
        await client.delete_cluster(cluster_path("p", "l", "n"))
    assert exc_info.value.operation == "delete"
