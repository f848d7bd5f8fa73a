"""
GKE cluster-manager client for the GKE Cleaner reconciler.

Thin adapter over the Kubernetes Engine API: lists every cluster in a
project and deletes one cluster by fully-qualified resource name. Protobuf
clusters are converted into RemoteCluster values here so nothing
downstream sees API types.
"""

from __future__ import annotations

import logging
from typing import Any

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as google_auth_exceptions
from google.cloud import container_v1
from google.oauth2 import service_account

from gke_cleaner.ledger.models import RemoteCluster
from gke_cleaner.shared.errors import RemoteInventoryError
from gke_cleaner.shared.logging import GKE_LOGGER
from gke_cleaner.utils import parse_datetime

logger = logging.getLogger(GKE_LOGGER)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"

# RetryError and credential failures are not GoogleAPICallError subclasses.
_REMOTE_ERRORS = (google_exceptions.GoogleAPIError, google_auth_exceptions.GoogleAuthError)


def locations_path(project: str) -> str:
    """Parent resource covering every location of a project."""
    return f"projects/{project}/locations/-"


def cluster_path(project: str, location: str, name: str) -> str:
    return f"projects/{project}/locations/{location}/clusters/{name}"


def to_remote_cluster(cluster: Any) -> RemoteCluster:
    """Convert a container_v1 Cluster message into a RemoteCluster."""
    try:
        create_time = parse_datetime(cluster.create_time)
    except (TypeError, ValueError) as exc:
        raise RemoteInventoryError(
            "list",
            f"cluster {cluster.name} has unparsable create_time {cluster.create_time!r}",
        ) from exc
    return RemoteCluster(
        name=cluster.name,
        create_time=create_time,
        location=cluster.location,
        resource_labels=dict(cluster.resource_labels),
    )


class GKEClient:
    """Kubernetes Engine inventory client."""

    def __init__(
        self,
        credentials_info: dict[str, Any] | None = None,
        client: Any | None = None,
    ) -> None:
        self._credentials_info = credentials_info
        self._client = client

    def _get_client(self) -> Any:
        # The async transport binds to the running loop, so build lazily.
        if self._client is None:
            credentials = None
            if self._credentials_info is not None:
                credentials = service_account.Credentials.from_service_account_info(
                    self._credentials_info,
                    scopes=[CLOUD_PLATFORM_SCOPE],
                )
            self._client = container_v1.ClusterManagerAsyncClient(credentials=credentials)
        return self._client

    async def list_clusters(self, project: str) -> list[RemoteCluster]:
        """List clusters across every location of ``project``."""
        try:
            response = await self._get_client().list_clusters(
                request={"parent": locations_path(project)}
            )
        except _REMOTE_ERRORS as exc:
            raise RemoteInventoryError("list", exc) from exc

        if response.missing_zones:
            logger.warning(
                "Cluster listing incomplete (project=%s missing_zones=%s).",
                project,
                list(response.missing_zones),
            )
        return [to_remote_cluster(cluster) for cluster in response.clusters]

    async def delete_cluster(self, name: str) -> str:
        """
        Request deletion of one cluster.

        Args:
            name: ``projects/{p}/locations/{loc}/clusters/{name}``

        Returns:
            Name of the long-running delete operation
        """
        try:
            operation = await self._get_client().delete_cluster(request={"name": name})
        except _REMOTE_ERRORS as exc:
            raise RemoteInventoryError("delete", exc) from exc
        logger.debug("Delete requested (cluster=%s operation=%s).", name, operation.name)
        return operation.name
