"""
GKE Cleaner reconciler.

Background task that pairs the remote cluster inventory with the local
expiration store once per poll interval, then deletes expired clusters.

A cycle has two phases:

- sync (fail-fast): list remote clusters, apply the label filter, diff by
  name against stored records, then insert/update/delete records. Any
  inventory or store error ends the cycle.
- cleanup (best-effort): for every expired, non-ignored record resolve the
  cluster location and request deletion. Failures are isolated per cluster.

Cleanup never deletes records. A record disappears only when a later sync
no longer sees the cluster remotely, so a failed delete is retried on the
next cycle.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, Protocol, Sequence

from gke_cleaner.control_plane.gke_client import cluster_path
from gke_cleaner.ledger.cluster_store import ClusterStore
from gke_cleaner.ledger.models import ClusterDiff, ClusterRecord, ClusterSnapshot, RemoteCluster
from gke_cleaner.shared.errors import (
    ClusterLocationNotFoundError,
    ConfigurationError,
    RemoteInventoryError,
    StoreError,
)
from gke_cleaner.shared.logging import RECONCILER_LOGGER
from gke_cleaner.utils import format_duration, split_label_filter, utc_now

logger = logging.getLogger(RECONCILER_LOGGER)

LabelPredicate = tuple[str, str]


class ClusterInventory(Protocol):
    async def list_clusters(self, project: str) -> list[RemoteCluster]: ...

    async def delete_cluster(self, name: str) -> object: ...


# =============================================================================
# Filtering and diffing
# =============================================================================
def parse_label_filters(filters: Iterable[str]) -> list[LabelPredicate]:
    """Split ``key=value`` strings on the first ``=``."""
    predicates = []
    for item in filters:
        try:
            predicates.append(split_label_filter(item))
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
    return predicates


def filter_clusters(
    clusters: Sequence[RemoteCluster],
    predicates: Sequence[LabelPredicate],
) -> list[RemoteCluster]:
    """
    Keep clusters whose labels match at least one predicate.

    An empty predicate list keeps every cluster.
    """
    if not predicates:
        return list(clusters)
    return [
        cluster
        for cluster in clusters
        if any(cluster.resource_labels.get(key) == value for key, value in predicates)
    ]


def diff_clusters(
    remote: Iterable[ClusterSnapshot],
    known: Iterable[ClusterSnapshot],
) -> ClusterDiff:
    """
    Partition names into added, removed and updated.

    ``updated`` holds names present on both sides whose creation time
    changed, i.e. clusters deleted and recreated under the same name.
    """
    remote_by_name = {snapshot.name: snapshot for snapshot in remote}
    known_by_name = {snapshot.name: snapshot for snapshot in known}

    diff = ClusterDiff()
    for name in sorted(remote_by_name):
        snapshot = remote_by_name[name]
        previous = known_by_name.get(name)
        if previous is None:
            diff.added.append(snapshot)
        elif previous.create_time != snapshot.create_time:
            diff.updated.append(snapshot)

    diff.removed = sorted(name for name in known_by_name if name not in remote_by_name)
    return diff


# =============================================================================
# Reconciler
# =============================================================================
@dataclass
class CycleReport:
    """Outcome of one sync + cleanup cycle."""
    started_at: datetime
    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ClusterReconciler:
    """Periodic reconciler between GKE inventory and the cluster store."""

    def __init__(
        self,
        *,
        store: ClusterStore,
        inventory: ClusterInventory,
        project: str,
        lifetime: timedelta,
        poll_interval_seconds: float = 600.0,
        label_filters: Iterable[str] = (),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.inventory = inventory
        self.project = project
        self.lifetime = lifetime
        self.poll_interval_seconds = float(poll_interval_seconds)
        self.label_predicates = parse_label_filters(label_filters)
        self.clock = clock
        self._task: asyncio.Task[None] | None = None
        self._stop = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run_loop(), name="gke-cleaner-reconciler")
        logger.info(
            "Reconciler started (project=%s lifetime=%s poll=%ss filters=%s).",
            self.project,
            format_duration(self.lifetime),
            self.poll_interval_seconds,
            [f"{key}={value}" for key, value in self.label_predicates] or "none",
        )

    async def stop(self) -> None:
        self._stop.set()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Reconciler stopped.")

    async def _run_loop(self) -> None:
        while not self._stop.is_set():
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Reconciler loop error.")
            await asyncio.sleep(self.poll_interval_seconds)

    async def run_cycle(self) -> CycleReport:
        """Run sync, then cleanup if sync succeeded."""
        report = CycleReport(started_at=self.clock())
        logger.debug("Polling (project=%s).", self.project)

        try:
            listing = await self.sync_once(report)
        except (RemoteInventoryError, StoreError) as exc:
            report.error = str(exc)
            logger.error("Failed to sync gke clusters: %s", exc)
            return report

        try:
            await self.cleanup_expired(report, listing=listing)
        except (RemoteInventoryError, StoreError) as exc:
            report.error = str(exc)
            logger.error("Failed to cleanup expired clusters: %s", exc)
        return report

    async def sync_once(self, report: CycleReport | None = None) -> list[RemoteCluster]:
        """
        Reconcile stored records with the remote inventory.

        Returns the unfiltered remote listing so cleanup can resolve
        locations without listing again in the same cycle.

        The read of known records and the writes that follow are separate
        statements, so a renew landing in between is overwritten if the
        same name is classified as updated.
        """
        if report is None:
            report = CycleReport(started_at=self.clock())

        listing = await self.inventory.list_clusters(self.project)
        tracked = filter_clusters(listing, self.label_predicates)
        known = await self.store.list()

        diff = diff_clusters(
            (cluster.snapshot() for cluster in tracked),
            (record.snapshot() for record in known),
        )
        if diff.empty:
            logger.debug("No inventory changes (tracked=%d).", len(tracked))
            return listing

        for snapshot in diff.added:
            expiration = snapshot.create_time + self.lifetime
            await self.store.insert(snapshot.name, snapshot.create_time, expiration, ignore=False)
            report.added.append(snapshot.name)
            logger.info(
                "Discovered cluster (cluster=%s expiration=%s).",
                snapshot.name,
                expiration.isoformat(),
            )

        for snapshot in diff.updated:
            expiration = snapshot.create_time + self.lifetime
            await self.store.update_create_and_expiration_date(
                snapshot.name, snapshot.create_time, expiration
            )
            report.updated.append(snapshot.name)
            logger.info(
                "Detected recreated cluster (cluster=%s create_time=%s expiration=%s).",
                snapshot.name,
                snapshot.create_time.isoformat(),
                expiration.isoformat(),
            )

        for name in diff.removed:
            await self.store.delete(name)
            report.removed.append(name)
            logger.info("Detected removal (cluster=%s).", name)

        return listing

    async def cleanup_expired(
        self,
        report: CycleReport | None = None,
        listing: Sequence[RemoteCluster] | None = None,
    ) -> CycleReport:
        """
        Request deletion of expired, non-ignored clusters.

        Args:
            report: Report to record outcomes on (a new one when omitted)
            listing: Remote inventory used to resolve locations; listed
                fresh when omitted
        """
        if report is None:
            report = CycleReport(started_at=self.clock())

        expired = await self.store.list_expired(self.clock())
        targets = []
        for record in expired:
            if record.ignore:
                logger.debug("Skipping ignored expired cluster (cluster=%s).", record.name)
                continue
            targets.append(record)
        if not targets:
            return report

        if listing is None:
            listing = await self.inventory.list_clusters(self.project)
        locations = {cluster.name: cluster.location for cluster in listing}

        for record in targets:
            if await self._delete_expired(record, locations):
                report.deleted.append(record.name)
            else:
                report.failed.append(record.name)
        return report

    async def _delete_expired(self, record: ClusterRecord, locations: dict[str, str]) -> bool:
        try:
            location = locations.get(record.name)
            if location is None:
                raise ClusterLocationNotFoundError(record.name)
            await self.inventory.delete_cluster(cluster_path(self.project, location, record.name))
        except ClusterLocationNotFoundError as exc:
            logger.error("Failed to get cluster location. Skipping (cluster=%s): %s", record.name, exc)
            return False
        except RemoteInventoryError as exc:
            logger.error("Failed to delete cluster. Skipping (cluster=%s): %s", record.name, exc)
            return False

        logger.info(
            "Removed expired cluster (cluster=%s location=%s expiration=%s).",
            record.name,
            location,
            record.expiration_date.isoformat(),
        )
        return True
