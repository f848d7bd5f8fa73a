"""
GKE Cleaner — expiration enforcement for ephemeral GKE clusters.

Discovers clusters in one cloud project, assigns each an expiration of
creation time plus a configured lifetime, and deletes clusters past
expiration unless an operator marked them ignored.

Main Components:
- gke_cleaner.control_plane: GKE inventory client and reconciler
- gke_cleaner.ledger: cluster expiration store
- gke_cleaner.api: HTTP control surface (list/renew/ignore/unignore)
- gke_cleaner.shared: settings, errors, logging

Usage:
    python -m gke_cleaner.main
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
