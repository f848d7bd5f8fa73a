"""
GKE Cleaner — Shared Error Definitions

Common exceptions used across all GKE Cleaner components.
"""

from __future__ import annotations


class GKECleanerError(Exception):
    """Base exception for all GKE Cleaner errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================
class ConfigurationError(GKECleanerError):
    """Raised when required configuration is missing or invalid."""
    pass


class MissingEnvironmentVariableError(ConfigurationError):
    """Raised when a required environment variable is not set."""
    def __init__(self, var_name: str):
        self.var_name = var_name
        super().__init__(f"{var_name} environment variable not found")


# =============================================================================
# Store Errors
# =============================================================================
class StoreError(GKECleanerError):
    """Raised when a cluster store statement fails."""
    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Cluster store {operation} failed: {cause}")


# =============================================================================
# Remote Inventory Errors
# =============================================================================
class RemoteInventoryError(GKECleanerError):
    """Raised when listing or deleting remote clusters fails."""
    def __init__(self, operation: str, cause: BaseException | str):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Remote {operation} failed: {cause}")


class ClusterLocationNotFoundError(GKECleanerError):
    """Raised when an expired cluster is absent from the remote listing."""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"couldn't find cluster: {name}")
