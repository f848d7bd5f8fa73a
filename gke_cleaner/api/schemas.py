"""
GKE Cleaner API Schemas - Pydantic models for FastAPI endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from gke_cleaner.ledger.models import ClusterRecord


class ClusterResponse(BaseModel):
    """One tracked cluster."""

    name: str = Field(..., description="Cluster name")
    create_date: datetime = Field(..., description="Remote creation time when last observed")
    expiration_date: datetime = Field(..., description="Time after which the cluster is deleted")
    ignore: bool = Field(False, description="Exempt from deletion")

    @classmethod
    def from_record(cls, record: ClusterRecord) -> "ClusterResponse":
        return cls(
            name=record.name,
            create_date=record.create_date,
            expiration_date=record.expiration_date,
            ignore=record.ignore,
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field("ok", description="Service status")
    version: str = Field("1.0.0", description="API version")
    components: dict[str, str] = Field(
        default_factory=dict, description="Component status"
    )
