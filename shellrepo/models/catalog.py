"""Catalog subscription models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from shellrepo.models.packages import PackageRecord


class SubscriptionState(str, Enum):
    IDLE = "idle"
    WAITING_FOR_IDENTITY = "waiting_for_identity"
    LIVE = "live"
    ERRORED = "errored"  # terminal, not retried
    CLOSED = "closed"  # terminal


class CatalogSnapshot(BaseModel):
    """The full set of records delivered by one push notification.

    Unordered: the subscription applies no ordering clause.
    """

    model_config = ConfigDict(frozen=True)

    records: tuple[PackageRecord, ...] = ()
    sequence: int = 0  # number of pushes received so far
    received_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def find(self, name: str, version: str | None = None) -> list[PackageRecord]:
        """Records whose normalized name (and optionally version) match."""
        key = name.strip().lower()
        return [
            r for r in self.records
            if r.name == key and (version is None or r.version == version)
        ]

    def newest_first(self) -> list[PackageRecord]:
        """Client-side ordering by store-assigned upload time."""
        return sorted(self.records, key=lambda r: r.upload_time, reverse=True)
