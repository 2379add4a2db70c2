"""Pydantic schemas package."""

from scrapehub.schemas.source import (
    EntityCountRead,
    SourceBase,
    SourceCreate,
    SourceRead,
    SourceSummary,
    SourceWithCounts,
)
from scrapehub.schemas.entity import (
    EntityRead,
    EntityResetResponse,
    EntityWithSource,
)
from scrapehub.schemas.snapshot import SnapshotRead

__all__ = [
    # Source
    "EntityCountRead",
    "SourceBase",
    "SourceCreate",
    "SourceRead",
    "SourceSummary",
    "SourceWithCounts",
    # Entity
    "EntityRead",
    "EntityResetResponse",
    "EntityWithSource",
    # Snapshot
    "SnapshotRead",
]
