"""Pydantic schemas for Entity model."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from scrapehub.enums import ContentType, EntityType, PageType, ScrapingStatus, Temporal
from scrapehub.schemas.source import SourceSummary


class EntityRead(BaseModel):
    """Full entity output."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    source_id: UUID
    url: str
    url_hash: str
    type: EntityType
    page_type: PageType | None = None
    content_type: ContentType | None = None
    temporal: Temporal | None = None
    description: str | None = None
    canonical_number: int = 0
    scraping_status: ScrapingStatus
    attempts: int = 0
    snapshots_count: int = 0
    next_scrape_at: datetime | None = None
    fetched_at: datetime | None = None
    policy_result: dict[str, Any] | None = None
    source_published_at: datetime | None = None
    source_updated_at: datetime | None = None
    is_dormant: bool = False
    created_at: datetime
    updated_at: datetime


class EntityWithSource(EntityRead):
    """Entity with embedded source info."""

    source: SourceSummary | None = None


class EntityResetResponse(BaseModel):
    """Response from resetting an entity's retry state."""

    message: str
    entity: EntityRead
