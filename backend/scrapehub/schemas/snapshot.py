"""Pydantic schemas for Snapshot model."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from scrapehub.enums import ScrapingStatus


class SnapshotRead(BaseModel):
    """One fetch attempt. Markdown content is left out of listings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    entity_id: UUID
    version: int
    scraping_status: ScrapingStatus
    http_status: int | None = None
    content_length: int | None = None
    link_count: int | None = None
    media_count: int | None = None
    structured_data_count: int | None = None
    content_change_percentage: float | None = None
    content_hash: str | None = None
    fetch_duration_ms: int | None = None
    cost: float | None = None
    error_message: str | None = None
    created_at: datetime
