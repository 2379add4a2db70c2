"""Pydantic schemas for Source model."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from scrapehub.enums import EntityType, ScrapingStatus


class SourceBase(BaseModel):
    """Base fields for a source."""

    name: str
    base_url: str
    authority_score: int = Field(0, ge=0, le=100)
    priority: float = Field(0.5, ge=0.0, le=1.0)
    scraping_country_code: str | None = Field(None, min_length=2, max_length=2)


class SourceCreate(SourceBase):
    """Fields for creating or upserting a source."""


class SourceRead(SourceBase):
    """Full source output."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


class SourceSummary(BaseModel):
    """Minimal source info for nested responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    base_url: str


class EntityCountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entity_type: EntityType
    scraping_status: ScrapingStatus
    count: int


class SourceWithCounts(SourceRead):
    """Source with its entity count buckets."""

    total_entities: int = 0
    entity_counts: list[EntityCountRead] = []
