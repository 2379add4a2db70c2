"""Source API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scrapehub.database import get_db
from scrapehub.models.entity_count import EntityCount
from scrapehub.models.source import Source
from scrapehub.schemas.source import EntityCountRead, SourceRead, SourceWithCounts

router = APIRouter(prefix="/sources", tags=["sources"])


@router.get("", response_model=list[SourceRead])
async def list_sources(
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    country: str | None = Query(None, description="Filter by scraping country code"),
):
    """List sources, most recently updated first."""
    query = select(Source)

    if country:
        query = query.where(Source.scraping_country_code == country.upper())

    query = query.order_by(Source.updated_at.desc(), Source.name).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{source_id}", response_model=SourceWithCounts)
async def get_source(
    source_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a single source with entity counts by type and status."""
    source = await db.get(Source, source_id)
    if not source:
        raise HTTPException(status_code=404, detail="Source not found")

    counts_query = (
        select(EntityCount)
        .where(EntityCount.source_id == source_id, EntityCount.count > 0)
        .order_by(EntityCount.entity_type, EntityCount.scraping_status)
    )
    counts = (await db.execute(counts_query)).scalars().all()

    return SourceWithCounts(
        **SourceRead.model_validate(source).model_dump(),
        total_entities=sum(c.count for c in counts),
        entity_counts=[EntityCountRead.model_validate(c) for c in counts],
    )
