"""Entity API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from starlette.concurrency import run_in_threadpool

from scrapehub.database import get_db
from scrapehub.dependencies.events import get_event_bus
from scrapehub.enums import ScrapingStatus
from scrapehub.events import EntityEvent, EntityEventBus
from scrapehub.models.entity import Entity
from scrapehub.models.snapshot import Snapshot
from scrapehub.schemas.entity import EntityRead, EntityResetResponse, EntityWithSource
from scrapehub.schemas.snapshot import SnapshotRead
from scrapehub.schemas.source import SourceSummary

router = APIRouter(prefix="/entities", tags=["entities"])


@router.get("", response_model=list[EntityRead])
async def list_entities(
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    source_id: UUID | None = Query(None, description="Filter by source"),
    status: ScrapingStatus | None = Query(None, description="Filter by scraping status"),
    dormant: bool | None = Query(None, description="Only entities that stopped retrying"),
):
    """List entities, soonest due first."""
    query = select(Entity)

    if source_id:
        query = query.where(Entity.source_id == source_id)
    if status:
        query = query.where(Entity.scraping_status == status)
    if dormant is not None:
        is_dormant = Entity.scraping_status.in_(ScrapingStatus.error_statuses()) & Entity.next_scrape_at.is_(None)
        query = query.where(is_dormant if dormant else ~is_dormant)

    query = query.order_by(Entity.next_scrape_at.asc().nulls_first(), Entity.created_at).offset(skip).limit(limit)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{entity_id}", response_model=EntityWithSource)
async def get_entity(
    entity_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a single entity."""
    query = select(Entity).options(selectinload(Entity.source)).where(Entity.id == entity_id)
    entity = (await db.execute(query)).scalar_one_or_none()

    if not entity:
        raise HTTPException(status_code=404, detail="Entity not found")

    return EntityWithSource(
        **EntityRead.model_validate(entity).model_dump(),
        source=SourceSummary.model_validate(entity.source) if entity.source else None,
    )


@router.get("/{entity_id}/snapshots", response_model=list[SnapshotRead])
async def list_snapshots(
    entity_id: UUID,
    db: AsyncSession = Depends(get_db),
    limit: int = Query(20, ge=1, le=100),
):
    """Fetch history for an entity, newest first."""
    if not await db.get(Entity, entity_id):
        raise HTTPException(status_code=404, detail="Entity not found")

    query = (
        select(Snapshot)
        .where(Snapshot.entity_id == entity_id)
        .order_by(Snapshot.version.desc())
        .limit(limit)
    )
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/{entity_id}/reset", response_model=EntityResetResponse)
async def reset_entity(
    entity_id: UUID,
    db: AsyncSession = Depends(get_db),
    events: EntityEventBus = Depends(get_event_bus),
):
    """Return a dormant or stuck entity to PENDING with a clean retry budget."""
    entity = await db.get(Entity, entity_id, with_for_update=True)
    if not entity:
        raise HTTPException(status_code=404, detail="Entity not found")

    old_status = entity.scraping_status
    entity.scraping_status = ScrapingStatus.PENDING
    entity.attempts = 0
    entity.next_scrape_at = None
    await db.commit()
    await db.refresh(entity)

    await run_in_threadpool(events.emit, EntityEvent.transition(entity, old_status=old_status))

    return EntityResetResponse(
        message=f"Entity reset from {old_status.value}",
        entity=EntityRead.model_validate(entity),
    )
