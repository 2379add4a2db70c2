"""Aggregate entity counts per source, type and scraping status."""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from scrapehub.enums import EntityType, ScrapingStatus
from scrapehub.events import CREATED, DELETED, UPDATED, EntityEvent
from scrapehub.models.entity import Entity
from scrapehub.models.entity_count import EntityCount

logger = logging.getLogger(__name__)


class EntityCountMaintainer:
    """Event subscriber keeping EntityCount rows in step with entity transitions."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def __call__(self, event: EntityEvent) -> None:
        if event.kind == UPDATED and not event.changes_bucket:
            return

        db = self.session_factory()
        try:
            if event.kind in (UPDATED, DELETED):
                self._adjust(db, event.source_id, event.old_type, event.old_status, -1)
            if event.kind in (CREATED, UPDATED):
                self._adjust(db, event.source_id, event.new_type, event.new_status, 1)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def _adjust(
        db,
        source_id: uuid.UUID,
        entity_type: EntityType | None,
        status: ScrapingStatus | None,
        delta: int,
    ) -> None:
        if entity_type is None or status is None:
            return

        record = db.execute(
            select(EntityCount)
            .where(
                EntityCount.source_id == source_id,
                EntityCount.entity_type == entity_type,
                EntityCount.scraping_status == status,
            )
            .with_for_update()
        ).scalar_one_or_none()

        if record:
            record.count = max(0, (record.count or 0) + delta)
        else:
            db.add(EntityCount(
                source_id=source_id,
                entity_type=entity_type,
                scraping_status=status,
                count=max(0, delta),
            ))
        db.flush()


def recount_entities(db) -> int:
    """Rebuild every EntityCount row from the entities table. Returns bucket count."""
    rows = db.execute(
        select(Entity.source_id, Entity.type, Entity.scraping_status, func.count(Entity.id))
        .group_by(Entity.source_id, Entity.type, Entity.scraping_status)
    ).all()

    db.query(EntityCount).delete(synchronize_session=False)
    for source_id, entity_type, status, count in rows:
        db.add(EntityCount(
            source_id=source_id,
            entity_type=entity_type,
            scraping_status=status,
            count=count,
        ))
    db.commit()
    logger.info(f"Rebuilt {len(rows)} entity count buckets")
    return len(rows)
