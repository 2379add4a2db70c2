"""Source sweep: make sure every source has something planned.

Sources are walked most-recently-updated first in fixed-size chunks. The
time budget is checked between chunks only, so one slow chunk can overrun it.
"""

import logging
import time
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import exists, or_, select
from sqlalchemy.exc import IntegrityError

from scrapehub.enums import ScrapingStatus
from scrapehub.events import EntityEvent, EntityEventBus
from scrapehub.models.base import as_utc, utcnow
from scrapehub.models.entity import Entity, url_fingerprint
from scrapehub.models.source import Source
from scrapehub.services.urls import normalize_url

logger = logging.getLogger(__name__)


class SourceSweeper:
    def __init__(
        self,
        session_factory,
        queue,
        events: EntityEventBus | None = None,
        chunk_size: int = 100,
        max_seconds: float = 240,
        max_attempts: int = 5,
        max_queue_size: int = 500,
        in_flight_timeout: float = 900,
        clock: Callable[[], datetime] = utcnow,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.session_factory = session_factory
        self.queue = queue
        self.events = events or EntityEventBus()
        self.chunk_size = chunk_size
        self.max_seconds = max_seconds
        self.max_attempts = max_attempts
        self.max_queue_size = max_queue_size
        self.in_flight_timeout = in_flight_timeout
        self.clock = clock
        self.monotonic = monotonic

    def run(self) -> dict:
        started = self.monotonic()
        stats = {"sources": 0, "planned": 0, "created": 0, "dispatched": 0, "timed_out": False}

        db = self.session_factory()
        try:
            offset = 0
            while True:
                if self.monotonic() - started >= self.max_seconds:
                    stats["timed_out"] = True
                    logger.warning(f"Source sweep stopped after {stats['sources']} sources (budget {self.max_seconds}s)")
                    break

                sources = db.execute(
                    select(Source)
                    .order_by(Source.updated_at.desc(), Source.id)
                    .offset(offset)
                    .limit(self.chunk_size)
                ).scalars().all()
                if not sources:
                    break

                for source in sources:
                    self.sweep_source(db, source, stats)
                stats["sources"] += len(sources)

                if len(sources) < self.chunk_size:
                    break
                offset += self.chunk_size
        finally:
            db.close()

        logger.info(f"Source sweep finished: {stats}")
        return stats

    def has_planned_scrape(self, db, source_id, now: datetime) -> bool:
        """A PENDING entity with attempts left that is due now or has no due time."""
        return db.execute(
            select(exists().where(
                Entity.source_id == source_id,
                Entity.scraping_status == ScrapingStatus.PENDING,
                Entity.attempts < self.max_attempts,
                or_(Entity.next_scrape_at.is_(None), Entity.next_scrape_at <= now),
            ))
        ).scalar()

    def is_busy(self, entity: Entity, now: datetime) -> bool:
        """Handed to a worker recently enough that it is not considered lost."""
        if entity.scraping_status not in ScrapingStatus.in_flight():
            return False
        updated_at = as_utc(entity.updated_at)
        return updated_at is not None and updated_at > now - timedelta(seconds=self.in_flight_timeout)

    def sweep_source(self, db, source: Source, stats: dict) -> None:
        now = self.clock()
        if self.has_planned_scrape(db, source.id, now):
            stats["planned"] += 1
            return

        base_url = normalize_url(source.base_url or "")
        if not base_url:
            logger.debug(f"Source {source.id} has no usable base URL")
            return

        entity = self.ensure_entity(db, source.id, base_url, stats)
        if entity.is_dormant or self.is_busy(entity, now):
            return

        if self.queue.size() >= self.max_queue_size:
            logger.debug(f"Scraping queue full, not dispatching base URL of source {source.id}")
            return

        old_status = entity.scraping_status
        entity.scraping_status = ScrapingStatus.QUEUED
        entity.updated_at = now
        db.commit()
        self.queue.dispatch(entity.id)
        self.events.emit(EntityEvent.transition(entity, old_status=old_status))
        stats["dispatched"] += 1

    def find_entity(self, db, source_id, url: str) -> Entity | None:
        return db.execute(
            select(Entity).where(Entity.source_id == source_id, Entity.url_hash == url_fingerprint(url))
        ).scalar_one_or_none()

    def ensure_entity(self, db, source_id, url: str, stats: dict) -> Entity:
        entity = self.find_entity(db, source_id, url)
        if entity is not None:
            return entity

        entity = Entity(source_id=source_id, url=url)
        db.add(entity)
        try:
            db.commit()
        except IntegrityError:
            # Discovery or another sweep created it first
            db.rollback()
            return self.find_entity(db, source_id, url)

        self.events.emit(EntityEvent.created(entity))
        stats["created"] += 1
        return entity
