"""Due-entity scheduler: selects entities by due time and queues scrape workers."""

import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import select, update

from scrapehub.enums import ScrapingStatus
from scrapehub.events import UPDATED, EntityEvent, EntityEventBus
from scrapehub.models.base import utcnow
from scrapehub.models.entity import Entity

logger = logging.getLogger(__name__)


class ScrapeScheduler:
    """One scheduler pass, guarded by an execution lock.

    ``queue`` needs ``size()`` and ``dispatch(entity_id)``; ``lock`` needs
    ``acquire()`` returning bool and ``release()``.
    """

    def __init__(
        self,
        session_factory,
        queue,
        lock,
        events: EntityEventBus | None = None,
        dispatch_limit: int = 50,
        max_queue_size: int = 500,
        in_flight_timeout: float = 900,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.queue = queue
        self.lock = lock
        self.events = events or EntityEventBus()
        self.dispatch_limit = dispatch_limit
        self.max_queue_size = max_queue_size
        self.in_flight_timeout = in_flight_timeout
        self.clock = clock

    def available_slots(self) -> int:
        return max(0, self.max_queue_size - self.queue.size())

    def run(self, limit: int | None = None) -> dict | None:
        """Returns dispatch stats, or None when another pass holds the lock."""
        if not self.lock.acquire():
            logger.debug("Scheduler lock held by another run, skipping")
            return None
        try:
            return self.dispatch_due(limit)
        finally:
            self.lock.release()

    def due_query(self, status: ScrapingStatus, now: datetime, limit: int):
        query = select(Entity.id, Entity.source_id, Entity.type).where(Entity.scraping_status == status)
        if status in ScrapingStatus.in_flight():
            # Worker died or the message was lost
            query = query.where(Entity.updated_at <= now - timedelta(seconds=self.in_flight_timeout))
        elif status != ScrapingStatus.PENDING:
            query = query.where(Entity.next_scrape_at.is_not(None), Entity.next_scrape_at <= now)
        return (
            query.order_by(Entity.next_scrape_at.asc().nulls_first(), Entity.created_at)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )

    def dispatch_due(self, limit: int | None = None) -> dict:
        limit = limit or self.dispatch_limit
        now = self.clock()
        by_status = {}
        dispatched = 0

        db = self.session_factory()
        try:
            for status in ScrapingStatus:
                slots = self.available_slots()
                budget = min(limit - dispatched, slots)
                if budget <= 0:
                    logger.debug(f"No dispatch budget left (slots {slots}, dispatched {dispatched}/{limit})")
                    break

                rows = db.execute(self.due_query(status, now, budget)).all()
                if not rows:
                    continue

                db.execute(
                    update(Entity)
                    .where(Entity.id.in_([row.id for row in rows]), Entity.scraping_status == status)
                    .values(scraping_status=ScrapingStatus.QUEUED, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                db.commit()

                for row in rows:
                    self.queue.dispatch(row.id)
                    self.events.emit(EntityEvent(
                        kind=UPDATED,
                        entity_id=row.id,
                        source_id=row.source_id,
                        old_type=row.type,
                        old_status=status,
                        new_type=row.type,
                        new_status=ScrapingStatus.QUEUED,
                    ))

                by_status[status.value] = len(rows)
                dispatched += len(rows)
        finally:
            db.close()

        if dispatched:
            logger.info(f"Queued {dispatched} entities for scraping {by_status}")
        return {"dispatched": dispatched, "by_status": by_status}
