"""Scrape orchestration tasks."""

import logging
import uuid
from functools import lru_cache

from scrapehub.config import get_settings
from scrapehub.database import SyncSessionLocal
from scrapehub.events import EntityEventBus
from scrapehub.services import entity_counts
from scrapehub.services.factory import build_event_bus, build_scheduler, build_sweeper, build_worker
from scrapehub.services.queueing import (
    CeleryScrapeQueue,
    RedisExecutionLock,
    RedisQueueMonitor,
    UniqueDispatch,
    get_redis,
)
from scrapehub.services.scrape_worker import ScrapeEntityWorker
from scrapehub.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)
settings = get_settings()

SCHEDULER_LOCK_KEY = "scrapehub:schedule-scrape-due:lock"
SCHEDULER_UNIQUE_KEY = "scrapehub:schedule-scrape-due:unique"


@lru_cache
def _redis():
    return get_redis(settings.redis_url)


@lru_cache
def _events() -> EntityEventBus:
    return build_event_bus(SyncSessionLocal)


@lru_cache
def _worker() -> ScrapeEntityWorker:
    return build_worker(SyncSessionLocal, _events(), settings)


def _scrape_queue() -> CeleryScrapeQueue:
    return CeleryScrapeQueue(celery_app, RedisQueueMonitor(_redis()), settings.scraping_queue)


def _scheduler_dispatch() -> UniqueDispatch:
    return UniqueDispatch(_redis(), SCHEDULER_UNIQUE_KEY, settings.scheduler_unique_for_seconds)


def dispatch_scheduler(limit: int, countdown: int | None = None) -> bool:
    """Enqueue a scheduler pass unless one is already waiting in the queue."""
    unique = _scheduler_dispatch()
    if not unique.claim():
        logger.debug("Scheduler pass already pending, not dispatching another")
        return False

    try:
        schedule_scrape_due.apply_async(
            kwargs={"limit": limit},
            countdown=countdown,
            queue=settings.scheduler_queue,
        )
    except Exception:
        unique.clear()
        raise
    return True


@celery_app.task(name="scrapehub.tasks.scrape_tasks.scrape_entity")
def scrape_entity(entity_id: str):
    """Run one scrape cycle for a queued entity."""
    status = _worker().run(uuid.UUID(entity_id))
    return {"entity_id": entity_id, "status": status.value if status else "skipped"}


@celery_app.task(name="scrapehub.tasks.scrape_tasks.kick_scheduler")
def kick_scheduler(limit: int | None = None):
    """Beat entry point. Goes through the dedup key like every other dispatch."""
    dispatched = dispatch_scheduler(limit or settings.scheduler_dispatch_limit)
    return {"dispatched": dispatched}


@celery_app.task(name="scrapehub.tasks.scrape_tasks.schedule_scrape_due")
def schedule_scrape_due(limit: int = 50):
    """
    Queue due entities, then re-dispatch self after a short delay.

    The dedup key only covers the waiting period: it is cleared as soon as
    this pass starts. Concurrent execution is prevented by the Redis lock.
    """
    _scheduler_dispatch().clear()

    lock = RedisExecutionLock(_redis(), SCHEDULER_LOCK_KEY, settings.scheduler_lock_seconds)
    scheduler = build_scheduler(SyncSessionLocal, _scrape_queue(), lock, _events(), settings)
    stats = scheduler.run(limit)
    if stats is None:
        return {"skipped": True}

    dispatch_scheduler(limit, countdown=settings.scheduler_redispatch_delay_seconds)
    return stats


@celery_app.task(
    name="scrapehub.tasks.scrape_tasks.sweep_sources",
    time_limit=settings.scrape_sources_max_seconds + 60,
)
def sweep_sources():
    """Ensure every source has a planned scrape, seeding base-URL entities."""
    sweeper = build_sweeper(SyncSessionLocal, _scrape_queue(), _events(), settings)
    return sweeper.run()


@celery_app.task(name="scrapehub.tasks.scrape_tasks.recount_entities")
def recount_entities():
    """Rebuild entity count aggregates from scratch."""
    db = SyncSessionLocal()
    try:
        buckets = entity_counts.recount_entities(db)
        return {"buckets": buckets}

    except Exception as e:
        db.rollback()
        logger.error(f"Entity recount failed: {e}")
        raise

    finally:
        db.close()
