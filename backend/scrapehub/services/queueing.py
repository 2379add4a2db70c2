"""Redis-backed queue depth, execution lock and dispatch dedup key."""

import logging
import uuid

import redis
from redis.exceptions import LockError

logger = logging.getLogger(__name__)

SCRAPE_ENTITY_TASK = "scrapehub.tasks.scrape_tasks.scrape_entity"


def get_redis(url: str) -> redis.Redis:
    return redis.from_url(url, socket_timeout=5)


class RedisQueueMonitor:
    """Reads broker queue depth. Celery's Redis transport keeps each queue as a list."""

    def __init__(self, client: redis.Redis):
        self.client = client

    def size(self, queue: str) -> int:
        return int(self.client.llen(queue) or 0)


class RedisExecutionLock:
    """Process-wide mutual exclusion. The key expires after ``ttl`` seconds if never released."""

    def __init__(self, client: redis.Redis, key: str, ttl: int):
        self.key = key
        self.ttl = ttl
        self._lock = client.lock(key, timeout=ttl)

    def acquire(self) -> bool:
        return bool(self._lock.acquire(blocking=False))

    def release(self) -> None:
        try:
            self._lock.release()
        except LockError:
            # Already expired, or taken over after the TTL
            logger.warning(f"Lock {self.key} was not held at release (ttl {self.ttl}s)")


class UniqueDispatch:
    """At most one pending dispatch per key.

    The key is set when the task is enqueued and cleared once the task starts
    processing, so a running instance does not block the next enqueue.
    """

    def __init__(self, client: redis.Redis, key: str, ttl: int):
        self.client = client
        self.key = key
        self.ttl = ttl

    def claim(self) -> bool:
        return bool(self.client.set(self.key, "1", nx=True, ex=self.ttl))

    def clear(self) -> None:
        self.client.delete(self.key)

    def is_pending(self) -> bool:
        return bool(self.client.exists(self.key))


class CeleryScrapeQueue:
    """The scraping work queue as seen by the scheduler and the sweep."""

    def __init__(self, celery_app, monitor: RedisQueueMonitor, queue_name: str):
        self.celery_app = celery_app
        self.monitor = monitor
        self.queue_name = queue_name

    def size(self) -> int:
        return self.monitor.size(self.queue_name)

    def dispatch(self, entity_id: uuid.UUID) -> None:
        self.celery_app.send_task(SCRAPE_ENTITY_TASK, args=[str(entity_id)], queue=self.queue_name)
