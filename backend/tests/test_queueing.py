import uuid
from unittest.mock import MagicMock

from redis.exceptions import LockError

from scrapehub.services.queueing import (
    SCRAPE_ENTITY_TASK,
    CeleryScrapeQueue,
    RedisExecutionLock,
    RedisQueueMonitor,
    UniqueDispatch,
)


def test_queue_monitor_reads_list_length():
    client = MagicMock()
    client.llen.return_value = 7

    assert RedisQueueMonitor(client).size("scraping") == 7
    client.llen.assert_called_once_with("scraping")


def test_queue_monitor_treats_missing_queue_as_empty():
    client = MagicMock()
    client.llen.return_value = None

    assert RedisQueueMonitor(client).size("scraping") == 0


def test_execution_lock_is_non_blocking():
    client = MagicMock()
    client.lock.return_value.acquire.return_value = False

    lock = RedisExecutionLock(client, "k", ttl=300)

    assert lock.acquire() is False
    client.lock.assert_called_once_with("k", timeout=300)
    client.lock.return_value.acquire.assert_called_once_with(blocking=False)


def test_execution_lock_release_tolerates_expired_lock():
    client = MagicMock()
    client.lock.return_value.release.side_effect = LockError("not owned")

    RedisExecutionLock(client, "k", ttl=300).release()


def test_unique_dispatch_claims_with_nx_and_ttl():
    client = MagicMock()
    client.set.side_effect = [True, None]
    unique = UniqueDispatch(client, "u", ttl=60)

    assert unique.claim() is True
    assert unique.claim() is False
    client.set.assert_called_with("u", "1", nx=True, ex=60)


def test_unique_dispatch_clear_and_pending():
    client = MagicMock()
    client.exists.return_value = 0
    unique = UniqueDispatch(client, "u", ttl=60)

    unique.clear()

    client.delete.assert_called_once_with("u")
    assert unique.is_pending() is False


def test_celery_queue_sends_entity_id_by_task_name():
    celery_app = MagicMock()
    monitor = MagicMock()
    monitor.size.return_value = 3
    queue = CeleryScrapeQueue(celery_app, monitor, "scraping")
    entity_id = uuid.uuid4()

    queue.dispatch(entity_id)

    assert queue.size() == 3
    monitor.size.assert_called_once_with("scraping")
    celery_app.send_task.assert_called_once_with(SCRAPE_ENTITY_TASK, args=[str(entity_id)], queue="scraping")
