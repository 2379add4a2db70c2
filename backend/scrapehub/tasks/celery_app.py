"""Celery application configuration and beat schedule."""

from celery import Celery
from celery.schedules import crontab
from kombu import Queue

from scrapehub.config import get_settings

settings = get_settings()

celery_app = Celery(
    "scrapehub",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "scrapehub.tasks.scrape_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    task_track_started=True,
    task_time_limit=600,
    task_soft_time_limit=540,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_queues=[
        Queue(settings.scraping_queue),
        Queue(settings.scheduler_queue),
    ],
    task_default_queue=settings.scheduler_queue,
    task_routes={
        "scrapehub.tasks.scrape_tasks.scrape_entity": {"queue": settings.scraping_queue},
    },
)

celery_app.conf.beat_schedule = {
    # Safety net; the scheduler re-dispatches itself after every pass
    "kick-scheduler": {
        "task": "scrapehub.tasks.scrape_tasks.kick_scheduler",
        "schedule": crontab(minute="*"),
    },
    "sweep-sources": {
        "task": "scrapehub.tasks.scrape_tasks.sweep_sources",
        "schedule": crontab(minute="*/5"),
    },
    "recount-entities": {
        "task": "scrapehub.tasks.scrape_tasks.recount_entities",
        "schedule": crontab(minute=15, hour=3),
    },
}
