"""Explicit construction of collaborators from configured driver names."""

import logging
from typing import Type

from scrapehub.config import Settings, get_settings
from scrapehub.events import EntityEventBus
from scrapehub.services.classifier import BasicPageClassifier, OpenAIPageClassifier, PageClassifier
from scrapehub.services.entity_counts import EntityCountMaintainer
from scrapehub.services.fetcher import HttpFetcher
from scrapehub.services.openai_client import get_openai_client
from scrapehub.services.parser import BasicPageParser, OpenAIPageParser, PageParser
from scrapehub.services.policy import (
    DummyScrapePolicyEngine,
    OpenAIPolicyScorer,
    ScrapePolicyEngine,
    SignalDecayPolicyEngine,
)
from scrapehub.services.scheduler import ScrapeScheduler
from scrapehub.services.scrape_worker import ScrapeEntityWorker
from scrapehub.services.source_sweep import SourceSweeper

logger = logging.getLogger(__name__)

CLASSIFIER_DRIVERS: dict[str, Type[PageClassifier]] = {
    "basic": BasicPageClassifier,
    "openai": OpenAIPageClassifier,
}

PARSER_DRIVERS: dict[str, Type[PageParser]] = {
    "basic": BasicPageParser,
    "openai": OpenAIPageParser,
}

POLICY_ENGINE_DRIVERS: dict[str, Type[ScrapePolicyEngine]] = {
    "dummy": DummyScrapePolicyEngine,
    "openai": SignalDecayPolicyEngine,
}


def _driver(drivers: dict, name: str, kind: str):
    try:
        return drivers[name]
    except KeyError:
        raise ValueError(f"Unknown {kind} driver '{name}' (expected one of: {', '.join(drivers)})") from None


def build_classifier(settings: Settings | None = None) -> PageClassifier:
    settings = settings or get_settings()
    cls = _driver(CLASSIFIER_DRIVERS, settings.page_classifier_driver, "page classifier")
    if cls is OpenAIPageClassifier:
        return cls(get_openai_client(settings), model=settings.openai_model, max_html_length=settings.html_max_length)
    return cls()


def build_parser(settings: Settings | None = None) -> PageParser:
    settings = settings or get_settings()
    cls = _driver(PARSER_DRIVERS, settings.page_parser_driver, "page parser")
    if cls is OpenAIPageParser:
        return cls(get_openai_client(settings), model=settings.openai_model, max_html_length=settings.html_max_length)
    return cls()


def build_policy_engine(settings: Settings | None = None) -> ScrapePolicyEngine:
    settings = settings or get_settings()
    cls = _driver(POLICY_ENGINE_DRIVERS, settings.scrape_policy_engine_driver, "scrape policy engine")
    options = {
        "history_size": settings.policy_history_size,
        "default_interval_hours": settings.policy_default_interval_hours,
    }
    if cls is SignalDecayPolicyEngine:
        scorer = OpenAIPolicyScorer(get_openai_client(settings), model=settings.openai_model)
        return cls(scorer, **options)
    return cls(**options)


def build_event_bus(session_factory) -> EntityEventBus:
    bus = EntityEventBus()
    bus.subscribe(EntityCountMaintainer(session_factory))
    return bus


def build_worker(session_factory, events: EntityEventBus, settings: Settings | None = None) -> ScrapeEntityWorker:
    settings = settings or get_settings()
    return ScrapeEntityWorker(
        session_factory,
        fetcher=HttpFetcher.from_settings(settings),
        classifier=build_classifier(settings),
        parser=build_parser(settings),
        policy_engine=build_policy_engine(settings),
        events=events,
        max_attempts=settings.max_scrape_attempts,
    )


def build_scheduler(session_factory, queue, lock, events: EntityEventBus, settings: Settings | None = None) -> ScrapeScheduler:
    settings = settings or get_settings()
    return ScrapeScheduler(
        session_factory,
        queue,
        lock,
        events=events,
        dispatch_limit=settings.scheduler_dispatch_limit,
        max_queue_size=settings.max_scraping_queue_size,
        in_flight_timeout=settings.scrape_in_flight_timeout_seconds,
    )


def build_sweeper(session_factory, queue, events: EntityEventBus, settings: Settings | None = None) -> SourceSweeper:
    settings = settings or get_settings()
    return SourceSweeper(
        session_factory,
        queue,
        events=events,
        chunk_size=settings.scrape_sources_chunk_size,
        max_seconds=settings.scrape_sources_max_seconds,
        max_attempts=settings.max_scrape_attempts,
        max_queue_size=settings.max_scraping_queue_size,
        in_flight_timeout=settings.scrape_in_flight_timeout_seconds,
    )
