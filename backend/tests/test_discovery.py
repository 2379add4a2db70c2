"""
Tests for same-host link discovery after a successful scrape.
"""

from unittest.mock import patch

from sqlalchemy import func, select

from scrapehub.enums import ScrapingStatus
from scrapehub.models import Entity, Source
from scrapehub.models.entity import url_fingerprint
from scrapehub.services.classifier import BasicPageClassifier
from scrapehub.services.parser import BasicPageParser
from scrapehub.services.policy import DummyScrapePolicyEngine
from scrapehub.services.scrape_worker import ScrapeEntityWorker
from scrapehub.services.urls import normalize_url, same_host_urls, url_host
from tests.conftest import FakeFetcher


def make_worker(session_factory, events):
    return ScrapeEntityWorker(
        session_factory,
        fetcher=FakeFetcher(),
        classifier=BasicPageClassifier(),
        parser=BasicPageParser(),
        policy_engine=DummyScrapePolicyEngine(),
        events=events,
    )


def urls_for(db, source_id):
    return set(db.execute(select(Entity.url).where(Entity.source_id == source_id)).scalars())


def test_normalize_url_requires_http_scheme():
    assert normalize_url("  https://example.com/a  ") == "https://example.com/a"
    assert normalize_url("ftp://example.com/a") == ""
    assert normalize_url("/relative") == ""
    assert normalize_url(None) == ""


def test_url_host_is_lowercase_without_port():
    assert url_host("https://Example.COM:8443/a") == "example.com"
    assert url_host("not a url") == ""


def test_same_host_filter_is_case_insensitive():
    urls = ["https://EXAMPLE.com/x", "https://other.com/y", "https://sub.example.com/z"]
    assert same_host_urls(urls, "Example.com") == ["https://EXAMPLE.com/x"]


def test_discovery_only_creates_same_host_entities(db, source, make_entity, session_factory, events):
    entity = make_entity(url="https://example.com/start")
    worker = make_worker(session_factory, events)

    created = worker.discover_links(db, entity.id, ["https://example.com/x", "https://other.com/y"])

    assert created == 1
    assert urls_for(db, source.id) == {"https://example.com/start", "https://example.com/x"}


def test_discovered_entities_are_pending_with_fingerprint(db, source, make_entity, session_factory, events):
    entity = make_entity(url="https://example.com/start")
    make_worker(session_factory, events).discover_links(db, entity.id, ["https://example.com/x"])

    db.expire_all()
    new = db.execute(select(Entity).where(Entity.url == "https://example.com/x")).scalar_one()
    assert new.scraping_status == ScrapingStatus.PENDING
    assert new.attempts == 0
    assert new.next_scrape_at is None
    assert new.url_hash == url_fingerprint("https://example.com/x")


def test_discovery_is_idempotent(db, source, make_entity, session_factory, events):
    entity = make_entity(url="https://example.com/start")
    worker = make_worker(session_factory, events)
    links = ["https://example.com/a", "https://example.com/b"]

    assert worker.discover_links(db, entity.id, links) == 2
    assert worker.discover_links(db, entity.id, links + ["https://example.com/c"]) == 1
    assert worker.discover_links(db, entity.id, links) == 0

    count = db.execute(select(func.count(Entity.id)).where(Entity.source_id == source.id)).scalar()
    assert count == 4


def test_discovery_deduplicates_within_one_batch(db, source, make_entity, session_factory, events):
    entity = make_entity(url="https://example.com/start")

    created = make_worker(session_factory, events).discover_links(
        db, entity.id, ["https://example.com/a", " https://example.com/a ", "https://example.com/start"],
    )

    assert created == 1


def test_same_url_under_another_source_is_still_created(db, source, make_entity, session_factory, events):
    other = Source(name="Mirror", base_url="https://example.com/")
    db.add(other)
    db.commit()
    make_entity(url="https://example.com/a", source_id=other.id)
    entity = make_entity(url="https://example.com/start")

    created = make_worker(session_factory, events).discover_links(db, entity.id, ["https://example.com/a"])

    assert created == 1


def test_discovery_failure_is_isolated(db, source, make_entity, session_factory, events):
    entity = make_entity(url="https://example.com/start")
    worker = make_worker(session_factory, events)

    with patch("scrapehub.services.scrape_worker.same_host_urls", side_effect=RuntimeError("boom")):
        created = worker.discover_links(db, entity.id, ["https://example.com/x"])

    assert created == 0
    assert urls_for(db, source.id) == {"https://example.com/start"}


def test_discovery_failure_does_not_fail_scrape(db, source, make_entity, session_factory, events):
    entity = make_entity(url="https://example.com/page")
    worker = make_worker(session_factory, events)

    with patch("scrapehub.services.scrape_worker.same_host_urls", side_effect=RuntimeError("boom")):
        status = worker.run(entity.id)

    assert status == ScrapingStatus.SUCCESS
    db.expire_all()
    assert db.get(Entity, entity.id).scraping_status == ScrapingStatus.SUCCESS
    assert urls_for(db, source.id) == {"https://example.com/page"}
