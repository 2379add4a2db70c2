"""
Shared pytest configuration for backend tests.

Provides:
- --run-integration flag (tests marked ``integration`` need Postgres/Redis)
- In-memory SQLite database and session factory
- Test doubles for the fetcher, scrape queue and scheduler lock
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scrapehub.enums import ScrapingStatus
from scrapehub.events import EntityEventBus
from scrapehub.models import Base, Entity, Source
from scrapehub.services.fetcher import FetchResponse

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

PAGE_HTML = """<html>
<head>
  <title>Widget launch</title>
  <meta name="description" content="All about the new widget.">
  <meta property="og:type" content="article">
  <meta property="article:published_time" content="2026-10-18T09:30:00Z">
  <script type="application/ld+json">{"@type": "NewsArticle"}</script>
</head>
<body>
  <h1>Widget launch</h1>
  <p>The widget ships today with a new battery and a lighter frame.</p>
  <p>Read <a href="/news/one">the first story</a> or <a href="https://example.com/news/two">the second</a>.</p>
  <p><a href="https://other.com/y">Elsewhere</a></p>
  <p><img src="/img/widget.png" alt="widget"></p>
</body>
</html>"""


def pytest_addoption(parser):
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests marked as integration (requires Postgres/Redis).",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="integration test (use --run-integration to run)")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_conn, _record):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def source(db):
    source = Source(name="Example", base_url="https://example.com/", authority_score=60, priority=0.7)
    db.add(source)
    db.commit()
    return source


@pytest.fixture
def make_entity(db, source):
    def _make(url="https://example.com/page", status=ScrapingStatus.QUEUED, **fields):
        entity = Entity(source_id=fields.pop("source_id", source.id), url=url, scraping_status=status, **fields)
        db.add(entity)
        db.commit()
        return entity
    return _make


# =============================================================================
# TEST DOUBLES
# =============================================================================

class FakeFetcher:
    def __init__(self, response: FetchResponse | None = None, error: Exception | None = None):
        self.response = response or FetchResponse(status_code=200, body=PAGE_HTML, headers={})
        self.error = error
        self.calls = []

    def fetch(self, url, options=None):
        self.calls.append((url, options))
        if self.error is not None:
            raise self.error
        return self.response


class FakeQueue:
    """Queue depth is the preloaded size plus everything dispatched so far."""

    def __init__(self, size: int = 0):
        self.preloaded = size
        self.dispatched = []

    def size(self) -> int:
        return self.preloaded + len(self.dispatched)

    def dispatch(self, entity_id) -> None:
        self.dispatched.append(entity_id)


class FakeLock:
    def __init__(self, available: bool = True):
        self.available = available
        self.acquired = 0
        self.released = 0

    def acquire(self) -> bool:
        if not self.available:
            return False
        self.acquired += 1
        return True

    def release(self) -> None:
        self.released += 1


@pytest.fixture
def events():
    bus = EntityEventBus()
    bus.received = []
    bus.subscribe(bus.received.append)
    return bus


@pytest.fixture
def clock():
    return lambda: NOW
