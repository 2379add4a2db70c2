"""
API tests against a file-backed SQLite database.

The app's async session dependency is swapped for an aiosqlite session on the
same file the sync fixtures seed.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from scrapehub.database import get_db
from scrapehub.dependencies.events import get_event_bus
from scrapehub.enums import EntityType, ScrapingStatus
from scrapehub.events import UPDATED, EntityEventBus
from scrapehub.main import app
from scrapehub.models import Base, Entity, Source
from scrapehub.models.entity_count import EntityCount
from scrapehub.models.snapshot import Snapshot
from tests.conftest import NOW


@pytest.fixture
def api_session(tmp_path):
    path = tmp_path / "api.db"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    yield session, path
    session.close()
    engine.dispose()


@pytest.fixture
def api_events():
    bus = EntityEventBus()
    bus.received = []
    bus.subscribe(bus.received.append)
    return bus


@pytest.fixture
def client(api_session, api_events):
    _, path = api_session
    async_engine = create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)
    AsyncTestSession = async_sessionmaker(async_engine, expire_on_commit=False)

    async def override_get_db():
        async with AsyncTestSession() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_bus] = lambda: api_events
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(api_session):
    db, _ = api_session
    example = Source(name="Example", base_url="https://example.com/", authority_score=60, priority=0.7)
    french = Source(name="Exemple", base_url="https://exemple.fr/", scraping_country_code="FR")
    db.add_all([example, french])
    db.flush()

    due = Entity(source_id=example.id, url="https://example.com/a", scraping_status=ScrapingStatus.PENDING)
    later = Entity(
        source_id=example.id,
        url="https://example.com/b",
        scraping_status=ScrapingStatus.SUCCESS,
        next_scrape_at=NOW + timedelta(hours=6),
    )
    dormant = Entity(
        source_id=example.id,
        url="https://example.com/c",
        scraping_status=ScrapingStatus.BLOCKED,
        attempts=5,
    )
    db.add_all([due, later, dormant])
    db.flush()

    db.add_all([
        Snapshot(entity_id=later.id, scraping_status=ScrapingStatus.SUCCESS, version=1, http_status=200),
        Snapshot(entity_id=later.id, scraping_status=ScrapingStatus.FAILED, version=2, http_status=500),
        EntityCount(source_id=example.id, entity_type=EntityType.UNCLASSIFIED, scraping_status=ScrapingStatus.PENDING, count=1),
        EntityCount(source_id=example.id, entity_type=EntityType.PAGE, scraping_status=ScrapingStatus.SUCCESS, count=2),
        EntityCount(source_id=example.id, entity_type=EntityType.PAGE, scraping_status=ScrapingStatus.QUEUED, count=0),
    ])
    db.commit()
    return {"example": example, "french": french, "due": due, "later": later, "dormant": dormant}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


# =============================================================================
# SOURCES
# =============================================================================

def test_list_sources_filters_by_country(client, seeded):
    assert len(client.get("/api/v1/sources").json()) == 2

    response = client.get("/api/v1/sources", params={"country": "fr"})

    assert [s["name"] for s in response.json()] == ["Exemple"]


def test_get_source_includes_non_empty_counts(client, seeded):
    response = client.get(f"/api/v1/sources/{seeded['example'].id}")

    assert response.status_code == 200
    data = response.json()
    assert data["total_entities"] == 3
    buckets = {(c["entity_type"], c["scraping_status"]): c["count"] for c in data["entity_counts"]}
    assert buckets == {("unclassified", "pending"): 1, ("page", "success"): 2}


def test_get_source_not_found(client, seeded):
    response = client.get(f"/api/v1/sources/{seeded['due'].id}")

    assert response.status_code == 404


# =============================================================================
# ENTITIES
# =============================================================================

def test_list_entities_by_status(client, seeded):
    response = client.get("/api/v1/entities", params={"status": "pending"})

    assert [e["url"] for e in response.json()] == ["https://example.com/a"]


def test_list_entities_by_dormancy(client, seeded):
    dormant = client.get("/api/v1/entities", params={"dormant": True}).json()
    awake = client.get("/api/v1/entities", params={"dormant": False}).json()

    assert [e["url"] for e in dormant] == ["https://example.com/c"]
    assert dormant[0]["is_dormant"] is True
    assert {e["url"] for e in awake} == {"https://example.com/a", "https://example.com/b"}


def test_get_entity_embeds_source(client, seeded):
    response = client.get(f"/api/v1/entities/{seeded['later'].id}")

    assert response.status_code == 200
    assert response.json()["source"]["name"] == "Example"


def test_snapshots_are_newest_first(client, seeded):
    response = client.get(f"/api/v1/entities/{seeded['later'].id}/snapshots")

    assert [s["version"] for s in response.json()] == [2, 1]


def test_snapshots_for_unknown_entity(client, seeded):
    response = client.get(f"/api/v1/entities/{seeded['example'].id}/snapshots")

    assert response.status_code == 404


def test_reset_returns_entity_to_pending(client, seeded, api_events):
    response = client.post(f"/api/v1/entities/{seeded['dormant'].id}/reset")

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Entity reset from blocked"
    assert data["entity"]["scraping_status"] == "pending"
    assert data["entity"]["attempts"] == 0
    assert data["entity"]["next_scrape_at"] is None
    assert data["entity"]["is_dormant"] is False

    [event] = api_events.received
    assert event.kind == UPDATED
    assert event.old_status == ScrapingStatus.BLOCKED
    assert event.new_status == ScrapingStatus.PENDING


def test_reset_unknown_entity(client, seeded, api_events):
    response = client.post(f"/api/v1/entities/{seeded['example'].id}/reset")

    assert response.status_code == 404
    assert api_events.received == []
