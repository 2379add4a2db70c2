"""Scrape worker: one fetch, classify, parse, persist and replan cycle for one entity."""

import logging
import time
import uuid
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from scrapehub.enums import EntityType, ScrapingStatus
from scrapehub.events import EntityEvent, EntityEventBus
from scrapehub.models.base import utcnow
from scrapehub.models.entity import DESCRIPTION_MAX_LENGTH, Entity, url_fingerprint
from scrapehub.models.snapshot import Snapshot
from scrapehub.services import html_cleaner
from scrapehub.services.classifier import PageClassifier
from scrapehub.services.content_metrics import (
    change_percentage,
    count_media_in_markdown,
    count_structured_data,
    hash_content,
    link_count,
    truncate_description,
)
from scrapehub.services.fetcher import FetchConnectError, FetchError, ScrapingOptions
from scrapehub.services.parser import PageParser
from scrapehub.services.policy.base import ScrapePolicyEngine
from scrapehub.services.retry import attempts_exhausted, backoff_seconds, failure_status
from scrapehub.services.urls import normalize_url, same_host_urls, url_host

logger = logging.getLogger(__name__)


class ScrapeEntityWorker:
    """Drive one entity through the retry state machine.

    Expected fetch failures (HTTP >= 400, connect/timeout, transport errors)
    and collaborator failures are absorbed into the entity's retry state.
    Storage errors propagate.
    """

    def __init__(
        self,
        session_factory,
        fetcher,
        classifier: PageClassifier,
        parser: PageParser,
        policy_engine: ScrapePolicyEngine,
        events: EntityEventBus | None = None,
        max_attempts: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.fetcher = fetcher
        self.classifier = classifier
        self.parser = parser
        self.policy_engine = policy_engine
        self.events = events or EntityEventBus()
        self.max_attempts = max_attempts
        self.clock = clock

    def run(self, entity_id: uuid.UUID) -> ScrapingStatus | None:
        """Process a QUEUED entity. Returns the resulting status, or None when skipped."""
        db = self.session_factory()
        try:
            entity = self._claim(db, entity_id)
            if entity is None:
                return None

            # Bucket the failure event leaves, even if content was already written
            old_type = entity.type
            started = time.monotonic()
            try:
                options = ScrapingOptions(
                    country_code=entity.source.scraping_country_code if entity.source else None,
                )
                response = self.fetcher.fetch(entity.url, options)
                duration_ms = self._elapsed_ms(started)

                if response.status_code >= 400:
                    return self.mark_failed(
                        db, entity_id,
                        failure_status(response.status_code),
                        duration_ms,
                        http_status=response.status_code,
                        error=f"HTTP {response.status_code}",
                        old_type=old_type,
                    )

                linked_urls = self.process_content(
                    db, entity_id, response.body, duration_ms, http_status=response.status_code,
                )
            except SQLAlchemyError:
                raise
            except FetchConnectError as e:
                logger.warning(f"Connect error for entity {entity_id}: {e}")
                return self.mark_failed(
                    db, entity_id, ScrapingStatus.TIMEOUT, self._elapsed_ms(started), error=str(e), old_type=old_type,
                )
            except FetchError as e:
                logger.warning(f"Request error for entity {entity_id}: {e}")
                return self.mark_failed(
                    db, entity_id, ScrapingStatus.FAILED, self._elapsed_ms(started), error=str(e), old_type=old_type,
                )
            except Exception as e:
                # Classifier, parser and policy failures share the FAILED path
                logger.exception(f"Unexpected error for entity {entity_id}: {e}")
                return self.mark_failed(
                    db, entity_id, ScrapingStatus.FAILED, self._elapsed_ms(started), error=str(e), old_type=old_type,
                )

            self.discover_links(db, entity_id, linked_urls)
            return ScrapingStatus.SUCCESS
        finally:
            db.close()

    def _claim(self, db, entity_id: uuid.UUID) -> Entity | None:
        """QUEUED -> FETCHING as a conditional update; None when the entity is not QUEUED."""
        result = db.execute(
            update(Entity)
            .where(Entity.id == entity_id, Entity.scraping_status == ScrapingStatus.QUEUED)
            .values(scraping_status=ScrapingStatus.FETCHING)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            entity = db.get(Entity, entity_id)
            status = entity.scraping_status.name if entity else "missing"
            logger.debug(f"Entity {entity_id} status is {status}, skipping")
            return None

        db.commit()
        entity = db.get(Entity, entity_id, populate_existing=True)
        self.events.emit(EntityEvent.transition(entity, old_status=ScrapingStatus.QUEUED))
        return entity

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int(round((time.monotonic() - started) * 1000))

    @staticmethod
    def next_version(db, entity_id: uuid.UUID) -> int:
        current = db.execute(
            select(func.coalesce(func.max(Snapshot.version), 0)).where(Snapshot.entity_id == entity_id)
        ).scalar_one()
        return current + 1

    def process_content(
        self, db, entity_id: uuid.UUID, html: str, duration_ms: int, http_status: int = 200,
    ) -> list[str]:
        """Classify, parse and persist a successful fetch, then replan. Returns linked page URLs."""
        entity = db.get(Entity, entity_id)
        cleaned = html_cleaner.clean(html)

        # Slow collaborator calls run outside any transaction
        classification = self.classifier.classify(cleaned)
        page = self.parser.parse(cleaned, base_url=entity.url)

        markdown = page.markdown_content or ""
        linked_urls = list(page.linked_page_urls)
        content_hash = hash_content(markdown)
        now = self.clock()

        # Content transaction
        db.rollback()
        entity = db.get(Entity, entity_id, with_for_update=True, populate_existing=True)
        old_type = entity.type
        previous = db.execute(
            select(Snapshot.content_hash, Snapshot.markdown_content)
            .where(Snapshot.entity_id == entity_id, Snapshot.scraping_status == ScrapingStatus.SUCCESS)
            .order_by(Snapshot.version.desc())
            .limit(1)
        ).first()
        if previous is None:
            change = None
        elif previous.content_hash == content_hash:
            change = 0.0
        else:
            change = change_percentage(previous.markdown_content or "", markdown)

        version = self.next_version(db, entity_id)
        db.add(Snapshot(
            entity_id=entity_id,
            scraping_status=ScrapingStatus.SUCCESS,
            version=version,
            content_length=len(markdown),
            link_count=link_count(markdown, linked_urls),
            media_count=count_media_in_markdown(markdown),
            structured_data_count=count_structured_data(html),
            content_change_percentage=change,
            content_hash=content_hash,
            markdown_content=markdown,
            fetch_duration_ms=duration_ms,
            http_status=http_status,
        ))

        description = classification.description if classification.description is not None else page.excerpt
        entity.type = EntityType.PAGE
        entity.page_type = classification.page_type
        entity.content_type = classification.content_type
        entity.temporal = classification.temporal
        entity.description = truncate_description(description or None, DESCRIPTION_MAX_LENGTH)
        entity.source_published_at = page.published_at
        entity.source_updated_at = page.updated_at
        entity.canonical_number = page.canonical_number or 0
        entity.fetched_at = now
        entity.snapshots_count = version
        db.flush()

        history = db.execute(
            select(Snapshot)
            .where(Snapshot.entity_id == entity_id)
            .order_by(Snapshot.version.desc())
            .limit(self.policy_engine.history_size)
        ).scalars().all()
        source = entity.source
        db.commit()

        # Policy evaluation may call out to an external scorer
        policy = self.policy_engine.evaluate(entity, history, source, base_time=now)

        # Policy transaction
        entity = db.get(Entity, entity_id, with_for_update=True, populate_existing=True)
        entity.next_scrape_at = policy.next_scrape_at
        entity.policy_result = policy.to_dict()
        entity.scraping_status = ScrapingStatus.SUCCESS
        entity.attempts = 0
        db.commit()

        self.events.emit(EntityEvent.transition(entity, old_status=ScrapingStatus.FETCHING, old_type=old_type))
        logger.info(f"Scraped entity {entity_id} v{version}, next visit {policy.next_scrape_at}")
        return linked_urls

    def mark_failed(
        self,
        db,
        entity_id: uuid.UUID,
        status: ScrapingStatus,
        duration_ms: int | None = None,
        http_status: int | None = None,
        error: str | None = None,
        old_type: EntityType | None = None,
    ) -> ScrapingStatus:
        """Record a failed attempt and apply backoff, or stop once attempts are exhausted."""
        db.rollback()
        entity = db.get(Entity, entity_id, with_for_update=True, populate_existing=True)
        old_status = entity.scraping_status

        version = self.next_version(db, entity_id)
        db.add(Snapshot(
            entity_id=entity_id,
            scraping_status=status,
            version=version,
            fetch_duration_ms=duration_ms,
            http_status=http_status,
            error_message=error[:2000] if error else None,
        ))

        entity.attempts = (entity.attempts or 0) + 1
        entity.scraping_status = status
        entity.snapshots_count = version

        exhausted = attempts_exhausted(entity.attempts, self.max_attempts)
        if exhausted:
            entity.next_scrape_at = None
        else:
            entity.next_scrape_at = self.clock() + timedelta(seconds=backoff_seconds(entity.attempts))
        db.commit()

        if exhausted:
            logger.warning(
                f"Entity {entity_id} exceeded max attempts ({entity.attempts}/{self.max_attempts}), stopping"
            )
        self.events.emit(EntityEvent.transition(entity, old_status=old_status, old_type=old_type))
        return status

    def discover_links(self, db, entity_id: uuid.UUID, linked_urls: list[str]) -> int:
        """Create PENDING entities for unseen same-host links. Never fails the cycle."""
        try:
            return self._create_linked_entities(db, entity_id, linked_urls)
        except Exception as e:
            db.rollback()
            logger.warning(f"Link discovery failed for entity {entity_id}: {e}")
            return 0

    def _create_linked_entities(self, db, entity_id: uuid.UUID, linked_urls: list[str]) -> int:
        if not linked_urls:
            return 0

        entity = db.get(Entity, entity_id)
        host = url_host(entity.url)
        if not host:
            return 0

        normalized = [u for u in (normalize_url(u) for u in linked_urls) if u]
        by_hash = {}
        for url in same_host_urls(normalized, host):
            by_hash.setdefault(url_fingerprint(url), url)
        if not by_hash:
            return 0

        existing = set(db.execute(
            select(Entity.url_hash).where(
                Entity.source_id == entity.source_id,
                Entity.url_hash.in_(list(by_hash)),
            )
        ).scalars())
        new_urls = [url for url_hash, url in by_hash.items() if url_hash not in existing]
        if not new_urls:
            return 0

        created = [Entity(source_id=entity.source_id, url=url) for url in new_urls]
        try:
            db.add_all(created)
            db.commit()
        except IntegrityError:
            # A concurrent worker inserted some of these; fall back to row-by-row
            db.rollback()
            created = self._insert_each(db, entity.source_id, new_urls)

        self.events.emit_all([EntityEvent.created(e) for e in created])
        logger.debug(f"Discovered {len(created)} new entities from {entity_id}")
        return len(created)

    @staticmethod
    def _insert_each(db, source_id: uuid.UUID, urls: list[str]) -> list[Entity]:
        created = []
        for url in urls:
            candidate = Entity(source_id=source_id, url=url)
            try:
                with db.begin_nested():
                    db.add(candidate)
            except IntegrityError:
                continue
            created.append(candidate)
        db.commit()
        return created
