"""Entity model: a trackable scrape target and its schedule state."""

import hashlib

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship, validates

from scrapehub.enums import ContentType, EntityType, PageType, ScrapingStatus, Temporal
from scrapehub.models.base import Base, JSONType, TimestampMixin, UUIDMixin, enum_column

DESCRIPTION_MAX_LENGTH = 1024


def url_fingerprint(url: str) -> str:
    return hashlib.sha1(url.encode()).hexdigest()


class Entity(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "entities"

    source_id = Column(Uuid(as_uuid=True), ForeignKey("sources.id"), nullable=False, index=True)

    # Dedup
    url = Column(Text, nullable=False)
    url_hash = Column(String(40), nullable=False)

    # Classification (set after a successful fetch)
    type = Column(enum_column(EntityType), default=EntityType.UNCLASSIFIED, nullable=False)
    page_type = Column(enum_column(PageType))
    content_type = Column(enum_column(ContentType))
    temporal = Column(enum_column(Temporal))
    description = Column(String(DESCRIPTION_MAX_LENGTH))
    canonical_number = Column(Integer, default=0, nullable=False)

    # Scrape state
    scraping_status = Column(enum_column(ScrapingStatus), default=ScrapingStatus.PENDING, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    snapshots_count = Column(Integer, default=0, nullable=False)
    next_scrape_at = Column(DateTime(timezone=True))
    fetched_at = Column(DateTime(timezone=True))
    policy_result = Column(JSONType)

    # Page metadata
    source_published_at = Column(DateTime(timezone=True))
    source_updated_at = Column(DateTime(timezone=True))

    # Relationships
    source = relationship("Source", back_populates="entities")
    snapshots = relationship("Snapshot", back_populates="entity", order_by="Snapshot.version")

    __table_args__ = (
        UniqueConstraint("source_id", "url_hash", name="uq_entity_source_url_hash"),
        Index("idx_entity_status_next", "scraping_status", "next_scrape_at"),
        Index("idx_entity_source_next", "source_id", "next_scrape_at"),
    )

    @validates("url")
    def _set_url_hash(self, key, url):
        if url:
            self.url_hash = url_fingerprint(url)
        return url

    @property
    def is_dormant(self) -> bool:
        """Attempts exhausted: no next visit until the entity is reset."""
        return self.scraping_status in ScrapingStatus.error_statuses() and self.next_scrape_at is None

    def __repr__(self) -> str:
        return f"<Entity {self.id} {self.scraping_status} {self.url}>"
