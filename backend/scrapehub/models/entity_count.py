"""Per-source entity aggregates by type and scraping status."""

from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from scrapehub.enums import EntityType, ScrapingStatus
from scrapehub.models.base import Base, TimestampMixin, UUIDMixin, enum_column


class EntityCount(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "entity_counts"

    source_id = Column(Uuid(as_uuid=True), ForeignKey("sources.id"), nullable=False, index=True)
    entity_type = Column(enum_column(EntityType), nullable=False)
    scraping_status = Column(enum_column(ScrapingStatus), nullable=False)
    count = Column(Integer, default=0, nullable=False)

    source = relationship("Source", back_populates="entity_counts")

    __table_args__ = (
        UniqueConstraint("source_id", "entity_type", "scraping_status", name="uq_entity_count_bucket"),
    )
