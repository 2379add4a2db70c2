"""Snapshot model: one immutable record per fetch attempt."""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import relationship

from scrapehub.enums import ScrapingStatus
from scrapehub.models.base import Base, UUIDMixin, enum_column


class Snapshot(UUIDMixin, Base):
    __tablename__ = "snapshots"

    entity_id = Column(Uuid(as_uuid=True), ForeignKey("entities.id"), nullable=False, index=True)

    scraping_status = Column(enum_column(ScrapingStatus), nullable=False)
    version = Column(Integer, nullable=False)

    # Content metrics
    content_length = Column(Integer)
    link_count = Column(Integer)
    media_count = Column(Integer)
    structured_data_count = Column(Integer)
    content_change_percentage = Column(Float)
    content_hash = Column(String(64))
    markdown_content = Column(Text)

    # Cost metrics
    fetch_duration_ms = Column(Integer)
    cost = Column(Float)

    http_status = Column(Integer)
    error_message = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    entity = relationship("Entity", back_populates="snapshots")

    __table_args__ = (
        UniqueConstraint("entity_id", "version", name="uq_snapshot_entity_version"),
    )
