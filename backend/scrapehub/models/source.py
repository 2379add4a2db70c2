"""Source model: a seed origin that entities belong to."""

from sqlalchemy import Column, Float, Index, Integer, String
from sqlalchemy.orm import relationship

from scrapehub.models.base import Base, TimestampMixin, UUIDMixin


class Source(UUIDMixin, TimestampMixin, Base):
    __tablename__ = "sources"

    name = Column(String(255), nullable=False)
    base_url = Column(String(500), nullable=False)

    # Policy inputs
    authority_score = Column(Integer, default=0, nullable=False)  # 0-100
    priority = Column(Float, default=0.5, nullable=False)  # 0.0-1.0

    # Fetch options
    scraping_country_code = Column(String(2))

    # Relationships
    entities = relationship("Entity", back_populates="source")
    entity_counts = relationship("EntityCount", back_populates="source")

    __table_args__ = (
        Index("idx_source_updated", "updated_at"),
    )
