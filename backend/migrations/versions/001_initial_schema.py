"""Initial schema: sources, entities, snapshots, entity_counts.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Sources
    op.create_table(
        "sources",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("base_url", sa.String(500), nullable=False),
        sa.Column("authority_score", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("priority", sa.Float, nullable=False, server_default=sa.text("0.5")),
        sa.Column("scraping_country_code", sa.String(2)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_source_updated", "sources", ["updated_at"])

    # Entities
    op.create_table(
        "entities",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("source_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("sources.id"), nullable=False, index=True),
        sa.Column("url", sa.Text, nullable=False),
        sa.Column("url_hash", sa.String(40), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="unclassified"),
        sa.Column("page_type", sa.String(20)),
        sa.Column("content_type", sa.String(20)),
        sa.Column("temporal", sa.String(20)),
        sa.Column("description", sa.String(1024)),
        sa.Column("canonical_number", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("scraping_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("snapshots_count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("next_scrape_at", sa.DateTime(timezone=True)),
        sa.Column("fetched_at", sa.DateTime(timezone=True)),
        sa.Column("policy_result", postgresql.JSONB),
        sa.Column("source_published_at", sa.DateTime(timezone=True)),
        sa.Column("source_updated_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("source_id", "url_hash", name="uq_entity_source_url_hash"),
    )
    op.create_index("idx_entity_status_next", "entities", ["scraping_status", "next_scrape_at"])
    op.create_index("idx_entity_source_next", "entities", ["source_id", "next_scrape_at"])

    # Snapshots (append-only)
    op.create_table(
        "snapshots",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("entities.id"), nullable=False, index=True),
        sa.Column("scraping_status", sa.String(20), nullable=False),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("content_length", sa.Integer),
        sa.Column("link_count", sa.Integer),
        sa.Column("media_count", sa.Integer),
        sa.Column("structured_data_count", sa.Integer),
        sa.Column("content_change_percentage", sa.Float),
        sa.Column("content_hash", sa.String(64)),
        sa.Column("markdown_content", sa.Text),
        sa.Column("fetch_duration_ms", sa.Integer),
        sa.Column("cost", sa.Float),
        sa.Column("http_status", sa.Integer),
        sa.Column("error_message", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("entity_id", "version", name="uq_snapshot_entity_version"),
    )

    # Entity count aggregates
    op.create_table(
        "entity_counts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("source_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("sources.id"), nullable=False, index=True),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("scraping_status", sa.String(20), nullable=False),
        sa.Column("count", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("source_id", "entity_type", "scraping_status", name="uq_entity_count_bucket"),
    )


def downgrade() -> None:
    op.drop_table("entity_counts")
    op.drop_table("snapshots")
    op.drop_table("entities")
    op.drop_table("sources")
