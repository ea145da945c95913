"""Initial schema: websites, subscriptions, posts, keywords, generation jobs

Revision ID: 001
Revises:
Create Date: 2026-02-21 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    if "generation_jobs" in existing_tables:
        # Tables already exist, skip migration
        return

    # Create websites table
    op.create_table(
        "websites",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False),
        sa.Column("brand_name", sa.Text, nullable=False),
        sa.Column("brand_url", sa.Text, nullable=False),
        sa.Column("niche", sa.Text, nullable=False),
        sa.Column("target_audience", sa.Text, nullable=False, server_default=""),
        sa.Column("tone", sa.Text, nullable=False, server_default="professional"),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("unique_value_prop", sa.Text),
        sa.Column("competitors", JSONB, server_default="[]"),
        sa.Column("key_products", JSONB, server_default="[]"),
        sa.Column("target_location", sa.Text),
        sa.Column("cta_text", sa.Text),
        sa.Column("cta_url", sa.Text),
        sa.Column("avoid_topics", JSONB, server_default="[]"),
        sa.Column("writing_style", sa.Text),
        sa.Column("required_sections", JSONB, server_default="[]"),
        sa.Column("preferred_model", sa.Text),
        sa.Column("auto_publish", sa.Boolean, server_default=sa.false()),
        sa.Column("internal_links", JSONB, server_default="[]"),
        sa.Column("subdomain", sa.Text, unique=True),
        sa.Column("custom_domain", sa.Text),
        sa.Column("webhook_url", sa.Text),
        sa.Column("webhook_secret", sa.Text),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )

    # Create subscriptions table
    op.create_table(
        "subscriptions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("organization_id", UUID(as_uuid=True), nullable=False, unique=True),
        sa.Column("plan", sa.Text, nullable=False, server_default="FREE"),
        sa.Column("posts_generated_this_month", sa.Integer, nullable=False, server_default="0"),
        sa.Column("max_posts_per_month", sa.Integer, nullable=False, server_default="2"),
    )

    # Create blog_posts table
    op.create_table(
        "blog_posts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("website_id", UUID(as_uuid=True), sa.ForeignKey("websites.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("slug", sa.Text, nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("excerpt", sa.Text),
        sa.Column("meta_title", sa.Text),
        sa.Column("meta_description", sa.Text),
        sa.Column("focus_keyword", sa.Text),
        sa.Column("secondary_keywords", JSONB, server_default="[]"),
        sa.Column("featured_image", sa.Text),
        sa.Column("featured_image_alt", sa.Text),
        sa.Column("structured_data", JSONB),
        sa.Column("social_captions", JSONB),
        sa.Column("word_count", sa.Integer),
        sa.Column("reading_time", sa.Integer),
        sa.Column("tags", JSONB, server_default="[]"),
        sa.Column("category", sa.Text),
        sa.Column("status", sa.Text, nullable=False, server_default="DRAFT"),
        sa.Column("published_at", sa.DateTime),
        sa.Column("generated_by", sa.Text),
        sa.Column("ai_model", sa.Text),
        sa.Column("research_data", JSONB),
        sa.Column("generation_steps", JSONB),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint("website_id", "slug", name="uq_blog_posts_website_slug"),
    )
    op.create_index("idx_blog_posts_website_status", "blog_posts", ["website_id", "status"])

    # Create keywords table
    op.create_table(
        "keywords",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("website_id", UUID(as_uuid=True), sa.ForeignKey("websites.id", ondelete="CASCADE"), nullable=False),
        sa.Column("keyword", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="PENDING"),
        sa.Column("retry_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text),
        sa.Column("blog_post_id", UUID(as_uuid=True), sa.ForeignKey("blog_posts.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("idx_keywords_website_status", "keywords", ["website_id", "status"])

    # Create generation_jobs table
    op.create_table(
        "generation_jobs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("type", sa.Text, nullable=False, server_default="BLOG_GENERATION"),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("current_step", sa.Text),
        sa.Column("progress", sa.Integer, nullable=False, server_default="0"),
        sa.Column("input", JSONB),
        sa.Column("output", JSONB),
        sa.Column("error", sa.Text),
        sa.Column("website_id", UUID(as_uuid=True), sa.ForeignKey("websites.id", ondelete="CASCADE")),
        sa.Column("keyword_id", UUID(as_uuid=True), sa.ForeignKey("keywords.id", ondelete="SET NULL")),
        sa.Column("blog_post_id", UUID(as_uuid=True), sa.ForeignKey("blog_posts.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("started_at", sa.DateTime),
        sa.Column("completed_at", sa.DateTime),
    )
    op.create_index("idx_generation_jobs_status", "generation_jobs", ["status"])
    op.create_index("idx_generation_jobs_website_id", "generation_jobs", ["website_id"])


def downgrade() -> None:
    op.drop_table("generation_jobs")
    op.drop_table("keywords")
    op.drop_table("blog_posts")
    op.drop_table("subscriptions")
    op.drop_table("websites")
