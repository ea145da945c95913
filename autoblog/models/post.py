"""Blog post model."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid

from autoblog.database import Base, JSONType


class BlogPost(Base):
    """A generated article, in review or published."""

    __tablename__ = "blog_posts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    website_id = Column(Uuid, ForeignKey("websites.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    slug = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(Text)
    meta_title = Column(Text)
    meta_description = Column(Text)
    focus_keyword = Column(Text)
    secondary_keywords = Column(JSONType, default=list)
    featured_image = Column(Text)
    featured_image_alt = Column(Text)
    structured_data = Column(JSONType)
    social_captions = Column(JSONType)
    word_count = Column(Integer)
    reading_time = Column(Integer)
    tags = Column(JSONType, default=list)
    category = Column(Text)
    status = Column(Text, nullable=False, default="DRAFT")  # DRAFT, REVIEW, SCHEDULED, PUBLISHED
    published_at = Column(DateTime)
    generated_by = Column(Text)
    ai_model = Column(Text)
    research_data = Column(JSONType)
    generation_steps = Column(JSONType)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("website_id", "slug", name="uq_blog_posts_website_slug"),
        Index("idx_blog_posts_website_status", "website_id", "status"),
    )
