"""Keyword model."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, Uuid

from autoblog.database import Base


class Keyword(Base):
    """A target keyword queued for article generation."""

    __tablename__ = "keywords"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    website_id = Column(Uuid, ForeignKey("websites.id", ondelete="CASCADE"), nullable=False)
    keyword = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="PENDING")  # PENDING, RESEARCHING, GENERATING, COMPLETED, FAILED, SKIPPED
    retry_count = Column(Integer, nullable=False, default=0)
    error_message = Column(Text)
    blog_post_id = Column(Uuid, ForeignKey("blog_posts.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_keywords_website_status", "website_id", "status"),
    )
