"""Generation job model for the worker queue."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, Uuid

from autoblog.database import Base, JSONType


class Job(Base):
    """Job represents one article generation run for a keyword."""

    __tablename__ = "generation_jobs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    type = Column(Text, nullable=False, default="BLOG_GENERATION")
    status = Column(Text, nullable=False)  # 'QUEUED', 'PROCESSING', 'COMPLETED', 'FAILED'
    current_step = Column(Text)
    progress = Column(Integer, nullable=False, default=0)
    input = Column(JSONType)
    output = Column(JSONType)
    error = Column(Text)
    website_id = Column(Uuid, ForeignKey("websites.id", ondelete="CASCADE"))
    keyword_id = Column(Uuid, ForeignKey("keywords.id", ondelete="SET NULL"))
    blog_post_id = Column(Uuid, ForeignKey("blog_posts.id", ondelete="SET NULL"))
    created_at = Column(DateTime, default=datetime.utcnow)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)

    __table_args__ = (
        Index("idx_generation_jobs_status", "status"),
        Index("idx_generation_jobs_website_id", "website_id"),
    )
