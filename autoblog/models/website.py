"""Website model with brand context and blog settings."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Text, Uuid

from autoblog.database import Base, JSONType


class Website(Base):
    """Website represents a tenant blog and the brand it writes for."""

    __tablename__ = "websites"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, nullable=False)
    brand_name = Column(Text, nullable=False)
    brand_url = Column(Text, nullable=False)
    niche = Column(Text, nullable=False)
    target_audience = Column(Text, nullable=False, default="")
    tone = Column(Text, nullable=False, default="professional")
    description = Column(Text, nullable=False, default="")

    # Brand intelligence
    unique_value_prop = Column(Text)
    competitors = Column(JSONType, default=list)
    key_products = Column(JSONType, default=list)
    target_location = Column(Text)

    # Blog settings
    cta_text = Column(Text)
    cta_url = Column(Text)
    avoid_topics = Column(JSONType, default=list)
    writing_style = Column(Text)
    required_sections = Column(JSONType, default=list)
    preferred_model = Column(Text)  # Overrides settings.DEFAULT_MODEL for this site
    auto_publish = Column(Boolean, default=False)
    internal_links = Column(JSONType, default=list)  # [{"keyword": ..., "url": ...}]

    # Hosting
    subdomain = Column(Text, unique=True)
    custom_domain = Column(Text)
    webhook_url = Column(Text)
    webhook_secret = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
