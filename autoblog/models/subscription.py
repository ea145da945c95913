"""Subscription model for monthly generation quota."""

import uuid

from sqlalchemy import Column, Integer, Text, Uuid

from autoblog.database import Base


class Subscription(Base):
    """Plan and usage counters for an organization."""

    __tablename__ = "subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, nullable=False, unique=True)
    plan = Column(Text, nullable=False, default="FREE")
    posts_generated_this_month = Column(Integer, nullable=False, default=0)
    max_posts_per_month = Column(Integer, nullable=False, default=2)
