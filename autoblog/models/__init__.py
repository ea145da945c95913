"""SQLAlchemy ORM models."""

from autoblog.models.website import Website
from autoblog.models.subscription import Subscription
from autoblog.models.post import BlogPost
from autoblog.models.keyword import Keyword
from autoblog.models.job import Job

__all__ = [
    "Website",
    "Subscription",
    "BlogPost",
    "Keyword",
    "Job",
]
