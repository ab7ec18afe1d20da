"""
core/models.py -- Shared data models for the news proxy.

Plain dataclasses only, no I/O. to_dict() / from_dict() are the cache's
serialization boundary.
"""

from dataclasses import asdict, dataclass
from typing import Optional

# ---------------------------------------------------------------------------
# Upstream news models
#
# The provider's JSON never leaves core/fetcher.py. Everything past the
# fetcher -- cache, API routes, web pages -- only sees NewsArticle.
# ---------------------------------------------------------------------------


@dataclass
class NewsArticle:
    title: str
    url: str
    source: str = ""
    description: Optional[str] = None
    published_at: Optional[str] = None
    image_url: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "NewsArticle":
        return cls(
            title=data["title"],
            url=data["url"],
            source=data.get("source", ""),
            description=data.get("description"),
            published_at=data.get("published_at"),
            image_url=data.get("image_url"),
        )
