"""
core/pipeline.py -- Query-normalize, cache, fetch pipeline for news headlines.

No print statements. Called by both the REST API (api/routes/v1/news.py) and
the web UI (web/routes.py). Failures propagate as UpstreamUnavailable; the
caller decides whether that becomes a 502 or an inline message.
"""

import re
from typing import Optional

from cache.store import NewsCache
from core.config import Settings
from core.errors import ValidationFailed
from core.fetcher import fetch_articles
from core.models import NewsArticle

DEFAULT_QUERY = "recipes"
MAX_QUERY_LENGTH = 100

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_query(query: Optional[str]) -> str:
    """Collapse whitespace and lowercase so "Pasta  Recipes" and "pasta recipes" share a cache entry.

    Empty input falls back to DEFAULT_QUERY. Raises ValidationFailed for
    queries longer than MAX_QUERY_LENGTH.
    """
    normalized = _WHITESPACE_RE.sub(" ", (query or "").strip()).lower()
    if not normalized:
        return DEFAULT_QUERY
    if len(normalized) > MAX_QUERY_LENGTH:
        raise ValidationFailed(f"q must be at most {MAX_QUERY_LENGTH} characters.", field="q")
    return normalized


def get_headlines(query: Optional[str], settings: Settings, cache: Optional[NewsCache] = None) -> list[NewsArticle]:
    """Return articles for query, from cache when fresh, otherwise from the provider.

    Only successful fetches are cached. An upstream failure is never cached,
    so the next request retries the provider.
    """
    normalized = normalize_query(query)

    if cache is not None:
        cached = cache.get(normalized)
        if cached is not None:
            return [NewsArticle.from_dict(a) for a in cached]

    articles = fetch_articles(
        normalized,
        api_key=settings.news_api_key,
        api_url=settings.news_api_url,
        page_size=settings.news_page_size,
    )

    if cache is not None:
        cache.set(normalized, [a.to_dict() for a in articles])

    return articles
